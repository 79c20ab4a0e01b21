"""
Zephyr Scale Request Payloads.

Request bodies for the two Zephyr Scale operations used by the reporter and
the HTML comment fragments attached to each test result. Field names in
``to_payload`` are the Zephyr wire contract.
"""

from __future__ import annotations

import html
import platform
import traceback
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional, Union

PASSED_COMMENT = "Passed by the automation"


@dataclass(frozen=True)
class TestCycleBody:
    """
    Body of a create-test-cycle request.

    Attributes:
        description: Cycle description.
        folder_id: Folder the cycle is created in.
        name: Cycle title.
        project_key: Jira project key.
    """

    __test__ = False

    description: str
    folder_id: Optional[int]
    name: str
    project_key: str

    def to_payload(self) -> Dict[str, Any]:
        """Convert to the Zephyr JSON request body."""
        return {
            "description": self.description,
            "folderId": self.folder_id,
            "name": self.name,
            "projectKey": self.project_key,
        }


@dataclass(frozen=True)
class TestResultBody:
    """
    Body of a create-test-execution request.

    Attributes:
        assigned_to_id: Jira account id the execution is assigned to.
        comment: HTML comment fragment.
        executed_by_id: Jira account id that executed the test.
        execution_time: Elapsed time in milliseconds.
        project_key: Jira project key.
        status_name: One of the TestExecutionStatus literals.
        test_case_key: Zephyr test case key (e.g. "PROJ-T1").
        test_cycle_key: Zephyr test cycle key (e.g. "PROJ-R12").
    """

    __test__ = False

    assigned_to_id: str
    comment: str
    executed_by_id: str
    execution_time: int
    project_key: str
    status_name: str
    test_case_key: str
    test_cycle_key: str

    def to_payload(self) -> Dict[str, Any]:
        """Convert to the Zephyr JSON request body."""
        return {
            "assignedToId": self.assigned_to_id,
            "comment": self.comment,
            "executedById": self.executed_by_id,
            "executionTime": self.execution_time,
            "projectKey": self.project_key,
            "statusName": self.status_name,
            "testCaseKey": self.test_case_key,
            "testCycleKey": self.test_cycle_key,
        }


@lru_cache(maxsize=1)
def host_metadata() -> Dict[str, str]:
    """Describe the machine running the tests."""
    return {
        "host": platform.node() or "unknown",
        "machine": platform.machine() or "unknown",
        "platform": platform.platform(),
        "python": platform.python_version(),
    }


def build_result_comment(script: str, comment: str = "") -> str:
    """
    Build the HTML comment attached to a test result.

    The comment leads with the host and platform the test ran on and the
    test script/method, followed by the caller's comment.
    """
    meta = host_metadata()
    return (
        f"<b>Host:</b> {meta['host']} - ({meta['machine']})<br/>"
        f"<b>Platform:</b> {meta['platform']} (Python {meta['python']})<br/>"
        f"<b>Script/Method:</b> {script}<br/>{comment}"
    )


def describe_error(error: Union[BaseException, str]) -> str:
    """Render an error as ``TypeName: message`` (strings pass through)."""
    if isinstance(error, BaseException):
        return f"{type(error).__name__}: {error}"
    return str(error)


def format_failure_comment(
    error: Union[BaseException, str],
    stack_trace: Optional[str] = None,
) -> str:
    """
    Build the comment for a failed test.

    Args:
        error: The exception raised by the test, or its rendered message.
        stack_trace: Full traceback text. Defaults to the exception's own
            formatted traceback.

    Returns:
        HTML fragment with the error and the full stack trace.
    """
    if stack_trace is None:
        if isinstance(error, BaseException):
            stack_trace = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        else:
            stack_trace = ""

    message = html.escape(describe_error(error), quote=False)
    trace = html.escape(stack_trace, quote=False)
    return (
        f"<br/><b>Error:</b> <i>{message}</i><br/><br/>"
        f"<b>Full Stack Trace:</b><br/><i>{trace}</i>"
    )


def format_skip_comment(method_name: str, reason: Optional[str]) -> str:
    """Build the comment for a skipped (blocked) test."""
    reason = html.escape(reason or "", quote=False)
    return f"Blocked due to: skipped test method '{method_name}()': '{reason}'"
