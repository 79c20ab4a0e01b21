"""
Zephyr Lifecycle Reporter.

Observes test execution events (start, success, failure, skip) and mirrors
the outcome of every test tagged with Zephyr test case keys into a Zephyr
Scale test cycle.

The reporter never alters a test's verdict: submission failures are logged
and counted, never raised.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Union

from loguru import logger

from zephyr_reporter.config.loader import ConfigurationError, ReporterSettings
from zephyr_reporter.status import TestExecutionStatus
from zephyr_reporter.zephyr_client.payloads import (
    PASSED_COMMENT,
    format_failure_comment,
    format_skip_comment,
)
from zephyr_reporter.zephyr_client.scale_client import ZephyrClient
from zephyr_reporter.zephyr_client.test_mapper import TestDescriptor

DEFAULT_CYCLE_TITLE = "Zephyr Automated Cycle"
DEFAULT_CYCLE_DESCRIPTION = "Test Cycle created through the Zephyr pytest plugin"


class TestLifecycleListener(ABC):
    """Callbacks a test runner invokes around each test."""

    __test__ = False

    @abstractmethod
    def on_start(self, test: TestDescriptor) -> None:
        """Called when a test starts."""

    @abstractmethod
    def on_success(self, test: TestDescriptor) -> None:
        """Called when a test passes."""

    @abstractmethod
    def on_failure(
        self,
        test: TestDescriptor,
        error: Union[BaseException, str],
        stack_trace: Optional[str] = None,
    ) -> None:
        """Called when a test fails or errors."""

    @abstractmethod
    def on_skip(self, test: TestDescriptor, reason: Optional[str] = None) -> None:
        """Called when a test is skipped."""


@dataclass
class ReportSummary:
    """Counts of result submissions made during a session."""

    submitted: Dict[str, int] = field(default_factory=dict)
    rejected: Dict[str, int] = field(default_factory=dict)

    def record(self, status: TestExecutionStatus, result_id: int) -> None:
        """Count one submission outcome."""
        bucket = self.submitted if result_id > 0 else self.rejected
        bucket[status.value] = bucket.get(status.value, 0) + 1

    @property
    def total_submitted(self) -> int:
        """Number of results accepted by Zephyr."""
        return sum(self.submitted.values())

    @property
    def total_rejected(self) -> int:
        """Number of results that could not be submitted."""
        return sum(self.rejected.values())


class ZephyrReporter(TestLifecycleListener):
    """
    Lifecycle reporter posting test results to Zephyr Scale.

    The test cycle is resolved once, at construction: an existing cycle key
    is reused, otherwise a new cycle is created in the client's folder. The
    key never changes afterwards.

    Usage::

        reporter = ZephyrReporter(client, existing_test_cycle_key="PROJ-R12")
        reporter.on_start(test)
        reporter.on_success(test)

    Args:
        client: Zephyr Scale API client.
        test_cycle_title: Title for a newly created test cycle.
        test_cycle_description: Description for a newly created test cycle.
        existing_test_cycle_key: Cycle to report into instead of creating one.
        clock: Time source in seconds (defaults to time.monotonic).

    Raises:
        ConfigurationError: If no existing cycle key is given and the client
            has no folder id to create a cycle in.
    """

    def __init__(
        self,
        client: ZephyrClient,
        test_cycle_title: Optional[str] = None,
        test_cycle_description: Optional[str] = None,
        existing_test_cycle_key: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._clock = clock
        self._start_times: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.summary = ReportSummary()

        if existing_test_cycle_key:
            self._test_cycle_key = existing_test_cycle_key
            logger.info(f"Reporting into existing Zephyr test cycle {existing_test_cycle_key}")
        else:
            if client.config.folder_id is None:
                raise ConfigurationError(
                    "A folder id is required to create a Zephyr test cycle "
                    "when no existing test cycle key is provided"
                )
            self._test_cycle_key = client.create_test_cycle(
                test_cycle_title or DEFAULT_CYCLE_TITLE,
                test_cycle_description or DEFAULT_CYCLE_DESCRIPTION,
            )
            if not self._test_cycle_key:
                logger.warning(
                    "Zephyr test cycle could not be created; results will be "
                    "posted without a test cycle key"
                )

    @classmethod
    def from_settings(
        cls,
        settings: ReporterSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> "ZephyrReporter":
        """Build a reporter and its client from resolved settings."""
        settings.require_credentials()
        return cls(
            ZephyrClient(settings.to_zephyr_config()),
            test_cycle_title=settings.test_cycle_title,
            test_cycle_description=settings.test_cycle_description,
            existing_test_cycle_key=settings.test_cycle_key,
            clock=clock,
        )

    @property
    def test_cycle_key(self) -> str:
        """Key of the test cycle all results are posted to."""
        return self._test_cycle_key

    @property
    def client(self) -> ZephyrClient:
        """Zephyr Scale API client."""
        return self._client

    # ------------------------------------------------------------------
    # Lifecycle callbacks
    # ------------------------------------------------------------------

    def on_start(self, test: TestDescriptor) -> None:
        with self._lock:
            self._start_times[test.node_id] = self._clock()

    def on_success(self, test: TestDescriptor) -> None:
        self._submit(test, TestExecutionStatus.PASSED, PASSED_COMMENT)

    def on_failure(
        self,
        test: TestDescriptor,
        error: Union[BaseException, str],
        stack_trace: Optional[str] = None,
    ) -> None:
        self._submit(
            test,
            TestExecutionStatus.FAILED,
            format_failure_comment(error, stack_trace),
        )

    def on_skip(self, test: TestDescriptor, reason: Optional[str] = None) -> None:
        if reason is None:
            reason = test.skip_reason
        self._submit(
            test,
            TestExecutionStatus.BLOCKED,
            format_skip_comment(test.method_name, reason),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _elapsed_ms(self, test: TestDescriptor) -> int:
        """Milliseconds since the test started (0 if it never started)."""
        now = self._clock()
        with self._lock:
            start = self._start_times.pop(test.node_id, None)
        if start is None:
            return 0
        return max(0, int(round((now - start) * 1000)))

    def _submit(
        self,
        test: TestDescriptor,
        status: TestExecutionStatus,
        comment: str,
    ) -> None:
        """Post one result per declared test case key."""
        elapsed_ms = self._elapsed_ms(test)
        for test_case_key in test.test_case_keys:
            result_id = self._client.add_test_result(
                test_case_key,
                self._test_cycle_key,
                status,
                comment,
                elapsed_ms,
                test.script_name,
            )
            self.summary.record(status, result_id)
            if result_id > 0:
                logger.info(
                    f"Test Result added to Zephyr successfully for {test_case_key}, "
                    f"result ID: {result_id}"
                )
            else:
                logger.error(f"Error trying to add result to Zephyr for {test_case_key}")
