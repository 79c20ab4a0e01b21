"""
Test Execution Status values accepted by Zephyr Scale.

Zephyr matches execution statuses on the literal status name, so the
values below must stay byte-exact.
"""

from __future__ import annotations

from enum import Enum
from typing import Union


class TestExecutionStatus(Enum):
    """Execution status names at the Zephyr Scale instance."""

    __test__ = False

    BLOCKED = "Blocked"
    FAILED = "Fail"
    IN_PROGRESS = "In Progress"
    NOT_EXECUTED = "Not Executed"
    PASSED = "Pass"

    @classmethod
    def coerce(cls, status: Union["TestExecutionStatus", str]) -> "TestExecutionStatus":
        """
        Resolve a status member from a member or its exact wire literal.

        Args:
            status: A TestExecutionStatus or one of its literal values.

        Returns:
            The matching TestExecutionStatus.

        Raises:
            ValueError: If the value is not one of the five status literals.
        """
        if isinstance(status, cls):
            return status
        return cls(status)
