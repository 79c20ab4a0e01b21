"""
Zephyr Scale Client Module.

Provides integration with the Zephyr Scale REST API for:
- Creating Test Cycles.
- Reporting test execution results.
- Mapping Zephyr test case keys to Pytest tests.
"""

from zephyr_reporter.zephyr_client.payloads import TestCycleBody, TestResultBody
from zephyr_reporter.zephyr_client.scale_client import (
    BearerTokenAuth,
    ZephyrClient,
    ZephyrClientError,
    ZephyrConfig,
    build_session,
)
from zephyr_reporter.zephyr_client.test_mapper import TestDescriptor, TestMapper

__all__ = [
    "BearerTokenAuth",
    "TestCycleBody",
    "TestDescriptor",
    "TestMapper",
    "TestResultBody",
    "ZephyrClient",
    "ZephyrClientError",
    "ZephyrConfig",
    "build_session",
]
