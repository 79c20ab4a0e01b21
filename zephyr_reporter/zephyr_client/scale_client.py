"""
Zephyr Scale REST API Client.

Provides a dedicated client for the Zephyr Scale Cloud REST API (v2):
- Bearer token authentication applied to every outgoing request.
- Creating Test Cycles.
- Creating Test Executions (test results).

Reporting must never abort a test run, so both public operations absorb
transport and HTTP failures: they log the problem and return a sentinel
("" for a cycle key, 0 for a result id). Each call is exactly one round
trip; there are no retries.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Union

import requests
from requests.auth import AuthBase
from loguru import logger

from zephyr_reporter.status import TestExecutionStatus
from zephyr_reporter.zephyr_client.payloads import (
    TestCycleBody,
    TestResultBody,
    build_result_comment,
)

DEFAULT_BASE_URL = "https://api.zephyrscale.smartbear.com/v2"


class ZephyrClientError(Exception):
    """Raised when a Zephyr Scale API request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class ZephyrConfig:
    """
    Credentials and transport settings for the Zephyr Scale client.

    Attributes:
        project_key: Jira project holding the Zephyr Scale instance. For the
            test case EXMPL-T123 the project would be EXMPL.
        api_token: Bearer token used to authenticate with Zephyr Scale.
        user_id: Jira account id that is recorded as assignee and executor.
        folder_id: Folder to create test cycles in.
        base_url: Zephyr Scale API base URL.
        timeout_sec: Request timeout in seconds.
        verify_ssl: Whether to verify TLS certificates.
    """

    project_key: str
    api_token: str
    user_id: str
    folder_id: Optional[int] = None
    base_url: str = DEFAULT_BASE_URL
    timeout_sec: float = 30
    verify_ssl: bool = True

    def __repr__(self) -> str:
        return (
            f"ZephyrConfig(project_key={self.project_key!r}, api_token=***, "
            f"user_id={self.user_id!r}, folder_id={self.folder_id!r}, "
            f"base_url={self.base_url!r})"
        )


class BearerTokenAuth(AuthBase):
    """Adds the Zephyr bearer token and JSON content type to each request."""

    def __init__(self, token: str) -> None:
        self.token = token

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        request.headers["Authorization"] = f"Bearer {self.token}"
        request.headers["Content-Type"] = "application/json"
        return request


def build_session(config: ZephyrConfig) -> requests.Session:
    """
    Build an authenticated HTTP session for the Zephyr Scale API.

    Args:
        config: Client credentials and transport settings.

    Returns:
        requests.Session whose requests all carry the bearer token.
    """
    session = requests.Session()
    session.verify = config.verify_ssl
    session.auth = BearerTokenAuth(config.api_token)
    session.headers["Accept"] = "application/json"
    return session


class ZephyrClient:
    """
    Client for the Zephyr Scale REST API.

    Usage::

        client = ZephyrClient(ZephyrConfig(
            project_key="PROJ",
            api_token="your-token-here",
            user_id="5b10ac8d82e05b22cc7d4ef5",
            folder_id=123,
        ))
        cycle_key = client.create_test_cycle("Nightly", "Nightly automation run")
        result_id = client.add_test_result(
            "PROJ-T1", cycle_key, TestExecutionStatus.PASSED, elapsed_ms=1500
        )
    """

    ENDPOINTS = {
        "test_cycles": "/testcycles",
        "test_executions": "/testexecutions",
    }

    def __init__(self, config: ZephyrConfig) -> None:
        self._config = replace(config, base_url=config.base_url.rstrip("/"))
        self._session: Optional[requests.Session] = None
        logger.info(
            f"ZephyrClient initialized — project={self._config.project_key}, "
            f"url={self._config.base_url}"
        )

    @property
    def config(self) -> ZephyrConfig:
        """Client credentials and transport settings."""
        return self._config

    def _get_session(self) -> requests.Session:
        """Get or create the authenticated HTTP session."""
        if self._session is None:
            self._session = build_session(self._config)
        return self._session

    def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send one authenticated POST and return the parsed JSON body.

        Args:
            endpoint: API endpoint path.
            payload: JSON request body.

        Returns:
            Parsed JSON response object.

        Raises:
            ZephyrClientError: On non-2xx status, transport failure or a
                response body that is not a JSON object.
        """
        session = self._get_session()
        url = f"{self._config.base_url}{endpoint}"
        logger.debug(f"Zephyr API POST {url}")

        try:
            response = session.post(url, json=payload, timeout=self._config.timeout_sec)
        except requests.exceptions.Timeout as e:
            raise ZephyrClientError(
                f"Zephyr API request timed out after {self._config.timeout_sec}s"
            ) from e
        except requests.exceptions.RequestException as e:
            raise ZephyrClientError(f"Cannot reach Zephyr Scale: {e}") from e

        if not 200 <= response.status_code < 300:
            raise ZephyrClientError(
                f"Unsuccessful request to {endpoint}: {response.status_code} "
                f"{response.text}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ZephyrClientError(
                f"Invalid JSON in response from {endpoint}: {e}",
                status_code=response.status_code,
            ) from e

        if not isinstance(body, dict):
            raise ZephyrClientError(
                f"Unexpected response body from {endpoint}: {body!r}",
                status_code=response.status_code,
            )
        return body

    # ------------------------------------------------------------------
    # Test Cycle Operations
    # ------------------------------------------------------------------

    def create_test_cycle(self, title: str, description: str) -> str:
        """
        Create a Test Cycle in the configured folder.

        Args:
            title: Test Cycle title.
            description: Test Cycle description.

        Returns:
            Key of the created cycle, or "" if the request failed.
        """
        body = TestCycleBody(
            description=description,
            folder_id=self._config.folder_id,
            name=title,
            project_key=self._config.project_key,
        )

        try:
            response = self._post(self.ENDPOINTS["test_cycles"], body.to_payload())
        except ZephyrClientError as e:
            logger.error(f"Failed to create Zephyr test cycle '{title}': {e}")
            return ""

        cycle_key = response.get("key") or ""
        logger.info(f"Zephyr test cycle created: {cycle_key or '(no key returned)'}")
        return str(cycle_key)

    # ------------------------------------------------------------------
    # Test Result Operations
    # ------------------------------------------------------------------

    def add_test_result(
        self,
        test_case_key: str,
        test_cycle_key: str,
        status: Union[TestExecutionStatus, str],
        comment: str = "",
        elapsed_ms: int = 0,
        script: str = "",
    ) -> int:
        """
        Create a Test Result (test execution) on Zephyr.

        Args:
            test_case_key: Test case to attach the result to (e.g. "PROJ-T1").
            test_cycle_key: Test cycle to attach the result to.
            status: Execution status, a member or its exact literal.
            comment: Comment appended after the host metadata.
            elapsed_ms: How long the test took, in milliseconds.
            script: Test script/method that produced the result.

        Returns:
            Id of the created result, or 0 if the request failed.

        Raises:
            ValueError: If status is not a valid execution status.
        """
        status = TestExecutionStatus.coerce(status)
        body = TestResultBody(
            assigned_to_id=self._config.user_id,
            comment=build_result_comment(script, comment),
            executed_by_id=self._config.user_id,
            execution_time=max(0, int(elapsed_ms)),
            project_key=self._config.project_key,
            status_name=status.value,
            test_case_key=test_case_key,
            test_cycle_key=test_cycle_key,
        )

        try:
            response = self._post(self.ENDPOINTS["test_executions"], body.to_payload())
        except ZephyrClientError as e:
            logger.error(f"Failed to add Zephyr result for {test_case_key}: {e}")
            return 0

        try:
            return int(response.get("id") or 0)
        except (TypeError, ValueError):
            logger.warning(
                f"Zephyr returned a non-numeric result id for {test_case_key}: "
                f"{response.get('id')!r}"
            )
            return 0

    def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            self._session.close()
            self._session = None
            logger.debug("Zephyr client session closed")

    def __enter__(self) -> "ZephyrClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
