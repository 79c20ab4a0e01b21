"""
Root conftest.py — Shared Pytest fixtures for the reporter test suite.

Provides fixtures for:
- Zephyr client configuration (no real credentials).
- A ZephyrClient whose HTTP session is mocked.
- Mock Pytest items carrying zephyr/skip markers.
- A controllable clock for elapsed-time assertions.
- A clean environment without ZEPHYR_* variables.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
from unittest.mock import MagicMock

import pytest

from zephyr_reporter.config.loader import ENV_VARIABLES
from zephyr_reporter.zephyr_client.scale_client import ZephyrClient, ZephyrConfig


# ---------------------------------------------------------------------------
# Client Fixtures
# ---------------------------------------------------------------------------


def make_response(status_code: int = 201, body: Any = None) -> MagicMock:
    """Build a mock requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.text = "" if body is None else str(body)
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body if body is not None else {}
    return response


@pytest.fixture
def zephyr_config() -> ZephyrConfig:
    """Client configuration for the PROJ project."""
    return ZephyrConfig(
        project_key="PROJ",
        api_token="test-token",
        user_id="user-42",
        folder_id=7,
        base_url="https://zephyr.example.com/v2/",
    )


@pytest.fixture
def mock_session() -> MagicMock:
    """Mocked requests.Session; every POST returns 201 with an empty body."""
    session = MagicMock()
    session.post.return_value = make_response(201, {})
    return session


@pytest.fixture
def zephyr_client(zephyr_config: ZephyrConfig, mock_session: MagicMock) -> ZephyrClient:
    """ZephyrClient wired to the mocked session."""
    client = ZephyrClient(zephyr_config)
    client._session = mock_session
    return client


# ---------------------------------------------------------------------------
# Test Item Fixtures
# ---------------------------------------------------------------------------


class MockItem:
    """Mock Pytest item exposing markers the way pytest.Item does."""

    def __init__(
        self,
        nodeid: str,
        zephyr_keys: Optional[Iterable[Iterable[str]]] = None,
        skip: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.nodeid = nodeid
        self.name = nodeid.rpartition("::")[2]
        self._markers: List[MagicMock] = []

        for keys in zephyr_keys or []:
            self._markers.append(self._marker("zephyr", tuple(keys), {}))
        if skip is not None:
            self._markers.append(
                self._marker("skip", tuple(skip.get("args", ())), skip.get("kwargs", {}))
            )

    @staticmethod
    def _marker(name: str, args: tuple, kwargs: dict) -> MagicMock:
        marker = MagicMock()
        marker.name = name
        marker.args = args
        marker.kwargs = kwargs
        return marker

    def iter_markers(self, name: Optional[str] = None):
        """Iterate over markers, optionally filtering by name."""
        return [m for m in self._markers if name is None or m.name == name]


@pytest.fixture
def mock_items() -> List[MockItem]:
    """A small collection mixing mapped, multi-key, skipped and unmapped tests."""
    return [
        MockItem("tests/test_login.py::LoginTest::test_valid", [["PROJ-T1"]]),
        MockItem(
            "tests/test_login.py::LoginTest::test_lockout",
            [["PROJ-T2", "PROJ-T3"], ["PROJ-T3", "PROJ-T4"]],
        ),
        MockItem(
            "tests/test_export.py::test_pdf",
            [["PROJ-T5"]],
            skip={"kwargs": {"reason": "renderer not installed"}},
        ),
        MockItem("tests/test_utils.py::test_helper"),
    ]


# ---------------------------------------------------------------------------
# Time / Environment Fixtures
# ---------------------------------------------------------------------------


class FakeClock:
    """Clock returning preset timestamps (seconds), repeating the last one."""

    def __init__(self, *times: float) -> None:
        self._times = list(times)

    def __call__(self) -> float:
        if len(self._times) > 1:
            return self._times.pop(0)
        return self._times[0]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all ZEPHYR_* variables from the environment."""
    for variable in ENV_VARIABLES:
        monkeypatch.delenv(variable, raising=False)
