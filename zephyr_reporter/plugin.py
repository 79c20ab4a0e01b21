"""
Pytest plugin that mirrors test outcomes into Zephyr Scale.

Registered through the ``pytest11`` entry point. Reporting is off unless
enabled with ``--zephyr``, the ``zephyr_enabled`` ini option or
``enabled: true`` in the configuration file.

Tests are linked to Zephyr test cases with a marker::

    @pytest.mark.zephyr("PROJ-T1", "PROJ-T2")
    def test_login():
        ...

Under pytest-xdist every worker reports its own tests. Pass
``--zephyr-cycle-key`` so that all workers share one test cycle.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import pytest
from loguru import logger

from zephyr_reporter.config.loader import ConfigLoader, ConfigurationError, load_settings
from zephyr_reporter.reporter import ZephyrReporter
from zephyr_reporter.zephyr_client.test_mapper import MARKER_NAME, TestMapper

PLUGIN_NAME = "zephyr_reporter_session"

# CLI option dest -> settings field
CLI_OPTIONS: Dict[str, str] = {
    "zephyr_project_key": "project_key",
    "zephyr_token": "api_token",
    "zephyr_user_id": "user_id",
    "zephyr_folder_id": "folder_id",
    "zephyr_cycle_key": "test_cycle_key",
    "zephyr_cycle_title": "test_cycle_title",
    "zephyr_cycle_description": "test_cycle_description",
    "zephyr_base_url": "base_url",
}


# ---------------------------------------------------------------------------
# CLI Options
# ---------------------------------------------------------------------------


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add Zephyr Scale reporting options."""
    group = parser.getgroup("zephyr", "Zephyr Scale reporting")
    group.addoption(
        "--zephyr",
        action="store_true",
        default=None,
        help="Report test results to Zephyr Scale.",
    )
    group.addoption(
        "--zephyr-config",
        default=None,
        help="YAML/JSON file with Zephyr Scale settings.",
    )
    group.addoption("--zephyr-project-key", default=None, help="Jira project key.")
    group.addoption("--zephyr-token", default=None, help="Zephyr Scale API token.")
    group.addoption(
        "--zephyr-user-id",
        default=None,
        help="Jira account id recorded as assignee and executor.",
    )
    group.addoption(
        "--zephyr-folder-id",
        type=int,
        default=None,
        help="Folder to create the test cycle in.",
    )
    group.addoption(
        "--zephyr-cycle-key",
        default=None,
        help="Existing test cycle to report into (no cycle is created).",
    )
    group.addoption("--zephyr-cycle-title", default=None, help="Title of a new test cycle.")
    group.addoption(
        "--zephyr-cycle-description",
        default=None,
        help="Description of a new test cycle.",
    )
    group.addoption("--zephyr-base-url", default=None, help="Zephyr Scale API base URL.")
    parser.addini(
        "zephyr_enabled",
        type="bool",
        default=False,
        help="Report test results to Zephyr Scale.",
    )


def _reporting_enabled(config: pytest.Config) -> bool:
    """Whether --zephyr, the ini option or the config file turns reporting on."""
    if config.getoption("zephyr") or config.getini("zephyr_enabled"):
        return True
    config_path = config.getoption("zephyr_config")
    if config_path:
        return bool(ConfigLoader().load(config_path).get("enabled", False))
    return False


def _cli_overrides(config: pytest.Config) -> Dict[str, Any]:
    """Collect settings given on the command line."""
    overrides: Dict[str, Any] = {
        field: config.getoption(dest) for dest, field in CLI_OPTIONS.items()
    }
    overrides["enabled"] = True
    return overrides


def _is_xdist_controller(config: pytest.Config) -> bool:
    """True for the xdist process that only distributes tests to workers."""
    if hasattr(config, "workerinput"):
        return False
    return config.getoption("dist", "no") != "no"


def pytest_configure(config: pytest.Config) -> None:
    """Register the zephyr marker and, when enabled, the session reporter."""
    config.addinivalue_line(
        "markers",
        f"{MARKER_NAME}(*test_case_keys): Report this test to the given Zephyr Scale test cases",
    )

    # ZEPHYR_* variables are only read once reporting is on
    try:
        if not _reporting_enabled(config) or _is_xdist_controller(config):
            return
        logger.enable("zephyr_reporter")
        settings = load_settings(
            config.getoption("zephyr_config"),
            overrides=_cli_overrides(config),
        )
        reporter = ZephyrReporter.from_settings(settings)
    except (ConfigurationError, FileNotFoundError) as e:
        raise pytest.UsageError(f"Zephyr Scale configuration error: {e}") from e

    config.pluginmanager.register(ZephyrPlugin(reporter), PLUGIN_NAME)


def pytest_unconfigure(config: pytest.Config) -> None:
    """Unregister the session reporter and close its client."""
    plugin = config.pluginmanager.get_plugin(PLUGIN_NAME)
    if plugin is not None:
        plugin.close()
        config.pluginmanager.unregister(plugin)


# ---------------------------------------------------------------------------
# Report helpers
# ---------------------------------------------------------------------------


def _crash_message(report: pytest.TestReport) -> str:
    """Short error line of a failed report (e.g. "AssertionError: ...")."""
    crash = getattr(report.longrepr, "reprcrash", None)
    if crash is not None:
        return crash.message
    return str(report.longrepr).strip().splitlines()[-1] if report.longrepr else ""


def _skip_reason(report: pytest.TestReport) -> Optional[str]:
    """Reason of a skipped report (skip message or xfail reason)."""
    if hasattr(report, "wasxfail"):
        return f"expected failure: {report.wasxfail}" if report.wasxfail else "expected failure"
    if isinstance(report.longrepr, tuple) and len(report.longrepr) == 3:
        message = str(report.longrepr[2])
        prefix = "Skipped: "
        return message[len(prefix):] if message.startswith(prefix) else message
    return None


# ---------------------------------------------------------------------------
# Session Plugin
# ---------------------------------------------------------------------------


class ZephyrPlugin:
    """Feeds pytest run events into a ZephyrReporter."""

    def __init__(self, reporter: ZephyrReporter, mapper: Optional[TestMapper] = None) -> None:
        self.reporter = reporter
        self.mapper = mapper or TestMapper()

    def pytest_collection_modifyitems(self, items: list) -> None:
        self.mapper.collect_from_items(items)

    def pytest_runtest_logstart(self, nodeid: str) -> None:
        self.reporter.on_start(self.mapper.describe(nodeid))

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        if report.when == "teardown":
            if report.failed:
                logger.debug(f"Teardown failure of {report.nodeid} is not reported to Zephyr")
            return

        test = self.mapper.describe(report.nodeid)
        if report.failed:
            self.reporter.on_failure(test, _crash_message(report), report.longreprtext)
        elif report.skipped:
            self.reporter.on_skip(test, _skip_reason(report))
        elif report.when == "call":
            self.reporter.on_success(test)

    def pytest_terminal_summary(self, terminalreporter) -> None:
        summary = self.reporter.summary
        terminalreporter.write_sep("-", "Zephyr Scale")
        terminalreporter.write_line(
            f"test cycle: {self.reporter.test_cycle_key or '(none)'}"
        )
        terminalreporter.write_line(
            f"results submitted: {summary.total_submitted}, "
            f"failed to submit: {summary.total_rejected}"
        )
        for status, count in sorted(summary.submitted.items()):
            terminalreporter.write_line(f"  {status}: {count}")

    def close(self) -> None:
        self.reporter.client.close()
