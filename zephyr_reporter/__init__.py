"""
Zephyr Scale Reporter - Core Source Package.

This package contains the core logic for:
- Zephyr Client: Zephyr Scale REST API integration (test cycles, test results).
- Reporter: Test lifecycle observer that mirrors outcomes into Zephyr Scale.
- Configuration: Credential and settings loading (file, environment, CLI).
- Plugin: Pytest hooks wiring the reporter into a test session.

Logging is disabled on import because the plugin loads in every pytest
session; the plugin re-enables it once reporting is switched on. Other
callers can do the same with ``logger.enable("zephyr_reporter")``.
"""

from loguru import logger

__version__ = "0.1.0"

logger.disable("zephyr_reporter")
