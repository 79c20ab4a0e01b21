"""
Configuration Management Module.

Handles loading and validation of:
- Reporter configuration files (JSON/YAML).
- ZEPHYR_* environment variables.
- Credential and cycle settings consumed by the pytest plugin.
"""

from zephyr_reporter.config.loader import (
    ConfigLoader,
    ConfigurationError,
    ReporterSettings,
    load_settings,
)
from zephyr_reporter.config.schema_registry import SchemaRegistry, SchemaValidationError

__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "ReporterSettings",
    "SchemaRegistry",
    "SchemaValidationError",
    "load_settings",
]
