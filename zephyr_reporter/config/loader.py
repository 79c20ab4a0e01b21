"""
Configuration Loader Module.

Provides the reporter configuration layer:
- Loading YAML and JSON configuration files.
- Schema validation using JSON Schema.
- Overlaying ZEPHYR_* environment variables and pytest CLI options.
- Building the immutable ReporterSettings used to construct the reporter.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from loguru import logger

from zephyr_reporter.config.schema_registry import SchemaRegistry
from zephyr_reporter.zephyr_client.scale_client import DEFAULT_BASE_URL, ZephyrConfig

CONFIG_SCHEMA = "zephyr_config_schema"

# Environment variable -> settings field
ENV_VARIABLES: Dict[str, str] = {
    "ZEPHYR_PROJECT_KEY": "project_key",
    "ZEPHYR_API_TOKEN": "api_token",
    "ZEPHYR_USER_ID": "user_id",
    "ZEPHYR_FOLDER_ID": "folder_id",
    "ZEPHYR_TEST_CYCLE_KEY": "test_cycle_key",
    "ZEPHYR_TEST_CYCLE_TITLE": "test_cycle_title",
    "ZEPHYR_TEST_CYCLE_DESCRIPTION": "test_cycle_description",
    "ZEPHYR_BASE_URL": "base_url",
}

REQUIRED_CREDENTIALS = ("project_key", "api_token", "user_id")


class ConfigurationError(Exception):
    """Raised when the reporter configuration is invalid or cannot be loaded."""

    pass


@dataclass(frozen=True)
class ReporterSettings:
    """
    Resolved reporter settings.

    Attributes:
        project_key: Jira project holding the Zephyr Scale instance (e.g. "PROJ").
        api_token: Zephyr Scale API bearer token.
        user_id: Jira account id recorded as assignee and executor.
        folder_id: Folder to create test cycles in.
        test_cycle_key: Existing test cycle to report into.
        test_cycle_title: Title for a newly created test cycle.
        test_cycle_description: Description for a newly created test cycle.
        base_url: Zephyr Scale API base URL.
        timeout_sec: HTTP request timeout in seconds.
        verify_ssl: Whether to verify TLS certificates.
        enabled: Whether reporting is active for the session.
    """

    project_key: str = ""
    api_token: str = ""
    user_id: str = ""
    folder_id: Optional[int] = None
    test_cycle_key: Optional[str] = None
    test_cycle_title: Optional[str] = None
    test_cycle_description: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    timeout_sec: float = 30
    verify_ssl: bool = True
    enabled: bool = False

    def require_credentials(self) -> None:
        """Raise ConfigurationError if any credential needed to report is missing."""
        missing = [name for name in REQUIRED_CREDENTIALS if not getattr(self, name)]
        if missing:
            raise ConfigurationError(
                f"Missing Zephyr Scale settings: {', '.join(missing)}"
            )

    def to_zephyr_config(self) -> ZephyrConfig:
        """Build the client credentials bundle from these settings."""
        return ZephyrConfig(
            project_key=self.project_key,
            api_token=self.api_token,
            user_id=self.user_id,
            folder_id=self.folder_id,
            base_url=self.base_url,
            timeout_sec=self.timeout_sec,
            verify_ssl=self.verify_ssl,
        )

    def __repr__(self) -> str:
        token = "***" if self.api_token else "''"
        return (
            f"ReporterSettings(project_key={self.project_key!r}, api_token={token}, "
            f"user_id={self.user_id!r}, folder_id={self.folder_id!r}, "
            f"test_cycle_key={self.test_cycle_key!r}, base_url={self.base_url!r}, "
            f"enabled={self.enabled!r})"
        )


class ConfigLoader:
    """
    Configuration file loader with schema validation.

    Reads a YAML or JSON reporter configuration file. The settings may sit at
    the top level of the file or under a ``zephyr`` section so the reporter
    can share a configuration file with other tooling.
    """

    SUPPORTED_EXTENSIONS = {".yaml", ".yml", ".json"}

    def __init__(self, schema_registry: Optional[SchemaRegistry] = None) -> None:
        self.schema_registry = schema_registry or SchemaRegistry()

    def load(self, path: str | Path, *, validate: bool = True) -> Dict[str, Any]:
        """
        Load a reporter configuration file.

        Args:
            path: Path to the YAML/JSON configuration file.
            validate: Whether to validate against the reporter schema.

        Returns:
            Parsed configuration as a dictionary.

        Raises:
            ConfigurationError: If the file cannot be loaded or fails validation.
            FileNotFoundError: If the configuration file does not exist.
        """
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        logger.info(f"Loading Zephyr configuration: {file_path}")
        data = self._read_file(file_path)

        section = data.get("zephyr", data)
        if not isinstance(section, dict):
            raise ConfigurationError(
                f"'zephyr' section must be a mapping, got "
                f"{type(section).__name__}: {file_path}"
            )

        if validate:
            self.validate(section)
        return section

    def validate(self, data: Dict[str, Any]) -> None:
        """Validate configuration data against the reporter schema."""
        try:
            self.schema_registry.validate(data, CONFIG_SCHEMA)
        except Exception as e:
            raise ConfigurationError(
                f"Configuration validation failed against schema '{CONFIG_SCHEMA}': {e}"
            ) from e

    def _read_file(self, file_path: Path) -> Dict[str, Any]:
        """Read and parse a YAML or JSON file."""
        suffix = file_path.suffix.lower()
        if suffix not in self.SUPPORTED_EXTENSIONS:
            raise ConfigurationError(
                f"Unsupported file format '{suffix}'. "
                f"Supported: {sorted(self.SUPPORTED_EXTENSIONS)}"
            )

        try:
            content = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Failed to read file {file_path}: {e}") from e

        try:
            if suffix in {".yaml", ".yml"}:
                data = yaml.safe_load(content)
            else:
                data = json.loads(content)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to parse {file_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping (dict), "
                f"got {type(data).__name__}: {file_path}"
            )

        return data


def _read_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Collect settings from ZEPHYR_* environment variables."""
    values: Dict[str, Any] = {}
    for variable, name in ENV_VARIABLES.items():
        raw = environ.get(variable)
        if raw is None or raw == "":
            continue
        if name == "folder_id":
            try:
                values[name] = int(raw)
            except ValueError as e:
                raise ConfigurationError(
                    f"{variable} must be an integer folder id, got {raw!r}"
                ) from e
        else:
            values[name] = raw
    return values


def load_settings(
    config_path: Optional[str | Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    loader: Optional[ConfigLoader] = None,
) -> ReporterSettings:
    """
    Resolve reporter settings from all configuration sources.

    Precedence (highest first): overrides (CLI options), ZEPHYR_* environment
    variables, configuration file, defaults. ``None`` values never override.

    Args:
        config_path: Optional YAML/JSON configuration file.
        overrides: Explicit values, typically from pytest CLI options.
        environ: Environment mapping (defaults to os.environ).
        loader: ConfigLoader to use for the configuration file.

    Returns:
        Validated ReporterSettings.

    Raises:
        ConfigurationError: If any source is invalid.
    """
    loader = loader or ConfigLoader()
    merged: Dict[str, Any] = {}

    if config_path:
        merged.update(loader.load(config_path))

    merged.update(_read_environment(os.environ if environ is None else environ))

    for name, value in (overrides or {}).items():
        if value is not None:
            merged[name] = value

    loader.validate(merged)

    known = {f.name for f in fields(ReporterSettings)}
    settings = ReporterSettings(**{k: v for k, v in merged.items() if k in known})
    logger.debug(f"Zephyr settings resolved: {settings!r}")
    return settings
