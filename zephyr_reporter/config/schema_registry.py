"""
Schema Registry Module.

Holds the JSON schemas bundled with the reporter (``schemas/*.json``) and
validates settings against them with jsonschema's Draft 7 validator.
Every violation is collected so a bad configuration is reported in one go.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping

import jsonschema
from loguru import logger

DEFAULT_SCHEMA_DIR = Path(__file__).parent / "schemas"


class SchemaValidationError(Exception):
    """Raised when settings (or a bundled schema itself) are invalid."""

    def __init__(self, message: str, errors: List[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


def _describe(error: jsonschema.ValidationError) -> str:
    """One line per violation, prefixed with the offending setting."""
    setting = ".".join(str(p) for p in error.absolute_path) or "(root)"
    return f"  [{setting}] {error.message}"


class SchemaRegistry:
    """
    Compiled Draft 7 validators for the bundled settings schemas.

    A schema is read and checked the first time it is used; the compiled
    validator is cached for the rest of the session.
    """

    def __init__(self, schema_dir: str | Path = DEFAULT_SCHEMA_DIR) -> None:
        self.schema_dir = Path(schema_dir)
        self._validators: Dict[str, jsonschema.Draft7Validator] = {}

    def get_schema(self, schema_name: str) -> Dict[str, Any]:
        """Return the parsed schema ``<schema_dir>/<schema_name>.json``."""
        return self._validator(schema_name).schema

    def _validator(self, schema_name: str) -> jsonschema.Draft7Validator:
        validator = self._validators.get(schema_name)
        if validator is not None:
            return validator

        schema_path = self.schema_dir / f"{schema_name}.json"
        if not schema_path.is_file():
            raise FileNotFoundError(
                f"Schema not found: {schema_name} (expected at {schema_path})"
            )

        try:
            schema = json.loads(schema_path.read_text(encoding="utf-8"))
            jsonschema.Draft7Validator.check_schema(schema)
        except (OSError, json.JSONDecodeError, jsonschema.SchemaError) as e:
            raise SchemaValidationError(f"Unusable schema {schema_name}: {e}") from e

        validator = jsonschema.Draft7Validator(schema)
        self._validators[schema_name] = validator
        logger.debug(f"Schema compiled: {schema_name}")
        return validator

    def validate(self, data: Mapping[str, Any], schema_name: str) -> None:
        """
        Validate settings against a named schema.

        Args:
            data: Settings mapping to check.
            schema_name: Schema file name without the ``.json`` suffix.

        Raises:
            FileNotFoundError: If the schema does not exist.
            SchemaValidationError: Listing every violation found.
        """
        violations = sorted(
            self._validator(schema_name).iter_errors(dict(data)),
            key=lambda e: [str(p) for p in e.absolute_path],
        )
        if not violations:
            return

        messages = [_describe(error) for error in violations]
        raise SchemaValidationError(
            f"Schema validation failed for '{schema_name}' "
            f"({len(messages)} error(s)):\n" + "\n".join(messages),
            errors=messages,
        )
