"""Runtime settings with typed configuration and fail-fast validation.

Rule options mirror the ESLint rule schema (``appFunctionId`` /
``appDefinitionId``, no additional properties). They can come from the
environment (``MIGRATION_LINT_*``), from a JSON config file, or from explicit
overrides, in increasing order of precedence.

Examples
--------
>>> from migration_lint.settings import load_settings
>>> settings = load_settings(app_function_id="fn-1", app_definition_id="def-1")
>>> settings.rule_options().can_fix
True
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from migration_lint.errors import SettingsError
from migration_lint.logging import get_logger

if TYPE_CHECKING:
    from pathlib import Path

__all__ = [
    "ConfigFile",
    "LintSettings",
    "RuleOptions",
    "Severity",
    "load_settings",
]

logger = get_logger(__name__)

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Severity(StrEnum):
    """Rule severity, as in an ESLint rules block."""

    ERROR = "error"
    WARN = "warn"
    OFF = "off"


class RuleOptions(BaseModel):
    """The two identifiers the rule needs to build a fix.

    Empty strings are treated like missing values.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    app_function_id: str | None = Field(default=None, alias="appFunctionId")
    app_definition_id: str | None = Field(default=None, alias="appDefinitionId")

    @property
    def can_fix(self) -> bool:
        """Return True when both identifiers are configured."""
        return bool(self.app_function_id) and bool(self.app_definition_id)


class ConfigFile(RuleOptions):
    """Shape of the JSON config file: the rule options plus a severity."""

    severity: Severity | None = None


class LintSettings(BaseSettings):
    """Aggregate linter configuration (``MIGRATION_LINT_*`` namespace)."""

    model_config = SettingsConfigDict(
        env_prefix="MIGRATION_LINT_",
        extra="forbid",
        case_sensitive=False,
    )

    app_function_id: str | None = Field(
        default=None, description="App function ID written into generated annotations"
    )
    app_definition_id: str | None = Field(
        default=None, description="App definition ID written into generated annotations"
    )
    severity: Severity = Field(default=Severity.ERROR, description="Severity of reported problems")
    max_fix_passes: int = Field(
        default=10, ge=1, description="Upper bound on apply-then-relint passes in fix mode"
    )
    log_level: str = Field(default="WARNING", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_json: bool = Field(default=False, description="Emit logs as JSON lines")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate log level is one of the standard levels.

        Parameters
        ----------
        value : str
            Log level to validate, in any case.

        Returns
        -------
        str
            Validated log level (uppercase).

        Raises
        ------
        ValueError
            If log level is not valid.
        """
        level_upper = value.upper()
        if level_upper not in LOG_LEVELS:
            msg = f"Invalid log level: {value}. Must be one of {', '.join(LOG_LEVELS)}"
            raise ValueError(msg)
        return level_upper

    def __init__(self, **overrides: object) -> None:
        """Initialise settings, converting validation failures to :class:`SettingsError`."""
        try:
            super().__init__(**overrides)  # type: ignore[arg-type]
        except ValidationError as exc:
            msg = f"Configuration validation failed: {exc}"
            logger.exception(
                "Settings validation failed",
                extra={"operation": "settings", "error": str(exc)},
            )
            raise SettingsError(msg, cause=exc, context={"validation_error": str(exc)}) from exc

    def rule_options(self) -> RuleOptions:
        """Return the rule's two-field configuration object."""
        return RuleOptions(
            app_function_id=self.app_function_id,
            app_definition_id=self.app_definition_id,
        )


def _read_config_file(path: Path) -> ConfigFile:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        msg = f"Failed to read or parse config file '{path}': {exc}"
        raise SettingsError(msg, cause=exc, context={"path": str(path)}) from exc
    try:
        return ConfigFile.model_validate(raw)
    except ValidationError as exc:
        msg = f"Config file '{path}' is invalid: {exc}"
        raise SettingsError(msg, cause=exc, context={"path": str(path)}) from exc


def load_settings(config_path: Path | None = None, **overrides: object) -> LintSettings:
    """Load :class:`LintSettings` from env, an optional config file, and overrides.

    Parameters
    ----------
    config_path : Path | None, optional
        JSON file shaped like the ESLint rule options
        (``{"appFunctionId": ..., "appDefinitionId": ..., "severity": ...}``).
    **overrides : object
        Explicit values, typically from CLI flags. ``None`` values are ignored
        so that an unset flag never masks the file or the environment.

    Returns
    -------
    LintSettings
        Validated settings.

    Raises
    ------
    SettingsError
        If the config file cannot be read or any value fails validation.
    """
    values: dict[str, object] = {}
    if config_path is not None:
        config = _read_config_file(config_path)
        values.update(config.model_dump(exclude_none=True))
        logger.debug(
            "Loaded config file",
            extra={"operation": "settings", "path": str(config_path)},
        )
    values.update({key: value for key, value in overrides.items() if value is not None})
    return LintSettings(**values)
