"""Typed exception hierarchy with Problem Details support.

Every operational failure of the linter (bad configuration, a file that does
not parse, an unreadable path) raises a subclass of
:class:`MigrationLintError`. Lint findings are never exceptions; they are
reported as :class:`~migration_lint.diagnostics.Diagnostic` records.

Examples
--------
>>> from migration_lint.errors import ErrorCode, SourceParseError
>>> try:
...     raise SourceParseError("Unexpected token", path="migrations/01.js")
... except SourceParseError as e:
...     assert e.code == ErrorCode.PARSE_ERROR
...     details = e.to_problem_details(instance="migrations/01.js")
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import StrEnum
from typing import Final

__all__ = [
    "BASE_TYPE_URI",
    "ConfigurationError",
    "ErrorCode",
    "FileOperationError",
    "MigrationLintError",
    "SettingsError",
    "SourceParseError",
    "get_type_uri",
]

BASE_TYPE_URI: Final[str] = "https://contentful-migration-lint.dev/problems"


class ErrorCode(StrEnum):
    """Stable error codes for migration-lint exceptions.

    Codes follow kebab-case naming and double as the last path segment of the
    Problem Details type URI.
    """

    RUNTIME_ERROR = "runtime-error"
    CONFIGURATION_ERROR = "configuration-error"
    SETTINGS_ERROR = "settings-error"
    PARSE_ERROR = "parse-error"
    FILE_OPERATION_ERROR = "file-operation-error"


def get_type_uri(code: ErrorCode) -> str:
    """Return the Problem Details type URI for ``code``.

    Parameters
    ----------
    code : ErrorCode
        Error code to resolve.

    Returns
    -------
    str
        Absolute URI under :data:`BASE_TYPE_URI`.
    """
    return f"{BASE_TYPE_URI}/{code.value}"


class MigrationLintError(Exception):
    """Base exception for all migration-lint errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    code : ErrorCode, optional
        Stable error code. Defaults to ``ErrorCode.RUNTIME_ERROR``.
    cause : Exception | None, optional
        Underlying exception, also chained with ``raise ... from``.
    context : Mapping[str, object] | None, optional
        Structured context included in logs and Problem Details.
    log_level : int, optional
        Level used when the error is logged at the CLI boundary.

    Examples
    --------
    >>> error = MigrationLintError("Operation failed")
    >>> str(error)
    'MigrationLintError[runtime-error]: Operation failed'
    """

    title: str = "Migration lint error"

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.RUNTIME_ERROR,
        cause: Exception | None = None,
        context: Mapping[str, object] | None = None,
        log_level: int = logging.ERROR,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.cause = cause
        self.context: dict[str, object] = dict(context or {})
        self.log_level = log_level
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        """Return ``Name[code]: message``."""
        return f"{type(self).__name__}[{self.code.value}]: {self.message}"

    def to_problem_details(self, instance: str | None = None) -> dict[str, object]:
        """Render the error as an RFC 9457 Problem Details mapping.

        Parameters
        ----------
        instance : str | None, optional
            URI reference identifying the failing occurrence, typically the
            path being linted.

        Returns
        -------
        dict[str, object]
            JSON-serializable Problem Details payload.
        """
        details: dict[str, object] = {
            "type": get_type_uri(self.code),
            "title": self.title,
            "detail": self.message,
            "code": self.code.value,
        }
        if instance is not None:
            details["instance"] = instance
        if self.context:
            details["extensions"] = {key: str(value) for key, value in self.context.items()}
        return details


class ConfigurationError(MigrationLintError):
    """Raised when the linter is misconfigured or a grammar package is missing."""

    title = "Configuration error"

    def __init__(
        self,
        message: str,
        *,
        cause: Exception | None = None,
        context: Mapping[str, object] | None = None,
        code: ErrorCode = ErrorCode.CONFIGURATION_ERROR,
    ) -> None:
        super().__init__(message, code=code, cause=cause, context=context)


class SettingsError(ConfigurationError):
    """Raised when settings fail validation."""

    title = "Invalid settings"

    def __init__(
        self,
        message: str,
        *,
        cause: Exception | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, cause=cause, context=context, code=ErrorCode.SETTINGS_ERROR)


class SourceParseError(MigrationLintError):
    """Raised when a migration script contains syntax errors.

    Parameters
    ----------
    message : str
        Description of the first syntax error.
    path : str | None, optional
        File the source came from, when known.
    line : int | None, optional
        1-based line of the first error node.
    column : int | None, optional
        1-based column of the first error node.
    """

    title = "Parsing error"

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        context: dict[str, object] = {}
        if path is not None:
            context["path"] = path
        if line is not None:
            context["line"] = line
        if column is not None:
            context["column"] = column
        super().__init__(message, code=ErrorCode.PARSE_ERROR, context=context)
        self.path = path
        self.line = line
        self.column = column


class FileOperationError(MigrationLintError):
    """Raised when a migration script cannot be read, written, or recognised."""

    title = "File operation failed"

    def __init__(self, message: str, *, path: str, cause: Exception | None = None) -> None:
        super().__init__(
            message,
            code=ErrorCode.FILE_OPERATION_ERROR,
            cause=cause,
            context={"path": path},
        )
        self.path = path
