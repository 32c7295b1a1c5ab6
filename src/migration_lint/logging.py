"""Structured logging helpers with run IDs.

Library modules obtain a :class:`LoggerAdapter` from :func:`get_logger`; the
adapter injects ``run_id`` and ``operation`` fields into every record.
Module-level loggers carry a ``NullHandler`` so importing the package never
configures output; the CLI calls :func:`setup_logging` once at startup.

Examples
--------
>>> from migration_lint.logging import get_logger
>>> logger = get_logger(__name__)
>>> logger.info("Lint started", extra={"operation": "check", "path": "01-add-image.js"})
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

__all__ = [
    "JsonFormatter",
    "LoggerAdapter",
    "get_logger",
    "get_run_id",
    "set_run_id",
    "setup_logging",
    "with_fields",
]

TEXT_FORMAT = "%(levelname)s: %(message)s"

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("run_id", default=None)

# Attributes every LogRecord has; anything else on the record came from ``extra``.
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Emits one JSON object per record with ``ts``, ``level``, ``name`` and
    ``message`` plus every scalar or container field passed through ``extra``.
    The ``run_id`` is read from context when the record does not carry one.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format ``record`` as a JSON line.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format.

        Returns
        -------
        str
            JSON-encoded log entry.
        """
        data: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S") + "Z",
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if (
                key not in _RESERVED_ATTRS
                and key not in data
                and not key.startswith("_")
                and value is not None
                and isinstance(value, (str, int, float, bool, list, dict))
            ):
                data[key] = value
        if "run_id" not in data:
            run_id = _run_id.get()
            if run_id is not None:
                data["run_id"] = run_id
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class LoggerAdapter(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Logger adapter that merges bound fields into each record's ``extra``.

    Fields passed per call win over bound fields. ``run_id`` is injected from
    context and ``operation`` defaults to ``"unknown"``.
    """

    logger: logging.Logger

    def process(self, msg: str, kwargs: Mapping[str, Any]) -> tuple[str, Any]:
        """Inject bound and contextual fields into ``kwargs['extra']``."""
        if not isinstance(kwargs, dict):
            return msg, kwargs
        extra = kwargs.setdefault("extra", {})
        if isinstance(self.extra, dict):
            for key, value in self.extra.items():
                extra.setdefault(key, value)
        if "run_id" not in extra:
            run_id = _run_id.get()
            if run_id is not None:
                extra["run_id"] = run_id
        extra.setdefault("operation", "unknown")
        return msg, kwargs


def get_logger(name: str) -> LoggerAdapter:
    """Return a structured logger adapter for ``name``.

    Parameters
    ----------
    name : str
        Logger name, typically ``__name__``.

    Returns
    -------
    LoggerAdapter
        Adapter with no bound fields.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return LoggerAdapter(logger, {})


def setup_logging(level: int | str = logging.WARNING, *, json_format: bool = False) -> None:
    """Configure the root logger to write to stderr.

    Parameters
    ----------
    level : int | str, optional
        Threshold level, as a number or a name such as ``"DEBUG"``.
    json_format : bool, optional
        Emit JSON lines through :class:`JsonFormatter` instead of plain text.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, handlers=[handler], force=True)


def set_run_id(run_id: str | None) -> None:
    """Set the run ID attached to every record emitted in this context."""
    _run_id.set(run_id)


def get_run_id() -> str | None:
    """Return the run ID of the current context, if any."""
    return _run_id.get()


class _WithFieldsContext(AbstractContextManager[LoggerAdapter]):
    def __init__(self, logger: logging.Logger | LoggerAdapter, fields: Mapping[str, object]) -> None:
        self._logger = logger
        self._fields = dict(fields)
        self._token: contextvars.Token[str | None] | None = None

    def __enter__(self) -> LoggerAdapter:
        base_logger = self._logger.logger if isinstance(self._logger, LoggerAdapter) else self._logger
        run_id = self._fields.get("run_id")
        if isinstance(run_id, str):
            self._token = _run_id.set(run_id)
        return LoggerAdapter(base_logger, dict(self._fields))

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        if self._token is not None:
            _run_id.reset(self._token)
        del exc_type, exc_value, exc_tb
        return None


def with_fields(
    logger: logging.Logger | LoggerAdapter,
    **fields: object,
) -> AbstractContextManager[LoggerAdapter]:
    """Bind structured fields to every record logged inside the block.

    A ``run_id`` field is also published to context for the duration of the
    block and restored on exit.

    Examples
    --------
    >>> logger = get_logger(__name__)
    >>> with with_fields(logger, operation="fix", path="01.js") as log:
    ...     log.info("Applied fixes")
    """
    return _WithFieldsContext(logger, fields)
