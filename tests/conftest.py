"""Shared pytest fixtures for the migration linter tests.

This module provides reusable fixtures for:
- Rule options with and without the app identifiers
- Writing dedented migration scripts to disk
- Restoring root logging after CLI invocations
"""

from __future__ import annotations

import logging
from pathlib import Path
from textwrap import dedent
from typing import TYPE_CHECKING

import pytest

from migration_lint.settings import RuleOptions

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

FUNCTION_ID = "fn-123"
DEFINITION_ID = "def-456"

CONFIG_ENV_VARS: tuple[str, ...] = (
    "MIGRATION_LINT_APP_FUNCTION_ID",
    "MIGRATION_LINT_APP_DEFINITION_ID",
    "MIGRATION_LINT_SEVERITY",
    "MIGRATION_LINT_MAX_FIX_PASSES",
    "MIGRATION_LINT_LOG_LEVEL",
    "MIGRATION_LINT_LOG_JSON",
)


def js(text: str) -> bytes:
    """Dedent a triple-quoted script and encode it the way files are read."""
    return dedent(text).lstrip("\n").encode("utf-8")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def options() -> RuleOptions:
    return RuleOptions(app_function_id=FUNCTION_ID, app_definition_id=DEFINITION_ID)


@pytest.fixture
def unconfigured() -> RuleOptions:
    return RuleOptions()


@pytest.fixture
def write_script(tmp_path: Path) -> Callable[[str, str], Path]:
    """Return a helper writing a dedented script under ``tmp_path``."""

    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(js(text))
        return path

    return _write
