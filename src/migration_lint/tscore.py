"""Core Tree-sitter utilities for parsing migration scripts."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cache
from importlib import import_module
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, cast

from tree_sitter import Language, Parser

from migration_lint.errors import ConfigurationError

if TYPE_CHECKING:
    from tree_sitter import Tree


@dataclass(frozen=True)
class LangSpec:
    """Where to find a Tree-sitter grammar."""

    name: str
    """Canonical language name (e.g., 'javascript')."""
    package: str
    """Importable package name (e.g., 'tree_sitter_javascript')."""
    factory: str
    """Name of the package attribute returning the ``TSLanguage`` pointer."""


LANG_SPECS: Final[dict[str, LangSpec]] = {
    "javascript": LangSpec("javascript", "tree_sitter_javascript", "language"),
    "typescript": LangSpec("typescript", "tree_sitter_typescript", "language_typescript"),
}

LANGUAGE_NAMES: Final[tuple[str, ...]] = tuple(sorted(LANG_SPECS))
"""Canonical language names the linter can parse."""

EXTENSION_LANGUAGES: Final[dict[str, str]] = {
    ".js": "javascript",
    ".cjs": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".cts": "typescript",
    ".mts": "typescript",
}
"""Mapping from file suffix to canonical language name."""


def language_for_path(path: str | Path) -> str | None:
    """Return the language used to parse ``path``, based on its suffix.

    Parameters
    ----------
    path : str | Path
        File path; only the suffix is inspected.

    Returns
    -------
    str | None
        Canonical language name, or None for unsupported suffixes.
    """
    return EXTENSION_LANGUAGES.get(Path(path).suffix.lower())


@cache
def load_language(name: str) -> Language:
    """Load the Tree-sitter grammar for ``name``.

    Parameters
    ----------
    name : str
        Canonical language name, one of :data:`LANGUAGE_NAMES`.

    Returns
    -------
    Language
        Instantiated Tree-sitter ``Language`` ready for parsing.

    Raises
    ------
    ConfigurationError
        If the language is unknown, the grammar package is missing, or it does
        not implement the expected factory.
    """
    try:
        spec = LANG_SPECS[name]
    except KeyError as exc:
        message = f"Unsupported language '{name}'. Expected one of {', '.join(LANGUAGE_NAMES)}."
        raise ConfigurationError(message, cause=exc) from exc
    try:
        module = import_module(spec.package)
    except ModuleNotFoundError as exc:  # pragma: no cover - configuration error
        message = f"Tree-sitter package '{spec.package}' is not installed."
        raise ConfigurationError(message, cause=exc) from exc
    try:
        factory = getattr(module, spec.factory)
    except AttributeError as exc:
        message = f"Tree-sitter package '{spec.package}' does not expose a '{spec.factory}()' factory."
        raise ConfigurationError(message, cause=exc) from exc
    return Language(factory())


def parse_bytes(lang: Language, data: bytes) -> Tree:
    """Parse a byte buffer with the supplied Tree-sitter language.

    Parameters
    ----------
    lang : Language
        Instantiated Tree-sitter grammar.
    data : bytes
        UTF-8 encoded source code to parse.

    Returns
    -------
    Tree
        Parsed syntax tree for the provided source buffer.
    """
    parser = Parser()
    cast("Any", parser).language = lang
    return parser.parse(data)
