"""Structured text edits and the non-overlapping fix applier.

Fixes are expressed over UTF-8 byte offsets of the original buffer, like the
spans they are built from. :func:`apply_fixes` applies one pass; callers
re-lint and call it again until nothing applies (see
:func:`migration_lint.engine.fix_source`).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable

    from migration_lint.syntax import Span

__all__ = [
    "Fix",
    "FixKind",
    "FixOutcome",
    "apply_fixes",
    "js_string",
]

_JS_ESCAPES: Final[dict[str, str]] = {
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class FixKind(StrEnum):
    INSERT = "insert"
    REPLACE = "replace"


@dataclass(frozen=True, slots=True)
class Fix:
    """Replace ``source[start:end]`` with ``text``; inserts have ``start == end``."""

    kind: FixKind
    start: int
    end: int
    text: str

    @classmethod
    def insert_after(cls, span: Span, text: str) -> Fix:
        return cls(kind=FixKind.INSERT, start=span.end, end=span.end, text=text)

    @classmethod
    def replace(cls, span: Span, text: str) -> Fix:
        return cls(kind=FixKind.REPLACE, start=span.start, end=span.end, text=text)

    def to_dict(self) -> dict[str, object]:
        """Return the ESLint ``fix`` shape: ``{"range": [start, end], "text": ...}``."""
        return {"range": [self.start, self.end], "text": self.text}


@dataclass(frozen=True, slots=True)
class FixOutcome:
    """Result of one :func:`apply_fixes` pass."""

    output: bytes
    applied: tuple[Fix, ...]
    skipped: tuple[Fix, ...]


def js_string(value: str, quote: str = "'") -> str:
    """Render ``value`` as a JavaScript string literal.

    Backslashes, the chosen quote character and line terminators (``\\n``,
    ``\\r``, U+2028, U+2029) are backslash-escaped; everything else is
    emitted verbatim.

    Examples
    --------
    >>> js_string("it's")
    "'it\\\\'s'"
    """
    escaped = "".join(
        _JS_ESCAPES.get(char, "\\" + char if char == quote else char) for char in value
    )
    return f"{quote}{escaped}{quote}"


def apply_fixes(source: bytes, fixes: Iterable[Fix]) -> FixOutcome:
    """Apply every fix that does not overlap an earlier one.

    Fixes are ordered by ``(start, end)``. A fix starting at or before the
    end of the previously applied fix is skipped; it is expected to be
    reported again, against the new text, on the next lint pass.

    Parameters
    ----------
    source : bytes
        Original buffer the fixes were computed against.
    fixes : Iterable[Fix]
        Candidate fixes.

    Returns
    -------
    FixOutcome
        New buffer plus the applied and skipped fixes.
    """
    ordered = sorted(fixes, key=lambda fix: (fix.start, fix.end))
    applied: list[Fix] = []
    skipped: list[Fix] = []
    chunks: list[bytes] = []
    cursor = 0
    last_end = -1
    for fix in ordered:
        if fix.start <= last_end:
            skipped.append(fix)
            continue
        chunks.append(source[cursor : fix.start])
        chunks.append(fix.text.encode("utf-8"))
        cursor = fix.end
        last_end = fix.end
        applied.append(fix)
    chunks.append(source[cursor:])
    return FixOutcome(output=b"".join(chunks), applied=tuple(applied), skipped=tuple(skipped))
