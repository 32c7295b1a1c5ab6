"""Lint and fix driver for migration scripts.

The engine parses a buffer with Tree-sitter, walks the tree in document
order, feeds ``variable_declarator`` and ``call_expression`` nodes to a fresh
:class:`~migration_lint.rule.AnalysisSession`, and finishes the session once
the walk is complete. Fix mode repeats lint-then-apply until no fix applies,
mirroring ESLint's multi-pass ``--fix``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Final

from migration_lint.errors import FileOperationError, SourceParseError
from migration_lint.fixes import apply_fixes
from migration_lint.logging import get_logger, with_fields
from migration_lint.rule import AnalysisSession
from migration_lint.settings import Severity
from migration_lint.syntax import CallExpression, Span, declarator_from_node, expression_from_node
from migration_lint.tscore import EXTENSION_LANGUAGES, language_for_path, load_language, parse_bytes

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from tree_sitter import Node, Tree

    from migration_lint.diagnostics import Diagnostic
    from migration_lint.settings import LintSettings, RuleOptions

__all__ = [
    "FixResult",
    "LintResult",
    "analyze",
    "discover_files",
    "fix_file",
    "fix_source",
    "iter_nodes",
    "lint_file",
    "lint_source",
    "parse_source",
]

logger = get_logger(__name__)

DEFAULT_MAX_FIX_PASSES: Final[int] = 10
SKIPPED_DIRECTORIES: Final[frozenset[str]] = frozenset({"node_modules", ".git"})


@dataclass(frozen=True, slots=True)
class LintResult:
    """Diagnostics for one buffer, sorted by position."""

    path: str | None
    language: str
    source: bytes
    diagnostics: tuple[Diagnostic, ...]

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity is Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity is Severity.WARN)

    @property
    def fixable_error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity is Severity.ERROR and d.fix is not None)

    @property
    def fixable_warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity is Severity.WARN and d.fix is not None)


@dataclass(frozen=True, slots=True)
class FixResult:
    """Outcome of fix mode: the rewritten buffer and what is left to report."""

    source: bytes
    output: bytes
    passes: int
    fixes_applied: int
    result: LintResult

    @property
    def changed(self) -> bool:
        return self.output != self.source


def iter_nodes(root: Node) -> Iterator[Node]:
    """Yield ``root`` and its descendants in document (pre-)order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _first_error(root: Node) -> Node | None:
    for node in iter_nodes(root):
        if node.type == "ERROR" or node.is_missing:
            return node
    return None


def parse_source(source: bytes, language: str = "javascript", *, path: str | None = None) -> Tree:
    """Parse ``source`` and reject trees containing syntax errors.

    Parameters
    ----------
    source : bytes
        UTF-8 encoded script.
    language : str, optional
        ``"javascript"`` or ``"typescript"``.
    path : str | None, optional
        Origin of the buffer, used in error context.

    Returns
    -------
    Tree
        Error-free Tree-sitter tree.

    Raises
    ------
    SourceParseError
        If the tree contains an error or missing node.
    ConfigurationError
        If the grammar for ``language`` cannot be loaded.
    """
    tree = parse_bytes(load_language(language), source)
    if tree.root_node.has_error:
        error = _first_error(tree.root_node) or tree.root_node
        span = Span.from_node(error, source)
        what = f"missing {error.type}" if error.is_missing else "unexpected token"
        message = f"Parsing error: {what} at {span.line}:{span.column}"
        raise SourceParseError(message, path=path, line=span.line, column=span.column)
    return tree


def analyze(tree: Tree, source: bytes, options: RuleOptions) -> list[Diagnostic]:
    """Run the resolver rule over one parsed file.

    Parameters
    ----------
    tree : Tree
        Tree parsed from ``source``.
    source : bytes
        Buffer the tree was parsed from.
    options : RuleOptions
        Rule configuration.

    Returns
    -------
    list[Diagnostic]
        Call-site diagnostics in visit order, followed by end-of-file ones.
    """
    session = AnalysisSession(options, source)
    for node in iter_nodes(tree.root_node):
        if node.type == "variable_declarator":
            session.on_variable_declarator(declarator_from_node(node, source))
        elif node.type == "call_expression":
            call = expression_from_node(node, source)
            if isinstance(call, CallExpression):
                session.on_call_expression(call)
    return session.finish()


def lint_source(
    source: bytes,
    options: RuleOptions,
    *,
    language: str = "javascript",
    severity: Severity = Severity.ERROR,
    path: str | None = None,
) -> LintResult:
    """Lint one buffer.

    Parameters
    ----------
    source : bytes
        UTF-8 encoded script.
    options : RuleOptions
        Rule configuration.
    language : str, optional
        Grammar to parse with.
    severity : Severity, optional
        Severity stamped on every diagnostic; ``off`` disables the rule
        (the buffer is still parsed).
    path : str | None, optional
        Origin of the buffer.

    Returns
    -------
    LintResult
        Diagnostics sorted by line and column.

    Raises
    ------
    SourceParseError
        If the buffer does not parse.
    """
    tree = parse_source(source, language, path=path)
    diagnostics: list[Diagnostic] = []
    if severity is not Severity.OFF:
        diagnostics = [replace(d, severity=severity) for d in analyze(tree, source, options)]
        diagnostics.sort(key=lambda d: (d.line, d.column))
    return LintResult(path=path, language=language, source=source, diagnostics=tuple(diagnostics))


def fix_source(
    source: bytes,
    options: RuleOptions,
    *,
    language: str = "javascript",
    severity: Severity = Severity.ERROR,
    max_passes: int = DEFAULT_MAX_FIX_PASSES,
    path: str | None = None,
) -> FixResult:
    """Apply fixes until none applies or ``max_passes`` is reached.

    A pass whose output no longer parses is discarded and fixing stops with
    the last good buffer.

    Raises
    ------
    SourceParseError
        If the original buffer does not parse.
    """
    result = lint_source(source, options, language=language, severity=severity, path=path)
    current = source
    passes = 0
    applied = 0
    while passes < max_passes:
        fixes = [d.fix for d in result.diagnostics if d.fix is not None]
        if not fixes:
            break
        outcome = apply_fixes(current, fixes)
        if not outcome.applied:
            break
        try:
            candidate = lint_source(
                outcome.output, options, language=language, severity=severity, path=path
            )
        except SourceParseError:
            logger.warning(
                "Discarding fix pass that produced unparsable output",
                extra={"operation": "fix", "path": path, "pass": passes + 1},
            )
            break
        passes += 1
        applied += len(outcome.applied)
        current = outcome.output
        result = candidate
        logger.debug(
            "Applied fix pass",
            extra={
                "operation": "fix",
                "path": path,
                "pass": passes,
                "applied": len(outcome.applied),
                "deferred": len(outcome.skipped),
            },
        )
    return FixResult(source=source, output=current, passes=passes, fixes_applied=applied, result=result)


def _read_source(path: Path) -> tuple[str, bytes]:
    language = language_for_path(path)
    if language is None:
        message = f"Unsupported file type '{path.suffix}'"
        raise FileOperationError(message, path=str(path))
    try:
        return language, path.read_bytes()
    except OSError as exc:
        message = f"Failed to read {path}: {exc}"
        raise FileOperationError(message, path=str(path), cause=exc) from exc


def lint_file(path: Path, settings: LintSettings) -> LintResult:
    """Lint the migration script at ``path``.

    Raises
    ------
    FileOperationError
        If the file type is unsupported or the file cannot be read.
    SourceParseError
        If the file does not parse.
    """
    language, source = _read_source(path)
    with with_fields(logger, operation="check", path=str(path)) as log:
        result = lint_source(
            source,
            settings.rule_options(),
            language=language,
            severity=settings.severity,
            path=str(path),
        )
        log.debug("Linted file", extra={"problems": len(result.diagnostics)})
    return result


def fix_file(path: Path, settings: LintSettings, *, dry_run: bool = False) -> FixResult:
    """Fix the migration script at ``path`` in place (unless ``dry_run``).

    Raises
    ------
    FileOperationError
        If the file cannot be read or written.
    SourceParseError
        If the file does not parse.
    """
    language, source = _read_source(path)
    with with_fields(logger, operation="fix", path=str(path)) as log:
        fixed = fix_source(
            source,
            settings.rule_options(),
            language=language,
            severity=settings.severity,
            max_passes=settings.max_fix_passes,
            path=str(path),
        )
        if not fixed.changed:
            return fixed
        if dry_run:
            log.info("[DRY RUN] Would fix %s", path)
            return fixed
        try:
            path.write_bytes(fixed.output)
        except OSError as exc:
            message = f"Failed to write {path}: {exc}"
            raise FileOperationError(message, path=str(path), cause=exc) from exc
        log.info("Fixed %s (%d edit(s))", path, fixed.fixes_applied)
    return fixed


def discover_files(targets: Iterable[Path]) -> list[Path]:
    """Expand files and directories into the migration scripts to lint.

    Directories are searched recursively for supported suffixes, skipping
    ``node_modules`` and ``.git``. Explicit files are kept even with an
    unsupported suffix so that the caller can report them.
    """
    found: list[Path] = []
    for target in targets:
        if target.is_dir():
            found.extend(
                sorted(
                    candidate
                    for candidate in target.rglob("*")
                    if candidate.suffix.lower() in EXTENSION_LANGUAGES
                    and candidate.is_file()
                    and not SKIPPED_DIRECTORIES.intersection(candidate.relative_to(target).parts)
                )
            )
        else:
            found.append(target)
    return list(dict.fromkeys(found))
