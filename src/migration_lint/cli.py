"""Command line interface for the migration linter.

Examples
--------
Report problems, then fix them in place::

    migration-lint check migrations/
    migration-lint fix migrations/ --app-function-id fn-1 --app-definition-id def-1
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Final
from uuid import uuid4

import typer

from migration_lint import __version__
from migration_lint.diagnostics import RULE_ID
from migration_lint.engine import discover_files, fix_file, lint_file
from migration_lint.errors import MigrationLintError, SettingsError, SourceParseError
from migration_lint.logging import get_logger, set_run_id, setup_logging
from migration_lint.settings import Severity, load_settings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from migration_lint.engine import LintResult
    from migration_lint.settings import LintSettings

LOGGER = get_logger(__name__)

EXIT_OK: Final[int] = 0
EXIT_PROBLEMS: Final[int] = 1
EXIT_FATAL: Final[int] = 2

app = typer.Typer(
    help=f"Contentful migration linter ({__version__}): enforce GraphQL field resolver annotations.",
    no_args_is_help=True,
    add_completion=False,
)


class OutputFormat(StrEnum):
    TEXT = "text"
    JSON = "json"


PathsArgument = Annotated[
    list[Path],
    typer.Argument(
        help="Migration scripts or directories containing them.",
        exists=True,
        readable=True,
    ),
]
FunctionIdOption = Annotated[
    str | None,
    typer.Option("--app-function-id", help="App function ID used in generated annotations."),
]
DefinitionIdOption = Annotated[
    str | None,
    typer.Option("--app-definition-id", help="App definition ID used in generated annotations."),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="JSON file with appFunctionId, appDefinitionId and severity.",
    ),
]
FormatOption = Annotated[
    OutputFormat,
    typer.Option("--format", "-f", case_sensitive=False, help="Report format."),
]
LogLevelOption = Annotated[
    str | None,
    typer.Option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)."),
]
DryRunOption = Annotated[
    bool,
    typer.Option("--dry-run", help="Report what would change without writing files."),
]


@dataclass(frozen=True)
class FileReport:
    """Lint outcome for one path: a result, or the error that prevented one."""

    path: Path
    result: LintResult | None = None
    error: MigrationLintError | None = None


def _load(
    config: Path | None,
    app_function_id: str | None,
    app_definition_id: str | None,
    log_level: str | None,
) -> LintSettings:
    try:
        settings = load_settings(
            config,
            app_function_id=app_function_id,
            app_definition_id=app_definition_id,
            log_level=log_level,
        )
    except SettingsError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(EXIT_FATAL) from exc
    setup_logging(settings.log_level, json_format=settings.log_json)
    set_run_id(uuid4().hex)
    return settings


def _fatal_message(error: MigrationLintError) -> dict[str, object]:
    line = column = 0
    if isinstance(error, SourceParseError):
        line = error.line or 0
        column = error.column or 0
    return {
        "ruleId": None,
        "fatal": True,
        "severity": 2,
        "message": error.message,
        "line": line,
        "column": column,
    }


def _report_payload(report: FileReport) -> dict[str, object]:
    if report.result is None:
        messages = [_fatal_message(report.error)] if report.error is not None else []
        return {
            "filePath": str(report.path),
            "messages": messages,
            "errorCount": len(messages),
            "fatalErrorCount": len(messages),
            "warningCount": 0,
            "fixableErrorCount": 0,
            "fixableWarningCount": 0,
        }
    result = report.result
    return {
        "filePath": str(report.path),
        "messages": [diagnostic.to_dict() for diagnostic in result.diagnostics],
        "errorCount": result.error_count,
        "fatalErrorCount": 0,
        "warningCount": result.warning_count,
        "fixableErrorCount": result.fixable_error_count,
        "fixableWarningCount": result.fixable_warning_count,
    }


def render_json(reports: Sequence[FileReport]) -> str:
    """Render reports in the shape of ESLint's JSON formatter."""
    return json.dumps([_report_payload(report) for report in reports], indent=2)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def render_text(reports: Sequence[FileReport]) -> str:
    """Render reports grouped per file, followed by a problem summary."""
    lines: list[str] = []
    errors = warnings = fixable_errors = fixable_warnings = 0
    for report in reports:
        if report.error is not None:
            fatal = _fatal_message(report.error)
            lines.extend(
                [str(report.path), f"  {fatal['line']}:{fatal['column']}  error  {report.error.message}", ""]
            )
            errors += 1
            continue
        result = report.result
        if result is None or not result.diagnostics:
            continue
        lines.append(str(report.path))
        lines.extend(
            f"  {d.line}:{d.column}  {'error' if d.severity is Severity.ERROR else 'warning'}"
            f"  {d.message}  {d.rule_id}"
            for d in result.diagnostics
        )
        lines.append("")
        errors += result.error_count
        warnings += result.warning_count
        fixable_errors += result.fixable_error_count
        fixable_warnings += result.fixable_warning_count
    total = errors + warnings
    if total == 0:
        return ""
    lines.append(
        f"✖ {_plural(total, 'problem')} ({_plural(errors, 'error')}, {_plural(warnings, 'warning')})"
    )
    if fixable_errors or fixable_warnings:
        lines.append(
            f"  {_plural(fixable_errors, 'error')} and {_plural(fixable_warnings, 'warning')} "
            "potentially fixable with the `fix` command."
        )
    return "\n".join(lines)


def _exit_code(reports: Sequence[FileReport]) -> int:
    if any(report.error is not None for report in reports):
        return EXIT_FATAL
    if any(report.result is not None and report.result.error_count for report in reports):
        return EXIT_PROBLEMS
    return EXIT_OK


def _emit(reports: Sequence[FileReport], output_format: OutputFormat) -> None:
    rendered = render_json(reports) if output_format is OutputFormat.JSON else render_text(reports)
    if rendered:
        typer.echo(rendered)


def _lint_one(path: Path, settings: LintSettings) -> FileReport:
    try:
        return FileReport(path=path, result=lint_file(path, settings))
    except MigrationLintError as exc:
        LOGGER.warning("Skipping %s: %s", path, exc.message, extra={"operation": "check"})
        return FileReport(path=path, error=exc)


def _fix_one(path: Path, settings: LintSettings, *, dry_run: bool) -> FileReport:
    try:
        return FileReport(path=path, result=fix_file(path, settings, dry_run=dry_run).result)
    except MigrationLintError as exc:
        LOGGER.warning("Skipping %s: %s", path, exc.message, extra={"operation": "fix"})
        return FileReport(path=path, error=exc)


@app.command("check")
def check(
    paths: PathsArgument,
    app_function_id: FunctionIdOption = None,
    app_definition_id: DefinitionIdOption = None,
    config: ConfigOption = None,
    output_format: FormatOption = OutputFormat.TEXT,
    log_level: LogLevelOption = None,
) -> None:
    """Report resolver annotation problems in migration scripts."""
    settings = _load(config, app_function_id, app_definition_id, log_level)
    reports = [_lint_one(path, settings) for path in discover_files(paths)]
    LOGGER.info("Checked %d file(s) for %s", len(reports), RULE_ID, extra={"operation": "check"})
    _emit(reports, output_format)
    raise typer.Exit(_exit_code(reports))


@app.command("fix")
def fix(
    paths: PathsArgument,
    app_function_id: FunctionIdOption = None,
    app_definition_id: DefinitionIdOption = None,
    config: ConfigOption = None,
    output_format: FormatOption = OutputFormat.TEXT,
    log_level: LogLevelOption = None,
    dry_run: DryRunOption = False,
) -> None:
    """Fix resolver annotation problems in place, then report what remains."""
    settings = _load(config, app_function_id, app_definition_id, log_level)
    reports = [_fix_one(path, settings, dry_run=dry_run) for path in discover_files(paths)]
    LOGGER.info("Processed %d file(s) in fix mode", len(reports), extra={"operation": "fix"})
    _emit(reports, output_format)
    raise typer.Exit(_exit_code(reports))


def main() -> None:
    """Console-script entry point."""
    app()


if __name__ == "__main__":
    main()
