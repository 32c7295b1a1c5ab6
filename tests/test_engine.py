"""End-to-end lint and fix tests over real migration scripts."""

from __future__ import annotations

import pytest

from migration_lint.diagnostics import MessageKind
from migration_lint.engine import discover_files, fix_file, fix_source, lint_file, lint_source
from migration_lint.errors import FileOperationError, SourceParseError
from migration_lint.fixes import FixKind
from migration_lint.settings import LintSettings, RuleOptions, Severity

from tests.conftest import DEFINITION_ID, FUNCTION_ID, js

PARAMETERS = (
    "{\n"
    "  parameters: {\n"
    f"    appFunctionId: '{FUNCTION_ID}',\n"
    f"    appDefinitionId: '{DEFINITION_ID}'\n"
    "  }\n"
    "}"
)

MISSING_ANNOTATION = js(
    """
    const ct = migration.editContentType("product");
    const f = ct.createField("image");
    f.type("Object");
    """
)

MISSING_PARAMETERS = js(
    """
    const f = ct.createField("image");
    f.type("Object");
    f.setAnnotations(["Contentful:GraphQLFieldResolver"]);
    """
)


class TestMissingAnnotation:
    def test_reports_at_declaration_with_insert_fix(self, options: RuleOptions) -> None:
        result = lint_source(MISSING_ANNOTATION, options)

        assert len(result.diagnostics) == 1
        diagnostic = result.diagnostics[0]
        assert diagnostic.kind is MessageKind.MISSING_ANNOTATION
        assert diagnostic.data == {"fieldName": "image"}
        assert (diagnostic.line, diagnostic.column) == (2, 11)
        assert diagnostic.fix is not None
        assert diagnostic.fix.kind is FixKind.INSERT

    def test_fix_inserts_annotation_after_declaration(self, options: RuleOptions) -> None:
        fixed = fix_source(MISSING_ANNOTATION, options)

        assert fixed.output.decode() == (
            'const ct = migration.editContentType("product");\n'
            'const f = ct.createField("image");\n'
            f'f.setAnnotations(["Contentful:GraphQLFieldResolver"], {PARAMETERS});\n'
            'f.type("Object");\n'
        )
        assert fixed.result.diagnostics == ()
        assert lint_source(fixed.output, options).diagnostics == ()

    def test_fix_follows_statement_indentation(self, options: RuleOptions) -> None:
        source = js(
            """
            module.exports = function (migration) {
              const product = migration.editContentType("product");
              const image = product.createField("image");
              image.name("Image").type("Object");
            };
            """
        )

        fixed = fix_source(source, options)

        assert fixed.output.decode() == (
            "module.exports = function (migration) {\n"
            '  const product = migration.editContentType("product");\n'
            '  const image = product.createField("image");\n'
            '  image.setAnnotations(["Contentful:GraphQLFieldResolver"], {\n'
            "    parameters: {\n"
            f"      appFunctionId: '{FUNCTION_ID}',\n"
            f"      appDefinitionId: '{DEFINITION_ID}'\n"
            "    }\n"
            "  });\n"
            '  image.name("Image").type("Object");\n'
            "};\n"
        )

    def test_edit_field_is_tracked(self, options: RuleOptions) -> None:
        source = js(
            """
            const hero = ct.editField("hero");
            hero.type("Object");
            """
        )

        result = lint_source(source, options)

        assert [d.data for d in result.diagnostics] == [{"fieldName": "hero"}]

    def test_declaration_without_statement_reports_without_fix(self, options: RuleOptions) -> None:
        source = js(
            """
            for (const f = ct.createField("x"); ;) {
              f.type("Object");
              break;
            }
            """
        )

        result = lint_source(source, options)

        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].fix is None
        assert fix_source(source, options).output == source


class TestMissingParameters:
    def test_inserts_parameters_as_second_argument(self, options: RuleOptions) -> None:
        result = lint_source(MISSING_PARAMETERS, options)

        assert [d.kind for d in result.diagnostics] == [MessageKind.MISSING_PARAMETERS]
        assert (result.diagnostics[0].line, result.diagnostics[0].column) == (3, 1)

        fixed = fix_source(MISSING_PARAMETERS, options)
        assert fixed.output.decode() == (
            'const f = ct.createField("image");\n'
            'f.type("Object");\n'
            f'f.setAnnotations(["Contentful:GraphQLFieldResolver"], {PARAMETERS});\n'
        )
        assert lint_source(fixed.output, options).diagnostics == ()

    def test_replaces_malformed_second_argument(self, options: RuleOptions) -> None:
        source = js(
            """
            f.setAnnotations(["Contentful:GraphQLFieldResolver"], { parameters: { appFunctionId: "x" } });
            """
        )

        fixed = fix_source(source, options)

        assert fixed.output.decode() == (
            f'f.setAnnotations(["Contentful:GraphQLFieldResolver"], {PARAMETERS});\n'
        )
        assert fixed.fixes_applied == 1

    def test_complete_annotation_is_silent(self, options: RuleOptions) -> None:
        source = js(
            """
            const f = ct.createField("image");
            f.type("Object");
            f.setAnnotations(["Contentful:GraphQLFieldResolver"], {
              parameters: { appFunctionId: "a", appDefinitionId: "b" },
            });
            """
        )

        assert lint_source(source, options).diagnostics == ()

    def test_other_annotations_are_ignored(self, options: RuleOptions) -> None:
        source = js(
            """
            f.setAnnotations(["Contentful:AggregateRoot"]);
            """
        )

        assert lint_source(source, options).diagnostics == ()


class TestUnconfigured:
    def test_missing_parameters_reports_configuration_problem(self, unconfigured: RuleOptions) -> None:
        result = lint_source(MISSING_PARAMETERS, unconfigured)

        assert [d.kind for d in result.diagnostics] == [MessageKind.MISSING_IDS_IN_CONFIG]
        assert result.diagnostics[0].fix is None
        assert result.diagnostics[0].message == (
            "Rule configuration is missing 'appFunctionId' or 'appDefinitionId'. Cannot fix."
        )
        assert fix_source(MISSING_PARAMETERS, unconfigured).output == MISSING_PARAMETERS

    def test_missing_annotation_is_not_reported(self, unconfigured: RuleOptions) -> None:
        assert lint_source(MISSING_ANNOTATION, unconfigured).diagnostics == ()
        assert fix_source(MISSING_ANNOTATION, unconfigured).output == MISSING_ANNOTATION


class TestNonQualifyingFields:
    @pytest.mark.parametrize(
        "annotation",
        [
            "",
            'f.setAnnotations(["Contentful:GraphQLFieldResolver"], '
            '{ parameters: { appFunctionId: "a", appDefinitionId: "b" } });\n',
        ],
        ids=["no-annotation", "complete-annotation"],
    )
    def test_symbol_field_is_silent(self, options: RuleOptions, annotation: str) -> None:
        source = js(
            """
            const f = ct.createField("title");
            f.type("Symbol");
            """
        ) + annotation.encode()

        assert lint_source(source, options).diagnostics == ()

    def test_untracked_receiver_is_silent(self, options: RuleOptions) -> None:
        source = js(
            """
            const name = "image";
            const f = ct.createField(name);
            f.type("Object");
            ct.createField("inline").type("Object");
            """
        )

        assert lint_source(source, options).diagnostics == ()


class TestFixLoop:
    def test_overlapping_inserts_are_applied_over_two_passes(self, options: RuleOptions) -> None:
        source = js(
            """
            const a = ct.createField("a"), b = ct.createField("b");
            a.type("Object");
            b.type("Object");
            """
        )

        first = lint_source(source, options)
        assert [d.data["fieldName"] for d in first.diagnostics] == ["a", "b"]

        fixed = fix_source(source, options)

        assert fixed.passes == 2
        assert fixed.fixes_applied == 2
        assert fixed.result.diagnostics == ()
        assert fixed.output.count(b"setAnnotations") == 2

    def test_max_passes_bounds_the_loop(self, options: RuleOptions) -> None:
        source = js(
            """
            const a = ct.createField("a"), b = ct.createField("b");
            a.type("Object");
            b.type("Object");
            """
        )

        fixed = fix_source(source, options, max_passes=1)

        assert fixed.passes == 1
        assert len(fixed.result.diagnostics) == 1

    def test_diagnostics_are_sorted_by_position(self, options: RuleOptions) -> None:
        source = js(
            """
            const a = ct.createField("a");
            a.type("Object");
            const b = ct.createField("b");
            b.type("Object");
            b.setAnnotations(["Contentful:GraphQLFieldResolver"]);
            """
        )

        result = lint_source(source, options)

        assert [(d.kind, d.line) for d in result.diagnostics] == [
            (MessageKind.MISSING_ANNOTATION, 1),
            (MessageKind.MISSING_PARAMETERS, 5),
        ]


class TestSeverityAndLanguages:
    def test_severity_is_stamped_on_diagnostics(self, options: RuleOptions) -> None:
        result = lint_source(MISSING_ANNOTATION, options, severity=Severity.WARN)

        assert [d.severity for d in result.diagnostics] == [Severity.WARN]
        assert result.error_count == 0
        assert result.warning_count == 1
        assert result.fixable_warning_count == 1

    def test_off_disables_the_rule(self, options: RuleOptions) -> None:
        assert lint_source(MISSING_ANNOTATION, options, severity=Severity.OFF).diagnostics == ()

    def test_typescript_migration(self, options: RuleOptions) -> None:
        source = js(
            """
            import { MigrationFunction } from "contentful-migration";

            const migration: MigrationFunction = (migration) => {
              const ct = migration.editContentType("product");
              const image = ct.createField("image") as any;
              const cover = ct.createField("cover");
              cover.type("Object");
            };
            export default migration;
            """
        )

        result = lint_source(source, options, language="typescript")

        assert [d.data for d in result.diagnostics] == [{"fieldName": "cover"}]

    def test_syntax_errors_raise(self, options: RuleOptions) -> None:
        with pytest.raises(SourceParseError) as excinfo:
            lint_source(b"const f = ;\n", options)

        assert excinfo.value.line == 1


class TestFiles:
    def test_lint_and_fix_file(self, write_script, options: RuleOptions) -> None:
        path = write_script("01-image.js", MISSING_ANNOTATION.decode())
        settings = LintSettings(app_function_id=FUNCTION_ID, app_definition_id=DEFINITION_ID)

        assert len(lint_file(path, settings).diagnostics) == 1

        dry = fix_file(path, settings, dry_run=True)
        assert dry.changed
        assert path.read_bytes() == MISSING_ANNOTATION

        fix_file(path, settings)
        assert path.read_bytes() == fix_source(MISSING_ANNOTATION, options).output

    def test_unsupported_suffix_raises(self, write_script) -> None:
        path = write_script("notes.txt", "hello")

        with pytest.raises(FileOperationError):
            lint_file(path, LintSettings())

    def test_discover_files_skips_node_modules(self, write_script, tmp_path) -> None:
        kept = write_script("migrations/01.js", "const a = 1;\n")
        write_script("migrations/02.ts", "const b = 2;\n")
        write_script("migrations/node_modules/pkg/index.js", "module.exports = {};\n")
        write_script("migrations/README.md", "# notes\n")

        found = discover_files([tmp_path / "migrations", kept])

        assert found == [tmp_path / "migrations" / "01.js", tmp_path / "migrations" / "02.ts"]
