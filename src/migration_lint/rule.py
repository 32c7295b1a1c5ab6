"""GraphQL field resolver rule for Contentful migration scripts.

``Object`` fields created or edited in a migration must carry a
``setAnnotations(["Contentful:GraphQLFieldResolver"], {parameters: {...}})``
call naming the app function and app definition that resolve them.

The rule runs in two phases. While the engine walks the tree in document
order, an :class:`AnalysisSession` records every field variable in its
:class:`Tracker` and checks ``setAnnotations`` calls on the spot. When the
walk is over, :func:`reconcile` turns a snapshot of the tracker into
"annotation missing" diagnostics.

Examples
--------
Declaration, type assignment and annotation are correlated through the
variable the field was bound to::

    const image = contentType.createField("image");
    image.name("Image").type("Object");
    image.setAnnotations(["Contentful:GraphQLFieldResolver"], {
      parameters: { appFunctionId: "fn", appDefinitionId: "def" },
    });
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, cast

from migration_lint.diagnostics import MESSAGES, RULE_ID, Diagnostic, MessageKind
from migration_lint.fixes import Fix, js_string
from migration_lint.logging import get_logger
from migration_lint.syntax import (
    ArrayExpression,
    CallExpression,
    Identifier,
    Literal,
    MemberExpression,
    ObjectExpression,
    Property,
    line_indent,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from migration_lint.settings import RuleOptions
    from migration_lint.syntax import Expression, Opaque, Span, VariableDeclarator

__all__ = [
    "RULE_META",
    "AnalysisSession",
    "FieldRecord",
    "RuleMeta",
    "Tracker",
    "has_required_parameters",
    "has_resolver_annotation",
    "reconcile",
    "render_annotation_call",
    "render_parameters",
    "resolve_root_identifier",
]

logger = get_logger(__name__)

FIELD_INITIALIZER_METHODS: Final[frozenset[str]] = frozenset({"createField", "editField"})
TYPE_METHOD: Final[str] = "type"
QUALIFYING_TYPE: Final[str] = "Object"
ANNOTATION_METHOD: Final[str] = "setAnnotations"
RESOLVER_ANNOTATION: Final[str] = "Contentful:GraphQLFieldResolver"
PARAMETERS_KEY: Final[str] = "parameters"
FUNCTION_ID_KEY: Final[str] = "appFunctionId"
DEFINITION_ID_KEY: Final[str] = "appDefinitionId"
INDENT_UNIT: Final[str] = "  "


@dataclass(frozen=True)
class RuleMeta:
    """Static description of the rule, as published by the plugin."""

    rule_id: str
    type: str
    description: str
    category: str
    recommended: bool
    fixable: str
    messages: Mapping[MessageKind, str]
    schema: Mapping[str, object]


RULE_META: Final[RuleMeta] = RuleMeta(
    rule_id=RULE_ID,
    type="problem",
    description=(
        "Enforce that 'Object' type fields created/edited have the correct "
        "'Contentful:GraphQLFieldResolver' annotation with parameters."
    ),
    category="Mandatory change",
    recommended=True,
    fixable="code",
    messages=MESSAGES,
    schema={
        "type": "object",
        "properties": {
            FUNCTION_ID_KEY: {"type": "string"},
            DEFINITION_ID_KEY: {"type": "string"},
        },
        "additionalProperties": False,
    },
)


@dataclass(frozen=True, slots=True)
class FieldRecord:
    """What has been observed about one field variable so far.

    Attributes
    ----------
    variable : str
        Name the field was bound to; also the tracker key.
    field_name : str
        Field ID passed to ``createField``/``editField``.
    declaration : Span
        Span of the ``createField``/``editField`` call.
    statement : Span | None
        Declaration statement a fix is inserted after, if it could be resolved.
    indent : str
        Indentation of the declaration statement.
    is_qualifying_type : bool
        Set once a ``.type("Object")`` call is seen on the variable.
    has_valid_annotation : bool
        Set once a ``setAnnotations`` call carrying the resolver annotation is
        seen on the variable, whatever its parameters look like.
    """

    variable: str
    field_name: str
    declaration: Span
    statement: Span | None
    indent: str
    is_qualifying_type: bool = False
    has_valid_annotation: bool = False


class Tracker:
    """Per-file mapping from variable name to :class:`FieldRecord`."""

    def __init__(self) -> None:
        self._records: dict[str, FieldRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, variable: object) -> bool:
        return variable in self._records

    def get(self, variable: str) -> FieldRecord | None:
        return self._records.get(variable)

    def declare(self, record: FieldRecord) -> None:
        """Start tracking ``record``; a redeclared variable replaces the old record."""
        self._records[record.variable] = record

    def mark_qualifying_type(self, variable: str) -> bool:
        """Flag ``variable`` as an ``Object`` field. Returns False if untracked."""
        record = self._records.get(variable)
        if record is None:
            return False
        self._records[variable] = replace(record, is_qualifying_type=True)
        return True

    def mark_annotated(self, variable: str) -> bool:
        """Flag ``variable`` as carrying the resolver annotation. Returns False if untracked."""
        record = self._records.get(variable)
        if record is None:
            return False
        self._records[variable] = replace(record, has_valid_annotation=True)
        return True

    def snapshot(self) -> Mapping[str, FieldRecord]:
        """Return a read-only copy of the records, in declaration order."""
        return MappingProxyType(dict(self._records))


def resolve_root_identifier(node: Expression) -> str | None:
    """Return the identifier at the base of a call/member chain.

    ``a.b().c()`` and ``a().b`` both resolve to ``"a"``. Chains rooted in
    anything but a bare identifier (``this``, a literal, a computed access)
    resolve to None.

    Parameters
    ----------
    node : Expression
        Call, member or identifier expression.

    Returns
    -------
    str | None
        Root identifier name, or None.
    """
    match node:
        case CallExpression(callee=callee):
            return resolve_root_identifier(callee)
        case MemberExpression(object=receiver):
            return resolve_root_identifier(receiver)
        case Identifier(name=name):
            return name
        case _:
            return None


def _is_string(node: Expression, value: str) -> bool:
    return isinstance(node, Literal) and isinstance(node.value, str) and node.value == value


def _key_name(entry: Property | Opaque) -> str | None:
    if isinstance(entry, Property) and isinstance(entry.key, Identifier):
        return entry.key.name
    return None


def has_resolver_annotation(annotations: ArrayExpression) -> bool:
    """Return True when the array literal lists the resolver annotation."""
    return any(_is_string(element, RESOLVER_ANNOTATION) for element in annotations.elements)


def _is_parameters_entry(entry: Property | Opaque) -> bool:
    if _key_name(entry) != PARAMETERS_KEY or not isinstance(entry, Property):
        return False
    value = entry.value
    if not isinstance(value, ObjectExpression) or len(value.properties) < 2:
        return False
    keys = {_key_name(item) for item in value.properties}
    return FUNCTION_ID_KEY in keys and DEFINITION_ID_KEY in keys


def has_required_parameters(call: CallExpression) -> bool:
    """Return True when the second argument is ``{parameters: {appFunctionId, appDefinitionId}}``.

    Only the presence of the keys is checked, not their values.
    """
    if len(call.arguments) < 2:
        return False
    options = call.arguments[1]
    if not isinstance(options, ObjectExpression):
        return False
    return any(_is_parameters_entry(entry) for entry in options.properties)


def render_parameters(function_id: str, definition_id: str, indent: str) -> str:
    """Render the annotation options object.

    The opening brace is not indented, so the result can follow ``, `` on an
    existing line; nested lines and the closing brace are indented relative
    to ``indent``.
    """
    inner = indent + INDENT_UNIT
    innermost = inner + INDENT_UNIT
    return "\n".join(
        [
            "{",
            f"{inner}{PARAMETERS_KEY}: {{",
            f"{innermost}{FUNCTION_ID_KEY}: {js_string(function_id)},",
            f"{innermost}{DEFINITION_ID_KEY}: {js_string(definition_id)}",
            f"{inner}}}",
            f"{indent}}}",
        ]
    )


def render_annotation_call(
    variable: str, function_id: str, definition_id: str, indent: str
) -> str:
    """Render a complete ``<variable>.setAnnotations([...], {...});`` statement."""
    annotation = js_string(RESOLVER_ANNOTATION, quote='"')
    parameters = render_parameters(function_id, definition_id, indent)
    return f"{indent}{variable}.{ANNOTATION_METHOD}([{annotation}], {parameters});"


def reconcile(records: Mapping[str, FieldRecord], options: RuleOptions) -> list[Diagnostic]:
    """Report ``Object`` fields that never received the resolver annotation.

    Nothing is reported without both configured IDs, since no fix could be
    offered.

    Parameters
    ----------
    records : Mapping[str, FieldRecord]
        Tracker snapshot taken after the whole file was visited.
    options : RuleOptions
        Rule configuration.

    Returns
    -------
    list[Diagnostic]
        One ``missingAnnotation`` diagnostic per offending field, in
        declaration order. The fix is omitted when the declaration statement
        could not be resolved.
    """
    if not options.can_fix:
        return []
    function_id = cast("str", options.app_function_id)
    definition_id = cast("str", options.app_definition_id)
    diagnostics: list[Diagnostic] = []
    for record in records.values():
        if not record.is_qualifying_type or record.has_valid_annotation:
            continue
        fix: Fix | None = None
        if record.statement is not None:
            call = render_annotation_call(record.variable, function_id, definition_id, record.indent)
            fix = Fix.insert_after(record.statement, "\n" + call)
        diagnostics.append(
            Diagnostic(
                kind=MessageKind.MISSING_ANNOTATION,
                span=record.declaration,
                data={"fieldName": record.field_name},
                fix=fix,
            )
        )
    return diagnostics


class AnalysisSession:
    """Rule state for one file.

    The engine creates one session per file, feeds it declarators and calls
    in document order, then calls :meth:`finish` exactly once.

    Parameters
    ----------
    options : RuleOptions
        Rule configuration.
    source : bytes
        Buffer being analysed; used to indent generated code.
    """

    def __init__(self, options: RuleOptions, source: bytes) -> None:
        self.options = options
        self.source = source
        self.tracker = Tracker()
        self._diagnostics: list[Diagnostic] = []
        self._finished = False

    def on_variable_declarator(self, node: VariableDeclarator) -> None:
        """Track ``const x = <receiver>.createField("id")`` and ``editField`` declarations."""
        init = node.init
        if node.name is None or not isinstance(init, CallExpression):
            return
        callee = init.callee
        if not isinstance(callee, MemberExpression) or callee.property not in FIELD_INITIALIZER_METHODS:
            return
        if not init.arguments:
            return
        field_id = init.arguments[0]
        if not isinstance(field_id, Literal) or not isinstance(field_id.value, str):
            return
        self.tracker.declare(
            FieldRecord(
                variable=node.name,
                field_name=field_id.value,
                declaration=init.span,
                statement=node.statement,
                indent=node.indent,
            )
        )
        logger.debug(
            "Tracking field variable",
            extra={"operation": "track", "variable": node.name, "field_name": field_id.value},
        )

    def on_call_expression(self, node: CallExpression) -> None:
        """Dispatch ``.type(...)`` and ``.setAnnotations(...)`` calls."""
        callee = node.callee
        if not isinstance(callee, MemberExpression):
            return
        if callee.property == TYPE_METHOD:
            self._track_type(node, callee)
        elif callee.property == ANNOTATION_METHOD:
            self._check_annotations(node, callee)

    def _track_type(self, node: CallExpression, callee: MemberExpression) -> None:
        if not node.arguments or not _is_string(node.arguments[0], QUALIFYING_TYPE):
            return
        root = resolve_root_identifier(callee.object)
        if root is not None and self.tracker.mark_qualifying_type(root):
            logger.debug("Field is an Object field", extra={"operation": "track", "variable": root})

    def _check_annotations(self, node: CallExpression, callee: MemberExpression) -> None:
        annotations = node.arguments[0] if node.arguments else None
        if not isinstance(annotations, ArrayExpression) or not has_resolver_annotation(annotations):
            return

        root = resolve_root_identifier(callee.object)
        if root is not None and self.tracker.mark_annotated(root):
            logger.debug("Field has a resolver annotation", extra={"operation": "track", "variable": root})

        if has_required_parameters(node):
            return

        if not self.options.can_fix:
            self._diagnostics.append(Diagnostic(kind=MessageKind.MISSING_IDS_IN_CONFIG, span=node.span))
            return
        function_id = cast("str", self.options.app_function_id)
        definition_id = cast("str", self.options.app_definition_id)

        parameters = render_parameters(
            function_id, definition_id, line_indent(self.source, annotations.span.start)
        )
        if len(node.arguments) > 1:
            fix = Fix.replace(node.arguments[1].span, parameters)
        else:
            fix = Fix.insert_after(annotations.span, ", " + parameters)
        self._diagnostics.append(
            Diagnostic(kind=MessageKind.MISSING_PARAMETERS, span=node.span, fix=fix)
        )

    def finish(self) -> list[Diagnostic]:
        """Run end-of-file reconciliation and return every diagnostic for the file.

        Raises
        ------
        RuntimeError
            If called more than once.
        """
        if self._finished:
            message = "AnalysisSession.finish() may only be called once per file"
            raise RuntimeError(message)
        self._finished = True
        return [*self._diagnostics, *reconcile(self.tracker.snapshot(), self.options)]
