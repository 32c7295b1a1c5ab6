"""Typed view of the JavaScript syntax the resolver rule inspects.

Tree-sitter nodes are converted into a closed set of frozen variants. Only
the expression shapes the rule pattern-matches on get their own variant;
everything else becomes :class:`Opaque`, which carries its node kind and span
but nothing the rule can mistake for a match. Parentheses are unwrapped and
comments never show up as elements, arguments or properties.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from tree_sitter import Node

__all__ = [
    "ArrayExpression",
    "CallExpression",
    "Expression",
    "Identifier",
    "Literal",
    "LiteralValue",
    "MemberExpression",
    "ObjectExpression",
    "Opaque",
    "Property",
    "Span",
    "VariableDeclarator",
    "declarator_from_node",
    "expression_from_node",
    "line_indent",
]

_COMMENT_KINDS: Final[frozenset[str]] = frozenset({"comment", "html_comment"})
_DECLARATION_KINDS: Final[frozenset[str]] = frozenset({"lexical_declaration", "variable_declaration"})
# Parents under which a statement can be followed by another statement.
_STATEMENT_CONTAINERS: Final[frozenset[str]] = frozenset(
    {"program", "statement_block", "switch_case", "switch_default", "class_static_block"}
)
_SIMPLE_ESCAPES: Final[dict[str, str]] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

type LiteralValue = str | int | float | bool | None


@dataclass(frozen=True, slots=True)
class Span:
    """Location of a node in the source buffer.

    ``start`` and ``end`` are UTF-8 byte offsets (what fixes are expressed
    in); ``line`` and ``column`` are 1-based. Columns count UTF-16 code
    units, as ESLint does, so a character outside the Basic Multilingual
    Plane advances the column by two.
    """

    start: int
    end: int
    line: int
    column: int

    @classmethod
    def from_node(cls, node: Node, source: bytes) -> Span:
        row, byte_column = node.start_point
        line_start = node.start_byte - byte_column
        prefix = source[line_start : node.start_byte].decode("utf-8", "replace")
        column = len(prefix.encode("utf-16-le")) // 2 + 1
        return cls(start=node.start_byte, end=node.end_byte, line=row + 1, column=column)


@dataclass(frozen=True, slots=True)
class Identifier:
    name: str
    span: Span


@dataclass(frozen=True, slots=True)
class Literal:
    """String, number, boolean or null literal."""

    value: LiteralValue
    raw: str
    span: Span


@dataclass(frozen=True, slots=True)
class MemberExpression:
    """Non-computed member access ``object.property``.

    ``property`` is None for private names (``object.#x``).
    """

    object: Expression
    property: str | None
    span: Span


@dataclass(frozen=True, slots=True)
class CallExpression:
    callee: Expression
    arguments: tuple[Expression, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class ArrayExpression:
    elements: tuple[Expression, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class Property:
    """``key: value`` entry of an object literal.

    Identifier keys become :class:`Identifier`, string and number keys
    :class:`Literal`, computed keys :class:`Opaque`.
    """

    key: Identifier | Literal | Opaque
    value: Expression
    shorthand: bool
    span: Span


@dataclass(frozen=True, slots=True)
class ObjectExpression:
    """Object literal. Spreads and methods appear as :class:`Opaque` entries."""

    properties: tuple[Property | Opaque, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class Opaque:
    """Any node the rule does not look inside."""

    kind: str
    span: Span


@dataclass(frozen=True, slots=True)
class VariableDeclarator:
    """One ``name = init`` binding of a ``const``/``let``/``var`` declaration.

    Attributes
    ----------
    name : str | None
        Bound identifier, or None for destructuring patterns.
    init : Expression | None
        Initializer, when present.
    span : Span
        Span of the declarator itself.
    statement : Span | None
        Span of the whole declaration statement (including a wrapping
        ``export``), or None when the declaration is not a standalone
        statement, e.g. in a ``for`` loop head.
    indent : str
        Leading whitespace of the line the statement starts on.
    """

    name: str | None
    init: Expression | None
    span: Span
    statement: Span | None
    indent: str


type Expression = (
    Identifier | Literal | MemberExpression | CallExpression | ArrayExpression | ObjectExpression | Opaque
)


def line_indent(source: bytes, offset: int) -> str:
    """Return the leading whitespace of the line containing ``offset``."""
    line_start = source.rfind(b"\n", 0, offset) + 1
    end = line_start
    while end < len(source) and source[end] in b" \t":
        end += 1
    return source[line_start:end].decode("utf-8")


def _text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", "replace")


def _named(node: Node) -> list[Node]:
    return [child for child in node.named_children if child.type not in _COMMENT_KINDS]


def _unescape(sequence: str) -> str:
    body = sequence[1:]
    if body[:1] in {"\n", "\r", "\u2028", "\u2029"}:
        return ""
    if body[:1] in {"u", "x"} and len(body) > 1:
        digits = body[2:-1] if body.startswith("u{") else body[1:]
        try:
            return chr(int(digits, 16))
        except ValueError:
            return body
    return _SIMPLE_ESCAPES.get(body, body)


def _string_value(node: Node, source: bytes) -> str:
    parts: list[str] = []
    for child in node.children:
        if child.type == "string_fragment":
            parts.append(_text(child, source))
        elif child.type == "escape_sequence":
            parts.append(_unescape(_text(child, source)))
    return "".join(parts)


def _number_value(raw: str) -> int | float | str:
    text = raw.replace("_", "").removesuffix("n")
    try:
        return int(text, 0)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return raw


def _literal(node: Node, source: bytes, span: Span) -> Literal:
    raw = _text(node, source)
    value: LiteralValue
    match node.type:
        case "string":
            value = _string_value(node, source)
        case "number":
            value = _number_value(raw)
        case "true":
            value = True
        case "false":
            value = False
        case _:
            value = None
    return Literal(value=value, raw=raw, span=span)


def _property(node: Node, source: bytes) -> Property | Opaque:
    span = Span.from_node(node, source)
    if node.type == "shorthand_property_identifier":
        identifier = Identifier(name=_text(node, source), span=span)
        return Property(key=identifier, value=identifier, shorthand=True, span=span)
    if node.type != "pair":
        return Opaque(kind=node.type, span=span)
    key_node = node.child_by_field_name("key")
    value_node = node.child_by_field_name("value")
    if key_node is None or value_node is None:
        return Opaque(kind=node.type, span=span)
    key_span = Span.from_node(key_node, source)
    key: Identifier | Literal | Opaque
    if key_node.type == "property_identifier":
        key = Identifier(name=_text(key_node, source), span=key_span)
    elif key_node.type in {"string", "number"}:
        key = _literal(key_node, source, key_span)
    else:
        key = Opaque(kind=key_node.type, span=key_span)
    return Property(
        key=key,
        value=expression_from_node(value_node, source),
        shorthand=False,
        span=span,
    )


def expression_from_node(node: Node, source: bytes) -> Expression:
    """Convert a Tree-sitter expression node into its variant.

    Parameters
    ----------
    node : Node
        Any Tree-sitter node.
    source : bytes
        Buffer the tree was parsed from.

    Returns
    -------
    Expression
        The matching variant, or :class:`Opaque` for unsupported shapes
        (tagged templates, computed member access, ``new`` expressions...).
    """
    span = Span.from_node(node, source)
    match node.type:
        case "identifier":
            return Identifier(name=_text(node, source), span=span)
        case "parenthesized_expression":
            inner = _named(node)
            if len(inner) == 1:
                return expression_from_node(inner[0], source)
            return Opaque(kind=node.type, span=span)
        case "string" | "number" | "true" | "false" | "null":
            return _literal(node, source, span)
        case "member_expression":
            object_node = node.child_by_field_name("object")
            property_node = node.child_by_field_name("property")
            if object_node is None:
                return Opaque(kind=node.type, span=span)
            name = (
                _text(property_node, source)
                if property_node is not None and property_node.type == "property_identifier"
                else None
            )
            return MemberExpression(
                object=expression_from_node(object_node, source), property=name, span=span
            )
        case "call_expression":
            function_node = node.child_by_field_name("function")
            arguments_node = node.child_by_field_name("arguments")
            if function_node is None or arguments_node is None or arguments_node.type != "arguments":
                return Opaque(kind=node.type, span=span)
            return CallExpression(
                callee=expression_from_node(function_node, source),
                arguments=tuple(expression_from_node(arg, source) for arg in _named(arguments_node)),
                span=span,
            )
        case "array":
            return ArrayExpression(
                elements=tuple(expression_from_node(element, source) for element in _named(node)),
                span=span,
            )
        case "object":
            return ObjectExpression(
                properties=tuple(_property(entry, source) for entry in _named(node)),
                span=span,
            )
        case _:
            return Opaque(kind=node.type, span=span)


def _declaration_statement(node: Node) -> Node | None:
    declaration = node.parent
    if declaration is None or declaration.type not in _DECLARATION_KINDS:
        return None
    statement = declaration
    if statement.parent is not None and statement.parent.type == "export_statement":
        statement = statement.parent
    container = statement.parent
    if container is None or container.type not in _STATEMENT_CONTAINERS:
        return None
    return statement


def declarator_from_node(node: Node, source: bytes) -> VariableDeclarator:
    """Convert a Tree-sitter ``variable_declarator`` node.

    Parameters
    ----------
    node : Node
        A ``variable_declarator`` node.
    source : bytes
        Buffer the tree was parsed from.

    Returns
    -------
    VariableDeclarator
        Declarator view including the enclosing statement's span, when the
        declaration is a standalone statement.
    """
    name_node = node.child_by_field_name("name")
    value_node = node.child_by_field_name("value")
    statement = _declaration_statement(node)
    anchor = statement if statement is not None else node
    return VariableDeclarator(
        name=_text(name_node, source) if name_node is not None and name_node.type == "identifier" else None,
        init=expression_from_node(value_node, source) if value_node is not None else None,
        span=Span.from_node(node, source),
        statement=Span.from_node(statement, source) if statement is not None else None,
        indent=line_indent(source, anchor.start_byte),
    )
