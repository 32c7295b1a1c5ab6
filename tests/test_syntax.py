"""Tests for the Tree-sitter to variant conversion."""

from __future__ import annotations

from typing import TYPE_CHECKING

from migration_lint.engine import iter_nodes
from migration_lint.syntax import (
    ArrayExpression,
    CallExpression,
    Identifier,
    Literal,
    MemberExpression,
    ObjectExpression,
    Opaque,
    Property,
    declarator_from_node,
    expression_from_node,
    line_indent,
)
from migration_lint.tscore import load_language, parse_bytes

from tests.conftest import js

if TYPE_CHECKING:
    from tree_sitter import Node


def _first(source: bytes, kind: str, language: str = "javascript") -> Node:
    tree = parse_bytes(load_language(language), source)
    return next(node for node in iter_nodes(tree.root_node) if node.type == kind)


def test_call_arguments_skip_comments_and_decode_strings() -> None:
    source = js(
        r"""
        f.setAnnotations(
          /* resolver */ ["Contentful:GraphQLFieldResolver", 'a\'b\n'],
          {parameters, "k": 1, ...rest},
        );
        """
    )
    call = expression_from_node(_first(source, "call_expression"), source)

    assert isinstance(call, CallExpression)
    assert isinstance(call.callee, MemberExpression)
    assert call.callee.property == "setAnnotations"
    assert len(call.arguments) == 2

    annotations, options = call.arguments
    assert isinstance(annotations, ArrayExpression)
    assert [element.value for element in annotations.elements if isinstance(element, Literal)] == [
        "Contentful:GraphQLFieldResolver",
        "a'b\n",
    ]

    assert isinstance(options, ObjectExpression)
    shorthand, string_key, spread = options.properties
    assert isinstance(shorthand, Property)
    assert shorthand.shorthand
    assert shorthand.key == shorthand.value
    assert isinstance(shorthand.key, Identifier)
    assert shorthand.key.name == "parameters"
    assert isinstance(string_key, Property)
    assert isinstance(string_key.key, Literal)
    assert string_key.key.value == "k"
    assert isinstance(string_key.value, Literal)
    assert string_key.value.value == 1
    assert isinstance(spread, Opaque)
    assert spread.kind == "spread_element"


def test_parentheses_are_unwrapped() -> None:
    source = js('(f).type("Object");\n')
    call = expression_from_node(_first(source, "call_expression"), source)

    assert isinstance(call, CallExpression)
    assert isinstance(call.callee, MemberExpression)
    assert isinstance(call.callee.object, Identifier)
    assert call.callee.object.name == "f"


def test_unsupported_shapes_become_opaque() -> None:
    source = js('const x = f["type"]("Object");\n')
    call = expression_from_node(_first(source, "call_expression"), source)

    assert isinstance(call, CallExpression)
    assert isinstance(call.callee, Opaque)
    assert call.callee.kind == "subscript_expression"


def test_literal_values() -> None:
    source = js("f.values([true, false, null, 0x10, 1.5]);\n")
    call = expression_from_node(_first(source, "call_expression"), source)

    assert isinstance(call, CallExpression)
    array = call.arguments[0]
    assert isinstance(array, ArrayExpression)
    assert [element.value for element in array.elements if isinstance(element, Literal)] == [
        True,
        False,
        None,
        16,
        1.5,
    ]


def test_span_columns_count_characters() -> None:
    source = js('"ünïcode"; f.type("Object");\n')
    call = expression_from_node(_first(source, "call_expression"), source)

    assert call.span.line == 1
    assert call.span.column == 12
    assert call.span.start == 13


def test_declarator_resolves_statement_and_indent() -> None:
    source = js(
        """
        module.exports = function (migration) {
          const image = migration.editContentType("product").createField("image");
        };
        """
    )
    declarator = declarator_from_node(_first(source, "variable_declarator"), source)

    assert declarator.name == "image"
    assert isinstance(declarator.init, CallExpression)
    assert declarator.indent == "  "
    assert declarator.statement is not None
    assert source[declarator.statement.start : declarator.statement.end].endswith(b'("image");')


def test_declarator_in_exported_statement_anchors_on_export() -> None:
    source = js('export const image = ct.createField("image");\n')
    declarator = declarator_from_node(_first(source, "variable_declarator"), source)

    assert declarator.statement is not None
    assert declarator.statement.start == 0


def test_declarator_in_for_head_has_no_statement() -> None:
    source = js('for (const f = ct.createField("x"); ;) { break; }\n')
    declarator = declarator_from_node(_first(source, "variable_declarator"), source)

    assert declarator.name == "f"
    assert declarator.statement is None


def test_destructuring_declarator_has_no_name() -> None:
    source = js('const { a } = ct.createField("x");\n')
    declarator = declarator_from_node(_first(source, "variable_declarator"), source)

    assert declarator.name is None


def test_typescript_declarator_with_annotation() -> None:
    source = js('const image: Field = ct.createField("image");\n')
    declarator = declarator_from_node(_first(source, "variable_declarator", "typescript"), source)

    assert declarator.name == "image"
    assert isinstance(declarator.init, CallExpression)


def test_line_indent() -> None:
    source = b"a;\n\t  b;\n"

    assert line_indent(source, 0) == ""
    assert line_indent(source, source.index(b"b")) == "\t  "


def test_span_columns_count_utf16_code_units() -> None:
    source = js('"\U0001f600"; f.type("Object");\n')
    call = expression_from_node(_first(source, "call_expression"), source)

    assert call.span.column == 7
    assert call.span.start == 8
