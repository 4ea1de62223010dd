"""Binding expression AST.

Binding text is parsed with the tree-sitter JavaScript grammar and converted
into a small closed set of node types, mirroring the subset of JavaScript the
data-binding system understands. Anything outside that subset (object
literals, arrow functions, assignments, template strings...) is reported as an
``ExpressionSyntaxError`` so the caller can fall back to literal handling.

Spans (``start``/``end``) are UTF-8 byte offsets into the expression text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import tree_sitter_javascript
from tree_sitter import Language, Node as TSNode, Parser

from polymer_expr.compiler.exceptions import ExpressionSyntaxError

JAVASCRIPT = Language(tree_sitter_javascript.language())

# Nesting limit when converting parse trees
MAX_EXPRESSION_DEPTH = 256

LOGICAL_OPERATORS = {"&&", "||", "??"}


@dataclass(frozen=True)
class Expression:
    start: int
    end: int


@dataclass(frozen=True)
class Identifier(Expression):
    name: str


@dataclass(frozen=True)
class ThisExpression(Expression):
    pass


@dataclass(frozen=True)
class Literal(Expression):
    raw: str


@dataclass(frozen=True)
class MemberExpression(Expression):
    object: Expression
    property_name: Optional[str] = None
    index: Optional[Expression] = None
    optional: bool = False

    @property
    def computed(self) -> bool:
        return self.index is not None


@dataclass(frozen=True)
class CallExpression(Expression):
    callee: Expression
    arguments: Tuple[Expression, ...] = ()


@dataclass(frozen=True)
class UnaryExpression(Expression):
    operator: str
    argument: Expression


@dataclass(frozen=True)
class BinaryExpression(Expression):
    operator: str
    left: Expression
    right: Expression


@dataclass(frozen=True)
class LogicalExpression(Expression):
    operator: str
    left: Expression
    right: Expression


@dataclass(frozen=True)
class ConditionalExpression(Expression):
    test: Expression
    consequent: Expression
    alternate: Expression


@dataclass(frozen=True)
class ArrayExpression(Expression):
    elements: Tuple[Expression, ...] = ()


ExpressionNode = Union[
    Identifier,
    ThisExpression,
    Literal,
    MemberExpression,
    CallExpression,
    UnaryExpression,
    BinaryExpression,
    LogicalExpression,
    ConditionalExpression,
    ArrayExpression,
]


def parse_expression(text: str) -> ExpressionNode:
    """Parse binding text into an expression AST.

    Raises:
        ExpressionSyntaxError: if the text is not a single expression of the
            supported subset.
    """
    if not text.strip():
        raise ExpressionSyntaxError("Empty expression", text)

    # Parenthesize so object literals are not read as blocks; the prefix
    # shifts every span by one byte.
    source = b"(" + text.encode("utf-8") + b")"
    tree = Parser(JAVASCRIPT).parse(source)
    root = tree.root_node
    if root.has_error:
        raise ExpressionSyntaxError(
            "Invalid expression", text, _first_error_offset(root)
        )

    statements = _named(root)
    if len(statements) != 1 or statements[0].type != "expression_statement":
        raise ExpressionSyntaxError("Expected a single expression", text)
    wrapper = _named(statements[0])
    if (
        len(wrapper) != 1
        or wrapper[0].type != "parenthesized_expression"
        or wrapper[0].start_byte != 0
        or wrapper[0].end_byte != len(source)
    ):
        raise ExpressionSyntaxError("Expected a single expression", text)

    inner = _named(wrapper[0])
    if len(inner) != 1:
        raise ExpressionSyntaxError("Expected a single expression", text)
    return _ExpressionBuilder(text, offset=1).build(inner[0])


def _named(node: TSNode) -> List[TSNode]:
    return [c for c in node.named_children if c.type != "comment"]


def _first_error_offset(root: TSNode) -> Optional[int]:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return max(node.start_byte - 1, 0)
        stack.extend(reversed(node.children))
    return None


class _ExpressionBuilder:
    """Converts tree-sitter nodes into ``Expression`` dataclasses."""

    def __init__(self, text: str, offset: int) -> None:
        self.text = text
        self.offset = offset

    def build(self, node: TSNode, depth: int = 0) -> ExpressionNode:
        if depth > MAX_EXPRESSION_DEPTH:
            raise ExpressionSyntaxError("Expression is nested too deeply", self.text)

        start = node.start_byte - self.offset
        end = node.end_byte - self.offset
        kind = node.type
        depth += 1

        if kind in ("identifier", "undefined"):
            return Identifier(start, end, self._text(node))

        if kind == "this":
            return ThisExpression(start, end)

        if kind in ("number", "string", "true", "false", "null"):
            return Literal(start, end, self._text(node))

        if kind == "parenthesized_expression":
            inner = _named(node)
            if len(inner) != 1:
                raise self._unsupported(node)
            return self.build(inner[0], depth)

        if kind == "member_expression":
            prop = node.child_by_field_name("property")
            if prop is None or prop.type != "property_identifier":
                raise self._unsupported(node)
            return MemberExpression(
                start,
                end,
                object=self._field(node, "object", depth),
                property_name=self._text(prop),
                optional=node.child_by_field_name("optional_chain") is not None,
            )

        if kind == "subscript_expression":
            return MemberExpression(
                start,
                end,
                object=self._field(node, "object", depth),
                index=self._field(node, "index", depth),
                optional=node.child_by_field_name("optional_chain") is not None,
            )

        if kind == "call_expression":
            args = node.child_by_field_name("arguments")
            if args is None or args.type != "arguments":
                # Tagged template literals
                raise self._unsupported(node)
            if node.child_by_field_name("optional_chain") is not None:
                raise self._unsupported(node)
            return CallExpression(
                start,
                end,
                callee=self._field(node, "function", depth),
                arguments=tuple(self.build(a, depth) for a in _named(args)),
            )

        if kind == "unary_expression":
            return UnaryExpression(
                start,
                end,
                operator=self._operator(node),
                argument=self._field(node, "argument", depth),
            )

        if kind == "binary_expression":
            operator = self._operator(node)
            left = self._field(node, "left", depth)
            right = self._field(node, "right", depth)
            if operator in LOGICAL_OPERATORS:
                return LogicalExpression(start, end, operator, left, right)
            return BinaryExpression(start, end, operator, left, right)

        if kind == "ternary_expression":
            return ConditionalExpression(
                start,
                end,
                test=self._field(node, "condition", depth),
                consequent=self._field(node, "consequence", depth),
                alternate=self._field(node, "alternative", depth),
            )

        if kind == "array":
            return ArrayExpression(
                start, end, elements=tuple(self.build(e, depth) for e in _named(node))
            )

        raise self._unsupported(node)

    def _field(self, node: TSNode, name: str, depth: int) -> ExpressionNode:
        child = node.child_by_field_name(name)
        if child is None:
            raise self._unsupported(node)
        return self.build(child, depth)

    def _operator(self, node: TSNode) -> str:
        op = node.child_by_field_name("operator")
        if op is None:
            raise self._unsupported(node)
        return op.type

    def _text(self, node: TSNode) -> str:
        return (node.text or b"").decode("utf-8")

    def _unsupported(self, node: TSNode) -> ExpressionSyntaxError:
        return ExpressionSyntaxError(
            f"Unsupported expression ({node.type})",
            self.text,
            node.start_byte - self.offset,
        )
