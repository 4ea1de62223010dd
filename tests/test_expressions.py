import pytest
from polymer_expr.compiler.exceptions import ExpressionSyntaxError
from polymer_expr.compiler.expressions import (
    MAX_EXPRESSION_DEPTH,
    ArrayExpression,
    BinaryExpression,
    CallExpression,
    ConditionalExpression,
    Identifier,
    Literal,
    LogicalExpression,
    MemberExpression,
    ThisExpression,
    UnaryExpression,
    parse_expression,
)


def test_identifier_and_member_chain() -> None:
    expr = parse_expression("user.address.street")
    assert isinstance(expr, MemberExpression)
    assert expr.property_name == "street"
    assert not expr.computed
    inner = expr.object
    assert isinstance(inner, MemberExpression)
    assert isinstance(inner.object, Identifier)
    assert inner.object.name == "user"


def test_spans_are_relative_to_the_expression() -> None:
    expr = parse_expression("foo.bar + 1")
    assert isinstance(expr, BinaryExpression)
    assert (expr.start, expr.end) == (0, 11)
    assert (expr.left.start, expr.left.end) == (0, 7)
    assert isinstance(expr.right, Literal)
    assert expr.right.raw == "1"


def test_spans_are_utf8_bytes() -> None:
    expr = parse_expression('"é" + a')
    assert isinstance(expr, BinaryExpression)
    assert isinstance(expr.right, Identifier)
    assert (expr.right.start, expr.right.end) == (7, 8)


def test_computed_and_optional_members() -> None:
    subscript = parse_expression("items[0]")
    assert isinstance(subscript, MemberExpression)
    assert subscript.computed
    assert isinstance(subscript.index, Literal)

    optional = parse_expression("a?.b")
    assert isinstance(optional, MemberExpression)
    assert optional.optional
    assert optional.property_name == "b"


def test_calls() -> None:
    expr = parse_expression("_compute(a, b.c)")
    assert isinstance(expr, CallExpression)
    assert isinstance(expr.callee, Identifier)
    assert len(expr.arguments) == 2

    method = parse_expression("items.indexOf(item)")
    assert isinstance(method, CallExpression)
    assert isinstance(method.callee, MemberExpression)


def test_operators() -> None:
    negated = parse_expression("!hidden")
    assert isinstance(negated, UnaryExpression)
    assert negated.operator == "!"

    typeof = parse_expression("typeof x")
    assert isinstance(typeof, UnaryExpression)
    assert typeof.operator == "typeof"

    for op in ("&&", "||", "??"):
        assert isinstance(parse_expression(f"a {op} b"), LogicalExpression)
    for op in ("+", "===", "<", "%"):
        binary = parse_expression(f"a {op} b")
        assert isinstance(binary, BinaryExpression)
        assert binary.operator == op


def test_conditional_array_this() -> None:
    cond = parse_expression("a ? b : c")
    assert isinstance(cond, ConditionalExpression)
    assert isinstance(cond.alternate, Identifier)

    array = parse_expression("[a, 1, 'x']")
    assert isinstance(array, ArrayExpression)
    assert len(array.elements) == 3

    member = parse_expression("this.value")
    assert isinstance(member, MemberExpression)
    assert isinstance(member.object, ThisExpression)


def test_parentheses_are_transparent() -> None:
    expr = parse_expression("(a)")
    assert isinstance(expr, Identifier)
    assert expr.name == "a"


def test_literals() -> None:
    for raw in ("1.5", "'str'", '"str"', "true", "false", "null"):
        expr = parse_expression(raw)
        assert isinstance(expr, Literal)
        assert expr.raw == raw
    assert isinstance(parse_expression("undefined"), Identifier)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "a +",
        "a b",
        "a); (b",
        "{a: 1}",
        "x => x",
        "a = 1",
        "a, b",
        "`tmpl ${a}`",
        "function() {}",
    ],
)
def test_rejected_expressions(text: str) -> None:
    with pytest.raises(ExpressionSyntaxError):
        parse_expression(text)


def test_error_message_includes_expression() -> None:
    with pytest.raises(ExpressionSyntaxError, match="Unsupported expression") as info:
        parse_expression("x => x")
    assert info.value.expression == "x => x"


def test_nesting_limit() -> None:
    depth = MAX_EXPRESSION_DEPTH + 10
    with pytest.raises(ExpressionSyntaxError, match="nested too deeply"):
        parse_expression("(" * depth + "a" + ")" * depth)
