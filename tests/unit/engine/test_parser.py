from __future__ import annotations

import pytest

from wavexpr.engine.nodes import BinaryOperator, UnaryOperator
from wavexpr.engine.parser import MAX_NESTING, parse_source
from wavexpr.errors import ParseError

pytestmark = [pytest.mark.unit, pytest.mark.parser]


@pytest.mark.parametrize(
    "src,rendered",
    [
        ("2+3*4", "(2 + (3 * 4))"),
        ("(2+3)*4", "((2 + 3) * 4)"),
        ("2^3^2", "(2 ^ (3 ^ 2))"),
        ("8-3-2", "((8 - 3) - 2)"),
        ("8/4/2", "((8 / 4) / 2)"),
        ("-2^2", "(-(2) ^ 2)"),
        ("a || b && c", "(a || (b && c))"),
        ("a == b < c", "(a == (b < c))"),
        ("a < b + c", "(a < (b + c))"),
        ("x < 0.5 && 1 || -1", "(((x < 0.5) && 1) || -(1))"),
        ("!x*2", "(!(x) * 2)"),
    ],
)
def test_precedence_and_associativity(src, rendered):
    assert parse_source(src).to_source() == rendered


def test_rendering_reparses_to_identical_tree():
    src = "max(sin(2*pi*x), -abs(z)^0.5, 1/3) + !(y >= .25)"
    tree = parse_source(src)
    assert parse_source(tree.to_source()) == tree


def test_calls_and_variables():
    tree = parse_source("avg(x, y, 1)")
    assert tree.kind == "CALL" and tree.value == "avg"
    assert [c.kind for c in tree.children] == ["VAR", "VAR", "NUM"]
    empty = parse_source("f()")
    assert empty.kind == "CALL" and empty.children == ()


def test_unary_nodes():
    neg = parse_source("-x")
    assert neg.kind == "UNARY" and neg.value is UnaryOperator.NEGATE
    nt = parse_source("!x")
    assert nt.value is UnaryOperator.LOGICAL_NOT
    double = parse_source("--x")
    assert double.children[0].value is UnaryOperator.NEGATE


def test_glued_unary_plus_is_accepted():
    tree = parse_source("2 + +3")
    assert tree.value is BinaryOperator.ADD
    assert tree.children[1].kind == "UNARY" and tree.children[1].value is UnaryOperator.PLUS


def test_detached_plus_is_an_unexpected_operator():
    with pytest.raises(ParseError) as ei:
        parse_source("2 + + 3")
    assert ei.value.message == "Unexpected operator: +"
    assert ei.value.position == 4


@pytest.mark.parametrize(
    "src,message",
    [
        ("", "Unexpected end of expression"),
        ("2 +", "Unexpected end of expression"),
        ("(2 + 3", "Expected ')'"),
        ("2 3", "Unexpected tokens after expression"),
        ("sin(x", "Unclosed call to sin()"),
        ("max(1 2)", "Expected ',' or ')' in function call"),
        ("*2", "Unexpected operator: *"),
        (")", "Unexpected token: )"),
    ],
)
def test_structural_errors(src, message):
    with pytest.raises(ParseError) as ei:
        parse_source(src)
    assert ei.value.message == message


def test_error_position_points_at_offending_token():
    with pytest.raises(ParseError) as ei:
        parse_source("x + 1 )")
    assert ei.value.position == 6


def test_tree_helpers_collect_names():
    tree = parse_source("sin(x) + max(in, sel, q) * pi")
    assert tree.variables() == {"x", "in", "sel", "q", "pi"}
    assert tree.functions() == {"sin", "max"}


@pytest.mark.parametrize(
    "src",
    [
        "(" * 1200 + "1" + ")" * 1200,
        "-" * 3000 + "1",
        "!" * 500 + "x",
        "^".join(["2"] * 1000),
        "sin(" * 400 + "x" + ")" * 400,
    ],
)
def test_deep_nesting_is_a_parse_error(src):
    with pytest.raises(ParseError, match="too deeply nested") as ei:
        parse_source(src)
    assert ei.value.position is not None and 0 <= ei.value.position < len(src)


def test_nesting_below_the_limit_parses():
    src = "(" * (MAX_NESTING - 1) + "x" + ")" * (MAX_NESTING - 1)
    assert parse_source(src).to_source() == "x"
    assert parse_source("-" * (MAX_NESTING - 1) + "1").kind == "UNARY"


def test_long_flat_chain_is_not_nesting():
    tree = parse_source(" + ".join(["x"] * 1000))
    assert tree.kind == "BINARY" and len(tree.variables()) == 1
    assert sum(1 for n in tree.walk() if n.kind == "BINARY") == 999
    assert tree.to_source().count("(") == 999
