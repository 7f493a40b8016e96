from __future__ import annotations

import math

import pytest

from wavexpr.api import compile_expr, evaluate
from wavexpr.engine.evaluator import Evaluator, FormulaContext
from wavexpr.errors import EvaluationError

pytestmark = [pytest.mark.unit, pytest.mark.evaluator]


def ev(src: str, **ctx) -> float:
    return evaluate(compile_expr(src), FormulaContext(**ctx))


@pytest.mark.parametrize("literal", ["0", "1", "2.5", "0.125", "1000", "3.14159", ".5"])
def test_literals_evaluate_to_themselves(literal):
    assert ev(literal) == float(literal)


@pytest.mark.parametrize(
    "src,expected",
    [
        ("2+3*4", 14.0),
        ("(2+3)*4", 20.0),
        ("2^3", 8.0),
        ("2^3^2", 512.0),
        ("-2^2", 4.0),
        ("10-4-3", 3.0),
        ("2 + +3", 5.0),
        ("--2", 2.0),
    ],
)
def test_arithmetic(src, expected):
    assert ev(src) == expected


def test_division_by_zero_is_zero():
    assert ev("1/0") == 0.0
    assert ev("0/0") == 0.0


@pytest.mark.parametrize("src", ["(-8)^(1/3)", "10^400", "0^(-1)"])
def test_degenerate_power_is_zero(src):
    assert ev(src) == 0.0


def test_comparisons_and_tolerant_equality():
    assert ev("1 < 2") == 1.0 and ev("2 < 1") == 0.0
    assert ev("2 <= 2") == 1.0 and ev("3 >= 4") == 0.0
    assert ev("0.1 + 0.2 == 0.3") == 1.0
    assert ev("1 == 1.0000001") == 1.0
    assert ev("1 == 1.001") == 0.0
    assert ev("1 != 1.001") == 1.0


def test_logic_yields_exact_booleans():
    assert ev("2 && 3") == 1.0
    assert ev("0 || -0.5") == 1.0
    assert ev("0 && 1") == 0.0
    assert ev("!0") == 1.0 and ev("!7") == 0.0


def test_logic_short_circuits_unknown_names():
    assert ev("0 && nope") == 0.0
    assert ev("1 || nope(1)") == 1.0
    with pytest.raises(EvaluationError):
        ev("1 && nope")


def test_ternary_idiom_is_always_one():
    # '||' turns any truthy operand into 1.0, so the false branch never yields -1
    assert ev("x < 0.5 && 1 || -1", x=0.0) == 1.0
    assert ev("x < 0.5 && 1 || -1", x=0.9) == 1.0


def test_context_variables_and_constants():
    ctx = dict(x=-0.5, w=0.25, y=0.75, z=0.5, in_sample=0.1, sel_sample=0.2, rand_sample=-0.3)
    assert ev("x", **ctx) == -0.5
    assert ev("w", **ctx) == 0.25
    assert ev("y", **ctx) == 0.75
    assert ev("z", **ctx) == 0.5
    assert ev("in", **ctx) == 0.1
    assert ev("sel", **ctx) == 0.2
    assert ev("rand", **ctx) == -0.3
    assert ev("pi") == math.pi
    assert ev("e") == math.e


def test_q_defaults_to_zero():
    assert ev("q") == 0.0
    assert ev("q * 2", q=3) == 6.0


def test_unknown_variable():
    with pytest.raises(EvaluationError) as ei:
        ev("foo + 1")
    assert ei.value.message == "Unknown variable: foo"


def test_evaluate_defaults_to_zero_context():
    assert evaluate(compile_expr("x + y + in")) == 0.0


def test_custom_tolerance():
    strict = Evaluator(eq_tolerance=0.0)
    node = compile_expr("0.1 + 0.2 == 0.3").ast
    assert strict.evaluate(node, FormulaContext()) == 0.0


def test_evaluation_is_deterministic():
    compiled = compile_expr("sin(2*pi*x)*cosh(z) + avg(in, sel, rand)")
    ctx = FormulaContext(x=0.3, z=-0.2, in_sample=0.1, sel_sample=0.4, rand_sample=0.9)
    assert evaluate(compiled, ctx) == evaluate(compiled, ctx)


def test_long_sum_evaluates():
    src = " + ".join(["sin(x)"] * 1000)
    assert ev(src, x=0.5) == pytest.approx(1000 * math.sin(0.5))


def test_long_left_deep_logic_chain_short_circuits():
    assert ev(" && ".join(["1"] * 999 + ["0"])) == 0.0
    assert ev(" || ".join(["0"] * 999 + ["x"]), x=2.0) == 1.0
    assert ev("0 && nosuchname") == 0.0
