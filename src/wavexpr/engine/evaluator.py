# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Scalar evaluator: one AST + one per-sample context -> one float.

The evaluator is stateless; an `Evaluator` instance only carries read-only
tables (function registry, equality tolerance) and can be shared across
threads. Only unknown names and arity mismatches raise EvaluationError;
degenerate numerics come back as 0.0.
"""

import math
from dataclasses import dataclass

from ..core.types import DEFAULT_EQ_TOLERANCE
from ..errors import EvaluationError
from .funcs import DEFAULT_FUNCTIONS, FunctionRegistry, finite_or_zero
from .nodes import BinaryOperator, Node, UnaryOperator

__all__ = ["CONSTANTS", "Evaluator", "FormulaContext", "evaluate_node"]


@dataclass(frozen=True, slots=True)
class FormulaContext:
    """
    Inputs of a single evaluation.

    Attributes:
        x: sample position in [-1, 1].
        w: sample position in [0, 1].
        y: frame position in [0, 1] (0 in single-frame mode).
        z: frame position in [-1, 1] (0 in single-frame mode).
        in_sample: previous value of the sample being rewritten (`in`).
        sel_sample: previous value of the same sample in the selected frame (`sel`).
        rand_sample: reproducible per-sample random value in [-1, 1] (`rand`).
        q: optional integer parameter; reads as 0.0 when absent.
    """

    x: float = 0.0
    w: float = 0.0
    y: float = 0.0
    z: float = 0.0
    in_sample: float = 0.0
    sel_sample: float = 0.0
    rand_sample: float = 0.0
    q: int | None = None


# Constants are resolved before context fields and cannot be shadowed.
CONSTANTS: dict[str, float] = {
    "pi": math.pi,
    "e": math.e,
}

# Formula name -> FormulaContext attribute.
_CONTEXT_FIELDS: dict[str, str] = {
    "x": "x",
    "w": "w",
    "y": "y",
    "z": "z",
    "in": "in_sample",
    "sel": "sel_sample",
    "rand": "rand_sample",
}


def _truth(value: float) -> bool:
    return value != 0.0


# Work-stack steps of Evaluator.evaluate.
_EVAL = 0  # evaluate a node, pushing its value
_APPLY = 1  # combine the values of a node's children
_SHORT = 2  # left operand of && / || is on the value stack
_TRUTH = 3  # normalize the right operand of && / || to 1.0/0.0

_SHORT_CIRCUIT = (BinaryOperator.LOGICAL_AND, BinaryOperator.LOGICAL_OR)


class Evaluator:
    """
    Tree-walking evaluator bound to a function registry and equality tolerance.

    The walk uses an explicit work stack instead of recursion, so any tree the
    parser accepts (a 1000-term sum is 1000 levels deep) evaluates.
    """

    def __init__(
        self,
        *,
        functions: FunctionRegistry | None = None,
        eq_tolerance: float = DEFAULT_EQ_TOLERANCE,
    ) -> None:
        self.functions = functions or DEFAULT_FUNCTIONS
        self.eq_tolerance = eq_tolerance

    def evaluate(self, node: Node, ctx: FormulaContext) -> float:
        values: list[float] = []
        work: list[tuple[int, Node]] = [(_EVAL, node)]
        while work:
            step, n = work.pop()
            if step == _EVAL:
                k = n.kind
                if k == "NUM":
                    values.append(n.value)
                elif k == "VAR":
                    values.append(self.resolve(n.value, ctx))
                elif k == "BINARY" and n.value in _SHORT_CIRCUIT:
                    work.append((_SHORT, n))
                    work.append((_EVAL, n.children[0]))
                elif k in ("UNARY", "BINARY", "CALL"):
                    # children run left to right, call arguments eagerly
                    work.append((_APPLY, n))
                    work.extend((_EVAL, c) for c in reversed(n.children))
                else:
                    raise EvaluationError(f"unsupported node kind: {k}")
            elif step == _APPLY:
                split = len(values) - len(n.children)
                args = values[split:]
                del values[split:]
                values.append(self._apply(n, args))
            elif step == _SHORT:
                left = _truth(values.pop())
                if n.value is BinaryOperator.LOGICAL_AND and not left:
                    values.append(0.0)
                elif n.value is BinaryOperator.LOGICAL_OR and left:
                    values.append(1.0)
                else:
                    work.append((_TRUTH, n))
                    work.append((_EVAL, n.children[1]))
            else:
                values.append(1.0 if _truth(values.pop()) else 0.0)
        return values[0]

    def resolve(self, name: str, ctx: FormulaContext) -> float:
        if name in CONSTANTS:
            return CONSTANTS[name]
        attr = _CONTEXT_FIELDS.get(name)
        if attr is not None:
            return getattr(ctx, attr)
        if name == "q":
            return float(ctx.q) if ctx.q is not None else 0.0
        raise EvaluationError(f"Unknown variable: {name}")

    def _apply(self, node: Node, args: list[float]) -> float:
        if node.kind == "CALL":
            return self.functions.call(node.value, args)
        if node.kind == "UNARY":
            op = node.value
            if op is UnaryOperator.NEGATE:
                return -args[0]
            if op is UnaryOperator.LOGICAL_NOT:
                return 1.0 if args[0] == 0.0 else 0.0
            return args[0]
        return self._binary(node.value, args[0], args[1])

    def _binary(self, op: BinaryOperator, left: float, right: float) -> float:
        if op is BinaryOperator.ADD:
            return left + right
        if op is BinaryOperator.SUBTRACT:
            return left - right
        if op is BinaryOperator.MULTIPLY:
            return left * right
        if op is BinaryOperator.DIVIDE:
            return left / right if right != 0.0 else 0.0
        if op is BinaryOperator.POWER:
            return _power(left, right)
        if op is BinaryOperator.LESS:
            return 1.0 if left < right else 0.0
        if op is BinaryOperator.GREATER:
            return 1.0 if left > right else 0.0
        if op is BinaryOperator.LESS_EQUAL:
            return 1.0 if left <= right else 0.0
        if op is BinaryOperator.GREATER_EQUAL:
            return 1.0 if left >= right else 0.0
        if op is BinaryOperator.EQUAL:
            return 1.0 if abs(left - right) < self.eq_tolerance else 0.0
        if op is BinaryOperator.NOT_EQUAL:
            return 1.0 if abs(left - right) >= self.eq_tolerance else 0.0
        raise EvaluationError(f"unsupported operator: {op.value}")


def _power(base: float, exponent: float) -> float:
    try:
        result = math.pow(base, exponent)
    except (ValueError, OverflowError, ZeroDivisionError):
        return 0.0
    return finite_or_zero(result)


DEFAULT_EVALUATOR = Evaluator()


def evaluate_node(node: Node, ctx: FormulaContext) -> float:
    """Evaluate `node` with the default function library and tolerance."""
    return DEFAULT_EVALUATOR.evaluate(node, ctx)
