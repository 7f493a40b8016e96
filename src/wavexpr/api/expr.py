# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Public expression engine surface.

Collaborators (synth engine, editors, exporters) use only these functions:
compile once, then evaluate per sample or hand the compiled expression to one
of the grid applicators.
"""

from ..engine.applicator import apply_expression, apply_multi_frame, apply_single_frame
from ..engine.compiler import CompiledExpression, ExpressionMode, compile_expression
from ..engine.evaluator import FormulaContext, evaluate_node
from ..errors import EvaluationError, ParseError

__all__ = [
    "CompiledExpression",
    "EvaluationError",
    "ExpressionMode",
    "FormulaContext",
    "ParseError",
    "apply_expression",
    "apply_multi_frame",
    "apply_single_frame",
    "compile_expr",
    "evaluate",
    "expression_mode",
    "uses_frame_variables",
]


def compile_expr(source: str) -> CompiledExpression:
    """Parse and analyze formula text; raises ParseError on malformed input."""
    return compile_expression(source)


def evaluate(compiled: CompiledExpression, context: FormulaContext | None = None) -> float:
    """
    Evaluate a compiled formula for one sample.

    `context` defaults to all-zero inputs with no `q`. Raises EvaluationError for
    unknown names and arity mismatches only.
    """
    return evaluate_node(compiled.ast, context if context is not None else FormulaContext())


def uses_frame_variables(compiled: CompiledExpression) -> bool:
    """True when the formula references `y` or `z` (multi-frame mode)."""
    return compiled.uses_frame_variables


def expression_mode(compiled: CompiledExpression) -> ExpressionMode:
    return compiled.mode
