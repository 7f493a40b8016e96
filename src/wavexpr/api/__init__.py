# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
wavexpr public API.

This module re-exports the stable contracts used by collaborators: the error
taxonomy, the compile/evaluate/apply functions, and live-editing support.
"""

# Errors
from ..errors import CancelledError, EvaluationError, LibraryError, ParseError, WavexprError

# Expressions
from .expr import (
    CompiledExpression,
    ExpressionMode,
    FormulaContext,
    apply_expression,
    apply_multi_frame,
    apply_single_frame,
    compile_expr,
    evaluate,
    expression_mode,
    uses_frame_variables,
)

# Live editing
from ..engine.live import LiveExpression

__all__ = [
    # errors
    "WavexprError",
    "ParseError",
    "EvaluationError",
    "CancelledError",
    "LibraryError",
    # expr
    "CompiledExpression",
    "ExpressionMode",
    "FormulaContext",
    "compile_expr",
    "evaluate",
    "uses_frame_variables",
    "expression_mode",
    "apply_single_frame",
    "apply_multi_frame",
    "apply_expression",
    # live
    "LiveExpression",
]
