# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Expression engine internals: lexer, parser, analysis, evaluator, applicator.

Most callers want `wavexpr.api` instead; these exports are for tools that need
the AST or a custom function registry.
"""

from .analysis import analyze
from .applicator import apply_expression, apply_multi_frame, apply_single_frame
from .compiler import CompiledExpression, ExpressionMode, compile_expression
from .evaluator import CONSTANTS, Evaluator, FormulaContext, evaluate_node
from .funcs import VARIADIC, FunctionRegistry, get_default_functions
from .lexer import Token, tokenize
from .live import LiveExpression
from .nodes import BinaryOperator, Node, UnaryOperator
from .parser import parse, parse_source

__all__ = [
    "BinaryOperator",
    "CONSTANTS",
    "CompiledExpression",
    "Evaluator",
    "ExpressionMode",
    "FormulaContext",
    "FunctionRegistry",
    "LiveExpression",
    "Node",
    "Token",
    "UnaryOperator",
    "VARIADIC",
    "analyze",
    "apply_expression",
    "apply_multi_frame",
    "apply_single_frame",
    "compile_expression",
    "evaluate_node",
    "get_default_functions",
    "parse",
    "parse_source",
    "tokenize",
]
