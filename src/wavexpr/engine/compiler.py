# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Formula compiler: source text -> tokens -> AST -> (uses_y, uses_z).

The result is an immutable CompiledExpression that callers cache and reuse for
any number of evaluations, from any thread.
"""

from dataclasses import dataclass, field
from enum import Enum

from ..core.log import get_logger
from ..errors import ParseError
from .analysis import analyze
from .lexer import tokenize
from .nodes import Node
from .parser import parse

__all__ = ["CompiledExpression", "ExpressionMode", "compile_expression"]

log = get_logger("engine.compiler")


class ExpressionMode(str, Enum):
    """How a formula is applied to a grid."""

    SINGLE_FRAME = "single_frame"
    MULTI_FRAME = "multi_frame"


@dataclass(frozen=True)
class CompiledExpression:
    """Parsed formula plus the frame-variable facts that pick its mode."""

    ast: Node
    uses_y: bool
    uses_z: bool
    source: str = field(default="", compare=False)

    @property
    def uses_frame_variables(self) -> bool:
        return self.uses_y or self.uses_z

    @property
    def mode(self) -> ExpressionMode:
        return ExpressionMode.MULTI_FRAME if self.uses_frame_variables else ExpressionMode.SINGLE_FRAME


def compile_expression(source: str) -> CompiledExpression:
    """Compile formula text, raising ParseError if it is malformed."""
    try:
        ast = parse(tokenize(source))
    except ParseError as e:
        log.debug("expr.compile.failed", event="expr.compile.failed", expr=source, error=e.message, position=e.position)
        raise
    uses_y, uses_z = analyze(ast)
    compiled = CompiledExpression(ast=ast, uses_y=uses_y, uses_z=uses_z, source=source)
    log.debug("expr.compiled", event="expr.compiled", expr=source, mode=compiled.mode.value)
    return compiled
