# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Live formula editing support.

An editor recompiles on every keystroke. LiveExpression keeps the last good
compile around so a half-typed formula never throws away a working one, and
exposes the detected mode and the last error message for display.
"""

from ..core.config import DEFAULT_CONFIG, EngineConfig
from ..core.log import get_logger
from ..core.types import CancelCheck, Grid
from ..errors import EvaluationError, ParseError
from .applicator import apply_expression
from .compiler import CompiledExpression, ExpressionMode, compile_expression

__all__ = ["LiveExpression"]

log = get_logger("engine.live")


class LiveExpression:
    """
    Mutable holder around an immutable CompiledExpression.

    Attributes:
        text: the text last passed to update() (stripped).
        compiled: last successfully compiled expression, or None.
        mode: mode detected for the current text; None when the text is empty
            or does not compile.
        last_error: message of the most recent failure, or None.
    """

    def __init__(self, text: str = "", *, config: EngineConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self.text = ""
        self.compiled: CompiledExpression | None = None
        self.mode: ExpressionMode | None = None
        self.last_error: str | None = None
        if text:
            self.update(text)

    @property
    def is_valid(self) -> bool:
        """True when the current text compiled."""
        return self.mode is not None

    def update(self, text: str) -> ExpressionMode | None:
        """Recompile `text`; on failure keep the previous compile and record the error."""
        self.last_error = None
        self.text = text.strip()
        if not self.text:
            self.mode = None
            return None
        try:
            compiled = compile_expression(self.text)
        except ParseError as e:
            self.mode = None
            self.last_error = f"Parse error: {e.message}"
            return None
        self.compiled = compiled
        self.mode = compiled.mode
        return self.mode

    def apply(
        self,
        grid: Grid,
        selected_frame_index: int,
        sample_count: int,
        *,
        seed: int | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> Grid:
        """
        Compile the current text and apply it (see apply_expression).
        Errors are recorded in last_error and re-raised.
        """
        self.last_error = None
        if not self.text:
            self.last_error = "Expression is empty"
            raise EvaluationError(self.last_error)
        try:
            compiled = compile_expression(self.text)
            self.compiled = compiled
            self.mode = compiled.mode
            return apply_expression(
                compiled,
                grid,
                selected_frame_index,
                sample_count,
                seed=seed,
                should_cancel=should_cancel,
                config=self.config,
            )
        except ParseError as e:
            self.last_error = f"Parse error: {e.message}"
            raise
        except EvaluationError as e:
            self.last_error = f"Evaluation error: {e.message}"
            log.debug("expr.live.apply.failed", event="expr.live.apply.failed", expr=self.text, error=e.message)
            raise
