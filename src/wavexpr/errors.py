# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Error taxonomy for wavexpr.

Only two kinds of failure come out of the expression engine: malformed source
text (ParseError) and evaluation/grid problems (EvaluationError). Numerically
degenerate results (division by zero, log of a negative, pow overflow) are NOT
errors; the evaluator normalizes them to 0.0.
"""


class WavexprError(Exception):
    """Base class for all wavexpr public errors."""

    ...


class ParseError(WavexprError, ValueError):
    """
    The formula text is malformed: unexpected character, unbalanced parentheses,
    trailing tokens, missing operand or bad call syntax.

    `position` is the 0-based character offset in the source, when known.
    """

    def __init__(self, message: str, *, position: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.position = position


class EvaluationError(WavexprError, ValueError):
    """
    Evaluation cannot proceed: unknown variable or function, wrong number of
    arguments, or invalid grid/index arguments passed to the applicator.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CancelledError(WavexprError):
    """A multi-frame pass was cancelled cooperatively by its caller."""

    ...


class LibraryError(WavexprError):
    """Formula library failure (bad state file, rejected formula, unknown id)."""

    ...
