# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Deterministic, side-effect free function library for the evaluator.

Notes:
- Every function takes and returns floats; none raises on numeric input.
- Degenerate results are normalized to 0.0 through `finite_or_zero`, the single
  place that policy lives. Python's math domain/overflow exceptions are first
  mapped to NaN/Inf by `_call_math`, then normalized like any other NaN/Inf.
- Arity is checked by the registry before dispatch, so the implementations
  can index their arguments directly.
"""

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ..errors import EvaluationError

__all__ = ["VARIADIC", "FunctionRegistry", "finite_or_zero", "get_default_functions"]

Func = Callable[[Sequence[float]], float]

# Arity marker for functions taking one or more arguments.
VARIADIC = -1


def finite_or_zero(value: float) -> float:
    """Replace NaN and +/-Inf with 0.0; pass every finite value through."""
    return value if math.isfinite(value) else 0.0


def _call_math(fn: Callable[..., float], *args: float) -> float:
    try:
        return fn(*args)
    except ValueError:
        return math.nan
    except OverflowError:
        return math.inf


@dataclass(frozen=True)
class _Entry:
    fn: Func
    arity: int


class FunctionRegistry:
    """Name -> (implementation, arity) table used by the evaluator."""

    def __init__(self) -> None:
        self._fn: dict[str, _Entry] = {}

    def register(self, name: str, fn: Func, *, arity: int = 1) -> None:
        if not name or not callable(fn):
            raise ValueError("invalid function registration")
        if arity != VARIADIC and arity < 0:
            raise ValueError("arity must be >= 0 or VARIADIC")
        self._fn[name] = _Entry(fn, arity)

    def __contains__(self, name: object) -> bool:
        return name in self._fn

    def arity(self, name: str) -> int:
        return self._lookup(name).arity

    def names(self) -> list[str]:
        return sorted(self._fn.keys())

    def call(self, name: str, args: Sequence[float]) -> float:
        entry = self._lookup(name)
        if entry.arity == VARIADIC:
            if not args:
                raise EvaluationError(f"{name} expects at least 1 argument")
        elif len(args) != entry.arity:
            plural = "" if entry.arity == 1 else "s"
            raise EvaluationError(f"{name} expects {entry.arity} argument{plural}")
        return entry.fn(args)

    def _lookup(self, name: str) -> _Entry:
        try:
            return self._fn[name]
        except KeyError:
            raise EvaluationError(f"Unknown function: {name}") from None


# ---- Built-ins


def _plain(fn: Callable[[float], float]) -> Func:
    """Unary function whose result needs no normalization on finite input."""
    return lambda args: _call_math(fn, args[0])


def _guarded(fn: Callable[[float], float]) -> Func:
    """Unary function whose NaN/Inf results are normalized to 0.0."""
    return lambda args: finite_or_zero(_call_math(fn, args[0]))


def _positive_only(fn: Callable[[float], float]) -> Func:
    """Logarithms: 0.0 for x <= 0."""
    return lambda args: _call_math(fn, args[0]) if args[0] > 0 else 0.0


def _sqrt(args: Sequence[float]) -> float:
    x = args[0]
    return math.sqrt(x) if x >= 0 else 0.0


def _sign(args: Sequence[float]) -> float:
    x = args[0]
    if x > 0:
        return 1.0
    if x < 0:
        return -1.0
    return 0.0


def _rint(args: Sequence[float]) -> float:
    # Half away from zero; Python's round() would round half to even.
    x = args[0]
    if not math.isfinite(x):
        return x
    return math.copysign(math.floor(abs(x) + 0.5), x)


def _min(args: Sequence[float]) -> float:
    return min(args)


def _max(args: Sequence[float]) -> float:
    return max(args)


def _sum(args: Sequence[float]) -> float:
    total = 0.0
    for a in args:
        total += a
    return total


def _avg(args: Sequence[float]) -> float:
    return _sum(args) / len(args)


def get_default_functions() -> FunctionRegistry:
    """Return a registry pre-populated with the built-in function library."""
    reg = FunctionRegistry()
    # Trigonometric
    reg.register("sin", _plain(math.sin))
    reg.register("cos", _plain(math.cos))
    reg.register("tan", _guarded(math.tan))
    reg.register("asin", _guarded(math.asin))
    reg.register("acos", _guarded(math.acos))
    reg.register("atan", _plain(math.atan))
    # Hyperbolic
    reg.register("sinh", _guarded(math.sinh))
    reg.register("cosh", _guarded(math.cosh))
    reg.register("tanh", _plain(math.tanh))
    reg.register("asinh", _guarded(math.asinh))
    reg.register("acosh", _guarded(math.acosh))
    reg.register("atanh", _guarded(math.atanh))
    # Logarithms and exponentials
    reg.register("log2", _positive_only(math.log2))
    reg.register("log10", _positive_only(math.log10))
    reg.register("log", _positive_only(math.log10))
    reg.register("ln", _positive_only(math.log))
    reg.register("exp", _guarded(math.exp))
    reg.register("sqrt", _sqrt)
    # Other
    reg.register("sign", _sign)
    reg.register("rint", _rint)
    reg.register("abs", lambda args: abs(args[0]))
    # Variadic
    reg.register("min", _min, arity=VARIADIC)
    reg.register("max", _max, arity=VARIADIC)
    reg.register("sum", _sum, arity=VARIADIC)
    reg.register("avg", _avg, arity=VARIADIC)
    return reg


DEFAULT_FUNCTIONS = get_default_functions()
