# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Grid applicator: runs a compiled formula over a frames x samples grid.

Two strategies:
  single-frame  rewrites only the selected frame; y = z = 0
  multi-frame   rewrites every frame; y/z carry the frame position

Both take their `in`/`sel` inputs from a snapshot made before anything is
written, use the same reproducible per-sample `rand` table for every frame,
and clamp every written sample into [clamp_min, clamp_max].

Results are committed to the caller's grid only after the whole pass succeeds,
so an evaluation error or a cancellation leaves the grid as it was.
"""

import time
from collections.abc import Sequence

import numpy as np

from ..core.config import DEFAULT_CONFIG, EngineConfig
from ..core.log import get_logger, log_context
from ..core.types import CancelCheck, Grid
from ..core.utils import clamp_samples, rand_table
from ..errors import CancelledError, EvaluationError
from .compiler import CompiledExpression, ExpressionMode
from .evaluator import Evaluator, FormulaContext

__all__ = [
    "apply_expression",
    "apply_multi_frame",
    "apply_single_frame",
    "frame_positions",
    "sample_positions",
]

log = get_logger("engine.applicator")


# ---- helpers


def sample_positions(sample_count: int) -> tuple[list[float], list[float]]:
    """(w, x) for every sample index: w = i/(n-1) in [0, 1], x = 2w-1; w = 0.5 when n == 1."""
    if sample_count == 1:
        w = np.array([0.5])
    else:
        w = np.arange(sample_count, dtype=np.float64) / (sample_count - 1)
    return w.tolist(), (w * 2.0 - 1.0).tolist()


def frame_positions(frame_count: int) -> tuple[list[float], list[float]]:
    """(y, z) for every frame index, same mapping as sample_positions."""
    return sample_positions(frame_count)


def _evaluator_for(cfg: EngineConfig, evaluator: Evaluator | None) -> Evaluator:
    if evaluator is not None:
        return evaluator
    return Evaluator(eq_tolerance=cfg.eq_tolerance)


def _check_common(grid: Grid, selected_frame_index: int, sample_count: int) -> None:
    if not 0 <= selected_frame_index < len(grid):
        raise EvaluationError(f"Invalid frame index: {selected_frame_index}")
    if sample_count <= 0:
        raise EvaluationError(f"Invalid sample count: {sample_count}")


def _write_frame(grid: Grid, index: int, values: np.ndarray) -> None:
    frame = grid[index]
    if isinstance(frame, np.ndarray):
        frame[:] = values
    else:
        frame[:] = values.tolist()


def _evaluate_frame(
    compiled: CompiledExpression,
    ev: Evaluator,
    *,
    ws: Sequence[float],
    xs: Sequence[float],
    y: float,
    z: float,
    old: Sequence[float],
    sel: Sequence[float],
    rand: Sequence[float],
) -> list[float]:
    ast = compiled.ast
    evaluate = ev.evaluate
    return [
        evaluate(
            ast,
            FormulaContext(
                x=xs[i],
                w=ws[i],
                y=y,
                z=z,
                in_sample=old[i],
                sel_sample=sel[i],
                rand_sample=rand[i],
            ),
        )
        for i in range(len(ws))
    ]


# ---- public API


def apply_single_frame(
    compiled: CompiledExpression,
    grid: Grid,
    selected_frame_index: int,
    sample_count: int,
    *,
    seed: int | None = None,
    config: EngineConfig | None = None,
    evaluator: Evaluator | None = None,
) -> None:
    """
    Rewrite grid[selected_frame_index] in place; every other frame is untouched.

    `seed` is not used by the engine (the `rand` table is always built from
    config.rand_seed); it is only logged for collaborators that post-process
    the result with their own randomness.

    Raises:
        EvaluationError: bad index, sample_count <= 0, frame length mismatch,
            unknown variable/function or wrong arity.
    """
    cfg = config or DEFAULT_CONFIG
    _check_common(grid, selected_frame_index, sample_count)
    if len(grid[selected_frame_index]) != sample_count:
        raise EvaluationError("Frame sample count mismatch")

    ev = _evaluator_for(cfg, evaluator)
    with log_context(expr=compiled.source, mode=ExpressionMode.SINGLE_FRAME.value, frames=len(grid), samples=sample_count):
        started = time.perf_counter()
        log.debug("expr.apply.start", event="expr.apply.start", selected=selected_frame_index, seed=seed)

        old = np.array(grid[selected_frame_index], dtype=np.float64).tolist()
        ws, xs = sample_positions(sample_count)
        values = _evaluate_frame(
            compiled,
            ev,
            ws=ws,
            xs=xs,
            y=0.0,
            z=0.0,
            old=old,
            sel=old,
            rand=rand_table(sample_count, seed=cfg.rand_seed),
        )
        _write_frame(grid, selected_frame_index, clamp_samples(values, cfg.clamp_min, cfg.clamp_max))

        log.debug("expr.apply.done", event="expr.apply.done", elapsed_ms=round((time.perf_counter() - started) * 1000, 3))


def apply_multi_frame(
    compiled: CompiledExpression,
    grid: Grid,
    selected_frame_index: int,
    sample_count: int,
    *,
    seed: int | None = None,
    should_cancel: CancelCheck | None = None,
    config: EngineConfig | None = None,
    evaluator: Evaluator | None = None,
) -> None:
    """
    Rewrite every frame of the grid in place.

    For frame t: y = t/(F-1) (0.5 for a single frame), z = 2y-1, `in` is the old
    value of frame t and `sel` the old value of the selected frame, both taken
    from one snapshot made before the pass. `should_cancel` is polled between
    frames; when it returns True the pass stops with CancelledError and the
    grid is left unchanged.

    Raises:
        EvaluationError: bad index, sample_count <= 0, any frame length mismatch,
            unknown variable/function or wrong arity.
        CancelledError: `should_cancel` returned True.
    """
    cfg = config or DEFAULT_CONFIG
    _check_common(grid, selected_frame_index, sample_count)
    frame_count = len(grid)
    for index, frame in enumerate(grid):
        if len(frame) != sample_count:
            raise EvaluationError(f"Frame {index} sample count mismatch")

    ev = _evaluator_for(cfg, evaluator)
    with log_context(expr=compiled.source, mode=ExpressionMode.MULTI_FRAME.value, frames=frame_count, samples=sample_count):
        started = time.perf_counter()
        log.debug("expr.apply.start", event="expr.apply.start", selected=selected_frame_index, seed=seed)

        snapshot = np.array([np.asarray(f, dtype=np.float64) for f in grid])
        sel = snapshot[selected_frame_index].tolist()
        rand = rand_table(sample_count, seed=cfg.rand_seed)
        ws, xs = sample_positions(sample_count)
        ys, zs = frame_positions(frame_count)

        out = np.empty((frame_count, sample_count), dtype=np.float64)
        for t in range(frame_count):
            if should_cancel is not None and should_cancel():
                log.debug("expr.apply.cancelled", event="expr.apply.cancelled", frames_done=t)
                raise CancelledError(f"Cancelled after {t} of {frame_count} frames")
            out[t] = _evaluate_frame(
                compiled,
                ev,
                ws=ws,
                xs=xs,
                y=ys[t],
                z=zs[t],
                old=snapshot[t].tolist(),
                sel=sel,
                rand=rand,
            )

        clamped = clamp_samples(out, cfg.clamp_min, cfg.clamp_max)
        for t in range(frame_count):
            _write_frame(grid, t, clamped[t])

        log.debug("expr.apply.done", event="expr.apply.done", elapsed_ms=round((time.perf_counter() - started) * 1000, 3))


def _expand_for_multi_frame(grid: Grid, sample_count: int, frame_count: int) -> Grid:
    """Repeat the first frame (or a silent one) to build a full wavetable."""
    if isinstance(grid, np.ndarray):
        base = grid[0] if len(grid) else np.zeros(sample_count, dtype=grid.dtype)
        return np.tile(base, (frame_count, 1))
    base_list = list(grid[0]) if len(grid) else [0.0] * sample_count
    return [list(base_list) for _ in range(frame_count)]


def apply_expression(
    compiled: CompiledExpression,
    grid: Grid,
    selected_frame_index: int,
    sample_count: int,
    *,
    seed: int | None = None,
    should_cancel: CancelCheck | None = None,
    config: EngineConfig | None = None,
    evaluator: Evaluator | None = None,
) -> Grid:
    """
    Apply a formula with the strategy its mode calls for and return the grid written.

    Multi-frame formulas need a wavetable to sweep: a grid with at most one
    frame is first expanded to config.default_frame_count copies of that frame
    and the selected index is clamped into range. In that case a new grid is
    returned and the caller's grid is left alone; otherwise the caller's grid
    is written in place and returned.
    """
    cfg = config or DEFAULT_CONFIG
    if compiled.mode is ExpressionMode.SINGLE_FRAME:
        apply_single_frame(compiled, grid, selected_frame_index, sample_count, seed=seed, config=cfg, evaluator=evaluator)
        return grid

    target = grid
    if len(grid) <= 1:
        target = _expand_for_multi_frame(grid, sample_count, cfg.default_frame_count)
        log.debug("expr.apply.expanded", event="expr.apply.expanded", frames=len(target))
    selected = max(0, min(selected_frame_index, len(target) - 1))
    apply_multi_frame(
        compiled,
        target,
        selected,
        sample_count,
        seed=seed,
        should_cancel=should_cancel,
        config=cfg,
        evaluator=evaluator,
    )
    return target
