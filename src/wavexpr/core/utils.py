from __future__ import annotations

"""
wavexpr.core.utils
==================

Low-level helpers shared by the engine and the formula library:
- Reproducible 64-bit LCG and the per-sample `rand` table built from it.
- Sample clamping into the output range.
- Stable hashing for JSON-like payloads (deterministic ids).
"""

import json
from collections.abc import Iterator
from functools import lru_cache
from hashlib import blake2b
from typing import Any

import numpy as np

from .types import (
    DEFAULT_BLAKE2_DIGEST_SIZE,
    DEFAULT_RAND_SEED,
    LCG_INCREMENT,
    LCG_MASK,
    LCG_MULTIPLIER,
    SAMPLE_MAX,
    SAMPLE_MIN,
)

_INV_2_53 = 1.0 / float(1 << 53)


def lcg_stream(seed: int) -> Iterator[int]:
    """
    Endless stream of raw 64-bit LCG states:
        state = state * 6364136223846793005 + 1442695040888963407  (mod 2**64)

    The seed itself is never yielded; the first value is one step past it.
    """
    state = seed & LCG_MASK
    while True:
        state = (state * LCG_MULTIPLIER + LCG_INCREMENT) & LCG_MASK
        yield state


def unit_interval(raw: int) -> float:
    """Map a raw 64-bit draw onto [0, 1) using its top 53 bits."""
    return (raw >> 11) * _INV_2_53


@lru_cache(maxsize=32)
def _rand_table_cached(seed: int, count: int) -> tuple[float, ...]:
    stream = lcg_stream(seed)
    return tuple(unit_interval(next(stream)) * 2.0 - 1.0 for _ in range(count))


def rand_table(count: int, *, seed: int = DEFAULT_RAND_SEED) -> tuple[float, ...]:
    """
    Per-sample-index random values in [-1, 1], identical on every call.

    Sample i always receives the i-th draw of a fresh generator, so the same
    table is shared by every frame of a multi-frame pass.
    """
    if count < 0:
        raise ValueError("count must be non-negative")
    return _rand_table_cached(int(seed), int(count))


def clamp_samples(values: Any, lo: float = SAMPLE_MIN, hi: float = SAMPLE_MAX) -> np.ndarray:
    """
    Clamp raw evaluator outputs into [lo, hi].
    +Inf/-Inf saturate to the bounds; NaN becomes 0.0 so the range invariant holds.
    """
    arr = np.asarray(values, dtype=np.float64)
    arr = np.nan_to_num(arr, nan=0.0, posinf=hi, neginf=lo)
    return np.clip(arr, lo, hi)


def stable_hash(payload: Any, *, digest_size: int = DEFAULT_BLAKE2_DIGEST_SIZE) -> str:
    """
    Compute a stable hash of an arbitrary JSON-like payload.
    - UTF-8 JSON with sorted keys and no whitespace for deterministic encoding.
    - BLAKE2b with configurable digest size (default 20 bytes -> 40 hex chars).

    NOTE: This is **not** a cryptographic signature; use it for ids and cache keys.
    """
    data = json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")
    return blake2b(data, digest_size=digest_size).hexdigest()
