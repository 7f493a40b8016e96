from __future__ import annotations

"""
wavexpr.core.types
==================

Shared type aliases and small constants used across the codebase.
Keep this module **tiny** and dependency-free.

Guidelines:
- Prefer narrow aliases for clarity (e.g., Grid vs a bare MutableSequence).
- Avoid importing engine-level types here.
"""

from collections.abc import Callable, MutableSequence
from typing import Any, Final

# ---- Sample grids ------------------------------------------------------------

# Rectangular frames x samples collection, written in place by the applicator.
# A 2-D numpy.ndarray satisfies this too: grid[t] is a writable row view.
Grid = MutableSequence[Any]

# Cooperative cancellation hook, polled between frames.
CancelCheck = Callable[[], bool]

# ---- Constants ---------------------------------------------------------------

# Seed of the reproducible per-sample `rand` table.
DEFAULT_RAND_SEED: Final[int] = 42

# 64-bit LCG multiplier/increment (Knuth MMIX constants).
LCG_MULTIPLIER: Final[int] = 6364136223846793005
LCG_INCREMENT: Final[int] = 1442695040888963407
LCG_MASK: Final[int] = (1 << 64) - 1

# Absolute tolerance of `==` / `!=`.
DEFAULT_EQ_TOLERANCE: Final[float] = 1e-6

# Output range of every sample written back to a grid.
SAMPLE_MIN: Final[float] = -1.0
SAMPLE_MAX: Final[float] = 1.0

# Frame count used when a multi-frame formula meets a one-frame grid.
DEFAULT_FRAME_COUNT: Final[int] = 256

# Default digest size used by stable_hash (BLAKE2b).
DEFAULT_BLAKE2_DIGEST_SIZE: Final[int] = 20


__all__ = [
    # grids
    "Grid",
    "CancelCheck",
    # constants
    "DEFAULT_RAND_SEED",
    "LCG_MULTIPLIER",
    "LCG_INCREMENT",
    "LCG_MASK",
    "DEFAULT_EQ_TOLERANCE",
    "SAMPLE_MIN",
    "SAMPLE_MAX",
    "DEFAULT_FRAME_COUNT",
    "DEFAULT_BLAKE2_DIGEST_SIZE",
]
