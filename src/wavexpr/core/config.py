from __future__ import annotations

"""
wavexpr.core.config
===================

Strongly-typed engine configuration.
- No external deps; optional JSON file loading.
- Provides small env overrides for convenience.

Defaults give the standard engine behaviour (seed 42, [-1, 1] clamping,
1e-6 equality tolerance). If a config file path is not provided or
not found, those defaults are used.
"""

import json
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .types import (
    DEFAULT_EQ_TOLERANCE,
    DEFAULT_FRAME_COUNT,
    DEFAULT_RAND_SEED,
    SAMPLE_MAX,
    SAMPLE_MIN,
)


def _try_load_json(path: Path | None) -> dict[str, Any]:
    if not path:
        return {}
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        # Fail soft (callers may still override)
        pass
    return {}


# ---------------------------------------------------------------------------


@dataclass
class EngineConfig:
    """Expression engine configuration loaded from JSON/env."""

    # ---- Randomness
    rand_seed: int = DEFAULT_RAND_SEED

    # ---- Numerics
    clamp_min: float = SAMPLE_MIN
    clamp_max: float = SAMPLE_MAX
    eq_tolerance: float = DEFAULT_EQ_TOLERANCE

    # ---- Mode dispatch
    default_frame_count: int = DEFAULT_FRAME_COUNT

    # ---- Formula library
    library_path: str | None = None
    user_formulas_path: str | None = None

    # ---- Methods ------------------------------------------------------------

    def __post_init__(self) -> None:
        self.rand_seed = int(self.rand_seed)
        if not (math.isfinite(self.clamp_min) and math.isfinite(self.clamp_max)):
            raise ValueError("clamp bounds must be finite")
        if self.clamp_min > self.clamp_max:
            raise ValueError("clamp_min must be <= clamp_max")
        if self.eq_tolerance < 0:
            raise ValueError("eq_tolerance must be non-negative")
        if self.default_frame_count <= 0:
            raise ValueError("default_frame_count must be > 0")

    # Path helpers
    def library_dir(self) -> Path | None:
        return Path(self.library_path) if self.library_path else None

    def user_state_file(self) -> Path | None:
        return Path(self.user_formulas_path) if self.user_formulas_path else None

    # Loader
    @classmethod
    def load(cls, path: Path | str | None = None, *, overrides: dict[str, Any] | None = None) -> EngineConfig:
        """
        Load config from JSON file (if provided), then apply env and overrides.

        Env overrides:
          - WAVEXPR_RAND_SEED
          - WAVEXPR_LIBRARY_PATH
          - WAVEXPR_USER_FORMULAS
        """
        data: dict[str, Any] = {}

        # File
        file_path: Path | None = Path(path) if path else None
        data.update(_try_load_json(file_path))

        # Env
        if os.getenv("WAVEXPR_RAND_SEED"):
            data["rand_seed"] = int(os.environ["WAVEXPR_RAND_SEED"])
        if os.getenv("WAVEXPR_LIBRARY_PATH"):
            data["library_path"] = os.environ["WAVEXPR_LIBRARY_PATH"]
        if os.getenv("WAVEXPR_USER_FORMULAS"):
            data["user_formulas_path"] = os.environ["WAVEXPR_USER_FORMULAS"]

        # Overrides
        if overrides:
            data.update(overrides)

        return cls(**data)


DEFAULT_CONFIG = EngineConfig()
