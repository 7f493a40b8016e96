# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
FormulaLibrary: bundled formulas plus user formulas and favorites.

Bundled formulas are read from `FormulaUserSingles.txt` / `FormulaUserMultis.txt`
in the library directory (the package's own `data/` directory by default).
User formulas and favorite ids live in one JSON state file; without a state
file path the library works in memory only.
"""

import os
import tempfile
from collections.abc import Callable
from datetime import UTC, datetime
from functools import lru_cache
from pathlib import Path
from uuid import UUID

from pydantic import ValidationError

from ..core.config import DEFAULT_CONFIG, EngineConfig
from ..core.log import get_logger, warn_once
from ..engine.compiler import ExpressionMode, compile_expression
from ..errors import LibraryError, ParseError
from .formats import parse_formula_text
from .models import FormulaCategory, FormulaEntry, LibraryState

__all__ = ["MULTIS_FILE", "SINGLES_FILE", "FormulaLibrary", "default_library_dir"]

log = get_logger("library")

SINGLES_FILE = "FormulaUserSingles.txt"
MULTIS_FILE = "FormulaUserMultis.txt"


def default_library_dir() -> Path:
    return Path(__file__).resolve().parent / "data"


@lru_cache(maxsize=1024)
def _mode_of(expression: str) -> ExpressionMode | None:
    try:
        return compile_expression(expression).mode
    except ParseError:
        return None


def _wanted_mode(is_multi_frame: bool) -> ExpressionMode:
    return ExpressionMode.MULTI_FRAME if is_multi_frame else ExpressionMode.SINGLE_FRAME


class FormulaLibrary:
    """
    In-memory formula catalogue with optional JSON persistence.

    Args:
        library_dir: directory holding the bundled text files. Falls back to
            `config.library_path`, then to the packaged data directory.
        state_path: JSON file for user formulas and favorites. Falls back to
            `config.user_formulas_path`; None keeps everything in memory.
        autoload: read bundled files and the state file on construction.
    """

    def __init__(
        self,
        *,
        library_dir: Path | str | None = None,
        state_path: Path | str | None = None,
        config: EngineConfig | None = None,
        autoload: bool = True,
    ) -> None:
        cfg = config or DEFAULT_CONFIG
        if library_dir is not None:
            self.library_dir = Path(library_dir)
        else:
            self.library_dir = cfg.library_dir() or default_library_dir()
        if state_path is not None:
            self.state_path: Path | None = Path(state_path)
        else:
            self.state_path = cfg.user_state_file()

        self.single_frame_formulas: list[FormulaEntry] = []
        self.multi_frame_formulas: list[FormulaEntry] = []
        self.user_formulas: list[FormulaEntry] = []

        if autoload:
            self.load_bundled()
            self.load_user_state()

    # ---------------------------------------------------------------- loading

    def _read_bundled(self, filename: str, *, is_multi_frame: bool) -> list[FormulaEntry]:
        path = self.library_dir / filename
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            warn_once(log, f"library.missing:{path}", "bundled formula file not found", path=str(path))
            return []
        except OSError as e:
            raise LibraryError(f"Cannot read {path}: {e}") from e
        return parse_formula_text(text, is_multi_frame=is_multi_frame)

    def load_bundled(self) -> None:
        self.single_frame_formulas = self._read_bundled(SINGLES_FILE, is_multi_frame=False)
        self.multi_frame_formulas = self._read_bundled(MULTIS_FILE, is_multi_frame=True)
        log.debug(
            "library.bundled.loaded",
            event="library.bundled.loaded",
            singles=len(self.single_frame_formulas),
            multis=len(self.multi_frame_formulas),
        )

    def load_user_state(self) -> None:
        """Read user formulas and favorites; a corrupt state file raises LibraryError."""
        if self.state_path is None or not self.state_path.exists():
            return
        try:
            state = LibraryState.model_validate_json(self.state_path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise LibraryError(f"Invalid formula state file {self.state_path}: {e}") from e
        self.user_formulas = list(state.user_formulas)
        favorite_ids = set(state.favorites)
        for entry in self._bundled():
            entry.is_favorite = entry.id in favorite_ids
        for entry in self.user_formulas:
            if entry.id in favorite_ids:
                entry.is_favorite = True

    def save(self) -> None:
        """Write the state file atomically. No-op without a state path."""
        if self.state_path is None:
            return
        state = LibraryState(
            user_formulas=self.user_formulas,
            favorites=[e.id for e in self._every() if e.is_favorite],
        )
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".formulas-", suffix=".json", dir=self.state_path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(state.model_dump_json(indent=2))
            os.replace(tmp, self.state_path)
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            raise LibraryError(f"Cannot write {self.state_path}: {e}") from e

    def _save_or_undo(self, undo: Callable[[], None]) -> None:
        """Persist an in-memory edit; if the write fails, `undo` reverts it before the error propagates."""
        try:
            self.save()
        except LibraryError:
            undo()
            raise

    # ------------------------------------------------------------ user edits

    def add_user_formula(self, expression: str, name: str, category: str, *, is_multi_frame: bool) -> FormulaEntry:
        """Validate, store and persist a user formula of the requested mode."""
        try:
            compiled = compile_expression(expression)
        except ParseError as e:
            raise LibraryError(f"Invalid formula: {e.message}") from e
        if compiled.mode is not _wanted_mode(is_multi_frame):
            if is_multi_frame:
                raise LibraryError("Multi-frame formulas must use y or z")
            raise LibraryError("Single-frame formulas cannot use y or z")
        try:
            entry = FormulaEntry(expression=expression, name=name, category=category, is_user_created=True)
        except ValidationError as e:
            raise LibraryError(f"Invalid formula entry: {e}") from e
        self.user_formulas.append(entry)
        self._save_or_undo(lambda: self.user_formulas.remove(entry))
        log.info("library.formula.added", event="library.formula.added", id=str(entry.id), mode=compiled.mode.value)
        return entry

    def update_user_formula(self, formula_id: UUID, expression: str, name: str, category: str) -> FormulaEntry:
        index = self._user_index(formula_id)
        current = self.user_formulas[index]
        try:
            updated = FormulaEntry.model_validate(
                {
                    **current.model_dump(),
                    "expression": expression,
                    "name": name,
                    "category": category,
                    "date_modified": datetime.now(UTC),
                }
            )
        except ValidationError as e:
            raise LibraryError(f"Invalid formula entry: {e}") from e
        self.user_formulas[index] = updated
        self._save_or_undo(lambda: self.user_formulas.__setitem__(index, current))
        return updated

    def delete_user_formula(self, formula_id: UUID) -> None:
        index = self._user_index(formula_id)
        removed = self.user_formulas.pop(index)
        self._save_or_undo(lambda: self.user_formulas.insert(index, removed))

    def toggle_favorite(self, formula_id: UUID) -> bool:
        """Flip the favorite flag of any formula; returns the new state."""
        for entry in self._every():
            if entry.id == formula_id:
                previous = entry.is_favorite
                entry.is_favorite = not previous
                self._save_or_undo(lambda: setattr(entry, "is_favorite", previous))
                return entry.is_favorite
        raise LibraryError(f"Unknown formula id: {formula_id}")

    def _user_index(self, formula_id: UUID) -> int:
        for i, entry in enumerate(self.user_formulas):
            if entry.id == formula_id:
                return i
        raise LibraryError(f"Unknown user formula id: {formula_id}")

    # --------------------------------------------------------------- queries

    def _bundled(self) -> list[FormulaEntry]:
        return self.single_frame_formulas + self.multi_frame_formulas

    def _every(self) -> list[FormulaEntry]:
        return self._bundled() + self.user_formulas

    @property
    def categories(self) -> list[FormulaCategory]:
        multi = {e.category for e in self.multi_frame_formulas}
        names = sorted({e.category for e in self._every()})
        return [FormulaCategory(id=n, name=n, is_multi_frame=n in multi) for n in names]

    def all_formulas(self, is_multi_frame: bool) -> list[FormulaEntry]:
        """Bundled formulas of the mode, then user formulas whose formula compiles to it."""
        bundled = self.multi_frame_formulas if is_multi_frame else self.single_frame_formulas
        wanted = _wanted_mode(is_multi_frame)
        user = [e for e in self.user_formulas if _mode_of(e.expression) is wanted]
        return bundled + user

    def formulas_in(self, category: str, *, is_multi_frame: bool) -> list[FormulaEntry]:
        return [e for e in self.all_formulas(is_multi_frame) if e.category == category]

    def favorites(self, *, is_multi_frame: bool) -> list[FormulaEntry]:
        return [e for e in self.all_formulas(is_multi_frame) if e.is_favorite]

    def search(self, query: str, *, is_multi_frame: bool) -> list[FormulaEntry]:
        q = query.lower()
        return [
            e
            for e in self.all_formulas(is_multi_frame)
            if q in e.name.lower() or q in e.expression.lower() or q in e.category.lower()
        ]

    def get(self, formula_id: UUID) -> FormulaEntry | None:
        for entry in self._every():
            if entry.id == formula_id:
                return entry
        return None
