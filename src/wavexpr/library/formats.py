# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Reader for the bundled formula text format.

One item per line:
  [x][Category]         switch the current category
  [expression][name]    a formula entry
Blank lines and anything else are ignored.
"""

from uuid import UUID

from ..core.log import get_logger
from ..core.utils import stable_hash
from .models import FormulaEntry

__all__ = ["DEFAULT_MULTI_CATEGORY", "DEFAULT_SINGLE_CATEGORY", "bundled_id", "parse_formula_line", "parse_formula_text"]

log = get_logger("library.formats")

DEFAULT_SINGLE_CATEGORY = "Single-Frame"
DEFAULT_MULTI_CATEGORY = "Multi-Frame"

_CATEGORY_PREFIX = "[x]["


def bundled_id(*, is_multi_frame: bool, category: str, expression: str, name: str, ordinal: int = 0) -> UUID:
    """Deterministic id for a bundled entry so favorites survive reloads."""
    payload = {
        "multi": is_multi_frame,
        "category": category,
        "expression": expression,
        "name": name,
        "ordinal": ordinal,
    }
    return UUID(hex=stable_hash(payload, digest_size=16))


def parse_formula_line(line: str) -> tuple[str, str] | None:
    """Split "[expression][name]" into its parts; None if the line is not an entry."""
    if not line.startswith("[") or "][" not in line:
        return None
    first_close = line.find("]")
    if first_close <= 0:
        return None
    expression = line[1:first_close]
    second_open = line.find("[", first_close + 1)
    if second_open < 0:
        return None
    second_close = line.find("]", second_open + 1)
    if second_close < 0:
        return None
    return expression, line[second_open + 1 : second_close]


def _category_header(line: str) -> str | None:
    if not (line.startswith(_CATEGORY_PREFIX) and line.endswith("]")):
        return None
    return line.replace(_CATEGORY_PREFIX, "").replace("]", "").strip()


def parse_formula_text(text: str, *, is_multi_frame: bool) -> list[FormulaEntry]:
    category = DEFAULT_MULTI_CATEGORY if is_multi_frame else DEFAULT_SINGLE_CATEGORY
    entries: list[FormulaEntry] = []
    seen: dict[UUID, int] = {}

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue

        header = _category_header(line)
        if header is not None:
            if header:
                category = header
            continue

        parts = parse_formula_line(line)
        if parts is None:
            continue
        expression, name = parts[0].strip(), parts[1].strip()
        if not expression or not name:
            log.debug("library.entry.skipped", event="library.entry.skipped", line=lineno)
            continue

        key = bundled_id(is_multi_frame=is_multi_frame, category=category, expression=expression, name=name)
        ordinal = seen.get(key, 0)
        seen[key] = ordinal + 1
        entry_id = key if ordinal == 0 else bundled_id(
            is_multi_frame=is_multi_frame,
            category=category,
            expression=expression,
            name=name,
            ordinal=ordinal,
        )
        entries.append(FormulaEntry(id=entry_id, expression=expression, name=name, category=category))

    return entries
