# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from .formats import parse_formula_line, parse_formula_text
from .manager import FormulaLibrary, default_library_dir
from .models import FormulaCategory, FormulaEntry, LibraryState

__all__ = [
    "FormulaCategory",
    "FormulaEntry",
    "FormulaLibrary",
    "LibraryState",
    "default_library_dir",
    "parse_formula_line",
    "parse_formula_text",
]
