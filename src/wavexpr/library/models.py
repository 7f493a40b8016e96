# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Formula library data model.

Entries come from two places: the bundled text files shipped with the package
(read-only, deterministic ids) and user formulas persisted as JSON.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

__all__ = ["FormulaCategory", "FormulaEntry", "LibraryState"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FormulaEntry(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    expression: str
    name: str
    category: str
    is_favorite: bool = False
    is_user_created: bool = False
    date_created: datetime = Field(default_factory=_utcnow)
    date_modified: datetime = Field(default_factory=_utcnow)
    model_config = {"extra": "forbid"}

    @field_validator("expression", "name", "category")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must be a non-empty string")
        return v


class FormulaCategory(BaseModel):
    id: str
    name: str
    is_multi_frame: bool = False
    model_config = {"extra": "forbid", "frozen": True}

    @property
    def display_name(self) -> str:
        """Name without the bundled-file markers ('[x]', '---')."""
        return self.name.replace("[x]", "").replace("---", "").strip()


class LibraryState(BaseModel):
    """On-disk shape of the user state file."""

    version: int = 1
    user_formulas: list[FormulaEntry] = Field(default_factory=list)
    favorites: list[UUID] = Field(default_factory=list)
    model_config = {"extra": "forbid"}
