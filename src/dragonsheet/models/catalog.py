"""Pydantic V2 schemas for read-only reference catalogs.

Items and heroic abilities are loaded once per process; spells and magic
schools are handed to the progression engine by the caller.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GameItem(BaseModel):
    """A master item template from the item catalog."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = Field(min_length=1)
    description: str = ""
    category: str | None = None
    weight: float | None = None
    cost_gold: int = Field(default=0, ge=0)
    cost_silver: int = Field(default=0, ge=0)
    cost_copper: int = Field(default=0, ge=0)


class HeroicAbility(BaseModel):
    """A heroic ability from the ability catalog."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = Field(min_length=1)
    description: str = ""
    willpower_cost: int | None = Field(default=None, ge=0)


class MagicSchool(BaseModel):
    """A school of magic (Animism, Elementalism, Mentalism, ...)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = Field(min_length=1)
    description: str = ""


class Spell(BaseModel):
    """A learnable spell.

    Attributes:
        id: Spell identifier.
        name: Spell name, the de-duplication key.
        rank: 0 for tricks, 1-3 for ranked spells.
        school_name: Owning school, None for general magic.
        willpower_cost: WP spent on casting.
        prerequisite: JSON prerequisite tree, see ``check_prerequisite``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = Field(min_length=1)
    rank: int | None = Field(default=None, ge=0)
    school_name: str | None = None
    willpower_cost: int | None = Field(default=None, ge=0)
    prerequisite: str | None = None
    description: str = ""


__all__ = [
    "GameItem",
    "HeroicAbility",
    "MagicSchool",
    "Spell",
]
