"""Pydantic V2 schemas for encounters and combatants.

Encounters and their combatant rows are owned by encounter management
outside this package; the engine reads them and writes combatant
initiative and live stats.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from dragonsheet.core.constants import INITIATIVE_MAX, INITIATIVE_MIN


InitiativeRoll = Annotated[int, Field(ge=INITIATIVE_MIN, le=INITIATIVE_MAX)]


class EncounterStatus(StrEnum):
    """Encounter lifecycle states."""

    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"


class Encounter(BaseModel):
    """A combat session scoped to a party.

    Attributes:
        id: Encounter identifier.
        party_id: Owning party.
        name: Display name.
        status: Lifecycle state; only ACTIVE encounters are synchronized.
        current_round: Current round number.
        created_at: Creation time, used to find the latest encounter.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    party_id: str
    name: str = "Encounter"
    status: EncounterStatus = Field(default=EncounterStatus.PLANNING)
    current_round: int = Field(default=0, ge=0)
    created_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == EncounterStatus.ACTIVE


class Combatant(BaseModel):
    """A participant row in an encounter.

    Attributes:
        id: Combatant identifier.
        encounter_id: Owning encounter.
        character_id: Linked character; None for NPCs and monsters.
        display_name: Name shown on the roster.
        initiative_roll: Drawn initiative card, None until drawn.
        current_hp: Live hit points.
        max_hp: Maximum hit points.
        current_wp: Live willpower, None for creatures without WP.
        max_wp: Maximum willpower.
        has_acted: Whether the combatant acted this round.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    encounter_id: str
    character_id: str | None = None
    display_name: str = ""
    initiative_roll: InitiativeRoll | None = None
    current_hp: int = Field(default=0, ge=0)
    max_hp: int = Field(default=0, ge=0)
    current_wp: int | None = Field(default=None, ge=0)
    max_wp: int | None = Field(default=None, ge=0)
    has_acted: bool = False

    @property
    def is_player_character(self) -> bool:
        return self.character_id is not None


class CombatantUpdate(BaseModel):
    """Explicit partial update of a Combatant row."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    initiative_roll: InitiativeRoll | None = None
    current_hp: int | None = Field(default=None, ge=0)
    max_hp: int | None = Field(default=None, ge=0)
    current_wp: int | None = Field(default=None, ge=0)
    max_wp: int | None = Field(default=None, ge=0)
    has_acted: bool | None = None
    display_name: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.model_fields_set

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", include=set(self.model_fields_set))

    def apply_to(self, combatant: Combatant) -> Combatant:
        return combatant.model_copy(update=self.changes())


__all__ = [
    "EncounterStatus",
    "Encounter",
    "Combatant",
    "CombatantUpdate",
]
