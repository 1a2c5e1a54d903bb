"""In-process persistence gateway.

Keeps every record in dictionaries. Used by the test suite and handy for
running the engine without a database.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import ValidationError as PydanticValidationError

from dragonsheet.core.exceptions import CharacterNotFoundError, RemoteError
from dragonsheet.core.logging import get_logger
from dragonsheet.models.catalog import GameItem, HeroicAbility
from dragonsheet.models.character import Character, CharacterUpdate
from dragonsheet.models.encounter import Combatant, CombatantUpdate, Encounter
from dragonsheet.models.enums import StatKind
from dragonsheet.storage.gateway import PersistenceGateway


logger = get_logger(__name__)


class InMemoryGateway(PersistenceGateway):
    """Dictionary-backed gateway with the same semantics as SQLiteGateway."""

    def __init__(
        self,
        *,
        items: list[GameItem] | None = None,
        heroic_abilities: list[HeroicAbility] | None = None,
    ) -> None:
        self.characters: dict[str, Character] = {}
        self.encounters: dict[str, Encounter] = {}
        self.combatants: dict[str, Combatant] = {}
        self.items: list[GameItem] = list(items or [])
        self.heroic_abilities: list[HeroicAbility] = list(heroic_abilities or [])

    # =========================================================================
    # Seeding
    # =========================================================================

    def add_character(self, character: Character) -> Character:
        self.characters[character.id] = character
        return character

    def add_encounter(self, encounter: Encounter) -> Encounter:
        self.encounters[encounter.id] = encounter
        return encounter

    def add_combatant(self, combatant: Combatant) -> Combatant:
        self.combatants[combatant.id] = combatant
        return combatant

    # =========================================================================
    # Characters
    # =========================================================================

    def _require_character(self, character_id: str) -> Character:
        character = self.characters.get(character_id)
        if character is None:
            raise CharacterNotFoundError(
                f"Character {character_id} not found",
                character_id=character_id,
            )
        return character

    async def get_character(self, character_id: str, user_id: str) -> Character:
        character = self.characters.get(character_id)
        if character is None or character.user_id != user_id:
            raise CharacterNotFoundError(
                "Character not found or you do not have access to it",
                character_id=character_id,
                user_id=user_id,
            )
        return character

    async def update_character(self, character_id: str, update: CharacterUpdate) -> Character:
        stored = self._require_character(character_id)
        record = {
            **stored.model_dump(mode="json"),
            **update.to_record(),
            "updated_at": datetime.now().isoformat(),
        }
        try:
            character = Character.model_validate(record)
        except PydanticValidationError as exc:
            raise RemoteError(
                f"Character update rejected: {exc.error_count()} invalid field(s)",
                operation="update_character",
                record_id=character_id,
            ) from exc
        self.characters[character_id] = character
        return character

    async def increase_max_stat(self, character_id: str, kind: StatKind, amount: int) -> Character:
        kind = StatKind(kind)
        stored = self._require_character(character_id)
        maximum = getattr(stored, kind.max_field)
        if maximum is None:
            raise RemoteError(
                f"Cannot raise max {kind.value} before it is set",
                operation="increase_max_stat",
                record_id=character_id,
            )
        current = getattr(stored, kind.current_field)
        if current is None:
            current = maximum
        record = {
            **stored.model_dump(),
            kind.max_field: maximum + amount,
            kind.current_field: max(0, current + amount),
            "updated_at": datetime.now(),
        }
        try:
            character = Character.model_validate(record)
        except PydanticValidationError as exc:
            raise RemoteError(
                f"Max stat increase rejected: {exc.error_count()} invalid field(s)",
                operation="increase_max_stat",
                record_id=character_id,
            ) from exc
        self.characters[character_id] = character
        return character

    # =========================================================================
    # Reference catalogs
    # =========================================================================

    async def list_items(self) -> list[GameItem]:
        return list(self.items)

    async def list_heroic_abilities(self) -> list[HeroicAbility]:
        return list(self.heroic_abilities)

    # =========================================================================
    # Encounters
    # =========================================================================

    async def get_latest_encounter_for_party(self, party_id: str) -> Encounter | None:
        encounters = [e for e in self.encounters.values() if e.party_id == party_id]
        if not encounters:
            return None
        return max(encounters, key=lambda e: e.created_at or datetime.min)

    async def list_combatants(self, encounter_id: str) -> list[Combatant]:
        return [c for c in self.combatants.values() if c.encounter_id == encounter_id]

    async def update_combatant(self, combatant_id: str, update: CombatantUpdate) -> Combatant:
        stored = self.combatants.get(combatant_id)
        if stored is None:
            raise RemoteError(
                f"Combatant {combatant_id} not found",
                operation="update_combatant",
                record_id=combatant_id,
            )
        combatant = update.apply_to(stored)
        self.combatants[combatant_id] = combatant
        return combatant


__all__ = [
    "InMemoryGateway",
]
