"""Abstract persistence contract used by the engine.

The engine never talks to a database directly. Every read and write goes
through a PersistenceGateway, and local state only changes after the
gateway acknowledges a write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from dragonsheet.models.catalog import GameItem, HeroicAbility
from dragonsheet.models.character import Character, CharacterUpdate
from dragonsheet.models.encounter import Combatant, CombatantUpdate, Encounter
from dragonsheet.models.enums import StatKind


class PersistenceGateway(ABC):
    """Async access to characters, catalogs and encounters.

    Implementations raise CharacterNotFoundError for missing or foreign
    characters and RemoteError for any other failed read or write.
    """

    # =========================================================================
    # Characters
    # =========================================================================

    @abstractmethod
    async def get_character(self, character_id: str, user_id: str) -> Character:
        """Fetch a character owned by ``user_id``."""

    @abstractmethod
    async def update_character(self, character_id: str, update: CharacterUpdate) -> Character:
        """Write the set fields of ``update`` and return the stored record."""

    @abstractmethod
    async def increase_max_stat(self, character_id: str, kind: StatKind, amount: int) -> Character:
        """Atomically raise max HP or WP (and the current pool) by ``amount``."""

    # =========================================================================
    # Reference catalogs
    # =========================================================================

    @abstractmethod
    async def list_items(self) -> list[GameItem]: ...

    @abstractmethod
    async def list_heroic_abilities(self) -> list[HeroicAbility]: ...

    # =========================================================================
    # Encounters
    # =========================================================================

    @abstractmethod
    async def get_latest_encounter_for_party(self, party_id: str) -> Encounter | None:
        """Return the most recently created encounter of a party, if any."""

    @abstractmethod
    async def list_combatants(self, encounter_id: str) -> list[Combatant]: ...

    @abstractmethod
    async def update_combatant(self, combatant_id: str, update: CombatantUpdate) -> Combatant:
        """Write the set fields of ``update`` and return the stored row."""


__all__ = [
    "PersistenceGateway",
]
