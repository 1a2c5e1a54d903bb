"""Pydantic V2 schemas for dragonsheet.

Submodules:
    enums: Stat, rest and death-roll enumerations.
    catalog: Read-only reference records (items, abilities, spells, schools).
    character: The Character record and its CharacterUpdate struct.
    encounter: Encounter, Combatant and CombatantUpdate.

Example:
    >>> from dragonsheet.models import Character, CharacterUpdate
    >>> hero = Character(id="c1", max_hp=12, max_wp=10)
    >>> CharacterUpdate(current_hp=7).apply_to(hero).current_hp
    7
"""

from __future__ import annotations

from dragonsheet.models.catalog import (
    GameItem,
    HeroicAbility,
    MagicSchool,
    Spell,
)
from dragonsheet.models.character import (
    Attributes,
    Character,
    CharacterSpells,
    CharacterUpdate,
    Conditions,
    Equipment,
    EquippedItems,
    InventoryItem,
    Money,
    SchoolSpells,
    Teacher,
)
from dragonsheet.models.encounter import (
    Combatant,
    CombatantUpdate,
    Encounter,
    EncounterStatus,
)
from dragonsheet.models.enums import (
    DeathRollKind,
    RestType,
    StatKind,
)


__all__ = [
    # Enumerations
    "DeathRollKind",
    "RestType",
    "StatKind",
    # Catalog
    "GameItem",
    "HeroicAbility",
    "MagicSchool",
    "Spell",
    # Character
    "Attributes",
    "Character",
    "CharacterSpells",
    "CharacterUpdate",
    "Conditions",
    "Equipment",
    "EquippedItems",
    "InventoryItem",
    "Money",
    "SchoolSpells",
    "Teacher",
    # Encounter
    "Combatant",
    "CombatantUpdate",
    "Encounter",
    "EncounterStatus",
]
