"""Rules engine for dragonsheet.

This module provides the character rules (pools, conditions, rests, death
rolls, progression), the encounter synchronization, and the store that
orchestrates them over a persistence gateway.

Submodules:
    dice: Dice rolling backed by the d20 library
    stats: HP/WP, conditions, rests and death rolls
    progression: Attributes, skills, heroic abilities and spells
    prerequisites: Spell prerequisite trees
    inventory: Matching inventory items against the item catalog
    catalog: Once-per-process reference catalog loading
    status: Transient status messages
    encounter_sync: Active encounter, roster and initiative
    store: The active character store

Example:
    >>> from dragonsheet.engine import CharacterStateStore
    >>> from dragonsheet.models import RestType
    >>>
    >>> store = CharacterStateStore(gateway)
    >>> await store.load("char-1", "user-1")
    >>> outcome = await store.perform_rest(RestType.STRETCH, healer_present=True)
"""

from __future__ import annotations

# =============================================================================
# Dice Rolling
# =============================================================================
from dragonsheet.engine.dice import (
    DiceExpression,
    DiceRoller,
    get_dice_roller,
)

# =============================================================================
# Rules
# =============================================================================
from dragonsheet.engine.prerequisites import (
    Prerequisite,
    check_prerequisite,
    parse_prerequisite,
)
from dragonsheet.engine.progression import ProgressionEngine
from dragonsheet.engine.stats import RestOutcome, StatAdjustmentEngine

# =============================================================================
# State
# =============================================================================
from dragonsheet.engine.catalog import CatalogState, ReferenceCatalog
from dragonsheet.engine.encounter_sync import (
    CombatantUpdated,
    EncounterSyncEngine,
    sort_roster,
)
from dragonsheet.engine.inventory import enrich_inventory
from dragonsheet.engine.status import StatusMessage
from dragonsheet.engine.store import CharacterStateStore


__all__ = [
    # Dice
    "DiceExpression",
    "DiceRoller",
    "get_dice_roller",
    # Rules
    "Prerequisite",
    "check_prerequisite",
    "parse_prerequisite",
    "ProgressionEngine",
    "RestOutcome",
    "StatAdjustmentEngine",
    # State
    "CatalogState",
    "ReferenceCatalog",
    "CombatantUpdated",
    "EncounterSyncEngine",
    "sort_roster",
    "enrich_inventory",
    "StatusMessage",
    "CharacterStateStore",
]
