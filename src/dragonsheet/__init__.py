"""dragonsheet - character state & combat-turn synchronization engine.

Rules and synchronization for a d6-based tabletop RPG companion: hit points,
willpower, conditions, rests, death rolls, skill and spell progression, and
a character's place on its party's combat encounter roster.

The store owns a single active character. Rule engines compute explicit
partial updates; the store writes them through a persistence gateway and
merges them only after the write is acknowledged.

Example:
    >>> from dragonsheet import CharacterStateStore, InMemoryGateway, StatKind
    >>>
    >>> gateway = InMemoryGateway()
    >>> store = CharacterStateStore(gateway)
    >>> await store.load("char-1", "user-1")
    >>> await store.adjust_stat(StatKind.HP, 3)

Modules:
    core: Configuration, logging, constants and base exceptions.
    models: Pydantic V2 schemas for characters, encounters and catalogs.
    engine: Rules engines, encounter sync and the character store.
    storage: Persistence gateway contract and implementations.
"""

from __future__ import annotations

# Core
from dragonsheet.core.config import Settings, get_settings
from dragonsheet.core.exceptions import DragonsheetError
from dragonsheet.core.logging import configure_logging, get_logger

# Models
from dragonsheet.models import (
    Character,
    CharacterUpdate,
    Combatant,
    CombatantUpdate,
    Encounter,
    RestType,
    StatKind,
)

# Engine
from dragonsheet.engine import (
    CharacterStateStore,
    EncounterSyncEngine,
    ProgressionEngine,
    StatAdjustmentEngine,
)

# Storage
from dragonsheet.storage import InMemoryGateway, PersistenceGateway, SQLiteGateway


__version__ = "0.1.0"
__author__ = "dragonsheet Team"
__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Core
    "DragonsheetError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "Character",
    "CharacterUpdate",
    "Combatant",
    "CombatantUpdate",
    "Encounter",
    "RestType",
    "StatKind",
    # Engine
    "CharacterStateStore",
    "EncounterSyncEngine",
    "ProgressionEngine",
    "StatAdjustmentEngine",
    # Storage
    "InMemoryGateway",
    "PersistenceGateway",
    "SQLiteGateway",
]
