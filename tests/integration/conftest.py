"""Fixtures for integration tests against a real SQLite database."""

from __future__ import annotations

from pathlib import Path

import pytest

from dragonsheet.core.config import Settings, StorageSettings
from dragonsheet.engine.catalog import ReferenceCatalog
from dragonsheet.engine.dice import DiceRoller
from dragonsheet.engine.store import CharacterStateStore
from dragonsheet.models import Character, Combatant, Encounter, GameItem, HeroicAbility
from dragonsheet.storage.database import SQLiteGateway


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "campaign.db"


@pytest.fixture
def sqlite_gateway(
    db_path: Path,
    sample_character: Character,
    item_catalog: list[GameItem],
    ability_catalog: list[HeroicAbility],
    active_encounter: Encounter,
    roster: list[Combatant],
) -> SQLiteGateway:
    """A database holding the sample character, catalogs and an active fight."""
    db = SQLiteGateway(db_path, settings=StorageSettings(database_path=db_path))
    db.add_character(sample_character)
    for item in item_catalog:
        db.add_item(item)
    for ability in ability_catalog:
        db.add_heroic_ability(ability)
    db.add_encounter(active_encounter)
    for combatant in roster:
        db.add_combatant(combatant)
    return db


@pytest.fixture
def sqlite_store(sqlite_gateway: SQLiteGateway, settings: Settings) -> CharacterStateStore:
    return CharacterStateStore(
        sqlite_gateway,
        catalog=ReferenceCatalog(sqlite_gateway),
        dice=DiceRoller(seed=7),
        settings=settings,
    )
