"""Tests for the SQLite persistence gateway."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from dragonsheet.core.config import StorageSettings
from dragonsheet.core.exceptions import CharacterNotFoundError, RemoteError
from dragonsheet.models import (
    Character,
    CharacterUpdate,
    Combatant,
    CombatantUpdate,
    Conditions,
    Encounter,
    EncounterStatus,
    GameItem,
    HeroicAbility,
    StatKind,
)
from dragonsheet.storage.database import SQLiteGateway


@pytest.fixture
def db(tmp_path: Path) -> SQLiteGateway:
    settings = StorageSettings(retry_attempts=2, retry_max_wait_seconds=0.01)
    return SQLiteGateway(tmp_path / "sheets.db", settings=settings)


@pytest.fixture
def seeded(db: SQLiteGateway, sample_character: Character) -> SQLiteGateway:
    db.add_character(sample_character)
    return db


class TestSchema:
    """Tests for database initialization."""

    def test_creates_tables(self, db: SQLiteGateway) -> None:
        with sqlite3.connect(db.db_path) as conn:
            tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}

        assert {"characters", "items", "heroic_abilities", "encounters", "combatants"} <= tables

    def test_reopen_keeps_data(self, seeded: SQLiteGateway) -> None:
        reopened = SQLiteGateway(seeded.db_path)

        with sqlite3.connect(reopened.db_path) as conn:
            count = conn.execute("SELECT COUNT(*) FROM characters").fetchone()[0]

        assert count == 1


class TestCharacters:
    """Tests for character reads and writes."""

    async def test_round_trip(self, seeded: SQLiteGateway, sample_character: Character) -> None:
        loaded = await seeded.get_character("char-1", "user-1")

        assert loaded.name == sample_character.name
        assert loaded.skill_levels == sample_character.skill_levels
        assert loaded.equipment.money == sample_character.equipment.money
        assert loaded.created_at is not None

    async def test_scoped_to_user(self, seeded: SQLiteGateway) -> None:
        with pytest.raises(CharacterNotFoundError):
            await seeded.get_character("char-1", "user-2")

    async def test_missing(self, db: SQLiteGateway) -> None:
        with pytest.raises(CharacterNotFoundError):
            await db.get_character("nobody", "user-1")

    async def test_update_sets_only_given_fields(self, seeded: SQLiteGateway) -> None:
        stored = await seeded.update_character(
            "char-1",
            CharacterUpdate(current_hp=3, conditions=Conditions(dazed=True)),
        )
        reloaded = await seeded.get_character("char-1", "user-1")

        assert stored.current_hp == 3
        assert reloaded.current_hp == 3
        assert reloaded.conditions.dazed
        assert reloaded.current_wp == 5
        assert reloaded.updated_at == stored.updated_at

    async def test_explicit_null(self, seeded: SQLiteGateway) -> None:
        await seeded.update_character("char-1", CharacterUpdate(teacher={"skill_under_study": "Bows"}))

        stored = await seeded.update_character("char-1", CharacterUpdate(teacher=None))

        assert stored.teacher is None

    async def test_invalid_update_rejected(self, seeded: SQLiteGateway) -> None:
        with pytest.raises(RemoteError):
            await seeded.update_character("char-1", CharacterUpdate(current_hp=40))

        assert (await seeded.get_character("char-1", "user-1")).current_hp == 8

    async def test_update_missing(self, db: SQLiteGateway) -> None:
        with pytest.raises(CharacterNotFoundError):
            await db.update_character("nobody", CharacterUpdate(notes="n"))

    async def test_increase_max_stat(self, seeded: SQLiteGateway) -> None:
        stored = await seeded.increase_max_stat("char-1", StatKind.HP, 2)

        assert (stored.max_hp, stored.current_hp) == (14, 10)

    async def test_increase_unset_max(self, db: SQLiteGateway) -> None:
        db.add_character(Character(id="c2", user_id="user-1"))

        with pytest.raises(RemoteError):
            await db.increase_max_stat("c2", StatKind.WP, 1)

    async def test_increase_below_zero_rejected(self, seeded: SQLiteGateway) -> None:
        with pytest.raises(RemoteError):
            await seeded.increase_max_stat("char-1", StatKind.HP, -20)

        stored = await seeded.get_character("char-1", "user-1")
        assert (stored.max_hp, stored.current_hp) == (12, 8)

    async def test_unreadable_row(self, seeded: SQLiteGateway) -> None:
        with sqlite3.connect(seeded.db_path) as conn:
            conn.execute(
                "UPDATE characters SET data_json = ? WHERE id = ?",
                ('{"id": "char-1", "max_hp": 12, "current_hp": -3}', "char-1"),
            )

        with pytest.raises(RemoteError):
            await seeded.get_character("char-1", "user-1")


class TestCatalogs:
    """Tests for the reference catalog tables."""

    async def test_items_sorted_by_name(self, db: SQLiteGateway, item_catalog: list[GameItem]) -> None:
        for item in reversed(item_catalog):
            db.add_item(item)

        items = await db.list_items()

        assert [item.name for item in items] == ["Field Rations", "Rope", "Torch"]
        assert items[0] == item_catalog[0]

    async def test_heroic_abilities(self, db: SQLiteGateway, ability_catalog: list[HeroicAbility]) -> None:
        for ability in ability_catalog:
            db.add_heroic_ability(ability)

        assert await db.list_heroic_abilities() == ability_catalog


class TestEncounters:
    """Tests for encounters and combatant rows."""

    async def test_latest_encounter(self, db: SQLiteGateway, active_encounter: Encounter) -> None:
        db.add_encounter(active_encounter)
        db.add_encounter(
            Encounter(
                id="enc-old",
                party_id="party-1",
                status=EncounterStatus.COMPLETED,
                created_at=datetime(2024, 4, 1),
            )
        )

        latest = await db.get_latest_encounter_for_party("party-1")

        assert latest == active_encounter
        assert await db.get_latest_encounter_for_party("party-9") is None

    async def test_combatants(
        self,
        db: SQLiteGateway,
        active_encounter: Encounter,
        roster: list[Combatant],
    ) -> None:
        db.add_encounter(active_encounter)
        for combatant in roster:
            db.add_combatant(combatant)

        combatants = await db.list_combatants("enc-1")

        assert {c.id for c in combatants} == {c.id for c in roster}

    async def test_update_combatant(
        self,
        db: SQLiteGateway,
        active_encounter: Encounter,
        roster: list[Combatant],
    ) -> None:
        db.add_encounter(active_encounter)
        db.add_combatant(roster[1])

        updated = await db.update_combatant("cb-aldra", CombatantUpdate(initiative_roll=9, has_acted=True))

        assert updated.initiative_roll == 9
        assert updated.has_acted is True
        assert updated.current_hp == 8

    async def test_update_missing_combatant(self, db: SQLiteGateway) -> None:
        with pytest.raises(RemoteError):
            await db.update_combatant("cb-none", CombatantUpdate(current_hp=1))


class TestRetry:
    """Tests for transient error handling."""

    async def test_locked_database_retried_then_reported(self, seeded: SQLiteGateway) -> None:
        calls = []

        def locked(character_id: str) -> None:
            calls.append(character_id)
            raise sqlite3.OperationalError("database is locked")

        with patch.object(seeded, "_fetch_character_row", side_effect=locked):
            with pytest.raises(RemoteError) as exc_info:
                await seeded.get_character("char-1", "user-1")

        assert len(calls) == 2
        assert exc_info.value.details["operation"] == "get_character"
