"""Integration tests for the character lifecycle.

Tests the complete character flow against SQLite: load, take damage, rest,
advance, and reload.
"""

from __future__ import annotations

import sqlite3

import pytest

from dragonsheet.engine.store import CharacterStateStore
from dragonsheet.models import DeathRollKind, MagicSchool, RestType, Spell, StatKind
from dragonsheet.storage.database import SQLiteGateway


pytestmark = pytest.mark.integration


class TestCharacterFlow:
    """Test loading, editing, saving and reloading a character."""

    async def test_load_enriches_inventory(self, sqlite_store: CharacterStateStore) -> None:
        """Load a character and match its legacy inventory."""
        character = await sqlite_store.load("char-1", "user-1")

        assert character is not None
        assert [item.item_id for item in character.equipment.inventory] == [
            "item-rations",
            "item-rope",
            "item-torch",
        ]

    async def test_damage_and_rest_persist(
        self,
        sqlite_store: CharacterStateStore,
        sqlite_gateway: SQLiteGateway,
    ) -> None:
        """Damage, collapse, heal and rest; every change reaches the database."""
        await sqlite_store.load("char-1", "user-1")

        await sqlite_store.adjust_stat(StatKind.HP, -20)
        assert sqlite_store.character.is_dying

        await sqlite_store.update_death_rolls(DeathRollKind.FAILED, 2)
        outcome = await sqlite_store.perform_rest(RestType.STRETCH)
        assert outcome.refused

        await sqlite_store.adjust_stat(StatKind.HP, 2)
        await sqlite_store.perform_rest(RestType.SHIFT)

        stored = await sqlite_gateway.get_character("char-1", "user-1")
        assert stored.current_hp == 12
        assert stored.current_wp == 10
        assert stored.death_rolls_failed == 0

    async def test_progression_persists(
        self,
        sqlite_store: CharacterStateStore,
        sqlite_gateway: SQLiteGateway,
    ) -> None:
        """Study, improve and learn magic, then read it back."""
        await sqlite_store.load("char-1", "user-1")

        await sqlite_store.set_skill_under_study("Awareness")
        await sqlite_store.increase_skill_level("Awareness")
        await sqlite_store.add_magic_school(MagicSchool(id="s-ani", name="Animism"), 11)
        await sqlite_store.learn_spell(Spell(id="sp-1", name="Treat Wound", school_name="Animism"))
        await sqlite_store.learn_spell("Light")
        await sqlite_store.increase_max_stat(StatKind.WP)

        stored = await sqlite_gateway.get_character("char-1", "user-1")
        assert stored.skill_levels == {"Swords": 12, "Awareness": 9, "Animism": 11}
        assert stored.teacher is None
        assert stored.magic_school.name == "Animism"
        assert stored.spells.school.spells == ["Treat Wound"]
        assert stored.spells.general == ["Light"]
        assert (stored.max_wp, stored.current_wp) == (11, 6)

    async def test_reload_from_new_gateway(
        self,
        sqlite_store: CharacterStateStore,
        sqlite_gateway: SQLiteGateway,
    ) -> None:
        """Changes survive reopening the database file."""
        await sqlite_store.load("char-1", "user-1")
        await sqlite_store.update_notes("Owes the smith 3 silver")

        reopened = CharacterStateStore(SQLiteGateway(sqlite_gateway.db_path))
        character = await reopened.load("char-1", "user-1")

        assert character.notes == "Owes the smith 3 silver"
        assert character.current_hp == 8

    async def test_unreadable_record_sets_error(
        self,
        sqlite_store: CharacterStateStore,
        sqlite_gateway: SQLiteGateway,
    ) -> None:
        """A corrupt stored row surfaces as a load error, not a stuck spinner."""
        with sqlite3.connect(sqlite_gateway.db_path) as conn:
            conn.execute("UPDATE characters SET data_json = ? WHERE id = ?", ("{not json", "char-1"))

        assert await sqlite_store.load("char-1", "user-1") is None

        assert sqlite_store.error == "Stored character could not be read"
        assert not sqlite_store.is_loading
