"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the dragonsheet test suite.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest

from dragonsheet.core.config import GameSettings, Settings
from dragonsheet.engine.dice import DiceRoller
from dragonsheet.engine.store import CharacterStateStore
from dragonsheet.models import (
    Character,
    Combatant,
    Encounter,
    EncounterStatus,
    GameItem,
    HeroicAbility,
)
from dragonsheet.storage.memory import InMemoryGateway


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from dragonsheet.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "DRAGONSHEET_DEBUG": "true",
        "DRAGONSHEET_LOG_LEVEL": "DEBUG",
        "DRAGONSHEET_GAME_STATUS_MESSAGE_SECONDS": "12",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def settings() -> Settings:
    """Settings with short message lifetimes so expiry tests stay fast."""
    return Settings(
        game=GameSettings(
            status_message_seconds=0.2,
            encounter_message_seconds=0.1,
            stretch_refusal_seconds=0.05,
        )
    )


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def sample_character() -> Character:
    """A mid-fight adventurer with a party."""
    return Character(
        id="char-1",
        user_id="user-1",
        party_id="party-1",
        name="Aldra",
        kin="Human",
        profession="Knight",
        attributes={"STR": 15, "CON": 12, "AGL": 11, "INT": 9, "WIL": 10, "CHA": 13},
        max_hp=12,
        current_hp=8,
        max_wp=10,
        current_wp=5,
        skill_levels={"Swords": 12, "Awareness": 8},
        heroic_abilities=["Defensive"],
        equipment={
            "inventory": ["4 Field Rations", "Rope 10 meters", "Torch"],
            "money": {"gold": 2, "silver": 5, "copper": 0},
        },
    )


@pytest.fixture
def item_catalog() -> list[GameItem]:
    return [
        GameItem(id="item-rations", name="Field Rations", category="food", weight=0.5, cost_silver=1),
        GameItem(id="item-rope", name="Rope", category="tools", weight=1.0, cost_silver=3),
        GameItem(id="item-torch", name="Torch", category="light", weight=0.5, cost_copper=5),
    ]


@pytest.fixture
def ability_catalog() -> list[HeroicAbility]:
    return [
        HeroicAbility(id="ab-def", name="Defensive", willpower_cost=3),
        HeroicAbility(id="ab-rob", name="Robust", willpower_cost=None),
    ]


@pytest.fixture
def active_encounter() -> Encounter:
    return Encounter(
        id="enc-1",
        party_id="party-1",
        name="Goblin Ambush",
        status=EncounterStatus.ACTIVE,
        current_round=1,
        created_at=datetime(2024, 5, 1, 20, 0),
    )


@pytest.fixture
def roster() -> list[Combatant]:
    """Combatants with rolls [None, 3, 1, None, 7]."""
    return [
        Combatant(id="cb-goblin-a", encounter_id="enc-1", display_name="Goblin A", current_hp=6, max_hp=6),
        Combatant(
            id="cb-aldra",
            encounter_id="enc-1",
            character_id="char-1",
            display_name="Aldra",
            initiative_roll=3,
            current_hp=8,
            max_hp=12,
            current_wp=5,
            max_wp=10,
        ),
        Combatant(id="cb-bren", encounter_id="enc-1", character_id="char-2", display_name="Bren",
                  initiative_roll=1, current_hp=10, max_hp=10),
        Combatant(id="cb-goblin-b", encounter_id="enc-1", display_name="Goblin B", current_hp=6, max_hp=6),
        Combatant(id="cb-orc", encounter_id="enc-1", display_name="Orc", initiative_roll=7, current_hp=14, max_hp=14),
    ]


# =============================================================================
# Gateway & Engine Fixtures
# =============================================================================


@pytest.fixture
def gateway(
    sample_character: Character,
    item_catalog: list[GameItem],
    ability_catalog: list[HeroicAbility],
) -> InMemoryGateway:
    """In-memory gateway seeded with the sample character and catalogs."""
    gw = InMemoryGateway(items=item_catalog, heroic_abilities=ability_catalog)
    gw.add_character(sample_character)
    return gw


@pytest.fixture
def encounter_gateway(
    gateway: InMemoryGateway,
    active_encounter: Encounter,
    roster: list[Combatant],
) -> InMemoryGateway:
    """Gateway where the sample character's party is mid-encounter."""
    gateway.add_encounter(
        Encounter(
            id="enc-0",
            party_id="party-1",
            name="Old Fight",
            status=EncounterStatus.COMPLETED,
            created_at=active_encounter.created_at - timedelta(days=3),
        )
    )
    gateway.add_encounter(active_encounter)
    for combatant in roster:
        gateway.add_combatant(combatant)
    return gateway


@pytest.fixture
def dice() -> MagicMock:
    """Scripted dice. Set ``roll_d6.side_effect`` per test."""
    scripted = MagicMock(spec=DiceRoller)
    scripted.roll_d6.return_value = 3
    scripted.roll_initiative_card.return_value = 4
    return scripted


@pytest.fixture
def store(gateway: InMemoryGateway, dice: MagicMock, settings: Settings) -> CharacterStateStore:
    return CharacterStateStore(gateway, dice=dice, settings=settings)


@pytest.fixture
async def loaded_store(store: CharacterStateStore) -> CharacterStateStore:
    """Store with the sample character loaded (no active encounter)."""
    await store.load("char-1", "user-1")
    return store


@pytest.fixture
async def encounter_store(
    encounter_gateway: InMemoryGateway,
    store: CharacterStateStore,
) -> CharacterStateStore:
    """Store with the sample character loaded into an active encounter."""
    await store.load("char-1", "user-1")
    return store
