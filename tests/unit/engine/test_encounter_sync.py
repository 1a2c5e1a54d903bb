"""Tests for encounter loading, initiative and combatant writes."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from dragonsheet.core.config import Settings
from dragonsheet.core.constants import NO_ENCOUNTER_MESSAGE
from dragonsheet.core.exceptions import CombatError, RemoteError, ValidationError
from dragonsheet.engine.encounter_sync import CombatantUpdated, EncounterSyncEngine, sort_roster
from dragonsheet.engine.status import StatusMessage
from dragonsheet.models import Combatant, CombatantUpdate, Encounter, EncounterStatus
from dragonsheet.storage.memory import InMemoryGateway


@pytest.fixture
def status() -> StatusMessage:
    return StatusMessage(default_duration=5)


@pytest.fixture
def engine(
    encounter_gateway: InMemoryGateway,
    status: StatusMessage,
    dice: MagicMock,
    settings: Settings,
) -> EncounterSyncEngine:
    return EncounterSyncEngine(encounter_gateway, status, dice=dice, settings=settings.game)


@pytest.fixture
async def joined(engine: EncounterSyncEngine) -> EncounterSyncEngine:
    await engine.fetch_active_encounter("party-1", "char-1")
    return engine


class TestSortRoster:
    """Tests for initiative ordering."""

    def test_ascending_with_undrawn_last(self, roster: list[Combatant]) -> None:
        ordered = sort_roster(roster)

        assert [c.initiative_roll for c in ordered] == [1, 3, 7, None, None]
        assert [c.display_name for c in ordered[-2:]] == ["Goblin A", "Goblin B"]

    def test_ties_by_display_name(self) -> None:
        combatants = [
            Combatant(id="1", encounter_id="e", display_name="Zed", initiative_roll=4),
            Combatant(id="2", encounter_id="e", display_name="Ann", initiative_roll=4),
        ]

        assert [c.display_name for c in sort_roster(combatants)] == ["Ann", "Zed"]


class TestFetchActiveEncounter:
    """Tests for loading the party's encounter."""

    async def test_loads_latest_active(self, joined: EncounterSyncEngine) -> None:
        assert joined.active_encounter.id == "enc-1"
        assert joined.current_combatant.id == "cb-aldra"
        assert [c.id for c in joined.combatants] == [
            "cb-bren",
            "cb-aldra",
            "cb-orc",
            "cb-goblin-a",
            "cb-goblin-b",
        ]
        assert not joined.is_loading
        assert joined.encounter_error is None

    async def test_not_a_combatant(self, engine: EncounterSyncEngine) -> None:
        await engine.fetch_active_encounter("party-1", "char-99")

        assert engine.active_encounter is not None
        assert engine.current_combatant is None
        assert len(engine.combatants) == 5

    async def test_latest_not_active_clears_state(
        self,
        joined: EncounterSyncEngine,
        encounter_gateway: InMemoryGateway,
        active_encounter: Encounter,
    ) -> None:
        encounter_gateway.add_encounter(active_encounter.model_copy(update={"status": EncounterStatus.COMPLETED}))

        await joined.fetch_active_encounter("party-1", "char-1")

        assert joined.active_encounter is None
        assert joined.current_combatant is None
        assert joined.combatants == []

    async def test_failure_sets_error_without_raising(
        self,
        joined: EncounterSyncEngine,
        encounter_gateway: InMemoryGateway,
    ) -> None:
        encounter_gateway.list_combatants = AsyncMock(side_effect=RemoteError("timeout"))

        await joined.fetch_active_encounter("party-1", "char-1")

        assert joined.encounter_error == "timeout"
        assert joined.active_encounter is None
        assert joined.combatants == []
        assert not joined.is_loading

    async def test_clear(self, joined: EncounterSyncEngine) -> None:
        joined.clear()

        assert joined.active_encounter is None
        assert joined.combatants == []


class TestDrawInitiative:
    """Tests for the initiative card draw."""

    async def test_refused_without_encounter(
        self,
        engine: EncounterSyncEngine,
        encounter_gateway: InMemoryGateway,
        status: StatusMessage,
        dice: MagicMock,
    ) -> None:
        encounter_gateway.update_combatant = AsyncMock(wraps=encounter_gateway.update_combatant)

        assert await engine.draw_initiative() is None

        assert status.text == NO_ENCOUNTER_MESSAGE
        encounter_gateway.update_combatant.assert_not_awaited()
        dice.roll_initiative_card.assert_not_called()

    async def test_refusal_message_expires(self, engine: EncounterSyncEngine, status: StatusMessage) -> None:
        await engine.draw_initiative()

        await asyncio.sleep(0.2)

        assert status.text is None

    async def test_success(
        self,
        joined: EncounterSyncEngine,
        encounter_gateway: InMemoryGateway,
        status: StatusMessage,
    ) -> None:
        assert await joined.draw_initiative() == 4

        assert status.text == "Initiative drawn: 4"
        assert encounter_gateway.combatants["cb-aldra"].initiative_roll == 4
        assert joined.current_combatant.initiative_roll == 4
        assert [c.initiative_roll for c in joined.combatants] == [1, 4, 7, None, None]

    async def test_failure_shows_message(
        self,
        joined: EncounterSyncEngine,
        encounter_gateway: InMemoryGateway,
        status: StatusMessage,
    ) -> None:
        encounter_gateway.update_combatant = AsyncMock(side_effect=RemoteError("row locked"))

        assert await joined.draw_initiative() is None

        assert status.text == "Failed to draw initiative: row locked"
        assert joined.current_combatant.initiative_roll == 3


class TestSetInitiative:
    """Tests for setting any combatant's initiative."""

    async def test_set_and_resort(self, joined: EncounterSyncEngine) -> None:
        await joined.set_initiative_for_combatant("cb-goblin-a", 2)

        assert [c.id for c in joined.combatants][:3] == ["cb-bren", "cb-goblin-a", "cb-aldra"]

    async def test_clear(self, joined: EncounterSyncEngine) -> None:
        combatant = await joined.set_initiative_for_combatant("cb-orc", None)

        assert combatant.initiative_roll is None
        assert joined.combatants[-1].id == "cb-orc"

    @pytest.mark.parametrize("value", [0, 11])
    async def test_out_of_range(self, joined: EncounterSyncEngine, value: int) -> None:
        with pytest.raises(ValidationError):
            await joined.set_initiative_for_combatant("cb-orc", value)


class TestUpdateCombatant:
    """Tests for acknowledged combatant writes."""

    async def test_publishes_event(self, joined: EncounterSyncEngine) -> None:
        events: list[CombatantUpdated] = []
        joined.subscribe(events.append)

        await joined.update_combatant("cb-orc", CombatantUpdate(current_hp=9, has_acted=True))

        assert len(events) == 1
        assert events[0].combatant.current_hp == 9
        assert events[0].update.model_fields_set == {"current_hp", "has_acted"}

    async def test_unsubscribe(self, joined: EncounterSyncEngine) -> None:
        events: list[CombatantUpdated] = []
        unsubscribe = joined.subscribe(events.append)
        unsubscribe()

        await joined.update_combatant("cb-orc", CombatantUpdate(current_hp=9))

        assert events == []

    async def test_empty_update_rejected(self, joined: EncounterSyncEngine) -> None:
        with pytest.raises(CombatError):
            await joined.update_combatant("cb-orc", CombatantUpdate())

    async def test_failure_reraises_and_sets_error(self, joined: EncounterSyncEngine) -> None:
        events: list[CombatantUpdated] = []
        joined.subscribe(events.append)

        with pytest.raises(RemoteError):
            await joined.update_combatant("cb-missing", CombatantUpdate(current_hp=1))

        assert joined.encounter_error == "Combatant cb-missing not found"
        assert events == []
