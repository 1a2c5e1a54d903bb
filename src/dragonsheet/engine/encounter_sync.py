"""Synchronization between a character and its party's combat encounter.

Tracks the party's active encounter, the character's own combatant row and
the initiative-ordered roster. Writes go through the persistence gateway;
local state changes only after the gateway acknowledges. Every
acknowledged combatant update is published to listeners, which is how the
character store mirrors HP/WP back onto the character sheet.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from dragonsheet.core.config import GameSettings, get_settings
from dragonsheet.core.constants import INITIATIVE_MAX, INITIATIVE_MIN, NO_ENCOUNTER_MESSAGE
from dragonsheet.core.exceptions import CombatError, PersistenceError, ValidationError
from dragonsheet.core.logging import get_logger
from dragonsheet.engine.dice import DiceRoller, get_dice_roller
from dragonsheet.engine.status import StatusMessage
from dragonsheet.models.encounter import Combatant, CombatantUpdate, Encounter
from dragonsheet.storage.gateway import PersistenceGateway


logger = get_logger(__name__)


@dataclass(frozen=True)
class CombatantUpdated:
    """Published after a combatant write is acknowledged."""

    combatant: Combatant
    update: CombatantUpdate


CombatantListener = Callable[[CombatantUpdated], None]


def sort_roster(combatants: Iterable[Combatant]) -> list[Combatant]:
    """Order by initiative ascending, undrawn last, ties by display name."""
    return sorted(
        combatants,
        key=lambda c: (
            c.initiative_roll is None,
            c.initiative_roll or 0,
            c.display_name,
        ),
    )


class EncounterSyncEngine:
    """Encounter state for the active character.

    Args:
        gateway: Persistence gateway.
        status: Shared status message used for initiative feedback.
        dice: Dice roller for initiative draws.
        settings: Game settings; loaded from the environment if omitted.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        status: StatusMessage,
        *,
        dice: DiceRoller | None = None,
        settings: GameSettings | None = None,
    ) -> None:
        self._gateway = gateway
        self._status = status
        self._dice = dice or get_dice_roller()
        self._settings = settings or get_settings().game
        self._listeners: list[CombatantListener] = []

        self.active_encounter: Encounter | None = None
        self.current_combatant: Combatant | None = None
        self.combatants: list[Combatant] = []
        self.is_loading = False
        self.encounter_error: str | None = None

    # =========================================================================
    # Events
    # =========================================================================

    def subscribe(self, listener: CombatantListener) -> Callable[[], None]:
        """Register a "combatant updated" listener.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, event: CombatantUpdated) -> None:
        for listener in list(self._listeners):
            listener(event)

    # =========================================================================
    # Loading
    # =========================================================================

    async def fetch_active_encounter(self, party_id: str, character_id: str) -> None:
        """Load the party's latest encounter if it is active.

        Failures are recorded in ``encounter_error`` and never raised.
        """
        self.is_loading = True
        self.encounter_error = None
        self._reset()
        try:
            encounter = await self._gateway.get_latest_encounter_for_party(party_id)
            if encounter is None or not encounter.is_active:
                logger.debug("No active encounter", party_id=party_id)
                return

            combatants = await self._gateway.list_combatants(encounter.id)
            self.active_encounter = encounter
            self.combatants = sort_roster(combatants)
            self.current_combatant = next(
                (c for c in combatants if c.character_id == character_id),
                None,
            )
            logger.info(
                "Active encounter loaded",
                encounter_id=encounter.id,
                combatants=len(self.combatants),
                has_combatant=self.current_combatant is not None,
            )
        except PersistenceError as exc:
            self._reset()
            self.encounter_error = exc.message
            logger.error("Failed to fetch active encounter", party_id=party_id, error=exc.message)
        finally:
            self.is_loading = False

    def clear(self) -> None:
        self._reset()
        self.is_loading = False
        self.encounter_error = None

    def _reset(self) -> None:
        self.active_encounter = None
        self.current_combatant = None
        self.combatants = []

    # =========================================================================
    # Initiative
    # =========================================================================

    async def draw_initiative(self) -> int | None:
        """Draw an initiative card for the character's combatant.

        Returns:
            The drawn value, or None if the draw was refused or failed.
        """
        message_seconds = self._settings.encounter_message_seconds
        encounter = self.active_encounter
        combatant = self.current_combatant
        if encounter is None or not encounter.is_active or combatant is None:
            logger.warning("Initiative draw refused, no active combatant")
            self._status.show(NO_ENCOUNTER_MESSAGE, message_seconds)
            return None

        roll = self._dice.roll_initiative_card(self._settings.initiative_sides)
        try:
            await self.update_combatant(combatant.id, CombatantUpdate(initiative_roll=roll))
        except PersistenceError as exc:
            self._status.show(f"Failed to draw initiative: {exc.message}", message_seconds)
            return None

        self._status.show(f"Initiative drawn: {roll}", message_seconds)
        return roll

    async def set_initiative_for_combatant(self, combatant_id: str, value: int | None) -> Combatant:
        """Set or clear any combatant's initiative.

        Raises:
            ValidationError: If ``value`` is outside 1..10.
        """
        if value is not None and not INITIATIVE_MIN <= value <= INITIATIVE_MAX:
            raise ValidationError(
                f"Initiative must be between {INITIATIVE_MIN} and {INITIATIVE_MAX}",
                field_name="initiative_roll",
                invalid_value=value,
            )
        return await self.update_combatant(combatant_id, CombatantUpdate(initiative_roll=value))

    # =========================================================================
    # Combatant writes
    # =========================================================================

    async def update_combatant(self, combatant_id: str, update: CombatantUpdate) -> Combatant:
        """Write a combatant update and merge it after acknowledgment.

        Raises:
            CombatError: If the update sets no fields.
            PersistenceError: If the gateway write fails.
        """
        if update.is_empty:
            raise CombatError(
                "Combatant update sets no fields",
                combatant_id=combatant_id,
                encounter_id=self.active_encounter.id if self.active_encounter else None,
            )
        try:
            combatant = await self._gateway.update_combatant(combatant_id, update)
        except PersistenceError as exc:
            self.encounter_error = exc.message
            logger.error(
                "Combatant update failed",
                combatant_id=combatant_id,
                fields=sorted(update.model_fields_set),
                error=exc.message,
            )
            raise

        self.encounter_error = None
        self._merge(combatant)
        logger.info(
            "Combatant updated",
            combatant_id=combatant_id,
            fields=sorted(update.model_fields_set),
        )
        self._publish(CombatantUpdated(combatant=combatant, update=update))
        return combatant

    def _merge(self, combatant: Combatant) -> None:
        if self.current_combatant is not None and self.current_combatant.id == combatant.id:
            self.current_combatant = combatant
        if any(c.id == combatant.id for c in self.combatants):
            self.combatants = sort_roster(
                combatant if c.id == combatant.id else c for c in self.combatants
            )


__all__ = [
    "CombatantListener",
    "CombatantUpdated",
    "EncounterSyncEngine",
    "sort_roster",
]
