"""The character state store.

Holds the single active character with its load/save lifecycle and error
state. Every rule-driven mutation is computed by the stat or progression
engine as a CharacterUpdate and funneled through ``save``, which writes
through the persistence gateway and merges only after acknowledgment.

Example:
    >>> store = CharacterStateStore(gateway)
    >>> await store.load("char-1", "user-1")
    >>> await store.adjust_stat(StatKind.HP, -3)
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from dragonsheet.core.config import Settings, get_settings
from dragonsheet.core.exceptions import InvalidGameStateError, PersistenceError, ValidationError
from dragonsheet.core.logging import get_logger, log_context
from dragonsheet.engine.catalog import ReferenceCatalog
from dragonsheet.engine.dice import DiceRoller, get_dice_roller
from dragonsheet.engine.encounter_sync import CombatantUpdated, EncounterSyncEngine
from dragonsheet.engine.inventory import enrich_inventory
from dragonsheet.engine.prerequisites import check_prerequisite
from dragonsheet.engine.progression import ProgressionEngine
from dragonsheet.engine.stats import RestOutcome, StatAdjustmentEngine
from dragonsheet.engine.status import StatusMessage
from dragonsheet.models.catalog import MagicSchool, Spell
from dragonsheet.models.character import (
    Character,
    CharacterUpdate,
    Conditions,
    EquippedItems,
    InventoryItem,
    Money,
)
from dragonsheet.models.enums import DeathRollKind, RestType, StatKind
from dragonsheet.storage.gateway import PersistenceGateway


logger = get_logger(__name__)

CharacterListener = Callable[[Character], None]

NO_CHARACTER_MESSAGE = "Cannot save: no active character."


class CharacterStateStore:
    """Owner of the active character.

    Args:
        gateway: Persistence gateway for every read and write.
        catalog: Shared reference catalog; one is created if omitted.
        dice: Dice roller shared by rests and initiative draws.
        settings: Application settings; loaded from the environment if omitted.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        catalog: ReferenceCatalog | None = None,
        dice: DiceRoller | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        dice = dice or get_dice_roller()

        self._gateway = gateway
        self._game = settings.game
        self.status = StatusMessage(self._game.status_message_seconds)
        self.catalog = catalog or ReferenceCatalog(gateway)
        self.stats = StatAdjustmentEngine(dice)
        self.progression = ProgressionEngine(max_skill_level=self._game.max_skill_level)
        self.encounter = EncounterSyncEngine(gateway, self.status, dice=dice, settings=self._game)
        self.encounter.subscribe(self._on_combatant_updated)

        self.character: Character | None = None
        self.is_loading = False
        self.error: str | None = None
        self.save_error: str | None = None

        self._pending_saves = 0
        self._marked_skills: set[str] = set()
        self._listeners: list[CharacterListener] = []

    @property
    def is_saving(self) -> bool:
        return self._pending_saves > 0

    # =========================================================================
    # Subscribers
    # =========================================================================

    def subscribe(self, listener: CharacterListener) -> Callable[[], None]:
        """Call ``listener`` with the new Character after every merge.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_character(self, character: Character | None) -> None:
        self.character = character
        if character is None:
            return
        for listener in list(self._listeners):
            listener(character)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def load(self, character_id: str, user_id: str) -> Character | None:
        """Fetch a character and make it active.

        A missing or foreign character sets ``error`` instead of raising.

        Returns:
            The loaded character, or None if loading failed.
        """
        self.character = None
        self.is_loading = True
        self.error = None
        self.save_error = None

        with log_context(character_id=character_id):
            try:
                character = await self._gateway.get_character(character_id, user_id)
                if await self.catalog.ensure_loaded():
                    equipment = enrich_inventory(character.equipment, self.catalog.items)
                    if equipment is not None:
                        character = character.model_copy(update={"equipment": equipment})
                        logger.debug("Inventory matched against item catalog")
            except PersistenceError as exc:
                self.error = exc.message
                logger.error("Character load failed", user_id=user_id, error=exc.message)
                return None
            finally:
                self.is_loading = False

            self._set_character(character)
            logger.info("Character loaded", party_id=character.party_id)
            await self._sync_encounter(character)
        return character

    async def replace(self, character: Character | None) -> None:
        """Make an already fetched character active, or clear it."""
        self.error = None
        self.save_error = None
        self._set_character(character)
        await self._sync_encounter(character)

    async def _sync_encounter(self, character: Character | None) -> None:
        if character is None or character.party_id is None:
            self.encounter.clear()
            return
        await self.encounter.fetch_active_encounter(character.party_id, character.id)

    def _require_character(self) -> Character:
        if self.character is None:
            self.save_error = NO_CHARACTER_MESSAGE
            raise InvalidGameStateError(
                NO_CHARACTER_MESSAGE,
                current_state="no_character",
                expected_states=["character_loaded"],
            )
        return self.character

    # =========================================================================
    # Save
    # =========================================================================

    async def save(self, update: CharacterUpdate) -> Character:
        """Write ``update`` and merge it into the active character.

        Overlapping saves are not serialized. Each acknowledged save merges
        only its own fields onto whatever state is current at that moment.

        Raises:
            InvalidGameStateError: If no character is active.
            PersistenceError: If the gateway write fails.
        """
        character = self._require_character()
        fields = sorted(update.model_fields_set)

        self._pending_saves += 1
        self.save_error = None
        try:
            stored = await self._gateway.update_character(character.id, update)
        except PersistenceError as exc:
            self.save_error = exc.message
            logger.error("Character save failed", character_id=character.id, fields=fields, error=exc.message)
            raise
        finally:
            self._pending_saves -= 1

        current = self.character
        if current is None or current.id != character.id:
            logger.warning("Active character changed during save, merge skipped", character_id=character.id)
            return stored

        merged = update.apply_to(current, updated_at=stored.updated_at or datetime.now())
        self._set_character(merged)
        logger.info("Character saved", character_id=character.id, fields=fields)
        return merged

    async def update_character_data(self, update: CharacterUpdate) -> Character:
        return await self.save(update)

    async def _save_if_changed(self, update: CharacterUpdate | None) -> Character | None:
        if update is None or update.is_empty:
            return None
        return await self.save(update)

    # =========================================================================
    # HP / WP, conditions, rests, death rolls
    # =========================================================================

    async def adjust_stat(self, kind: StatKind, delta: int) -> Character | None:
        return await self._save_if_changed(self.stats.adjust_stat(self._require_character(), kind, delta))

    async def update_current_hp(self, value: int) -> Character | None:
        return await self._save_if_changed(self.stats.set_stat(self._require_character(), StatKind.HP, value))

    async def update_current_wp(self, value: int) -> Character | None:
        return await self._save_if_changed(self.stats.set_stat(self._require_character(), StatKind.WP, value))

    async def toggle_condition(self, name: str) -> Character:
        return await self.save(self.stats.toggle_condition(self._require_character(), name))

    async def update_conditions(self, conditions: Conditions) -> Character:
        return await self.save(CharacterUpdate(conditions=conditions))

    async def perform_rest(self, rest: RestType, *, healer_present: bool = False) -> RestOutcome:
        """Take a rest. A refused rest shows a status message and writes nothing."""
        character = self._require_character()
        outcome = self.stats.perform_rest(character, rest, healer_present=healer_present)
        if outcome.refused:
            self.status.show(outcome.refusal, self._game.stretch_refusal_seconds)
            return outcome

        await self._save_if_changed(outcome.update)
        logger.info(
            "Rest taken",
            character_id=character.id,
            rest=outcome.rest.value,
            hp_rolls=outcome.hp_rolls,
            wp_rolls=outcome.wp_rolls,
            healed_condition=outcome.healed_condition,
        )
        return outcome

    async def set_death_roll_state(
        self,
        successes: int,
        failures: int,
        rallied: bool | None = None,
    ) -> Character:
        self._require_character()
        return await self.save(self.stats.set_death_roll_state(successes, failures, rallied))

    async def update_death_rolls(self, kind: DeathRollKind, value: int) -> Character:
        return await self.save(self.stats.update_death_rolls(self._require_character(), kind, value))

    async def increase_max_stat(self, kind: StatKind, amount: int = 1) -> Character:
        """Raise max HP or WP through the gateway's transactional procedure.

        Raises:
            ValidationError: If ``amount`` is not positive.
            PersistenceError: If the procedure fails.
        """
        character = self._require_character()
        kind = StatKind(kind)
        if amount < 1:
            raise ValidationError(
                f"Max {kind.value} increase must be positive",
                field_name="amount",
                invalid_value=amount,
            )

        self._pending_saves += 1
        self.save_error = None
        try:
            stored = await self._gateway.increase_max_stat(character.id, kind, amount)
        except PersistenceError as exc:
            self.save_error = exc.message
            logger.error("Max stat increase failed", character_id=character.id, stat=kind.value, error=exc.message)
            raise
        finally:
            self._pending_saves -= 1

        update = CharacterUpdate(
            **{
                kind.max_field: getattr(stored, kind.max_field),
                kind.current_field: getattr(stored, kind.current_field),
            }
        )
        current = self.character
        if current is None or current.id != character.id:
            return stored
        merged = update.apply_to(current, updated_at=stored.updated_at or datetime.now())
        self._set_character(merged)
        logger.info(
            "Max stat increased",
            character_id=character.id,
            stat=kind.value,
            maximum=getattr(merged, kind.max_field),
        )
        return merged

    # =========================================================================
    # Progression
    # =========================================================================

    async def update_attribute(self, attribute: str, value: int) -> Character:
        return await self.save(self.progression.update_attribute(self._require_character(), attribute, value))

    async def increase_skill_level(self, skill_name: str) -> Character | None:
        return await self._save_if_changed(
            self.progression.increase_skill_level(self._require_character(), skill_name)
        )

    async def update_skill_level(self, skill_name: str, level: int) -> Character:
        return await self.save(self.progression.update_skill_level(self._require_character(), skill_name, level))

    async def set_skill_under_study(self, skill_name: str | None) -> Character:
        self._require_character()
        return await self.save(self.progression.set_skill_under_study(skill_name))

    async def add_heroic_ability(self, ability_name: str) -> Character | None:
        return await self._save_if_changed(
            self.progression.add_heroic_ability(self._require_character(), ability_name)
        )

    async def learn_spell(self, spell: Spell | str) -> Character | None:
        return await self._save_if_changed(self.progression.learn_spell(self._require_character(), spell))

    async def add_magic_school(self, school: MagicSchool, level: int) -> Character:
        return await self.save(self.progression.add_magic_school(self._require_character(), school, level))

    def meets_prerequisite(self, spell: Spell) -> bool:
        return check_prerequisite(self._require_character(), spell.prerequisite)

    # =========================================================================
    # Sheet fields
    # =========================================================================

    async def update_inventory(self, inventory: list[InventoryItem]) -> Character:
        equipment = self._require_character().equipment
        return await self.save(CharacterUpdate(equipment=equipment.model_copy(update={"inventory": list(inventory)})))

    async def update_equipped(self, equipped: EquippedItems) -> Character:
        equipment = self._require_character().equipment
        return await self.save(CharacterUpdate(equipment=equipment.model_copy(update={"equipped": equipped})))

    async def update_money(self, money: Money) -> Character:
        equipment = self._require_character().equipment
        return await self.save(CharacterUpdate(equipment=equipment.model_copy(update={"money": money})))

    async def update_notes(self, notes: str) -> Character:
        return await self.save(CharacterUpdate(notes=notes))

    async def update_appearance(self, appearance: str) -> Character:
        return await self.save(CharacterUpdate(appearance=appearance))

    async def update_experience(self, value: int) -> Character:
        return await self.save(CharacterUpdate(experience=value))

    async def update_reputation(self, value: int) -> Character:
        return await self.save(CharacterUpdate(reputation=value))

    async def update_corruption(self, value: int) -> Character:
        return await self.save(CharacterUpdate(corruption=value))

    # =========================================================================
    # Session skill marks
    # =========================================================================

    @property
    def marked_skills(self) -> frozenset[str]:
        return frozenset(self._marked_skills)

    def mark_skill_this_session(self, skill_name: str) -> None:
        self._marked_skills.add(skill_name)

    def clear_marked_skills_this_session(self) -> None:
        self._marked_skills.clear()

    # =========================================================================
    # Status messages
    # =========================================================================

    @property
    def status_message(self) -> str | None:
        return self.status.text

    def set_status_message(self, text: str, duration: float | None = None) -> None:
        self.status.show(text, duration)

    def clear_status_message(self) -> None:
        self.status.clear()

    # =========================================================================
    # Encounter
    # =========================================================================

    async def draw_initiative(self) -> int | None:
        return await self.encounter.draw_initiative()

    def _on_combatant_updated(self, event: CombatantUpdated) -> None:
        """Mirror live HP/WP from the character's own combatant row."""
        character = self.character
        if character is None or event.combatant.character_id != character.id:
            return

        changes: dict[str, int] = {}
        for kind in (StatKind.HP, StatKind.WP):
            if kind.current_field not in event.update.model_fields_set:
                continue
            value = getattr(event.update, kind.current_field)
            maximum = getattr(character, kind.max_field)
            if value is None:
                continue
            if maximum is not None and value > maximum:
                logger.warning(
                    "Combatant value exceeds character maximum, not mirrored",
                    character_id=character.id,
                    stat=kind.value,
                    value=value,
                    maximum=maximum,
                )
                continue
            changes[kind.current_field] = value

        if not changes:
            return
        self._set_character(CharacterUpdate(**changes).apply_to(character))
        logger.debug("Combatant stats mirrored", character_id=character.id, fields=sorted(changes))


__all__ = [
    "CharacterListener",
    "CharacterStateStore",
]
