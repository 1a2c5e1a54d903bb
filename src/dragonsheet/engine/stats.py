"""Bounded HP/WP mutation, conditions, rests and death rolls.

Every operation is a pure computation over the current Character that
returns a CharacterUpdate (or None when nothing would change). Writing the
update through the persistence gateway is the store's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from dragonsheet.core.constants import CONDITION_NAMES, STRETCH_WHILE_DYING_MESSAGE
from dragonsheet.core.exceptions import ValidationError
from dragonsheet.core.logging import get_logger
from dragonsheet.engine.dice import DiceRoller, get_dice_roller
from dragonsheet.models.character import Character, CharacterUpdate, Conditions
from dragonsheet.models.enums import DeathRollKind, RestType, StatKind


logger = get_logger(__name__)


@dataclass(frozen=True)
class RestOutcome:
    """Result of a rest attempt.

    Attributes:
        rest: The rest tier attempted.
        update: Update to persist, None when nothing changes.
        hp_rolls: d6 results applied to HP.
        wp_rolls: d6 results applied to WP.
        healed_condition: Condition cleared by a stretch rest.
        refusal: Message explaining why the rest was refused.
    """

    rest: RestType
    update: CharacterUpdate | None = None
    hp_rolls: list[int] = field(default_factory=list)
    wp_rolls: list[int] = field(default_factory=list)
    healed_condition: str | None = None
    refusal: str | None = None

    @property
    def refused(self) -> bool:
        return self.refusal is not None


def _capped_gain(current: int | None, gain: int, maximum: int | None) -> int | None:
    if current is None or maximum is None:
        return None
    return min(maximum, current + gain)


class StatAdjustmentEngine:
    """Rules for the HP/WP pools, conditions, rests and death rolls."""

    def __init__(self, dice: DiceRoller | None = None) -> None:
        self._dice = dice or get_dice_roller()

    # =========================================================================
    # Pools
    # =========================================================================

    def adjust_stat(self, character: Character, kind: StatKind, delta: int) -> CharacterUpdate | None:
        """Add ``delta`` to a pool, clamped into ``[0, max]``.

        Healing HP from 0 or below to above 0 also clears both death-roll
        counters and the rallied flag.

        Returns:
            The update, or None if the clamped value is unchanged.
        """
        kind = StatKind(kind)
        current = getattr(character, kind.current_field)
        maximum = getattr(character, kind.max_field)
        if current is None or maximum is None:
            logger.warning(
                "Pool has no maximum yet, adjustment ignored",
                character_id=character.id,
                stat=kind.value,
            )
            return None

        new_value = max(0, min(maximum, current + delta))
        if new_value == current:
            return None

        changes: dict[str, object] = {kind.current_field: new_value}
        if kind is StatKind.HP and current <= 0 < new_value:
            changes.update(death_rolls_passed=0, death_rolls_failed=0, is_rallied=False)
        return CharacterUpdate(**changes)

    def set_stat(self, character: Character, kind: StatKind, value: int) -> CharacterUpdate | None:
        """Set a pool directly.

        Values outside ``[0, max]`` are refused with a logged warning.
        """
        kind = StatKind(kind)
        maximum = getattr(character, kind.max_field)
        if value < 0 or (maximum is not None and value > maximum):
            logger.warning(
                "Refusing pool value outside bounds",
                character_id=character.id,
                stat=kind.value,
                value=value,
                maximum=maximum,
            )
            return None
        return CharacterUpdate(**{kind.current_field: value})

    # =========================================================================
    # Conditions
    # =========================================================================

    def toggle_condition(self, character: Character, name: str) -> CharacterUpdate:
        """Flip exactly one condition flag.

        Raises:
            ValidationError: If ``name`` is not one of the six conditions.
        """
        if name not in CONDITION_NAMES:
            raise ValidationError(
                f"Unknown condition: {name}",
                field_name="conditions",
                invalid_value=name,
            )
        conditions = character.conditions
        return CharacterUpdate(conditions=conditions.with_flag(name, not conditions.is_active(name)))

    # =========================================================================
    # Rest
    # =========================================================================

    def perform_rest(
        self,
        character: Character,
        rest: RestType,
        *,
        healer_present: bool = False,
    ) -> RestOutcome:
        """Resolve one of the three rest tiers.

        Args:
            character: The resting character.
            rest: round, stretch or shift.
            healer_present: A healer doubles the stretch-rest HP dice.

        Returns:
            RestOutcome describing the rolls and the update to persist.
        """
        rest = RestType(rest)
        if rest is RestType.ROUND:
            return self._round_rest(character)
        if rest is RestType.STRETCH:
            return self._stretch_rest(character, healer_present=healer_present)
        return self._shift_rest(character)

    def _round_rest(self, character: Character) -> RestOutcome:
        wp_roll = self._dice.roll_d6()
        new_wp = _capped_gain(character.current_wp, wp_roll, character.max_wp)
        update = CharacterUpdate(current_wp=new_wp) if new_wp is not None else None
        return RestOutcome(rest=RestType.ROUND, update=update, wp_rolls=[wp_roll])

    def _stretch_rest(self, character: Character, *, healer_present: bool) -> RestOutcome:
        if character.current_hp is not None and character.current_hp <= 0:
            logger.warning("Stretch rest refused while dying", character_id=character.id)
            return RestOutcome(rest=RestType.STRETCH, refusal=STRETCH_WHILE_DYING_MESSAGE)

        hp_rolls = [self._dice.roll_d6()]
        if healer_present:
            hp_rolls.append(self._dice.roll_d6())
        wp_roll = self._dice.roll_d6()

        changes: dict[str, object] = {}
        new_hp = _capped_gain(character.current_hp, sum(hp_rolls), character.max_hp)
        if new_hp is not None:
            changes["current_hp"] = new_hp
        new_wp = _capped_gain(character.current_wp, wp_roll, character.max_wp)
        if new_wp is not None:
            changes["current_wp"] = new_wp

        active = character.conditions.active()
        healed = active[0] if active else None
        if healed is not None:
            changes["conditions"] = character.conditions.with_flag(healed, False)

        return RestOutcome(
            rest=RestType.STRETCH,
            update=CharacterUpdate(**changes) if changes else None,
            hp_rolls=hp_rolls,
            wp_rolls=[wp_roll],
            healed_condition=healed,
        )

    def _shift_rest(self, character: Character) -> RestOutcome:
        changes: dict[str, object] = {
            "conditions": Conditions.cleared(),
            "death_rolls_passed": 0,
            "death_rolls_failed": 0,
            "is_rallied": False,
        }
        if character.max_hp is not None:
            changes["current_hp"] = character.max_hp
        if character.max_wp is not None:
            changes["current_wp"] = character.max_wp
        return RestOutcome(rest=RestType.SHIFT, update=CharacterUpdate(**changes))

    # =========================================================================
    # Death rolls
    # =========================================================================

    def set_death_roll_state(
        self,
        successes: int,
        failures: int,
        rallied: bool | None = None,
    ) -> CharacterUpdate:
        """Set both death-roll counters; ``rallied`` is untouched when omitted."""
        for field_name, value in (("death_rolls_passed", successes), ("death_rolls_failed", failures)):
            if value < 0:
                raise ValidationError(
                    "Death-roll counters cannot be negative",
                    field_name=field_name,
                    invalid_value=value,
                )
        changes: dict[str, object] = {
            "death_rolls_passed": successes,
            "death_rolls_failed": failures,
        }
        if rallied is not None:
            changes["is_rallied"] = rallied
        return CharacterUpdate(**changes)

    def update_death_rolls(self, character: Character, kind: DeathRollKind, value: int) -> CharacterUpdate:
        """Update one side of the tally, keeping the other and the rallied flag."""
        kind = DeathRollKind(kind)
        if kind is DeathRollKind.FAILED:
            return self.set_death_roll_state(character.death_rolls_passed, value, character.is_rallied)
        return self.set_death_roll_state(value, character.death_rolls_failed, character.is_rallied)


__all__ = [
    "RestOutcome",
    "StatAdjustmentEngine",
]
