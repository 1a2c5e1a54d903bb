"""Attribute, skill, heroic-ability and spell progression.

Like the stat engine, every operation returns a CharacterUpdate (or None
when nothing changes) and leaves persistence to the store.
"""

from __future__ import annotations

from dragonsheet.core.constants import (
    ATTRIBUTE_NAMES,
    HP_ATTRIBUTE,
    MAX_SKILL_LEVEL,
    MIN_SKILL_LEVEL,
    WP_ATTRIBUTE,
)
from dragonsheet.core.exceptions import ValidationError
from dragonsheet.core.logging import get_logger
from dragonsheet.models.catalog import MagicSchool, Spell
from dragonsheet.models.character import (
    Character,
    CharacterSpells,
    CharacterUpdate,
    SchoolSpells,
    Teacher,
)


logger = get_logger(__name__)


def _seed_pool(current: int | None, value: int) -> int:
    return value if current is None else min(current, value)


class ProgressionEngine:
    """Rules for how a character grows.

    Args:
        max_skill_level: Ceiling applied by ``increase_skill_level``.
    """

    def __init__(self, *, max_skill_level: int = MAX_SKILL_LEVEL) -> None:
        self._max_skill_level = max_skill_level

    # =========================================================================
    # Attributes
    # =========================================================================

    def update_attribute(self, character: Character, attribute: str, value: int) -> CharacterUpdate:
        """Set an attribute.

        The first time CON (WIL) is set while max HP (WP) is unset, the
        attribute seeds the maximum and the current pool is clamped to it.
        Later changes never resize the maximum.

        Raises:
            ValidationError: For unknown attributes or values below 1.
        """
        if attribute not in ATTRIBUTE_NAMES:
            raise ValidationError(
                f"Unknown attribute: {attribute}",
                field_name="attributes",
                invalid_value=attribute,
            )
        if value < 1:
            raise ValidationError(
                "Attributes must be at least 1",
                field_name=attribute,
                invalid_value=value,
            )

        changes: dict[str, object] = {
            "attributes": character.attributes.with_value(attribute, value),
        }
        if attribute == HP_ATTRIBUTE and character.max_hp is None:
            changes["max_hp"] = value
            changes["current_hp"] = _seed_pool(character.current_hp, value)
            logger.info("Max HP derived from attribute", character_id=character.id, max_hp=value)
        if attribute == WP_ATTRIBUTE and character.max_wp is None:
            changes["max_wp"] = value
            changes["current_wp"] = _seed_pool(character.current_wp, value)
            logger.info("Max WP derived from attribute", character_id=character.id, max_wp=value)
        return CharacterUpdate(**changes)

    # =========================================================================
    # Skills
    # =========================================================================

    def increase_skill_level(self, character: Character, skill_name: str) -> CharacterUpdate | None:
        """Raise a skill by one, up to the ceiling.

        Advancing the skill under study ends the study.
        """
        current_level = character.skill_level(skill_name)
        if current_level >= self._max_skill_level:
            return None

        changes: dict[str, object] = {
            "skill_levels": {**character.skill_levels, skill_name: current_level + 1},
        }
        if character.skill_under_study == skill_name:
            changes["teacher"] = None
        return CharacterUpdate(**changes)

    def update_skill_level(self, character: Character, skill_name: str, level: int) -> CharacterUpdate:
        """Set a skill level directly."""
        if not MIN_SKILL_LEVEL <= level <= self._max_skill_level:
            raise ValidationError(
                f"Skill level must be between {MIN_SKILL_LEVEL} and {self._max_skill_level}",
                field_name=skill_name,
                invalid_value=level,
            )
        return CharacterUpdate(skill_levels={**character.skill_levels, skill_name: level})

    def set_skill_under_study(self, skill_name: str | None) -> CharacterUpdate:
        teacher = Teacher(skill_under_study=skill_name) if skill_name else None
        return CharacterUpdate(teacher=teacher)

    # =========================================================================
    # Heroic abilities & magic
    # =========================================================================

    def add_heroic_ability(self, character: Character, ability_name: str) -> CharacterUpdate | None:
        if ability_name in character.heroic_abilities:
            return None
        return CharacterUpdate(heroic_abilities=[*character.heroic_abilities, ability_name])

    def learn_spell(self, character: Character, spell: Spell | str) -> CharacterUpdate | None:
        """Add a spell to the school list or the general list.

        Spell names are unique across both lists. A spell carrying a school
        reference joins the school list when the character has no school
        list yet or the names match; anything else is general magic.

        Returns:
            The update, or None if the spell is already known.
        """
        spell_name = spell if isinstance(spell, str) else spell.name
        school_name = None if isinstance(spell, str) else spell.school_name
        spells = character.spells

        if spells.knows(spell_name):
            return None

        if school_name and (spells.school is None or spells.school.name == school_name):
            current_school = spells.school or SchoolSpells(name=school_name)
            new_spells = CharacterSpells(
                school=SchoolSpells(
                    name=current_school.name,
                    spells=[*current_school.spells, spell_name],
                ),
                general=list(spells.general),
            )
        else:
            new_spells = CharacterSpells(
                school=spells.school,
                general=[*spells.general, spell_name],
            )
        return CharacterUpdate(spells=new_spells)

    def add_magic_school(self, character: Character, school: MagicSchool, level: int) -> CharacterUpdate:
        """Record the school's skill level; the first school becomes primary."""
        changes: dict[str, object] = {
            "skill_levels": self.update_skill_level(character, school.name, level).skill_levels,
        }
        if character.magic_school is None:
            changes["magic_school"] = school
        return CharacterUpdate(**changes)


__all__ = [
    "ProgressionEngine",
]
