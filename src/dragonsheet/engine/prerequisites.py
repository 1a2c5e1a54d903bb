"""Spell learning prerequisites.

Spells carry an optional JSON prerequisite tree, for example::

    {"type": "logical", "operator": "AND", "conditions": [
        {"type": "school", "name": "Elementalism"},
        {"type": "spell", "name": "Ignite"}
    ]}

Every node may carry ``"negate": true``.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from dragonsheet.core.constants import ATTRIBUTE_NAMES
from dragonsheet.core.exceptions import ValidationError
from dragonsheet.models.character import Character


class _Requirement(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    negate: bool = False

    def is_met(self, character: Character) -> bool:
        return self._holds(character) != self.negate

    @abstractmethod
    def _holds(self, character: Character) -> bool: ...


class SpellKnown(_Requirement):
    """The character must know the named spell."""

    type: Literal["spell"]
    name: str

    def _holds(self, character: Character) -> bool:
        return character.spells.knows(self.name)


class SchoolMembership(_Requirement):
    """The character must belong to the named school."""

    type: Literal["school"]
    name: str

    def _holds(self, character: Character) -> bool:
        if character.magic_school is not None and character.magic_school.name == self.name:
            return True
        return character.spells.school is not None and character.spells.school.name == self.name


class AnySchool(_Requirement):
    """The character must belong to some school."""

    type: Literal["anySchool"]

    def _holds(self, character: Character) -> bool:
        return character.magic_school is not None or character.spells.school is not None


class SkillLevelAtLeast(_Requirement):
    type: Literal["skill"]
    name: str
    value: int

    def _holds(self, character: Character) -> bool:
        return character.skill_level(self.name) >= self.value


class AttributeAtLeast(_Requirement):
    type: Literal["attribute"]
    name: str
    value: int

    @field_validator("name")
    @classmethod
    def known_attribute(cls, name: str) -> str:
        if name not in ATTRIBUTE_NAMES:
            raise ValueError(f"unknown attribute {name!r}")
        return name

    def _holds(self, character: Character) -> bool:
        return character.attributes.get(self.name) >= self.value


class Logical(_Requirement):
    """AND/OR combination of nested requirements."""

    type: Literal["logical"]
    operator: Literal["AND", "OR"]
    conditions: list[Prerequisite] = Field(default_factory=list)

    def _holds(self, character: Character) -> bool:
        results = (condition.is_met(character) for condition in self.conditions)
        if self.operator == "AND":
            return all(results)
        return any(results)


Prerequisite = Annotated[
    Union[SpellKnown, SchoolMembership, AnySchool, SkillLevelAtLeast, AttributeAtLeast, Logical],
    Field(discriminator="type"),
]

Logical.model_rebuild()

_prerequisite_adapter: TypeAdapter[Prerequisite] = TypeAdapter(Prerequisite)


def parse_prerequisite(raw: str | dict[str, Any]) -> Prerequisite:
    """Parse a prerequisite tree from JSON text or a dict.

    Raises:
        ValidationError: If the tree is malformed.
    """
    try:
        if isinstance(raw, str):
            return _prerequisite_adapter.validate_json(raw)
        return _prerequisite_adapter.validate_python(raw)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Malformed spell prerequisite: {exc.error_count()} error(s)",
            field_name="prerequisite",
            details={"errors": [err["msg"] for err in exc.errors()]},
        ) from exc


def check_prerequisite(character: Character, prerequisite: str | dict[str, Any] | None) -> bool:
    """Return True if ``character`` satisfies ``prerequisite``.

    A missing or empty prerequisite always passes.
    """
    if not prerequisite:
        return True
    return parse_prerequisite(prerequisite).is_met(character)


__all__ = [
    "Prerequisite",
    "SpellKnown",
    "SchoolMembership",
    "AnySchool",
    "SkillLevelAtLeast",
    "AttributeAtLeast",
    "Logical",
    "parse_prerequisite",
    "check_prerequisite",
]
