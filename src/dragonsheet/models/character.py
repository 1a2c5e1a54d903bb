"""Pydantic V2 schemas for the character record.

The Character is immutable: every change is expressed as a CharacterUpdate
(an explicit partial-update struct with named optional fields) and merged
into a new Character with ``CharacterUpdate.apply_to``.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Annotated, Any
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    computed_field,
    field_validator,
    model_validator,
)

from dragonsheet.core.constants import (
    CONDITION_NAMES,
    DEFAULT_ATTRIBUTE_VALUE,
    MAX_SKILL_LEVEL,
    MIN_SKILL_LEVEL,
)
from dragonsheet.models.catalog import MagicSchool


SkillLevel = Annotated[int, Field(ge=MIN_SKILL_LEVEL, le=MAX_SKILL_LEVEL)]

_LEADING_QUANTITY = re.compile(r"^(\d+)\s+(.*)")
_TRAILING_QUANTITY = re.compile(r"^(.*?)\s+(\d+)\s*(\w+)?$")


def _clean_skill_levels(raw: str | dict[str, Any]) -> dict[str, int]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        if not isinstance(raw, dict):
            return {}
    cleaned: dict[str, int] = {}
    for name, value in raw.items():
        try:
            cleaned[name] = int(value)
        except (TypeError, ValueError):
            continue
    return cleaned


# =============================================================================
# Attributes & Conditions
# =============================================================================


class Attributes(BaseModel):
    """The six attributes. Missing values default to 10."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    STR: int = Field(default=DEFAULT_ATTRIBUTE_VALUE, ge=1, description="Strength")
    CON: int = Field(default=DEFAULT_ATTRIBUTE_VALUE, ge=1, description="Constitution")
    AGL: int = Field(default=DEFAULT_ATTRIBUTE_VALUE, ge=1, description="Agility")
    INT: int = Field(default=DEFAULT_ATTRIBUTE_VALUE, ge=1, description="Intelligence")
    WIL: int = Field(default=DEFAULT_ATTRIBUTE_VALUE, ge=1, description="Willpower")
    CHA: int = Field(default=DEFAULT_ATTRIBUTE_VALUE, ge=1, description="Charisma")

    def get(self, name: str) -> int:
        return getattr(self, name)

    def with_value(self, name: str, value: int) -> Attributes:
        return self.model_copy(update={name: value})


class Conditions(BaseModel):
    """The six condition flags.

    Field order matches CONDITION_NAMES; a stretch rest relies on it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    exhausted: bool = False
    sickly: bool = False
    dazed: bool = False
    angry: bool = False
    scared: bool = False
    disheartened: bool = False

    def is_active(self, name: str) -> bool:
        return getattr(self, name)

    def active(self) -> list[str]:
        """Return active condition names in fixed key order."""
        return [name for name in CONDITION_NAMES if getattr(self, name)]

    def with_flag(self, name: str, value: bool) -> Conditions:
        return self.model_copy(update={name: value})

    @classmethod
    def cleared(cls) -> Conditions:
        return cls()


# =============================================================================
# Equipment
# =============================================================================


class Money(BaseModel):
    """Coins carried by a character."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    gold: int = Field(default=0, ge=0)
    silver: int = Field(default=0, ge=0)
    copper: int = Field(default=0, ge=0)


class InventoryItem(BaseModel):
    """An item as it sits in a character's inventory.

    Attributes:
        id: Instance identifier, unique within the inventory.
        item_id: Reference to the catalog item, if it was matched.
        name: Base item name.
        quantity: Stack size.
        unit: Optional unit parsed from legacy text ("meters").
        original_name: The legacy text the item was parsed from.
        category: Catalog category (weapon, armor, ...).
        description: Catalog description.
        weight: Catalog weight.
        cost: Catalog cost.
        equipped: Whether the item is currently worn or wielded.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    item_id: str | None = None
    name: str
    quantity: int = Field(default=1, ge=0)
    unit: str | None = None
    original_name: str | None = None
    category: str | None = None
    description: str | None = None
    weight: float | None = None
    cost: Money | None = None
    equipped: bool = False

    @classmethod
    def from_text(cls, text: str) -> InventoryItem:
        """Parse a legacy inventory string.

        "4 Field Rations" gives quantity 4; "Rope 10 meters" gives quantity
        10 with unit "meters". A leading number wins over a trailing one.
        """
        original = text.strip()
        name, quantity, unit = original, 1, None
        leading = _LEADING_QUANTITY.match(original)
        trailing = _TRAILING_QUANTITY.match(original)
        if leading:
            quantity = int(leading.group(1))
            name = leading.group(2).strip()
        elif trailing:
            name = trailing.group(1).strip()
            quantity = int(trailing.group(2))
            unit = trailing.group(3)
        return cls(
            id=str(uuid4()),
            name=name,
            quantity=quantity,
            unit=unit,
            original_name=original,
        )


class EquippedItems(BaseModel):
    """Equipped slots."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    armor: InventoryItem | None = None
    shield: InventoryItem | None = None
    helmet: InventoryItem | None = None
    weapons: list[InventoryItem] = Field(default_factory=list)


class Equipment(BaseModel):
    """Inventory, equipped slots, and money."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    inventory: list[InventoryItem] = Field(default_factory=list)
    equipped: EquippedItems = Field(default_factory=EquippedItems)
    money: Money = Field(default_factory=Money)

    @field_validator("inventory", "equipped", "money", mode="before")
    @classmethod
    def default_missing_sections(cls, value: Any, info: ValidationInfo) -> Any:
        if value is not None:
            return value
        return [] if info.field_name == "inventory" else {}

    @field_validator("inventory", mode="before")
    @classmethod
    def parse_legacy_inventory(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [InventoryItem.from_text(item) if isinstance(item, str) else item for item in value]
        return value

    @property
    def has_unmatched_items(self) -> bool:
        return any(item.item_id is None for item in self.inventory)


# =============================================================================
# Spells & Study
# =============================================================================


class SchoolSpells(BaseModel):
    """Spells learned within the character's magic school."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    spells: list[str] = Field(default_factory=list)


class CharacterSpells(BaseModel):
    """Known spells split between the school list and general magic."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    school: SchoolSpells | None = None
    general: list[str] = Field(default_factory=list)

    def knows(self, spell_name: str) -> bool:
        if spell_name in self.general:
            return True
        return self.school is not None and spell_name in self.school.spells


class Teacher(BaseModel):
    """Marks the skill whose next level-up is being trained."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    skill_under_study: str


# =============================================================================
# Character
# =============================================================================


class Character(BaseModel):
    """A player character record.

    ``max_hp`` and ``max_wp`` stay unset on a fresh character until CON and
    WIL are first assigned. Death-roll counters only carry meaning while
    ``current_hp <= 0``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1)
    user_id: str | None = None
    party_id: str | None = None

    name: str = "Unnamed Character"
    kin: str = "Unknown"
    profession: str = "Unknown"

    attributes: Attributes = Field(default_factory=Attributes)

    max_hp: int | None = Field(default=None, ge=0)
    current_hp: int | None = Field(default=None, ge=0)
    max_wp: int | None = Field(default=None, ge=0)
    current_wp: int | None = Field(default=None, ge=0)

    conditions: Conditions = Field(default_factory=Conditions)
    skill_levels: dict[str, SkillLevel] = Field(default_factory=dict)
    heroic_abilities: list[str] = Field(default_factory=list)
    spells: CharacterSpells = Field(default_factory=CharacterSpells)
    magic_school: MagicSchool | None = None

    death_rolls_passed: int = Field(default=0, ge=0)
    death_rolls_failed: int = Field(default=0, ge=0)
    is_rallied: bool = False

    teacher: Teacher | None = None
    equipment: Equipment = Field(default_factory=Equipment)

    experience: int = 0
    reputation: int = 0
    corruption: int = 0

    notes: str = ""
    appearance: str = ""
    memento: str = ""
    flaw: str = ""

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_record(cls, data: Any) -> Any:
        """Fill gaps left by older or partially written records.

        Null sections become their empty defaults, skill levels stored as
        JSON text are decoded (non-numeric entries dropped), and current
        HP/WP default to their maximum.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for section in ("attributes", "conditions", "equipment", "spells", "skill_levels", "heroic_abilities"):
            if section in data and data[section] is None:
                del data[section]
        if isinstance(data.get("skill_levels"), (str, dict)):
            data["skill_levels"] = _clean_skill_levels(data["skill_levels"])
        for current, maximum in (("current_hp", "max_hp"), ("current_wp", "max_wp")):
            if data.get(current) is None and data.get(maximum) is not None:
                data[current] = data[maximum]
        return data

    @model_validator(mode="after")
    def check_pools(self) -> Character:
        for current, maximum in (
            (self.current_hp, self.max_hp),
            (self.current_wp, self.max_wp),
        ):
            if current is not None and maximum is not None and current > maximum:
                raise ValueError(f"current value {current} exceeds maximum {maximum}")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_dying(self) -> bool:
        return self.current_hp is not None and self.current_hp <= 0

    @property
    def skill_under_study(self) -> str | None:
        return self.teacher.skill_under_study if self.teacher else None

    def skill_level(self, name: str) -> int:
        return self.skill_levels.get(name, 0)


class CharacterUpdate(BaseModel):
    """Explicit partial update of a Character.

    Only fields that were set (including fields explicitly set to None,
    such as clearing ``teacher``) take part in the write and the merge.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str | None = None
    attributes: Attributes | None = None
    max_hp: int | None = Field(default=None, ge=0)
    current_hp: int | None = Field(default=None, ge=0)
    max_wp: int | None = Field(default=None, ge=0)
    current_wp: int | None = Field(default=None, ge=0)
    conditions: Conditions | None = None
    skill_levels: dict[str, SkillLevel] | None = None
    heroic_abilities: list[str] | None = None
    spells: CharacterSpells | None = None
    magic_school: MagicSchool | None = None
    death_rolls_passed: int | None = Field(default=None, ge=0)
    death_rolls_failed: int | None = Field(default=None, ge=0)
    is_rallied: bool | None = None
    teacher: Teacher | None = None
    equipment: Equipment | None = None
    experience: int | None = None
    reputation: int | None = None
    corruption: int | None = None
    notes: str | None = None
    appearance: str | None = None
    memento: str | None = None
    flaw: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.model_fields_set

    def changes(self) -> dict[str, Any]:
        """Return set fields as model values (not serialized)."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    def to_record(self) -> dict[str, Any]:
        """Return set fields serialized for storage."""
        return self.model_dump(mode="json", include=set(self.model_fields_set))

    def apply_to(self, character: Character, *, updated_at: datetime | None = None) -> Character:
        """Merge this update into a new Character."""
        changes = self.changes()
        if updated_at is not None:
            changes["updated_at"] = updated_at
        return character.model_copy(update=changes)


__all__ = [
    "Attributes",
    "Conditions",
    "Money",
    "InventoryItem",
    "EquippedItems",
    "Equipment",
    "SchoolSpells",
    "CharacterSpells",
    "Teacher",
    "Character",
    "CharacterUpdate",
]
