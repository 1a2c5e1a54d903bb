"""Rules constants for the dragonsheet character engine.

This module defines the fixed numbers and key orders of the d6-based
rules: attribute defaults, condition order, skill ceiling, death rolls
and initiative.
"""

from __future__ import annotations

# =============================================================================
# Attributes
# =============================================================================

ATTRIBUTE_NAMES = ("STR", "CON", "AGL", "INT", "WIL", "CHA")
"""The six attributes, in character-sheet order."""

DEFAULT_ATTRIBUTE_VALUE = 10
"""Attribute value assumed when the stored record has none."""

HP_ATTRIBUTE = "CON"
"""Attribute that seeds max HP the first time it is set."""

WP_ATTRIBUTE = "WIL"
"""Attribute that seeds max WP the first time it is set."""

# =============================================================================
# Conditions
# =============================================================================

CONDITION_NAMES = ("exhausted", "sickly", "dazed", "angry", "scared", "disheartened")
"""The six conditions. A stretch rest heals the first active one in this order."""

# =============================================================================
# Progression
# =============================================================================

MIN_SKILL_LEVEL = 0
"""Lowest skill level."""

MAX_SKILL_LEVEL = 18
"""Highest skill level."""

# =============================================================================
# Combat
# =============================================================================

INITIATIVE_MIN = 1
"""Lowest initiative card."""

INITIATIVE_MAX = 10
"""Highest initiative card."""

REST_DIE_SIDES = 6
"""Recovery dice for round and stretch rests are d6."""

# =============================================================================
# Status messages
# =============================================================================

STRETCH_WHILE_DYING_MESSAGE = "Cannot take Stretch Rest while dying."
NO_ENCOUNTER_MESSAGE = (
    "Cannot draw initiative: Not in an active encounter or not added as a combatant."
)


__all__ = [
    "ATTRIBUTE_NAMES",
    "DEFAULT_ATTRIBUTE_VALUE",
    "HP_ATTRIBUTE",
    "WP_ATTRIBUTE",
    "CONDITION_NAMES",
    "MIN_SKILL_LEVEL",
    "MAX_SKILL_LEVEL",
    "INITIATIVE_MIN",
    "INITIATIVE_MAX",
    "REST_DIE_SIDES",
    "STRETCH_WHILE_DYING_MESSAGE",
    "NO_ENCOUNTER_MESSAGE",
]
