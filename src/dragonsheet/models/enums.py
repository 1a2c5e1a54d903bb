"""Enumeration types for the dragonsheet rules engine."""

from __future__ import annotations

from enum import StrEnum


class StatKind(StrEnum):
    """Bounded resource pools."""

    HP = "hp"
    WP = "wp"

    @property
    def current_field(self) -> str:
        return f"current_{self.value}"

    @property
    def max_field(self) -> str:
        return f"max_{self.value}"


class RestType(StrEnum):
    """Recovery tiers, in increasing restorative effect."""

    ROUND = "round"
    STRETCH = "stretch"
    SHIFT = "shift"


class DeathRollKind(StrEnum):
    """The two sides of the death-roll tally."""

    PASSED = "passed"
    FAILED = "failed"


__all__ = [
    "StatKind",
    "RestType",
    "DeathRollKind",
]
