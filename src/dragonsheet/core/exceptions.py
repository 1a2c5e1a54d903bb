"""Custom exception hierarchy for the dragonsheet character engine.

All exceptions inherit from DragonsheetError. Subclasses take their
context as keyword arguments and fold it into ``details``, so callers can
log ``exc.details`` without knowing the concrete type::

    DragonsheetError
    ├── GameEngineError
    │   ├── InvalidGameStateError
    │   ├── CombatError
    │   └── DiceRollError
    ├── PersistenceError
    │   ├── CharacterNotFoundError
    │   └── RemoteError
    ├── ConfigurationError
    └── ValidationError

Example:
    >>> from dragonsheet.core.exceptions import CharacterNotFoundError
    >>> raise CharacterNotFoundError("Character missing", character_id="abc")
"""

from __future__ import annotations

from typing import Any


def _with_context(details: dict[str, Any] | None, **context: Any) -> dict[str, Any]:
    """Merge non-None context values into a copy of ``details``."""
    merged = dict(details or {})
    merged.update({key: value for key, value in context.items() if value is not None})
    return merged


class DragonsheetError(Exception):
    """Base exception for all dragonsheet errors.

    Attributes:
        message: Human-readable error description.
        details: Additional error context, rendered into ``str(exc)``.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if not self.details:
            return self.message
        rendered = ", ".join(f"{key}={value!r}" for key, value in self.details.items())
        return f"{self.message} [{rendered}]"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Rules engine
# =============================================================================


class GameEngineError(DragonsheetError):
    """Base exception for rules-engine errors."""


class InvalidGameStateError(GameEngineError):
    """An operation needs state that is not there, usually an active character."""

    def __init__(
        self,
        message: str,
        *,
        current_state: str | None = None,
        expected_states: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            details=_with_context(details, current_state=current_state, expected_states=expected_states),
        )


class CombatError(GameEngineError):
    """An encounter or combatant operation was rejected before reaching storage."""

    def __init__(
        self,
        message: str,
        *,
        combatant_id: str | None = None,
        encounter_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            details=_with_context(details, combatant_id=combatant_id, encounter_id=encounter_id),
        )


class DiceRollError(GameEngineError):
    """A dice expression could not be parsed or rolled."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=_with_context(details, expression=expression))


# =============================================================================
# Persistence
# =============================================================================


class PersistenceError(DragonsheetError):
    """Base exception for persistence gateway failures.

    The store and encounter engine catch this type: loads record it in an
    error field, writes record it and re-raise.
    """


class CharacterNotFoundError(PersistenceError):
    """The character is missing or not visible to the requesting user."""

    def __init__(
        self,
        message: str,
        *,
        character_id: str | None = None,
        user_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            details=_with_context(details, character_id=character_id, user_id=user_id),
        )


class RemoteError(PersistenceError):
    """The backing store rejected or failed a read or write.

    Args:
        message: Human-readable error description.
        operation: Gateway operation that failed.
        record_id: Identifier of the record involved.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        record_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            details=_with_context(details, operation=operation, record_id=record_id),
        )


# =============================================================================
# Configuration & validation
# =============================================================================


class ConfigurationError(DragonsheetError):
    """Application settings are missing or inconsistent."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=_with_context(details, config_key=config_key))


class ValidationError(DragonsheetError):
    """Caller-supplied data violates a rule.

    Unknown condition or attribute names, out-of-range skill levels,
    initiative values or death-roll counters, and malformed spell
    prerequisites.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            details=_with_context(details, field_name=field_name, invalid_value=invalid_value),
        )


__all__ = [
    "DragonsheetError",
    # Rules engine
    "GameEngineError",
    "InvalidGameStateError",
    "CombatError",
    "DiceRollError",
    # Persistence
    "PersistenceError",
    "CharacterNotFoundError",
    "RemoteError",
    # Configuration & validation
    "ConfigurationError",
    "ValidationError",
]
