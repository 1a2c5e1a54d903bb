"""Dice rolling for the d6/d10 recovery and initiative mechanics.

Rolls go through the d20 library so every result carries the parsed
expression and the individual dice, which keeps rest and initiative logs
auditable.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

import d20

from dragonsheet.core.constants import INITIATIVE_MAX, REST_DIE_SIDES
from dragonsheet.core.exceptions import DiceRollError
from dragonsheet.core.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class DiceExpression:
    """A rolled dice expression.

    Attributes:
        expression: The original dice expression string.
        total: The total result of the roll.
        dice: Individual dice results.
        modifier: Static modifier applied.
    """

    expression: str
    total: int
    dice: list[int]
    modifier: int


class DiceRoller:
    """Dice rolling backed by the d20 library.

    Example:
        >>> roller = DiceRoller(seed=7)
        >>> 1 <= roller.roll_d6() <= 6
        True
    """

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize the dice roller.

        Args:
            seed: Optional random seed for reproducible rolls.
        """
        self._seed = seed
        if seed is not None:
            random.seed(seed)
        logger.debug("DiceRoller initialized", seed=seed)

    def roll(self, expression: str) -> DiceExpression:
        """Roll dice according to the given expression.

        Args:
            expression: Dice expression (e.g., '1d6', '2d6+1').

        Returns:
            DiceExpression containing roll results.

        Raises:
            DiceRollError: If the expression is invalid.
        """
        if not expression or not expression.strip():
            raise DiceRollError("Empty dice expression", expression=expression)

        try:
            result = d20.roll(expression)
        except d20.RollError as exc:
            raise DiceRollError(
                f"Invalid dice expression: {exc}",
                expression=expression,
            ) from exc

        dice_values = self._extract_dice_values(result.expr)
        rolled = DiceExpression(
            expression=expression,
            total=result.total,
            dice=dice_values,
            modifier=result.total - sum(dice_values),
        )
        logger.debug("Dice rolled", expression=expression, total=rolled.total, dice=dice_values)
        return rolled

    def _extract_dice_values(self, expr: Any) -> list[int]:
        """Extract kept dice values from a d20 expression tree."""
        values: list[int] = []

        def traverse(node: Any) -> None:
            if isinstance(node, d20.Dice):
                for die in node.values:
                    if die.kept:
                        values.append(die.number)
            elif hasattr(node, "children"):
                for child in node.children:
                    traverse(child)

        traverse(expr)
        return values

    def roll_die(self, sides: int) -> int:
        """Roll a single die with the given number of sides."""
        if sides < 2:
            raise DiceRollError("A die needs at least two sides", details={"sides": sides})
        return self.roll(f"1d{sides}").total

    def roll_d6(self) -> int:
        return self.roll_die(REST_DIE_SIDES)

    def roll_initiative_card(self, sides: int = INITIATIVE_MAX) -> int:
        """Draw an initiative card, uniform in 1..sides."""
        return self.roll_die(sides)


# Module-level convenience roller
_default_roller: DiceRoller | None = None


def get_dice_roller() -> DiceRoller:
    """Return the shared process-wide roller."""
    global _default_roller  # noqa: PLW0603
    if _default_roller is None:
        _default_roller = DiceRoller()
    return _default_roller


__all__ = [
    "DiceExpression",
    "DiceRoller",
    "get_dice_roller",
]
