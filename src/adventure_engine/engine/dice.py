"""Dice rolling for checks, attacks and tool calls.

Expressions are evaluated with the d20 library. Only the
``<count>d<sides>[+|-modifier]`` grammar is accepted, e.g. ``"1d20"``,
``"2d6+3"`` or ``"1d8-1"``; anything else d20 would understand (keep
highest, several dice groups, parentheses) is rejected before rolling.

Each roller owns its random generator, so a session can be replayed from
a seed and tests can inject a scripted generator.
"""

from __future__ import annotations

import random
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

import d20

from adventure_engine.core.constants import D20, MAX_DICE
from adventure_engine.core.exceptions import InvalidExpressionError
from adventure_engine.core.logging import get_logger
from adventure_engine.engine.events import DiceRolled, EventBus


logger = get_logger(__name__)

T = TypeVar("T")

DICE_PATTERN = re.compile(r"^(\d+)d(\d+)([+-]\d+)?$")
"""Anchored dice grammar; whitespace inside the expression is rejected."""


@dataclass(frozen=True)
class DiceResult:
    """The full breakdown of one evaluated expression.

    Attributes:
        expression: The expression as given.
        rolls: Individual die results, in roll order.
        modifier: Flat modifier from the expression.
        total: Sum of the rolls plus the modifier.
    """

    expression: str
    rolls: list[int] = field(default_factory=list)
    modifier: int = 0
    total: int = 0


class _GeneratorRoller(d20.Roller):
    """d20 roller whose die faces come from a private generator."""

    def __init__(self, rng: random.Random) -> None:
        super().__init__()
        self._rng = rng

    def _eval_dice(self, node: Any) -> d20.Dice:
        dice = super()._eval_dice(node)
        for die in dice.values:
            die.values = [d20.Literal(self._rng.randint(1, node.size))]
        return dice


class DiceRoller:
    """Uniform die rolls and dice-expression evaluation.

    Example:
        >>> roller = DiceRoller(seed=7)
        >>> result = roller.roll("2d6+3")
        >>> len(result.rolls)
        2
    """

    def __init__(
        self,
        event_bus: EventBus | None = None,
        *,
        rng: random.Random | None = None,
        seed: int | None = None,
    ) -> None:
        """Initialize the dice roller.

        Args:
            event_bus: Bus receiving a ``dice-rolled`` event per expression.
            rng: Generator to draw from. Takes precedence over ``seed``.
            seed: Seed for a private generator when ``rng`` is not given.
        """
        self._bus = event_bus
        self._rng = rng if rng is not None else random.Random(seed)
        self._roller = _GeneratorRoller(self._rng)
        logger.debug("DiceRoller initialized", seed=seed, injected_rng=rng is not None)

    def roll_die(self, sides: int) -> int:
        """Roll one die, uniform over ``[1, sides]``."""
        if sides < 1:
            raise InvalidExpressionError(f"A die needs at least one side, got {sides}")
        return self._rng.randint(1, sides)

    def roll(self, expression: str) -> DiceResult:
        """Evaluate a dice expression.

        Args:
            expression: Dice expression such as ``"2d6+3"``.

        Returns:
            DiceResult with every individual roll.

        Raises:
            InvalidExpressionError: If the expression does not match the
                grammar, asks for zero dice or zero-sided dice, or rolls
                more than ``MAX_DICE`` dice.
        """
        text = expression.strip() if isinstance(expression, str) else ""
        match = DICE_PATTERN.match(text)
        if match is None:
            raise InvalidExpressionError(
                f"Invalid dice expression: {expression!r}",
                expression=str(expression),
            )

        count = int(match.group(1))
        sides = int(match.group(2))
        if count < 1 or sides < 1:
            raise InvalidExpressionError(
                f"Dice expression needs at least one die with one side: {expression!r}",
                expression=text,
            )
        if count > MAX_DICE:
            raise InvalidExpressionError(
                f"Too many dice in {text!r} (at most {MAX_DICE})",
                expression=text,
            )

        try:
            rolled = self._roller.roll(text)
        except d20.RollError as exc:
            raise InvalidExpressionError(
                f"Invalid dice expression: {exc}",
                expression=text,
            ) from exc

        rolls = self._extract_dice_values(rolled.expr)
        result = DiceResult(
            expression=text,
            rolls=rolls,
            modifier=rolled.total - sum(rolls),
            total=rolled.total,
        )

        logger.debug("Dice rolled", expression=text, rolls=rolls, total=result.total)
        if self._bus is not None:
            self._bus.publish(
                DiceRolled(
                    expression=result.expression,
                    rolls=list(result.rolls),
                    modifier=result.modifier,
                    total=result.total,
                )
            )
        return result

    def _extract_dice_values(self, expr: Any) -> list[int]:
        """Collect kept die faces from a d20 expression tree, in roll order."""
        values: list[int] = []

        def traverse(node: Any) -> None:
            if isinstance(node, d20.Dice):
                values.extend(die.number for die in node.values if die.kept)
            elif hasattr(node, "children"):
                for child in node.children:
                    traverse(child)

        traverse(expr)
        return values

    def roll_d20(self) -> DiceResult:
        return self.roll(f"1d{D20}")

    def choose(self, options: Sequence[T]) -> T:
        """Pick one element uniformly at random."""
        if not options:
            raise IndexError("Cannot choose from an empty sequence")
        if len(options) == 1:
            return options[0]
        return options[self.roll_die(len(options)) - 1]


__all__ = [
    "DICE_PATTERN",
    "DiceResult",
    "DiceRoller",
]
