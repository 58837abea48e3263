"""Ability checks: ``1d20 + ability modifier`` against a difficulty class."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Protocol

from adventure_engine.core.logging import get_logger
from adventure_engine.engine.dice import DiceRoller
from adventure_engine.engine.events import EventBus, LogMessage, LogType
from adventure_engine.models.entities import AbilityScores, ability_modifier


logger = get_logger(__name__)


class HasAbilities(Protocol):
    stats: AbilityScores


@dataclass(frozen=True)
class CheckResult:
    """Breakdown of one ability check.

    Attributes:
        roll: The natural d20 result.
        modifier: Ability modifier added to the roll.
        total: ``roll + modifier``.
        difficulty: The DC the total was compared against.
        ability: Name of the ability checked.
        success: True when ``total >= difficulty``.
    """

    roll: int
    modifier: int
    total: int
    difficulty: int
    ability: str
    success: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AbilityCheck:
    """Resolves ability checks for any actor carrying ability scores."""

    def __init__(self, dice: DiceRoller, event_bus: EventBus) -> None:
        self._dice = dice
        self._bus = event_bus

    @staticmethod
    def modifier(score: int) -> int:
        return ability_modifier(score)

    def check(self, actor: HasAbilities, ability: str, difficulty: int) -> CheckResult:
        """Roll an ability check.

        Args:
            actor: Anything with a ``stats`` attribute (player or enemy).
            ability: Ability name, e.g. ``"dexterity"``.
            difficulty: Target DC; the check succeeds on a total at or above it.

        Returns:
            The full check breakdown.

        Raises:
            UnknownAbilityError: If the actor has no such ability score.
        """
        modifier = actor.stats.modifier(ability)
        roll = self._dice.roll_d20().total
        total = roll + modifier
        result = CheckResult(
            roll=roll,
            modifier=modifier,
            total=total,
            difficulty=difficulty,
            ability=ability,
            success=total >= difficulty,
        )

        outcome = "success" if result.success else "failure"
        self._bus.publish(
            LogMessage(
                type=LogType.SKILL_CHECK,
                text=(
                    f"{ability.capitalize()} check: {roll} {modifier:+d} = {total} "
                    f"vs DC {difficulty} -> {outcome}"
                ),
            )
        )
        logger.info(
            "Ability check resolved",
            ability=ability,
            roll=roll,
            total=total,
            dc=difficulty,
            success=result.success,
        )
        return result


__all__ = [
    "HasAbilities",
    "CheckResult",
    "AbilityCheck",
]
