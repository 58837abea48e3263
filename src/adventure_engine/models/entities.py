"""Player, enemy and item models.

Adventure files use camelCase keys (``maxHp``, ``toHit``); every model
accepts those aliases as well as the snake_case field names.

Definitions (items, enemies) are frozen templates shared by the whole
session. Combat never mutates a definition: it calls
:meth:`EnemyDefinition.instantiate` to get an owned :class:`EnemyInstance`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from adventure_engine.core.constants import ABILITY_NAMES, DEFAULT_ABILITY_SCORE
from adventure_engine.core.exceptions import UnknownAbilityError


def ability_modifier(score: int) -> int:
    """Calculate the ability modifier from an ability score.

    Floor division rounds toward negative infinity, so odd scores below 10
    round down.

    Example:
        >>> ability_modifier(8)
        -1
        >>> ability_modifier(20)
        5
    """
    return (score - 10) // 2


# =============================================================================
# Ability Scores & Attacks
# =============================================================================


class AbilityScores(BaseModel):
    """The six ability scores of a combatant."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    strength: int = DEFAULT_ABILITY_SCORE
    dexterity: int = DEFAULT_ABILITY_SCORE
    constitution: int = DEFAULT_ABILITY_SCORE
    intelligence: int = DEFAULT_ABILITY_SCORE
    wisdom: int = DEFAULT_ABILITY_SCORE
    charisma: int = DEFAULT_ABILITY_SCORE

    def get(self, ability: str) -> int:
        """Look up a score by ability name.

        Raises:
            UnknownAbilityError: If ``ability`` is not one of the six abilities.
        """
        if ability not in ABILITY_NAMES:
            raise UnknownAbilityError(f"Unknown ability: {ability}", entity_id=ability)
        return getattr(self, ability)

    def modifier(self, ability: str) -> int:
        return ability_modifier(self.get(ability))


class AttackDefinition(BaseModel):
    """A named attack.

    Player attacks name a governing ``stat``; enemy attacks carry a flat
    ``to_hit`` bonus instead.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    damage: str = Field(description="Dice expression, e.g. '1d8+2'")
    stat: str | None = None
    to_hit: int = Field(default=0, alias="toHit")


# =============================================================================
# Status Snapshots
# =============================================================================


class PlayerStatus(BaseModel):
    """Read-only view of the player published with events."""

    model_config = ConfigDict(frozen=True)

    name: str
    level: int
    hp: int
    max_hp: int
    ac: int
    stats: dict[str, int]


class EnemyStatus(BaseModel):
    """Read-only view of one enemy instance."""

    model_config = ConfigDict(frozen=True)

    instance_id: str
    name: str
    current_hp: int
    max_hp: int
    ac: int


# =============================================================================
# Player
# =============================================================================


class Player(BaseModel):
    """The player character.

    The engine owns the single Player of a session. Hit points only change
    through :meth:`apply_damage` and :meth:`apply_healing`, which keep
    ``0 <= hp <= max_hp``.

    Attributes:
        name: Display name.
        level: Character level.
        hp: Current hit points.
        max_hp: Maximum hit points.
        ac: Armor class.
        stats: Ability scores.
        attacks: Attacks available in combat.
        inventory: Starting item ids; the live list is owned by the Inventory.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    level: int = 1
    hp: int = Field(ge=0)
    max_hp: int = Field(ge=1, alias="maxHp")
    ac: int = 10
    stats: AbilityScores = Field(default_factory=AbilityScores)
    attacks: list[AttackDefinition] = Field(default_factory=list)
    inventory: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_hp_bounds(self) -> Player:
        if self.hp > self.max_hp:
            raise ValueError(f"hp ({self.hp}) exceeds max_hp ({self.max_hp})")
        return self

    @property
    def is_defeated(self) -> bool:
        return self.hp <= 0

    def apply_damage(self, amount: int) -> int:
        """Subtract hit points, floored at zero.

        Returns:
            The hit points actually lost.
        """
        before = self.hp
        self.hp = max(0, self.hp - max(0, amount))
        return before - self.hp

    def apply_healing(self, amount: int) -> int:
        """Restore hit points, capped at ``max_hp``.

        Returns:
            The hit points actually restored.
        """
        before = self.hp
        self.hp = min(self.max_hp, self.hp + max(0, amount))
        return self.hp - before

    def status(self) -> PlayerStatus:
        return PlayerStatus(
            name=self.name,
            level=self.level,
            hp=self.hp,
            max_hp=self.max_hp,
            ac=self.ac,
            stats=self.stats.model_dump(),
        )


# =============================================================================
# Items
# =============================================================================


class ItemEffect(BaseModel):
    """Effect applied when a consumable is used.

    Only ``heal`` is interpreted; unknown keys are preserved so they are
    still reported back in the use result.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    heal: int | None = None


class ItemDefinition(BaseModel):
    """An entry of the item definition table."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    description: str = ""
    consumable: bool = False
    effect: ItemEffect | None = None


# =============================================================================
# Enemies
# =============================================================================


class EnemyDefinition(BaseModel):
    """Immutable enemy template keyed by id in the enemy table."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    hp: int = Field(ge=1)
    ac: int = 10
    xp: int = 0
    stats: AbilityScores = Field(default_factory=AbilityScores)
    attacks: list[AttackDefinition] = Field(default_factory=list)

    def instantiate(self, index: int) -> EnemyInstance:
        """Clone this template into a combat-scoped instance.

        Args:
            index: Position of the enemy in the encounter's enemy list.

        Returns:
            A fresh instance at full hit points with id ``<id>_<index>``.
        """
        return EnemyInstance(
            instance_id=f"{self.id}_{index}",
            definition=self.model_copy(deep=True),
            current_hp=self.hp,
        )


class EnemyInstance(BaseModel):
    """A mutable enemy taking part in one combat."""

    instance_id: str
    definition: EnemyDefinition
    current_hp: int

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def ac(self) -> int:
        return self.definition.ac

    @property
    def max_hp(self) -> int:
        return self.definition.hp

    @property
    def xp(self) -> int:
        return self.definition.xp

    @property
    def is_defeated(self) -> bool:
        return self.current_hp <= 0

    def take_damage(self, amount: int) -> int:
        """Subtract hit points, floored at zero, and return the amount lost."""
        before = self.current_hp
        self.current_hp = max(0, self.current_hp - max(0, amount))
        return before - self.current_hp

    def status(self) -> EnemyStatus:
        return EnemyStatus(
            instance_id=self.instance_id,
            name=self.name,
            current_hp=self.current_hp,
            max_hp=self.max_hp,
            ac=self.ac,
        )


__all__ = [
    "ability_modifier",
    "AbilityScores",
    "AttackDefinition",
    "PlayerStatus",
    "EnemyStatus",
    "Player",
    "ItemEffect",
    "ItemDefinition",
    "EnemyDefinition",
    "EnemyInstance",
]
