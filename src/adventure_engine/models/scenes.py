"""Scene graph models.

A scene table maps scene ids to :class:`Scene`. Each scene lists
:class:`Choice` entries that may be gated by a :class:`ChoiceCondition`
and may resolve through an ability check into a success or failure
:class:`ChoiceBranch`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


_SCENE_CONFIG = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class CombatDescriptor(BaseModel):
    """An encounter embedded in a scene or a choice outcome.

    Attributes:
        enemies: Enemy definition ids, in listed order.
        on_victory: Scene entered after winning.
        on_defeat: Scene entered after losing.
        on_flee: Scene entered after a successful flee. When unset the engine
            returns to the scene that was current before the combat scene.
    """

    model_config = _SCENE_CONFIG

    enemies: list[str] = Field(min_length=1)
    on_victory: str | None = Field(default=None, alias="onVictory")
    on_defeat: str | None = Field(default=None, alias="onDefeat")
    on_flee: str | None = Field(default=None, alias="onFlee")


class ChoiceCondition(BaseModel):
    """Availability gate for a choice. Every populated key must hold."""

    model_config = _SCENE_CONFIG

    has_item: str | None = Field(default=None, alias="hasItem")
    has_flag: str | None = Field(default=None, alias="hasFlag")
    not_has_item: str | None = Field(default=None, alias="notHasItem")


class SkillCheckSpec(BaseModel):
    model_config = _SCENE_CONFIG

    skill: str
    dc: int


class ChoiceBranch(BaseModel):
    """Result applied after a choice's ability check succeeds or fails."""

    model_config = _SCENE_CONFIG

    text: str | None = None
    add_item: str | None = Field(default=None, alias="addItem")
    set_flag: str | None = Field(default=None, alias="setFlag")
    damage: int | None = Field(default=None, ge=0)
    next_scene: str | None = Field(default=None, alias="nextScene")
    combat: CombatDescriptor | None = None


class Choice(BaseModel):
    """A player option in a scene."""

    model_config = _SCENE_CONFIG

    text: str
    condition: ChoiceCondition | None = None
    skill_check: SkillCheckSpec | None = Field(default=None, alias="skillCheck")
    success: ChoiceBranch | None = None
    failure: ChoiceBranch | None = None
    next_scene: str | None = Field(default=None, alias="nextScene")
    add_item: str | None = Field(default=None, alias="addItem")
    set_flag: str | None = Field(default=None, alias="setFlag")
    combat: CombatDescriptor | None = None


class Scene(BaseModel):
    """A node of the scene graph."""

    model_config = _SCENE_CONFIG

    id: str
    title: str = ""
    text: str = ""
    choices: list[Choice] = Field(default_factory=list)
    combat: CombatDescriptor | None = None
    game_over: bool = Field(default=False, alias="gameOver")
    victory: bool = False


class ChoiceView(BaseModel):
    """A choice as presented on scene entry, annotated with availability."""

    model_config = ConfigDict(frozen=True)

    index: int
    text: str
    available: bool


class ChoiceOutcome(BaseModel):
    """What resolving a choice leads to. Both parts are optional."""

    model_config = ConfigDict(frozen=True)

    next_scene: str | None = None
    combat: CombatDescriptor | None = None

    @property
    def is_empty(self) -> bool:
        return self.next_scene is None and self.combat is None


__all__ = [
    "CombatDescriptor",
    "ChoiceCondition",
    "SkillCheckSpec",
    "ChoiceBranch",
    "Choice",
    "Scene",
    "ChoiceView",
    "ChoiceOutcome",
]
