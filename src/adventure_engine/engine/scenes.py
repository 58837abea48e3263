"""Scene graph: scene entry, choice conditions and choice resolution.

Transitions are resolved one choice at a time. :meth:`SceneGraph.resolve_choice`
only reports where a choice leads; entering the next scene or starting
its combat is left to the engine.
"""

from __future__ import annotations

from collections.abc import Mapping

from adventure_engine.core.exceptions import UnknownSceneError
from adventure_engine.core.logging import get_logger
from adventure_engine.engine.checks import AbilityCheck
from adventure_engine.engine.events import (
    EventBus,
    LogMessage,
    LogType,
    PlayerChanged,
    SceneEntered,
)
from adventure_engine.engine.inventory import Inventory
from adventure_engine.models.entities import Player
from adventure_engine.models.scenes import (
    Choice,
    ChoiceBranch,
    ChoiceCondition,
    ChoiceOutcome,
    ChoiceView,
    Scene,
)


logger = get_logger(__name__)


class SceneGraph:
    """Scene table, story flags and the current scene.

    Args:
        event_bus: Receives ``scene-entered`` and branch log events.
        ability_check: Resolves choices that carry a skill check.
        inventory: Queried by conditions and credited by ``add_item`` effects.
        scenes: Scene table keyed by id.
    """

    def __init__(
        self,
        event_bus: EventBus,
        ability_check: AbilityCheck,
        inventory: Inventory,
        scenes: Mapping[str, Scene] | None = None,
    ) -> None:
        self._bus = event_bus
        self._check = ability_check
        self._inventory = inventory
        self._scenes: dict[str, Scene] = dict(scenes or {})
        self._flags: set[str] = set()
        self._current: Scene | None = None

    # -------------------------------------------------------------------------
    # Scene table
    # -------------------------------------------------------------------------

    def load_scenes(self, scenes: Mapping[str, Scene]) -> None:
        """Replace the scene table and start a fresh playthrough."""
        self._scenes = dict(scenes)
        self._flags = set()
        self._current = None

    def scene(self, scene_id: str) -> Scene | None:
        return self._scenes.get(scene_id)

    @property
    def current_scene(self) -> Scene | None:
        return self._current

    # -------------------------------------------------------------------------
    # Flags
    # -------------------------------------------------------------------------

    @property
    def flags(self) -> frozenset[str]:
        return frozenset(self._flags)

    def set_flag(self, flag: str) -> None:
        if flag not in self._flags:
            logger.info("Flag set", flag=flag)
        self._flags.add(flag)

    def has_flag(self, flag: str) -> bool:
        return flag in self._flags

    # -------------------------------------------------------------------------
    # Scene flow
    # -------------------------------------------------------------------------

    def is_available(self, choice: Choice) -> bool:
        return self._condition_met(choice.condition)

    def enter(self, scene_id: str) -> Scene:
        """Make ``scene_id`` current and publish ``scene-entered``.

        Raises:
            UnknownSceneError: If the scene table has no such scene.
        """
        scene = self._scenes.get(scene_id)
        if scene is None:
            raise UnknownSceneError(f"Unknown scene: {scene_id}", entity_id=scene_id)

        self._current = scene
        choices = [
            ChoiceView(index=index, text=choice.text, available=self.is_available(choice))
            for index, choice in enumerate(scene.choices)
        ]
        logger.info("Scene entered", scene_id=scene.id, choices=len(choices))
        self._bus.publish(
            SceneEntered(
                id=scene.id,
                title=scene.title,
                text=scene.text,
                choices=choices,
                combat=scene.combat,
                game_over=scene.game_over,
                victory=scene.victory,
            )
        )
        return scene

    def resolve_choice(self, index: int, player: Player) -> ChoiceOutcome:
        """Apply a choice of the current scene and report where it leads.

        An out-of-range index or an unmet condition resolves to an empty
        outcome without side effects.

        Args:
            index: Position of the choice in the current scene.
            player: Target of ability checks and branch damage.

        Returns:
            The next scene and/or combat descriptor; both may be absent.
        """
        if self._current is None or not 0 <= index < len(self._current.choices):
            return ChoiceOutcome()

        choice = self._current.choices[index]
        if not self.is_available(choice):
            logger.debug("Choice unavailable", scene_id=self._current.id, index=index)
            return ChoiceOutcome()

        if choice.skill_check is not None:
            result = self._check.check(player, choice.skill_check.skill, choice.skill_check.dc)
            branch = choice.success if result.success else choice.failure
            if branch is not None:
                return self._apply_branch(branch, player)

        if choice.add_item:
            self._inventory.add(choice.add_item)
        if choice.set_flag:
            self.set_flag(choice.set_flag)
        return ChoiceOutcome(next_scene=choice.next_scene, combat=choice.combat)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _apply_branch(self, branch: ChoiceBranch, player: Player) -> ChoiceOutcome:
        if branch.text:
            self._bus.publish(LogMessage(type=LogType.NARRATIVE, text=branch.text))
        if branch.add_item:
            self._inventory.add(branch.add_item)
        if branch.set_flag:
            self.set_flag(branch.set_flag)
        if branch.damage:
            player.apply_damage(branch.damage)
            self._bus.publish(PlayerChanged(player=player.status()))
        return ChoiceOutcome(next_scene=branch.next_scene, combat=branch.combat)

    def _condition_met(self, condition: ChoiceCondition | None) -> bool:
        if condition is None:
            return True
        if condition.has_item and not self._inventory.has(condition.has_item):
            return False
        if condition.has_flag and not self.has_flag(condition.has_flag):
            return False
        if condition.not_has_item and self._inventory.has(condition.not_has_item):
            return False
        return True


__all__ = [
    "SceneGraph",
]
