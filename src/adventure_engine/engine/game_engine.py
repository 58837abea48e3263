"""Engine composition root.

:class:`GameEngine` owns one session's state: the event bus, the dice, the
definition tables, the player sheet, the flag set and the combat engine.
It exposes the public operations presentation code calls and routes them
to the scene graph (scripted mode) or the narrative orchestrator
(narrated mode).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from random import Random

from adventure_engine.core.config import Settings, get_settings
from adventure_engine.core.exceptions import GameEngineError
from adventure_engine.core.logging import bind_context, clear_context, get_logger
from adventure_engine.dm.client import NarrativeClient, OpenAIChatClient
from adventure_engine.dm.orchestrator import NarrativeOrchestrator
from adventure_engine.engine.checks import AbilityCheck
from adventure_engine.engine.combat import CombatEngine
from adventure_engine.engine.dice import DiceRoller
from adventure_engine.engine.events import (
    CombatEnded,
    EventBus,
    EventName,
    LogMessage,
    LogType,
    PlayerChanged,
)
from adventure_engine.engine.inventory import Inventory, ItemUseResult
from adventure_engine.engine.scenes import SceneGraph
from adventure_engine.engine.tools import ToolDispatcher
from adventure_engine.models.adventure import AdventurePackage, NarrativeTemplate
from adventure_engine.models.entities import EnemyDefinition, Player
from adventure_engine.models.scenes import ChoiceOutcome, CombatDescriptor


logger = get_logger(__name__)


class GameEngine:
    """One game session in scripted or narrated mode.

    Input that does not fit the current mode is ignored: scene choices and
    narrative input while in combat, combat actions outside combat, scene
    choices in narrated mode.

    Example:
        >>> engine = GameEngine()
        >>> engine.event_bus.subscribe(EventName.SCENE_ENTERED, render_scene)
        >>> engine.start_adventure(AdventurePackage.model_validate(data))
        >>> engine.make_choice(0)
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        event_bus: EventBus | None = None,
        rng: Random | None = None,
    ) -> None:
        """Initialize the engine and its components.

        Args:
            settings: Application settings. Defaults to the cached settings.
            event_bus: Bus to publish on. A new one is created if omitted.
            rng: Random generator for every roll. Defaults to one seeded
                from ``settings.game.dice_seed``.
        """
        self.settings = settings or get_settings()
        self._bus = event_bus or EventBus()
        self._dice = DiceRoller(self._bus, rng=rng, seed=self.settings.game.dice_seed)
        self._ability_check = AbilityCheck(self._dice, self._bus)
        self._inventory = Inventory(self._bus)
        self._scene_graph = SceneGraph(self._bus, self._ability_check, self._inventory)
        self._combat = CombatEngine(self._dice, self._bus, flee_dc=self.settings.game.flee_dc)
        self._dispatcher = ToolDispatcher(self)

        self._player: Player | None = None
        self._package: AdventurePackage | None = None
        self._narrative_mode = False
        self._orchestrator: NarrativeOrchestrator | None = None
        self._pending_combat: CombatDescriptor | None = None
        self._flee_scene: str | None = None
        self._after_combat_scene: str | None = None
        self.in_combat = False

        # Subscribed before any orchestrator so in_combat is already cleared
        # when the narrative resumes.
        self._bus.subscribe(EventName.COMBAT_ENDED, self._on_combat_ended)

    # -------------------------------------------------------------------------
    # Components
    # -------------------------------------------------------------------------

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def dice(self) -> DiceRoller:
        return self._dice

    @property
    def ability_check(self) -> AbilityCheck:
        return self._ability_check

    @property
    def inventory(self) -> Inventory:
        return self._inventory

    @property
    def scene_graph(self) -> SceneGraph:
        return self._scene_graph

    @property
    def combat(self) -> CombatEngine:
        return self._combat

    @property
    def dispatcher(self) -> ToolDispatcher:
        return self._dispatcher

    @property
    def orchestrator(self) -> NarrativeOrchestrator | None:
        return self._orchestrator

    # -------------------------------------------------------------------------
    # Session state
    # -------------------------------------------------------------------------

    @property
    def player(self) -> Player:
        """The session's player sheet.

        Raises:
            GameEngineError: If no adventure has been started.
        """
        if self._player is None:
            raise GameEngineError("No adventure loaded")
        return self._player

    @property
    def package(self) -> AdventurePackage | None:
        return self._package

    @property
    def is_narrative_mode(self) -> bool:
        return self._narrative_mode

    @property
    def enemy_definitions(self) -> Mapping[str, EnemyDefinition]:
        return self._package.enemies if self._package else {}

    # -------------------------------------------------------------------------
    # Adventure lifecycle
    # -------------------------------------------------------------------------

    def start_adventure(self, package: AdventurePackage) -> None:
        """Start a scripted adventure at the manifest's starting scene.

        Raises:
            GameEngineError: If a combat is still running.
            UnknownSceneError: If the starting scene is not in the table.
        """
        self._load(package, narrative=False)
        self._log(f"Adventure '{package.manifest.title}' begins!")
        self._scene_graph.enter(package.manifest.start_scene)

    def start_narrative_adventure(
        self,
        package: AdventurePackage,
        template: NarrativeTemplate,
        client: NarrativeClient | None = None,
    ) -> NarrativeOrchestrator:
        """Start a narrated adventure driven by the narrator model.

        Args:
            package: Supplies the player sheet and definition tables.
            template: Story brief for the narrator.
            client: Narrative service transport. Defaults to the openai
                adapter built from ``settings.ai``.

        Returns:
            The orchestrator running the conversation.
        """
        self._load(package, narrative=True)
        self._log(f"Narrated adventure '{template.title}' begins!")

        orchestrator = NarrativeOrchestrator(
            self,
            client or OpenAIChatClient(settings=self.settings.ai),
            dispatcher=self._dispatcher,
            settings=self.settings.game,
        )
        self._orchestrator = orchestrator
        orchestrator.init(template)
        return orchestrator

    def _load(self, package: AdventurePackage, *, narrative: bool) -> None:
        if self._combat.is_active:
            raise GameEngineError(
                "Cannot start an adventure during combat",
                details={"round": self._combat.round},
            )
        if self._orchestrator is not None:
            self._orchestrator.close()
            self._orchestrator = None

        self._package = package
        self._narrative_mode = narrative
        self._pending_combat = None
        self._flee_scene = None
        self._after_combat_scene = None
        self.in_combat = False

        player = package.player.model_copy(deep=True)
        self._player = player
        self._scene_graph.load_scenes(package.scenes)
        self._combat.load_enemies(package.enemies)
        self._inventory.load_definitions(package.items)
        self._inventory.set_items(player.inventory)

        clear_context()
        bind_context(adventure=package.manifest.title, mode="narrative" if narrative else "scripted")
        logger.info(
            "Adventure loaded",
            scenes=len(package.scenes),
            enemies=len(package.enemies),
            items=len(package.items),
        )
        self._bus.publish(PlayerChanged(player=player.status()))

    # -------------------------------------------------------------------------
    # Scripted mode
    # -------------------------------------------------------------------------

    def make_choice(self, index: int) -> ChoiceOutcome | None:
        """Pick a choice of the current scene.

        Returns:
            The resolved outcome, or None if the input was ignored.

        Raises:
            UnknownSceneError: If the choice leads to a missing scene.
            UnknownEnemyError: If its combat names an unknown enemy.
        """
        if self.in_combat or self._narrative_mode or self._package is None:
            logger.debug("Choice ignored", index=index, in_combat=self.in_combat)
            return None

        origin = self._scene_graph.current_scene
        origin_id = origin.id if origin else None
        outcome = self._scene_graph.resolve_choice(index, self.player)

        if outcome.combat is not None:
            if outcome.next_scene:
                self._scene_graph.enter(outcome.next_scene)
            self._start_scene_combat(outcome.combat, origin_id)
        elif outcome.next_scene:
            scene = self._scene_graph.enter(outcome.next_scene)
            if scene.combat is not None:
                self._start_scene_combat(scene.combat, origin_id)
        return outcome

    def _start_scene_combat(self, descriptor: CombatDescriptor, origin_id: str | None) -> None:
        self._pending_combat = descriptor
        self._flee_scene = descriptor.on_flee or origin_id
        self.in_combat = True
        try:
            self._combat.start(self.player, descriptor.enemies)
        except Exception:
            self._pending_combat = None
            self._flee_scene = None
            self.in_combat = False
            raise
        self._enter_after_combat()

    def _on_combat_ended(self, event: CombatEnded) -> None:
        self.in_combat = False
        descriptor, flee_scene = self._pending_combat, self._flee_scene
        self._pending_combat = None
        self._flee_scene = None
        if self._narrative_mode:
            return

        if event.fled:
            target = flee_scene
        elif descriptor is None:
            return
        else:
            target = descriptor.on_victory if event.victory else descriptor.on_defeat

        # Entered by the action that ended the combat, so a bad scene id
        # reaches that caller instead of the bus.
        self._after_combat_scene = target

    def _enter_after_combat(self) -> None:
        target, self._after_combat_scene = self._after_combat_scene, None
        if target:
            self._scene_graph.enter(target)

    # -------------------------------------------------------------------------
    # Narrated mode
    # -------------------------------------------------------------------------

    def handle_free_input(self, text: str) -> bool:
        """Forward free-text input to the narrator. Ignored during combat."""
        if self._orchestrator is None or self.in_combat:
            return False
        return self._orchestrator.handle_free_input(text)

    def handle_narrative_choice(self, index: int, choices: Sequence[str] | None = None) -> bool:
        """Forward a narrator-offered choice. Ignored during combat."""
        if self._orchestrator is None or self.in_combat:
            return False
        return self._orchestrator.handle_choice(index, choices)

    def retry_narrative(self) -> bool:
        """Resend the conversation after a narrative-service failure."""
        if self._orchestrator is None or self.in_combat:
            return False
        return self._orchestrator.retry()

    # -------------------------------------------------------------------------
    # Combat actions
    # -------------------------------------------------------------------------

    def combat_attack(self, attack_index: int = 0, target_index: int = 0) -> bool:
        """Attack a living enemy on the player's turn.

        Raises:
            UnknownSceneError: If the combat ends on a missing scene.
        """
        if not self.in_combat:
            return False
        acted = self._combat.player_attack(attack_index, target_index)
        self._enter_after_combat()
        return acted

    def combat_flee(self) -> bool:
        if not self.in_combat:
            return False
        acted = self._combat.player_flee()
        self._enter_after_combat()
        return acted

    def combat_use_item(self, item_id: str) -> ItemUseResult | None:
        """Use an item on the player's combat turn.

        A used item spends the turn; an unusable one does not.

        Returns:
            The use result, or None if it is not the player's turn.
        """
        if not self.in_combat or not self._combat.awaiting_player:
            return None
        result = self._inventory.use(item_id, self.player)
        if result.used:
            self._combat.pass_turn()
            self._enter_after_combat()
        return result

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    def use_item(self, item_id: str) -> ItemUseResult | None:
        """Use an item outside combat. Returns None while in combat."""
        if self.in_combat or self._player is None:
            return None
        return self._inventory.use(item_id, self._player)

    def _log(self, text: str) -> None:
        self._bus.publish(LogMessage(type=LogType.SYSTEM, text=text))


__all__ = [
    "GameEngine",
]
