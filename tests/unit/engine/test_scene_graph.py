"""Tests for scene flow and choice resolution."""

from __future__ import annotations

import pytest

from adventure_engine.core.exceptions import UnknownSceneError
from adventure_engine.engine.checks import AbilityCheck
from adventure_engine.engine.dice import DiceRoller
from adventure_engine.engine.events import EventBus, EventName, LogType
from adventure_engine.engine.inventory import Inventory
from adventure_engine.engine.scenes import SceneGraph
from adventure_engine.models.adventure import AdventurePackage
from adventure_engine.models.entities import Player


@pytest.fixture
def inventory(event_bus: EventBus, package: AdventurePackage) -> Inventory:
    return Inventory(event_bus, package.items)


@pytest.fixture
def graph(
    event_bus: EventBus,
    scripted_rng,
    inventory: Inventory,
    package: AdventurePackage,
) -> SceneGraph:
    check = AbilityCheck(DiceRoller(event_bus, rng=scripted_rng), event_bus)
    return SceneGraph(event_bus, check, inventory, package.scenes)


class TestEnterScene:
    """Tests for SceneGraph.enter."""

    def test_publishes_scene_with_availability(self, graph: SceneGraph, recorder) -> None:
        """Test choices are annotated with their condition result."""
        graph.enter("entrance")

        (event,) = recorder.of(EventName.SCENE_ENTERED)
        assert event.id == "entrance"
        assert event.title == "Cellar Entrance"
        assert [choice.available for choice in event.choices] == [True, True, False, True]
        assert graph.current_scene is not None
        assert graph.current_scene.id == "entrance"

    def test_unknown_scene(self, graph: SceneGraph) -> None:
        """Test entering a missing scene raises."""
        with pytest.raises(UnknownSceneError) as exc_info:
            graph.enter("attic")

        assert exc_info.value.entity_id == "attic"

    def test_terminal_flags(self, graph: SceneGraph, recorder) -> None:
        """Test game over and victory flags are published."""
        graph.enter("game_over")
        graph.enter("treasure")

        game_over, treasure = recorder.of(EventName.SCENE_ENTERED)
        assert game_over.game_over is True
        assert treasure.victory is True


class TestResolveChoice:
    """Tests for SceneGraph.resolve_choice."""

    def test_direct_effects(self, graph: SceneGraph, inventory: Inventory, player: Player) -> None:
        """Test a plain choice applies its item and flag."""
        graph.enter("entrance")

        outcome = graph.resolve_choice(0, player)

        assert outcome.next_scene == "hallway"
        assert outcome.combat is None
        assert inventory.has("rusty_key")
        assert graph.has_flag("took_key")

    def test_unmet_condition_is_noop(self, graph: SceneGraph, inventory: Inventory, player: Player) -> None:
        """Test a gated choice returns nothing when its condition fails."""
        graph.enter("entrance")

        outcome = graph.resolve_choice(2, player)

        assert outcome.is_empty
        assert outcome.next_scene is None

    def test_met_condition(self, graph: SceneGraph, inventory: Inventory, player: Player) -> None:
        """Test the same choice resolves once the item is owned."""
        inventory.add("rusty_key")
        graph.enter("entrance")

        assert graph.resolve_choice(2, player).next_scene == "cellar"

    @pytest.mark.parametrize("index", [-1, 4, 99])
    def test_out_of_range_index(self, graph: SceneGraph, player: Player, index: int) -> None:
        """Test invalid indexes resolve to nothing."""
        graph.enter("entrance")

        assert graph.resolve_choice(index, player).is_empty

    def test_no_current_scene(self, graph: SceneGraph, player: Player) -> None:
        """Test resolving before entering any scene."""
        assert graph.resolve_choice(0, player).is_empty

    def test_skill_check_success_branch(
        self,
        graph: SceneGraph,
        scripted_rng,
        recorder,
        player: Player,
    ) -> None:
        """Test a passed check follows the success branch."""
        graph.enter("entrance")
        scripted_rng.queue(10)

        outcome = graph.resolve_choice(1, player)

        assert outcome.next_scene == "cellar"
        narrative = [log for log in recorder.of(EventName.LOG_MESSAGE) if log.type == LogType.NARRATIVE]
        assert [log.text for log in narrative] == ["The door gives way."]

    def test_skill_check_failure_branch(
        self,
        graph: SceneGraph,
        scripted_rng,
        recorder,
        player: Player,
    ) -> None:
        """Test a failed check applies the failure branch damage."""
        graph.enter("entrance")
        scripted_rng.queue(3)

        outcome = graph.resolve_choice(1, player)

        assert outcome.is_empty
        assert player.hp == 18
        (changed,) = recorder.of(EventName.PLAYER_CHANGED)
        assert changed.player.hp == 18

    def test_missing_branch_falls_through(
        self,
        event_bus: EventBus,
        scripted_rng,
        inventory: Inventory,
        player: Player,
    ) -> None:
        """Test a check without the chosen branch uses the choice's own effects."""
        scenes = AdventurePackage.model_validate(
            {
                "manifest": {"title": "T", "startScene": "a"},
                "player": {"name": "P", "hp": 5, "maxHp": 5},
                "scenes": {
                    "a": {
                        "title": "A",
                        "text": "",
                        "choices": [
                            {
                                "text": "Climb",
                                "skillCheck": {"skill": "dexterity", "dc": 30},
                                "success": {"nextScene": "top"},
                                "nextScene": "bottom",
                            }
                        ],
                    },
                    "top": {"title": "Top"},
                    "bottom": {"title": "Bottom"},
                },
            }
        ).scenes
        check = AbilityCheck(DiceRoller(event_bus, rng=scripted_rng), event_bus)
        graph = SceneGraph(event_bus, check, inventory, scenes)
        graph.enter("a")
        scripted_rng.queue(1)

        assert graph.resolve_choice(0, player).next_scene == "bottom"

    def test_choice_with_combat(self, graph: SceneGraph, player: Player) -> None:
        """Test a choice may lead straight into combat."""
        graph.enter("hallway")

        outcome = graph.resolve_choice(1, player)

        assert outcome.next_scene is None
        assert outcome.combat is not None
        assert outcome.combat.enemies == ["rat"]


class TestFlags:
    """Tests for the flag set."""

    def test_flags_are_per_instance(self, graph: SceneGraph, package: AdventurePackage) -> None:
        """Test loading scenes starts a fresh flag set."""
        graph.set_flag("met_bram")
        assert graph.has_flag("met_bram")
        assert graph.flags == frozenset({"met_bram"})

        graph.load_scenes(package.scenes)

        assert not graph.has_flag("met_bram")
        assert graph.current_scene is None
