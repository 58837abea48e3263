"""Tests for entity and adventure models."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from adventure_engine.core.exceptions import UnknownAbilityError
from adventure_engine.models import (
    AbilityScores,
    AdventurePackage,
    AttackDefinition,
    EnemyDefinition,
    NarrativeTemplate,
    Player,
    ability_modifier,
)


class TestAbilityScores:
    """Tests for AbilityScores."""

    def test_defaults(self) -> None:
        """Test every ability defaults to 10."""
        scores = AbilityScores()

        assert scores.model_dump() == {
            "strength": 10,
            "dexterity": 10,
            "constitution": 10,
            "intelligence": 10,
            "wisdom": 10,
            "charisma": 10,
        }

    def test_get_and_modifier(self) -> None:
        """Test lookup by name."""
        scores = AbilityScores(dexterity=14, charisma=8)

        assert scores.get("dexterity") == 14
        assert scores.modifier("dexterity") == 2
        assert scores.modifier("charisma") == -1

    def test_unknown_ability(self) -> None:
        """Test lookup of an unknown ability."""
        with pytest.raises(UnknownAbilityError):
            AbilityScores().get("luck")

    @pytest.mark.parametrize(("score", "expected"), [(8, -1), (10, 0), (20, 5), (3, -4)])
    def test_ability_modifier(self, score: int, expected: int) -> None:
        """Test the modifier formula."""
        assert ability_modifier(score) == expected


class TestPlayer:
    """Tests for the Player model."""

    def test_camel_case_aliases(self, player_data: dict[str, Any]) -> None:
        """Test asset keys map onto snake_case fields."""
        player = Player.model_validate(player_data)

        assert player.max_hp == 20
        assert player.attacks[0].stat == "strength"
        assert player.inventory == ["healing_potion"]

    def test_hp_above_max_rejected(self) -> None:
        """Test hp may not exceed max_hp."""
        with pytest.raises(ValidationError):
            Player(name="Ash", hp=25, max_hp=20)

    def test_damage_floors_at_zero(self) -> None:
        """Test damage never takes hp below zero."""
        player = Player(name="Ash", hp=5, max_hp=20)

        lost = player.apply_damage(8)

        assert lost == 5
        assert player.hp == 0
        assert player.is_defeated

    def test_healing_caps_at_max(self) -> None:
        """Test healing never exceeds max_hp."""
        player = Player(name="Ash", hp=15, max_hp=20)

        assert player.apply_healing(8) == 5
        assert player.hp == 20
        assert player.apply_healing(8) == 0

    def test_negative_amounts_ignored(self) -> None:
        """Test negative damage or healing changes nothing."""
        player = Player(name="Ash", hp=10, max_hp=20)

        assert player.apply_damage(-3) == 0
        assert player.apply_healing(-3) == 0
        assert player.hp == 10

    def test_status_snapshot(self, player: Player) -> None:
        """Test the published snapshot."""
        status = player.status()

        assert status.hp == 20
        assert status.max_hp == 20
        assert status.stats["dexterity"] == 14


class TestEnemies:
    """Tests for enemy templates and instances."""

    @pytest.fixture
    def goblin(self) -> EnemyDefinition:
        return EnemyDefinition(
            id="goblin",
            name="Goblin",
            hp=7,
            ac=13,
            xp=50,
            attacks=[AttackDefinition.model_validate({"name": "Scimitar", "damage": "1d6", "toHit": 4})],
        )

    def test_instantiate_clones_template(self, goblin: EnemyDefinition) -> None:
        """Test instances are independent copies with indexed ids."""
        first = goblin.instantiate(0)
        second = goblin.instantiate(1)

        assert first.instance_id == "goblin_0"
        assert second.instance_id == "goblin_1"
        assert first.current_hp == 7
        assert first.definition is not goblin
        assert first.definition.attacks[0].to_hit == 4

    def test_damage_leaves_template_untouched(self, goblin: EnemyDefinition) -> None:
        """Test damaging an instance never changes the template."""
        enemy = goblin.instantiate(0)

        enemy.take_damage(100)

        assert enemy.current_hp == 0
        assert enemy.is_defeated
        assert goblin.hp == 7
        assert goblin.instantiate(1).current_hp == 7

    def test_template_is_frozen(self, goblin: EnemyDefinition) -> None:
        """Test templates cannot be mutated."""
        with pytest.raises(ValidationError):
            goblin.hp = 1  # type: ignore[misc]


class TestAdventurePackage:
    """Tests for package and template parsing."""

    def test_ids_injected_from_keys(self, package: AdventurePackage) -> None:
        """Test table entries without an id take their key."""
        assert package.scenes["entrance"].id == "entrance"
        assert package.enemies["goblin"].id == "goblin"
        assert package.items["rusty_key"].id == "rusty_key"

    def test_scene_aliases(self, package: AdventurePackage) -> None:
        """Test scene asset keys parse."""
        entrance = package.scenes["entrance"]

        assert package.manifest.start_scene == "entrance"
        assert entrance.choices[1].skill_check is not None
        assert entrance.choices[1].skill_check.dc == 12
        assert entrance.choices[1].failure is not None
        assert entrance.choices[1].failure.damage == 2
        assert entrance.choices[2].condition is not None
        assert entrance.choices[2].condition.has_item == "rusty_key"
        assert package.scenes["cellar"].combat is not None
        assert package.scenes["cellar"].combat.on_victory == "treasure"
        assert package.scenes["game_over"].game_over is True

    def test_template_blank_fields(self, template: NarrativeTemplate) -> None:
        """Test blank opening prompt and rules notes become None."""
        assert template.opening_prompt is None
        assert template.rules_notes is None
        assert template.npcs[0].name == "Old Bram"
