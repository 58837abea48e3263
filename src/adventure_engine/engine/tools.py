"""Game mechanics exposed to the narrator model as function-calling tools.

The model asks for mechanics; Python resolves them. Each tool reads only
the arguments its handler needs, applies one effect to the game state and
returns a small JSON-serializable result. :meth:`ToolDispatcher.dispatch`
never raises: unknown tools, bad arguments and handler failures all come
back as an ``{"error": ...}`` result so one bad call cannot abort a turn
made of several calls.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol, assert_never

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from adventure_engine.core.constants import ABILITY_NAMES
from adventure_engine.core.exceptions import AdventureEngineError, ToolExecutionError
from adventure_engine.core.logging import get_logger
from adventure_engine.engine.checks import AbilityCheck
from adventure_engine.engine.combat import CombatEngine
from adventure_engine.engine.dice import DiceRoller
from adventure_engine.engine.events import EventBus, LogMessage, LogType, PlayerChanged
from adventure_engine.engine.inventory import Inventory
from adventure_engine.engine.scenes import SceneGraph
from adventure_engine.models.entities import Player


logger = get_logger(__name__)


class ToolName(StrEnum):
    """Every tool the narrator may call."""

    SKILL_CHECK = "skill_check"
    START_COMBAT = "start_combat"
    ADD_ITEM = "add_item"
    REMOVE_ITEM = "remove_item"
    DEAL_DAMAGE = "deal_damage"
    HEAL_PLAYER = "heal_player"
    ROLL_DICE = "roll_dice"
    SET_FLAG = "set_flag"
    CHECK_FLAG = "check_flag"
    CHECK_INVENTORY = "check_inventory"
    GET_PLAYER_STATUS = "get_player_status"


# =============================================================================
# Tool Schemas
# =============================================================================


@dataclass(frozen=True)
class ToolSpec:
    """Declaration of one tool as advertised to the model."""

    name: ToolName
    description: str
    parameters: dict[str, Any]

    def to_openai_schema(self) -> dict[str, Any]:
        """Convert to OpenAI function schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


def _object(properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


_ITEM_ID = {"item_id": {"type": "string", "description": "Item id"}}
_FLAG_NAME = {"flag_name": {"type": "string", "description": "Flag name"}}

TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        ToolName.SKILL_CHECK,
        "Perform an ability check: roll d20 + ability modifier and compare it to the DC.",
        _object(
            {
                "skill": {
                    "type": "string",
                    "enum": list(ABILITY_NAMES),
                    "description": "Ability to check",
                },
                "dc": {"type": "number", "description": "Difficulty Class"},
            },
            ["skill", "dc"],
        ),
    ),
    ToolSpec(
        ToolName.START_COMBAT,
        "Start a fight with the listed enemies. The combat system takes over until it ends.",
        _object(
            {
                "enemy_ids": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Enemy ids",
                },
            },
            ["enemy_ids"],
        ),
    ),
    ToolSpec(
        ToolName.ADD_ITEM,
        "Add an item to the player's inventory.",
        _object(_ITEM_ID, ["item_id"]),
    ),
    ToolSpec(
        ToolName.REMOVE_ITEM,
        "Remove an item from the player's inventory.",
        _object(_ITEM_ID, ["item_id"]),
    ),
    ToolSpec(
        ToolName.DEAL_DAMAGE,
        "Deal damage to the player.",
        _object({"amount": {"type": "number", "description": "Damage amount"}}, ["amount"]),
    ),
    ToolSpec(
        ToolName.HEAL_PLAYER,
        "Heal the player, restoring hit points.",
        _object({"amount": {"type": "number", "description": "Healing amount"}}, ["amount"]),
    ),
    ToolSpec(
        ToolName.ROLL_DICE,
        'Roll dice using an expression such as "2d6+3".',
        _object(
            {"expression": {"type": "string", "description": 'Dice expression, e.g. "1d20", "2d6+3"'}},
            ["expression"],
        ),
    ),
    ToolSpec(
        ToolName.SET_FLAG,
        "Set a story flag to track plot progress.",
        _object(_FLAG_NAME, ["flag_name"]),
    ),
    ToolSpec(
        ToolName.CHECK_FLAG,
        "Check whether a story flag has been set.",
        _object(_FLAG_NAME, ["flag_name"]),
    ),
    ToolSpec(
        ToolName.CHECK_INVENTORY,
        "Check whether the player owns an item.",
        _object(_ITEM_ID, ["item_id"]),
    ),
    ToolSpec(
        ToolName.GET_PLAYER_STATUS,
        "Get the player's current status (HP, abilities, inventory).",
        {"type": "object", "properties": {}},
    ),
)

TOOL_SCHEMAS: list[dict[str, Any]] = [spec.to_openai_schema() for spec in TOOL_SPECS]
"""The fixed tool list sent with every narrative-service request."""


# =============================================================================
# Arguments & Results
# =============================================================================


class _ToolArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SkillCheckArgs(_ToolArgs):
    skill: str
    dc: int


class StartCombatArgs(_ToolArgs):
    enemy_ids: list[str] = Field(min_length=1)


class ItemArgs(_ToolArgs):
    item_id: str


class AmountArgs(_ToolArgs):
    amount: int = Field(ge=0)


class RollDiceArgs(_ToolArgs):
    expression: str


class FlagArgs(_ToolArgs):
    flag_name: str


@dataclass(frozen=True)
class ToolOutcome:
    """Result of one dispatched tool call.

    Attributes:
        tool_name: Name as requested by the model.
        data: Handler result on success.
        error: Error text on failure.
    """

    tool_name: str
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_payload(self) -> dict[str, Any]:
        if self.error is not None:
            return {"error": self.error}
        return dict(self.data)

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), ensure_ascii=False)


class ToolHost(Protocol):
    """The game state a dispatcher acts on. Implemented by the engine."""

    player: Player
    in_combat: bool

    @property
    def event_bus(self) -> EventBus: ...

    @property
    def dice(self) -> DiceRoller: ...

    @property
    def ability_check(self) -> AbilityCheck: ...

    @property
    def inventory(self) -> Inventory: ...

    @property
    def scene_graph(self) -> SceneGraph: ...

    @property
    def combat(self) -> CombatEngine: ...


# =============================================================================
# Dispatcher
# =============================================================================


class ToolDispatcher:
    """Maps tool calls onto game state mutations."""

    def __init__(self, host: ToolHost) -> None:
        self._host = host

    def dispatch(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolOutcome:
        """Execute one tool call.

        Args:
            name: Tool name as sent by the model.
            arguments: Parsed JSON arguments; ``None`` counts as empty.

        Returns:
            The tool outcome. Never raises.
        """
        try:
            tool = ToolName(name)
        except ValueError:
            logger.warning("Unknown tool requested", tool_name=name)
            return ToolOutcome(tool_name=name, error=f"Unknown tool: {name}")

        args = dict(arguments or {})
        logger.info("Executing tool", tool_name=tool.value, args=args)
        try:
            data = self._run(tool, args)
        except ValidationError as exc:
            logger.warning("Invalid tool arguments", tool_name=tool.value, errors=exc.error_count())
            return ToolOutcome(tool_name=name, error=f"Invalid arguments for {tool.value}: {exc}")
        except AdventureEngineError as exc:
            logger.warning("Tool failed", tool_name=tool.value, error=exc.message)
            return ToolOutcome(tool_name=name, error=exc.message)
        except Exception as exc:
            logger.exception("Tool crashed", tool_name=tool.value)
            return ToolOutcome(tool_name=name, error=str(exc) or type(exc).__name__)
        return ToolOutcome(tool_name=name, data=data)

    def _run(self, tool: ToolName, args: dict[str, Any]) -> dict[str, Any]:
        match tool:
            case ToolName.SKILL_CHECK:
                return self._skill_check(SkillCheckArgs.model_validate(args))
            case ToolName.START_COMBAT:
                return self._start_combat(StartCombatArgs.model_validate(args))
            case ToolName.ADD_ITEM:
                return self._add_item(ItemArgs.model_validate(args))
            case ToolName.REMOVE_ITEM:
                return self._remove_item(ItemArgs.model_validate(args))
            case ToolName.DEAL_DAMAGE:
                return self._deal_damage(AmountArgs.model_validate(args))
            case ToolName.HEAL_PLAYER:
                return self._heal_player(AmountArgs.model_validate(args))
            case ToolName.ROLL_DICE:
                return self._roll_dice(RollDiceArgs.model_validate(args))
            case ToolName.SET_FLAG:
                return self._set_flag(FlagArgs.model_validate(args))
            case ToolName.CHECK_FLAG:
                return self._check_flag(FlagArgs.model_validate(args))
            case ToolName.CHECK_INVENTORY:
                return self._check_inventory(ItemArgs.model_validate(args))
            case ToolName.GET_PLAYER_STATUS:
                return self._get_player_status()
            case _:
                assert_never(tool)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _skill_check(self, args: SkillCheckArgs) -> dict[str, Any]:
        result = self._host.ability_check.check(self._host.player, args.skill, args.dc)
        return {
            "success": result.success,
            "roll": result.roll,
            "modifier": result.modifier,
            "total": result.total,
            "dc": result.difficulty,
            "skill": result.ability,
        }

    def _start_combat(self, args: StartCombatArgs) -> dict[str, Any]:
        host = self._host
        if host.combat.is_active:
            raise ToolExecutionError(
                "A combat is already in progress", tool_name=ToolName.START_COMBAT.value
            )
        # Set before combat runs its first turns so scene and narrative
        # input are rejected while it resolves.
        host.in_combat = True
        try:
            host.combat.start(host.player, args.enemy_ids)
        except Exception:
            host.in_combat = False
            raise
        return {"started": True, "enemies": list(args.enemy_ids)}

    def _add_item(self, args: ItemArgs) -> dict[str, Any]:
        self._host.inventory.add(args.item_id)
        return {"added": True, "item_id": args.item_id}

    def _remove_item(self, args: ItemArgs) -> dict[str, Any]:
        removed = self._host.inventory.remove(args.item_id)
        return {"removed": removed, "item_id": args.item_id}

    def _deal_damage(self, args: AmountArgs) -> dict[str, Any]:
        player = self._host.player
        hp_before = player.hp
        player.apply_damage(args.amount)
        self._host.event_bus.publish(PlayerChanged(player=player.status()))
        self._host.event_bus.publish(
            LogMessage(type=LogType.COMBAT, text=f"Took {args.amount} damage")
        )
        result = {"damage": args.amount, "hp_before": hp_before, "hp_after": player.hp}
        self._host.combat.check_defeat()
        return result

    def _heal_player(self, args: AmountArgs) -> dict[str, Any]:
        player = self._host.player
        hp_before = player.hp
        healed = player.apply_healing(args.amount)
        self._host.event_bus.publish(PlayerChanged(player=player.status()))
        self._host.event_bus.publish(
            LogMessage(type=LogType.ITEM_USE, text=f"Restored {healed} HP")
        )
        return {"healed": healed, "hp_before": hp_before, "hp_after": player.hp}

    def _roll_dice(self, args: RollDiceArgs) -> dict[str, Any]:
        result = self._host.dice.roll(args.expression)
        return {
            "expression": result.expression,
            "rolls": list(result.rolls),
            "modifier": result.modifier,
            "total": result.total,
        }

    def _set_flag(self, args: FlagArgs) -> dict[str, Any]:
        self._host.scene_graph.set_flag(args.flag_name)
        return {"set": True, "flag_name": args.flag_name}

    def _check_flag(self, args: FlagArgs) -> dict[str, Any]:
        return {"flag_name": args.flag_name, "has_flag": self._host.scene_graph.has_flag(args.flag_name)}

    def _check_inventory(self, args: ItemArgs) -> dict[str, Any]:
        return {"item_id": args.item_id, "has_item": self._host.inventory.has(args.item_id)}

    def _get_player_status(self) -> dict[str, Any]:
        player = self._host.player
        return {
            "name": player.name,
            "level": player.level,
            "hp": player.hp,
            "max_hp": player.max_hp,
            "ac": player.ac,
            "stats": player.stats.model_dump(),
            "inventory": self._host.inventory.item_ids,
        }


__all__ = [
    "ToolName",
    "ToolSpec",
    "TOOL_SPECS",
    "TOOL_SCHEMAS",
    "SkillCheckArgs",
    "StartCombatArgs",
    "ItemArgs",
    "AmountArgs",
    "RollDiceArgs",
    "FlagArgs",
    "ToolOutcome",
    "ToolHost",
    "ToolDispatcher",
]
