"""Game engine: rules, scene flow, combat and the narrator's tools.

Submodules:
    events: Typed event payloads and the synchronous event bus
    dice: Dice rolling over a per-session random generator
    checks: Ability checks against a difficulty class
    inventory: Owned items and consumable use
    scenes: Scene graph, story flags and choice resolution
    combat: Turn-based combat state machine
    tools: Function-calling tools exposed to the narrator model
    game_engine: The session object tying everything together

Example:
    >>> from adventure_engine.engine import GameEngine, EventName
    >>>
    >>> engine = GameEngine()
    >>> engine.event_bus.subscribe(EventName.COMBAT_TURN, show_combat_panel)
    >>> engine.start_adventure(package)
"""

from __future__ import annotations

# =============================================================================
# Events
# =============================================================================
from adventure_engine.engine.events import (
    CombatEnded,
    CombatStarted,
    CombatTurn,
    DiceRolled,
    Event,
    EventBus,
    EventHandler,
    EventName,
    InventoryChanged,
    InventoryEntry,
    LogMessage,
    LogType,
    NarrativeError,
    NarrativeLoading,
    NarrativePlayerInput,
    NarrativeScene,
    PlayerChanged,
    SceneEntered,
)

# =============================================================================
# Rules
# =============================================================================
from adventure_engine.engine.dice import DICE_PATTERN, DiceResult, DiceRoller
from adventure_engine.engine.checks import AbilityCheck, CheckResult
from adventure_engine.engine.inventory import Inventory, ItemUseResult

# =============================================================================
# Scene Flow & Combat
# =============================================================================
from adventure_engine.engine.scenes import SceneGraph
from adventure_engine.engine.combat import (
    CombatantKind,
    CombatEngine,
    CombatPhase,
    InitiativeEntry,
)

# =============================================================================
# Narrator Tools
# =============================================================================
from adventure_engine.engine.tools import (
    TOOL_SCHEMAS,
    TOOL_SPECS,
    ToolDispatcher,
    ToolHost,
    ToolName,
    ToolOutcome,
    ToolSpec,
)

# =============================================================================
# Session
# =============================================================================
from adventure_engine.engine.game_engine import GameEngine


__all__ = [
    # Events
    "EventName",
    "LogType",
    "Event",
    "EventHandler",
    "EventBus",
    "SceneEntered",
    "CombatStarted",
    "CombatTurn",
    "CombatEnded",
    "InventoryEntry",
    "InventoryChanged",
    "PlayerChanged",
    "LogMessage",
    "DiceRolled",
    "NarrativeScene",
    "NarrativePlayerInput",
    "NarrativeLoading",
    "NarrativeError",
    # Rules
    "DICE_PATTERN",
    "DiceResult",
    "DiceRoller",
    "AbilityCheck",
    "CheckResult",
    "Inventory",
    "ItemUseResult",
    # Scene flow & combat
    "SceneGraph",
    "CombatPhase",
    "CombatantKind",
    "InitiativeEntry",
    "CombatEngine",
    # Tools
    "ToolName",
    "ToolSpec",
    "TOOL_SPECS",
    "TOOL_SCHEMAS",
    "ToolOutcome",
    "ToolHost",
    "ToolDispatcher",
    # Session
    "GameEngine",
]
