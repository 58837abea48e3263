"""Adventure Engine - turn-based text adventures, scripted or narrated.

Python owns the rules: dice, checks, inventory, scene flow and combat.
In narrated mode a language model writes the story and requests mechanics
through tool calls; it never rolls dice or edits state directly.

Example:
    >>> from adventure_engine import AdventurePackage, GameEngine
    >>>
    >>> engine = GameEngine()
    >>> engine.start_adventure(AdventurePackage.model_validate(data))
    >>> engine.make_choice(0)
    >>>
    >>> # Narrated mode
    >>> engine.start_narrative_adventure(package, NarrativeTemplate.model_validate(brief))
    >>> engine.handle_free_input("I light a torch and head down the stairs")

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 schemas for adventure data and the conversation.
    engine: Dice, checks, inventory, scenes, combat, tools and the session.
    dm: Narrator orchestration, prompts and the narrative-service client.
"""

from __future__ import annotations

# Core
from adventure_engine.core.config import Settings, get_settings
from adventure_engine.core.exceptions import AdventureEngineError
from adventure_engine.core.logging import configure_logging, get_logger

# Models
from adventure_engine.models.adventure import AdventurePackage, NarrativeTemplate
from adventure_engine.models.entities import EnemyDefinition, ItemDefinition, Player

# Engine (imported before dm, which builds on it)
from adventure_engine.engine.events import EventBus, EventName
from adventure_engine.engine.game_engine import GameEngine

# Narrator
from adventure_engine.dm.client import NarrativeClient, OpenAIChatClient
from adventure_engine.dm.orchestrator import NarrativeOrchestrator, NarrativeState


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "AdventureEngineError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "AdventurePackage",
    "NarrativeTemplate",
    "Player",
    "EnemyDefinition",
    "ItemDefinition",
    # Engine
    "EventBus",
    "EventName",
    "GameEngine",
    # Narrator
    "NarrativeClient",
    "OpenAIChatClient",
    "NarrativeOrchestrator",
    "NarrativeState",
]
