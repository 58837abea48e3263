"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the adventure engine test suite.
"""

from __future__ import annotations

import json
import random
from collections import deque
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import pytest

from adventure_engine.core.config import GameSettings, Settings
from adventure_engine.engine.events import Event, EventBus, EventName
from adventure_engine.models.adventure import AdventurePackage, NarrativeTemplate
from adventure_engine.models.conversation import (
    ChatMessage,
    ChatResponse,
    MessageRole,
    ToolCallRequest,
)
from adventure_engine.models.entities import Player


if TYPE_CHECKING:
    from collections.abc import Generator

    from adventure_engine.engine.game_engine import GameEngine


# =============================================================================
# Test Doubles
# =============================================================================


class ScriptedRandom(random.Random):
    """Random generator that returns queued values from ``randint``.

    Every die roll in the engine goes through ``randint``, so queueing the
    expected faces makes a whole combat deterministic.
    """

    def __init__(self) -> None:
        super().__init__(0)
        self._queue: deque[int] = deque()

    def queue(self, *values: int) -> ScriptedRandom:
        self._queue.extend(values)
        return self

    @property
    def remaining(self) -> int:
        return len(self._queue)

    def randint(self, a: int, b: int) -> int:
        if not self._queue:
            raise AssertionError(f"No scripted roll left for randint({a}, {b})")
        value = self._queue.popleft()
        if not a <= value <= b:
            raise AssertionError(f"Scripted roll {value} outside [{a}, {b}]")
        return value


class EventRecorder:
    """Records every event published on a bus, in order."""

    def __init__(self, bus: EventBus) -> None:
        self.events: list[Event] = []
        for name in EventName:
            bus.subscribe(name, self.events.append)

    def of(self, name: EventName) -> list[Any]:
        return [event for event in self.events if event.event_name is name]

    def names(self) -> list[EventName]:
        return [event.event_name for event in self.events]

    def log_texts(self) -> list[str]:
        return [event.text for event in self.of(EventName.LOG_MESSAGE)]

    def clear(self) -> None:
        self.events.clear()


class FakeNarrativeClient:
    """Scripted stand-in for the narrative service.

    Responses are queued in order; each ``complete`` call pops one. A
    queued exception is raised instead of returned.
    """

    def __init__(self) -> None:
        self._responses: deque[ChatMessage | Exception] = deque()
        self.requests: list[tuple[ChatMessage, ...]] = []
        self.tools: list[Sequence[dict[str, Any]]] = []

    def complete(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[dict[str, Any]],
    ) -> ChatResponse:
        self.requests.append(tuple(messages))
        self.tools.append(tools)
        if not self._responses:
            raise AssertionError("No scripted narrative response left")
        item = self._responses.popleft()
        if isinstance(item, Exception):
            raise item
        return ChatResponse(message=item, finish_reason="stop", model="fake-model")

    @property
    def pending(self) -> int:
        return len(self._responses)

    def queue_message(self, message: ChatMessage) -> FakeNarrativeClient:
        self._responses.append(message)
        return self

    def queue_reply(self, narrative: str, choices: Sequence[str] = ()) -> FakeNarrativeClient:
        content = json.dumps({"narrative": narrative, "choices": list(choices)})
        return self.queue_message(ChatMessage(role=MessageRole.ASSISTANT, content=content))

    def queue_text(self, content: str | None) -> FakeNarrativeClient:
        return self.queue_message(ChatMessage(role=MessageRole.ASSISTANT, content=content))

    def queue_tool_calls(self, *calls: tuple[str, str, str]) -> FakeNarrativeClient:
        """Queue an assistant message requesting ``(id, name, arguments)`` calls."""
        return self.queue_message(
            ChatMessage(
                role=MessageRole.ASSISTANT,
                content=None,
                tool_calls=[
                    ToolCallRequest(id=call_id, name=name, arguments=arguments)
                    for call_id, name, arguments in calls
                ],
            )
        )

    def queue_error(self, error: Exception) -> FakeNarrativeClient:
        self._responses.append(error)
        return self


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache and log context before and after each test."""
    from adventure_engine.core.config import clear_settings_cache
    from adventure_engine.core.logging import clear_context

    clear_settings_cache()
    yield
    clear_settings_cache()
    clear_context()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "ADVENTURE_ENGINE_API_KEY": "test-api-key",
        "ADVENTURE_ENGINE_MODEL": "test-model",
        "ADVENTURE_ENGINE_DEBUG": "true",
        "ADVENTURE_ENGINE_LOG_LEVEL": "DEBUG",
        "ADVENTURE_ENGINE_GAME_FLEE_DC": "12",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def settings(tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Default settings, isolated from any local .env file."""
    monkeypatch.chdir(tmp_path)
    return Settings(game=GameSettings())


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def scripted_rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(event_bus: EventBus) -> EventRecorder:
    return EventRecorder(event_bus)


@pytest.fixture
def engine(settings: Settings, event_bus: EventBus, scripted_rng: ScriptedRandom) -> GameEngine:
    """A GameEngine whose every roll comes from ``scripted_rng``."""
    from adventure_engine.engine.game_engine import GameEngine

    return GameEngine(settings=settings, event_bus=event_bus, rng=scripted_rng)


@pytest.fixture
def fake_client() -> FakeNarrativeClient:
    return FakeNarrativeClient()


# =============================================================================
# Adventure Fixtures
# =============================================================================


@pytest.fixture
def player_data() -> dict[str, Any]:
    """Provide a level 1 fighter with STR 14 and DEX 14 (+2 each)."""
    return {
        "name": "Ash",
        "level": 1,
        "hp": 20,
        "maxHp": 20,
        "ac": 12,
        "stats": {
            "strength": 14,
            "dexterity": 14,
            "constitution": 12,
            "intelligence": 10,
            "wisdom": 10,
            "charisma": 8,
        },
        "attacks": [{"name": "Shortsword", "damage": "1d6+2", "stat": "strength"}],
        "inventory": ["healing_potion"],
    }


@pytest.fixture
def adventure_data(player_data: dict[str, Any]) -> dict[str, Any]:
    """Provide a small adventure in the camelCase asset format."""
    return {
        "manifest": {"title": "The Cellar", "startScene": "entrance"},
        "player": player_data,
        "items": {
            "healing_potion": {
                "name": "Healing Potion",
                "description": "Restores 8 HP",
                "consumable": True,
                "effect": {"heal": 8},
            },
            "rusty_key": {"name": "Rusty Key", "description": "Opens the cellar door"},
            "torch": {"name": "Torch", "description": "Lights the way"},
        },
        "enemies": {
            "rat": {
                "name": "Giant Rat",
                "hp": 4,
                "ac": 10,
                "xp": 25,
                "stats": {"dexterity": 10},
                "attacks": [{"name": "Bite", "damage": "1d4", "toHit": 2}],
            },
            "goblin": {
                "name": "Goblin",
                "hp": 7,
                "ac": 13,
                "xp": 50,
                "stats": {"dexterity": 10},
                "attacks": [{"name": "Scimitar", "damage": "1d6", "toHit": 4}],
            },
        },
        "scenes": {
            "entrance": {
                "title": "Cellar Entrance",
                "text": "A heavy door blocks the stairs down.",
                "choices": [
                    {
                        "text": "Pick up the key",
                        "addItem": "rusty_key",
                        "setFlag": "took_key",
                        "nextScene": "hallway",
                    },
                    {
                        "text": "Force the door",
                        "skillCheck": {"skill": "strength", "dc": 12},
                        "success": {"text": "The door gives way.", "nextScene": "cellar"},
                        "failure": {"text": "You bruise your shoulder.", "damage": 2},
                    },
                    {
                        "text": "Unlock the door",
                        "condition": {"hasItem": "rusty_key"},
                        "nextScene": "cellar",
                    },
                    {"text": "Walk away", "nextScene": "ending"},
                ],
            },
            "hallway": {
                "title": "Hallway",
                "text": "Something scratches inside a crate.",
                "choices": [
                    {"text": "Go back", "nextScene": "entrance"},
                    {
                        "text": "Kick the crate",
                        "combat": {
                            "enemies": ["rat"],
                            "onVictory": "hallway_clear",
                            "onDefeat": "game_over",
                        },
                    },
                ],
            },
            "hallway_clear": {"title": "Quiet Hallway", "text": "The rat is gone.", "choices": []},
            "cellar": {
                "title": "Cellar",
                "text": "A goblin looks up from its meal.",
                "combat": {"enemies": ["goblin"], "onVictory": "treasure", "onDefeat": "game_over"},
                "choices": [],
            },
            "treasure": {"title": "Treasure", "text": "Gold!", "victory": True},
            "game_over": {"title": "Darkness", "text": "You fall.", "gameOver": True},
            "ending": {"title": "Daylight", "text": "You leave the cellar behind."},
        },
    }


@pytest.fixture
def package(adventure_data: dict[str, Any]) -> AdventurePackage:
    return AdventurePackage.model_validate(adventure_data)


@pytest.fixture
def player(player_data: dict[str, Any]) -> Player:
    return Player.model_validate(player_data)


@pytest.fixture
def template_data() -> dict[str, Any]:
    """Provide a narrative template brief."""
    return {
        "title": "The Goblin Warren",
        "setting": "A warren of tunnels beneath the hills",
        "goal": "Rescue the miller's daughter",
        "tone": "grim but hopeful",
        "npcs": [
            {"name": "Old Bram", "description": "The miller", "personality": "anxious"},
        ],
        "available_enemies": ["goblin", "rat"],
        "available_items": ["healing_potion", "torch"],
        "opening_prompt": "",
        "rules_notes": None,
    }


@pytest.fixture
def template(template_data: dict[str, Any]) -> NarrativeTemplate:
    return NarrativeTemplate.model_validate(template_data)
