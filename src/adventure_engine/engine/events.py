"""Typed publish/subscribe channel between the engine and its observers.

Every event is a frozen pydantic model with a fixed :class:`EventName`.
Components publish events instead of calling each other; presentation
code subscribes and renders. Handlers run synchronously in subscription
order. A failing handler is logged and skipped so the remaining handlers
still see the event.

Example:
    >>> bus = EventBus()
    >>> bus.subscribe(EventName.LOG_MESSAGE, lambda event: print(event.text))
    >>> bus.publish(LogMessage(type=LogType.SYSTEM, text="Adventure started"))
    Adventure started
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

from adventure_engine.core.logging import get_logger
from adventure_engine.models.entities import EnemyStatus, PlayerStatus
from adventure_engine.models.scenes import ChoiceView, CombatDescriptor


logger = get_logger(__name__)


class EventName(StrEnum):
    """Names of every event the engine publishes."""

    SCENE_ENTERED = "scene-entered"
    COMBAT_STARTED = "combat-started"
    COMBAT_TURN = "combat-turn"
    COMBAT_ENDED = "combat-ended"
    INVENTORY_CHANGED = "inventory-changed"
    PLAYER_CHANGED = "player-changed"
    LOG_MESSAGE = "log-message"
    DICE_ROLLED = "dice-rolled"
    NARRATIVE_SCENE = "narrative-scene"
    NARRATIVE_PLAYER_INPUT = "narrative-player-input"
    NARRATIVE_LOADING = "narrative-loading"
    NARRATIVE_ERROR = "narrative-error"


class LogType(StrEnum):
    """Categories of log-message events."""

    SYSTEM = "system"
    COMBAT = "combat"
    SKILL_CHECK = "skill_check"
    INVENTORY = "inventory"
    ITEM_USE = "item_use"
    NARRATIVE = "narrative"


# =============================================================================
# Event Payloads
# =============================================================================


class Event(BaseModel):
    """Base class of all event payloads."""

    model_config = ConfigDict(frozen=True)

    event_name: ClassVar[EventName]


class SceneEntered(Event):
    event_name: ClassVar[EventName] = EventName.SCENE_ENTERED

    id: str
    title: str
    text: str
    choices: list[ChoiceView]
    combat: CombatDescriptor | None = None
    game_over: bool = False
    victory: bool = False


class CombatStarted(Event):
    event_name: ClassVar[EventName] = EventName.COMBAT_STARTED

    enemies: list[EnemyStatus]
    turn_order: list[str]


class CombatTurn(Event):
    """The player is up; combat waits for an attack, flee or item use."""

    event_name: ClassVar[EventName] = EventName.COMBAT_TURN

    type: Literal["player"] = "player"
    enemies: list[EnemyStatus]
    player: PlayerStatus
    round: int = 1


class CombatEnded(Event):
    """Terminal combat event, published exactly once per combat."""

    event_name: ClassVar[EventName] = EventName.COMBAT_ENDED

    victory: bool
    total_xp: int = 0
    fled: bool = False


class InventoryEntry(BaseModel):
    """One owned item unit resolved against the definition table."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    consumable: bool = False
    effect: dict[str, Any] | None = None


class InventoryChanged(Event):
    event_name: ClassVar[EventName] = EventName.INVENTORY_CHANGED

    items: list[InventoryEntry]


class PlayerChanged(Event):
    event_name: ClassVar[EventName] = EventName.PLAYER_CHANGED

    player: PlayerStatus


class LogMessage(Event):
    event_name: ClassVar[EventName] = EventName.LOG_MESSAGE

    type: LogType
    text: str


class DiceRolled(Event):
    event_name: ClassVar[EventName] = EventName.DICE_ROLLED

    expression: str
    rolls: list[int]
    modifier: int
    total: int


class NarrativeScene(Event):
    event_name: ClassVar[EventName] = EventName.NARRATIVE_SCENE

    narrative: str
    choices: list[str] = Field(default_factory=list)


class NarrativePlayerInput(Event):
    event_name: ClassVar[EventName] = EventName.NARRATIVE_PLAYER_INPUT

    text: str


class NarrativeLoading(Event):
    event_name: ClassVar[EventName] = EventName.NARRATIVE_LOADING

    loading: bool


class NarrativeError(Event):
    event_name: ClassVar[EventName] = EventName.NARRATIVE_ERROR

    message: str


# =============================================================================
# Event Bus
# =============================================================================


EventHandler = Callable[[Any], None]


class EventBus:
    """Synchronous publish/subscribe dispatcher keyed by :class:`EventName`."""

    def __init__(self) -> None:
        self._handlers: dict[EventName, list[EventHandler]] = {}

    def subscribe(self, name: EventName, handler: EventHandler) -> None:
        """Register ``handler`` for events named ``name``."""
        self._handlers.setdefault(EventName(name), []).append(handler)

    def unsubscribe(self, name: EventName, handler: EventHandler) -> None:
        """Remove a previously registered handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(EventName(name))
        if handlers and handler in handlers:
            handlers.remove(handler)

    def publish(self, event: Event) -> None:
        """Deliver ``event`` to every handler subscribed to its name.

        Args:
            event: The payload to deliver.
        """
        # Copy so handlers may unsubscribe while being dispatched
        for handler in list(self._handlers.get(event.event_name, ())):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler error",
                    event_name=event.event_name.value,
                    event_payload=event,
                )

    def handler_count(self, name: EventName) -> int:
        return len(self._handlers.get(EventName(name), ()))

    def clear(self) -> None:
        self._handlers.clear()


__all__ = [
    "EventName",
    "LogType",
    "Event",
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
    "EventHandler",
    "EventBus",
]
