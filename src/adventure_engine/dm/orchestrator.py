"""Narrator orchestration: the request / tool-call / response loop.

The orchestrator owns the conversation history and runs the send loop:
send the history and tool list, dispatch any tool calls, feed their
results back, and repeat until the model answers with plain content. The
final content is parsed into ``{narrative, choices}`` and published as a
``narrative-scene`` event.

When the model starts a combat the loop suspends in ``AWAITING_COMBAT``.
Combat then owns the turn sequence; its ``combat-ended`` event appends a
summary message and resumes the loop.

State machine::

    IDLE --init--> AWAITING_RESPONSE --reply--> AWAITING_INPUT
                         |    ^                      |
             start_combat|    |combat-ended          |input / choice
                         v    |                      v
                   AWAITING_COMBAT            AWAITING_RESPONSE
    AWAITING_RESPONSE --failure--> FAILED --retry / input--> AWAITING_RESPONSE
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from enum import StrEnum
from typing import Any, Protocol

from adventure_engine.core.config import GameSettings, get_settings
from adventure_engine.core.exceptions import (
    AdventureEngineError,
    AIResponseError,
    EmptyResponseError,
)
from adventure_engine.core.logging import get_logger
from adventure_engine.dm.client import NarrativeClient
from adventure_engine.dm.prompts import (
    NarrativeReply,
    build_combat_summary,
    build_system_prompt,
    parse_narrative_reply,
)
from adventure_engine.engine.events import (
    CombatEnded,
    EventName,
    NarrativeError,
    NarrativeLoading,
    NarrativePlayerInput,
    NarrativeScene,
)
from adventure_engine.engine.tools import TOOL_SCHEMAS, ToolDispatcher, ToolHost, ToolName
from adventure_engine.models.adventure import NarrativeTemplate
from adventure_engine.models.conversation import (
    ChatMessage,
    ConversationHistory,
    ToolCallRequest,
)
from adventure_engine.models.entities import EnemyDefinition


logger = get_logger(__name__)


class NarrativeState(StrEnum):
    """Where the narrator loop currently stands."""

    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    AWAITING_INPUT = "awaiting_input"
    AWAITING_COMBAT = "awaiting_combat"
    FAILED = "failed"


class NarrativeHost(ToolHost, Protocol):
    """Game state the orchestrator reads when building prompts."""

    @property
    def enemy_definitions(self) -> Mapping[str, EnemyDefinition]: ...


def parse_tool_arguments(raw: str | None) -> dict[str, Any]:
    """Decode a tool call's JSON argument string.

    Malformed JSON and non-object payloads decode to ``{}``; the handler
    then reports what is missing.
    """
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Unparseable tool arguments", raw_preview=raw[:100])
        return {}
    return parsed if isinstance(parsed, dict) else {}


class NarrativeOrchestrator:
    """Drives the narrator model for one narrated adventure.

    Args:
        host: The engine; provides game state and the event bus.
        client: Narrative service transport.
        dispatcher: Tool dispatcher. Defaults to one bound to ``host``.
        settings: Game settings. Defaults to the application settings.
    """

    def __init__(
        self,
        host: NarrativeHost,
        client: NarrativeClient,
        *,
        dispatcher: ToolDispatcher | None = None,
        settings: GameSettings | None = None,
    ) -> None:
        self._host = host
        self._client = client
        self._dispatcher = dispatcher or ToolDispatcher(host)
        game_settings = settings or get_settings().game
        self._max_rounds = game_settings.max_tool_rounds
        self._default_opening = game_settings.default_opening_prompt

        self._history = ConversationHistory()
        self._state = NarrativeState.IDLE
        self._template: NarrativeTemplate | None = None
        self._pending_outcome: CombatEnded | None = None
        self.last_reply: NarrativeReply | None = None

        self._bus = host.event_bus
        self._bus.subscribe(EventName.COMBAT_ENDED, self._on_combat_ended)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> NarrativeState:
        return self._state

    @property
    def history(self) -> ConversationHistory:
        return self._history

    @property
    def template(self) -> NarrativeTemplate | None:
        return self._template

    @property
    def is_waiting_for_combat(self) -> bool:
        return self._state is NarrativeState.AWAITING_COMBAT

    def close(self) -> None:
        """Stop listening for combat results."""
        self._bus.unsubscribe(EventName.COMBAT_ENDED, self._on_combat_ended)

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    def init(self, template: NarrativeTemplate) -> None:
        """Start a fresh conversation from a story template.

        Builds the system prompt, appends the opening user message and runs
        the send loop.
        """
        self._template = template
        self._history = ConversationHistory()
        self._pending_outcome = None
        self.last_reply = None

        host = self._host
        system_prompt = build_system_prompt(
            template,
            host.player,
            enemies=host.enemy_definitions,
            items=host.inventory.definitions,
            inventory=host.inventory.item_ids,
        )
        self._history.append(ChatMessage.system(system_prompt))
        self._history.append(ChatMessage.user(template.opening_prompt or self._default_opening))

        logger.info("Narrative initialized", title=template.title)
        self._run_loop()

    def handle_free_input(self, text: str | None) -> bool:
        """Send free-text player input.

        Ignored unless the narrator is waiting for input (or recovering from
        a failure), and for blank text.

        Returns:
            True if the input was accepted.
        """
        if self._state not in (NarrativeState.AWAITING_INPUT, NarrativeState.FAILED):
            logger.debug("Input ignored", state=self._state.value)
            return False
        trimmed = (text or "").strip()
        if not trimmed:
            return False

        self._history.append(ChatMessage.user(trimmed))
        self._bus.publish(NarrativePlayerInput(text=trimmed))
        self._run_loop()
        return True

    def handle_choice(self, index: int, choices: Sequence[str] | None = None) -> bool:
        """Send the text of an offered choice as player input.

        Args:
            index: Position of the picked choice.
            choices: Choices shown to the player; defaults to the last reply's.

        Returns:
            True if the choice was accepted.
        """
        if choices is None:
            choices = self.last_reply.choices if self.last_reply else []
        if not 0 <= index < len(choices):
            return False
        return self.handle_free_input(choices[index])

    def retry(self) -> bool:
        """Re-run the send loop on the unchanged history after a failure."""
        if self._state is not NarrativeState.FAILED:
            return False
        logger.info("Retrying narrative request", history=len(self._history))
        self._run_loop()
        return True

    # -------------------------------------------------------------------------
    # Send loop
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        self._state = NarrativeState.AWAITING_RESPONSE
        self._bus.publish(NarrativeLoading(loading=True))

        suspended = False
        try:
            suspended = self._exchange()
        except AdventureEngineError as exc:
            logger.warning("Narrative request failed", error=exc.message)
            self._fail(exc.message)
        except Exception as exc:
            logger.exception("Narrative loop crashed")
            self._fail(str(exc) or type(exc).__name__)

        if not suspended:
            self._bus.publish(NarrativeLoading(loading=False))

    def _exchange(self) -> bool:
        """Talk to the model until it answers or combat takes over.

        Returns:
            True if the loop suspended for combat.
        """
        rounds = 0
        while True:
            if rounds >= self._max_rounds:
                raise AIResponseError(
                    f"Narrator made {rounds} requests without a final answer",
                    details={"max_tool_rounds": self._max_rounds},
                )
            rounds += 1

            response = self._client.complete(self._history.messages, TOOL_SCHEMAS)
            message = response.message
            self._history.append(message)

            if message.tool_calls:
                self._dispatch_tool_calls(message.tool_calls)
                if self._pending_outcome is not None:
                    # Combat finished while its start_combat call was running
                    self._append_combat_summary(self._pending_outcome)
                    self._pending_outcome = None
                    rounds = 0
                if self._host.combat.is_active:
                    self._state = NarrativeState.AWAITING_COMBAT
                    logger.info("Narrative suspended for combat")
                    return True
                continue

            content = (message.content or "").strip()
            if not content:
                raise EmptyResponseError("Narrative service returned an empty message")

            reply = parse_narrative_reply(content)
            self.last_reply = reply
            self._state = NarrativeState.AWAITING_INPUT
            self._bus.publish(NarrativeScene(narrative=reply.narrative, choices=reply.choices))
            return False

    def _dispatch_tool_calls(self, calls: Sequence[ToolCallRequest]) -> None:
        for call in calls:
            arguments = parse_tool_arguments(call.arguments)
            outcome = self._dispatcher.dispatch(call.name, arguments)
            self._history.append(ChatMessage.tool_result(call.id, outcome.to_json()))
            if call.name == ToolName.START_COMBAT and outcome.ok:
                logger.info("Combat started by narrator", enemies=outcome.data.get("enemies"))

    def _append_combat_summary(self, outcome: CombatEnded) -> None:
        summary = build_combat_summary(outcome, self._host.player)
        self._history.append(ChatMessage.user(summary))

    def _fail(self, message: str) -> None:
        self._state = NarrativeState.FAILED
        self._bus.publish(NarrativeError(message=message))

    # -------------------------------------------------------------------------
    # Combat bridge
    # -------------------------------------------------------------------------

    def _on_combat_ended(self, event: CombatEnded) -> None:
        if self._state is NarrativeState.AWAITING_RESPONSE:
            self._pending_outcome = event
            return
        if self._state is not NarrativeState.AWAITING_COMBAT:
            return

        logger.info("Resuming narrative after combat", victory=event.victory, fled=event.fled)
        self._append_combat_summary(event)
        self._run_loop()


__all__ = [
    "NarrativeState",
    "NarrativeHost",
    "parse_tool_arguments",
    "NarrativeOrchestrator",
]
