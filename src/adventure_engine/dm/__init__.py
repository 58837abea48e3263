"""Narrator module.

The narrator model writes the story; Python resolves every mechanic. The
model asks for rolls, damage, items and fights through tool calls, and
never produces a random number or mutates game state itself.
"""

from __future__ import annotations

from .client import NarrativeClient, OpenAIChatClient
from .orchestrator import NarrativeHost, NarrativeOrchestrator, NarrativeState, parse_tool_arguments
from .prompts import (
    NARRATOR_SYSTEM_PROMPT,
    NarrativeReply,
    build_combat_summary,
    build_system_prompt,
    parse_narrative_reply,
)

__all__ = [
    "NarrativeClient",
    "OpenAIChatClient",
    "NarrativeHost",
    "NarrativeOrchestrator",
    "NarrativeState",
    "parse_tool_arguments",
    "NARRATOR_SYSTEM_PROMPT",
    "NarrativeReply",
    "build_combat_summary",
    "build_system_prompt",
    "parse_narrative_reply",
]
