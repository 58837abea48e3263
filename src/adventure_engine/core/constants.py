"""Application-wide constants for the adventure engine.

This module defines rules constants, narrative-service defaults and the
fixed text fragments used when talking to the narrator model.
"""

from __future__ import annotations

# =============================================================================
# Rules Constants
# =============================================================================

ABILITY_NAMES: tuple[str, ...] = (
    "strength",
    "dexterity",
    "constitution",
    "intelligence",
    "wisdom",
    "charisma",
)
"""The six ability scores, in character-sheet order."""

DEFAULT_ABILITY_SCORE = 10
"""Score assumed for any ability an adventure file leaves out (modifier +0)."""

D20 = 20
"""Die used for checks, attacks, initiative and flee attempts."""

FLEE_DC = 10
"""Difficulty a ``1d20 + DEX`` roll must meet to escape combat."""

MAX_DICE = 100
"""Most dice a single expression may roll."""

# =============================================================================
# Narrative Service Defaults
# =============================================================================

DEFAULT_BASE_URL = "https://api.deepseek.com/v1"
"""OpenAI-compatible endpoint used when none is configured."""

DEFAULT_MODEL = "deepseek-chat"
"""Model identifier used when none is configured."""

DEFAULT_TEMPERATURE = 0.8
"""Sampling temperature for narrative generation."""

DEFAULT_MAX_TOKENS = 1024
"""Completion token cap per request."""

MAX_TOOL_ROUNDS = 24
"""Safety limit on model round-trips in one send loop."""

# =============================================================================
# Narrator Prompt Fragments
# =============================================================================

DEFAULT_OPENING_PROMPT = "Begin the adventure."
"""First user message when the story template does not provide one."""

DEFAULT_RULES_NOTES = (
    "Use D&D 5e style rules. Ability checks are d20 + ability modifier vs DC."
)
"""Rules section used when the story template has no ``rules_notes``."""

TOOL_USAGE_NOTES = (
    "You can use the game engine through function calling. Whenever the story "
    "needs an ability check, a fight or an item change, call the matching tool "
    "instead of inventing the result."
)
"""Instruction telling the narrator to resolve mechanics through tools."""

COMBAT_SUMMARY_PREFIX = "[System message] Combat ended: "
"""Prefix of the user message injected when a narrated combat finishes."""


__all__ = [
    "ABILITY_NAMES",
    "DEFAULT_ABILITY_SCORE",
    "D20",
    "FLEE_DC",
    "MAX_DICE",
    "DEFAULT_BASE_URL",
    "DEFAULT_MODEL",
    "DEFAULT_TEMPERATURE",
    "DEFAULT_MAX_TOKENS",
    "MAX_TOOL_ROUNDS",
    "DEFAULT_OPENING_PROMPT",
    "DEFAULT_RULES_NOTES",
    "TOOL_USAGE_NOTES",
    "COMBAT_SUMMARY_PREFIX",
]
