"""Narrator prompts: the system prompt, combat summaries and reply parsing."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from adventure_engine.core.constants import (
    COMBAT_SUMMARY_PREFIX,
    DEFAULT_RULES_NOTES,
    TOOL_USAGE_NOTES,
)
from adventure_engine.engine.events import CombatEnded
from adventure_engine.models.adventure import NarrativeTemplate
from adventure_engine.models.entities import EnemyDefinition, ItemDefinition, Player


# =============================================================================
# Narrator System Prompt
# =============================================================================


NARRATOR_SYSTEM_PROMPT = """You are the AI narrator (Game Master) of a fantasy text adventure.

## Story Setting
- Title: {title}
- Setting: {setting}
- Goal: {goal}
- Tone: {tone}

## NPCs
{npcs}

## Available Enemies
{enemies}

## Available Items
{items}

## Player
- Name: {player_name}
- Level: {player_level}
- HP: {player_hp}/{player_max_hp}
- AC: {player_ac}
- Abilities: {player_stats}
- Inventory: {player_inventory}

## Rules
{rules}

## Tool Usage
{tool_usage}

## Response Format
Every text response must be a single JSON object:
```json
{{
  "narrative": "Narrative text: the scene, NPC dialogue, results of events",
  "choices": ["Option 1", "Option 2", "Option 3"]
}}
```
- narrative: required, the text shown to the player
- choices: offer 2-4 options. Use an empty array [] when the situation calls for free input instead
- Do not add any text outside the JSON object"""


NONE_LISTED = "- (none)"


def _bullet_lines(lines: Sequence[str]) -> str:
    return "\n".join(lines) if lines else NONE_LISTED


def build_system_prompt(
    template: NarrativeTemplate,
    player: Player,
    *,
    enemies: Mapping[str, EnemyDefinition],
    items: Mapping[str, ItemDefinition],
    inventory: Sequence[str],
) -> str:
    """Render the narrator's system prompt.

    Allowed enemies and items are resolved against the current definition
    tables; ids missing from a table are listed bare.

    Args:
        template: Story brief.
        player: The player's current sheet.
        enemies: Enemy definition table.
        items: Item definition table.
        inventory: Owned item ids.

    Returns:
        The complete system message content.
    """
    npc_lines = [
        f"- {npc.name}: {npc.description} (personality: {npc.personality})"
        for npc in template.npcs
    ]

    enemy_lines = []
    for enemy_id in template.available_enemies:
        enemy = enemies.get(enemy_id)
        enemy_lines.append(
            f"- {enemy_id}: {enemy.name} (HP:{enemy.hp}, AC:{enemy.ac})" if enemy else f"- {enemy_id}"
        )

    item_lines = []
    for item_id in template.available_items:
        item = items.get(item_id)
        item_lines.append(f"- {item_id}: {item.name} - {item.description}" if item else f"- {item_id}")

    stats = ", ".join(f"{name} {score}" for name, score in player.stats.model_dump().items())
    owned = ", ".join(items[item_id].name if item_id in items else item_id for item_id in inventory)

    return NARRATOR_SYSTEM_PROMPT.format(
        title=template.title,
        setting=template.setting,
        goal=template.goal,
        tone=template.tone,
        npcs=_bullet_lines(npc_lines),
        enemies=_bullet_lines(enemy_lines),
        items=_bullet_lines(item_lines),
        player_name=player.name,
        player_level=player.level,
        player_hp=player.hp,
        player_max_hp=player.max_hp,
        player_ac=player.ac,
        player_stats=stats,
        player_inventory=owned or "empty",
        rules=template.rules_notes or DEFAULT_RULES_NOTES,
        tool_usage=TOOL_USAGE_NOTES,
    )


# =============================================================================
# Combat Summary
# =============================================================================


def build_combat_summary(outcome: CombatEnded, player: Player) -> str:
    """Describe a finished combat as a user message for the narrator."""
    if outcome.fled:
        result = "The player fled successfully and escaped the fight."
    elif outcome.victory:
        result = (
            f"The player won the fight! Gained {outcome.total_xp} XP. "
            f"Current HP: {player.hp}/{player.max_hp}"
        )
    else:
        result = f"The player was defeated in combat. Current HP: {player.hp}/{player.max_hp}"
    return f"{COMBAT_SUMMARY_PREFIX}{result}"


# =============================================================================
# Reply Parsing
# =============================================================================


CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


@dataclass(frozen=True)
class NarrativeReply:
    narrative: str
    choices: list[str] = field(default_factory=list)


def parse_narrative_reply(content: str) -> NarrativeReply:
    """Extract ``{narrative, choices}`` from a final model reply.

    The JSON may be wrapped in a code fence. Anything that does not parse
    as a JSON object is shown as plain narrative with no choices.
    """
    payload = content
    fenced = CODE_FENCE_PATTERN.search(content)
    if fenced:
        payload = fenced.group(1).strip()

    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError:
        return NarrativeReply(narrative=content)
    if not isinstance(parsed, dict):
        return NarrativeReply(narrative=content)

    narrative = parsed.get("narrative")
    choices = parsed.get("choices")
    return NarrativeReply(
        narrative=narrative if isinstance(narrative, str) else "",
        choices=[str(choice) for choice in choices] if isinstance(choices, list) else [],
    )


__all__ = [
    "NARRATOR_SYSTEM_PROMPT",
    "build_system_prompt",
    "build_combat_summary",
    "CODE_FENCE_PATTERN",
    "NarrativeReply",
    "parse_narrative_reply",
]
