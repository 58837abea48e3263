"""Pydantic models for adventure data, entities and the narrator conversation."""

from __future__ import annotations

from adventure_engine.models.adventure import (
    AdventureManifest,
    AdventurePackage,
    NarrativeTemplate,
    NpcProfile,
)
from adventure_engine.models.conversation import (
    ChatMessage,
    ChatResponse,
    ConversationHistory,
    MessageRole,
    ToolCallRequest,
)
from adventure_engine.models.entities import (
    AbilityScores,
    AttackDefinition,
    EnemyDefinition,
    EnemyInstance,
    EnemyStatus,
    ItemDefinition,
    ItemEffect,
    Player,
    PlayerStatus,
    ability_modifier,
)
from adventure_engine.models.scenes import (
    Choice,
    ChoiceBranch,
    ChoiceCondition,
    ChoiceOutcome,
    ChoiceView,
    CombatDescriptor,
    Scene,
    SkillCheckSpec,
)


__all__ = [
    # Adventure
    "AdventureManifest",
    "AdventurePackage",
    "NarrativeTemplate",
    "NpcProfile",
    # Conversation
    "MessageRole",
    "ToolCallRequest",
    "ChatMessage",
    "ChatResponse",
    "ConversationHistory",
    # Entities
    "ability_modifier",
    "AbilityScores",
    "AttackDefinition",
    "Player",
    "PlayerStatus",
    "ItemEffect",
    "ItemDefinition",
    "EnemyDefinition",
    "EnemyInstance",
    "EnemyStatus",
    # Scenes
    "CombatDescriptor",
    "ChoiceCondition",
    "SkillCheckSpec",
    "ChoiceBranch",
    "Choice",
    "Scene",
    "ChoiceView",
    "ChoiceOutcome",
]
