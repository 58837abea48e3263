"""Adventure package and narrative template models.

The package loader (outside this library) reads an adventure's JSON files
and hands the parsed dicts to :meth:`AdventurePackage.model_validate`.
Definition tables are keyed by id; an entry that omits its own ``id``
takes the key.

Example:
    >>> package = AdventurePackage.model_validate({
    ...     "manifest": {"title": "The Cellar", "startScene": "cellar"},
    ...     "scenes": {"cellar": {"title": "Cellar", "text": "Dark.", "choices": []}},
    ...     "player": {"name": "Ash", "hp": 12, "maxHp": 12},
    ... })
    >>> package.manifest.start_scene
    'cellar'
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from adventure_engine.models.entities import EnemyDefinition, ItemDefinition, Player
from adventure_engine.models.scenes import Scene


def _inject_ids(value: Any) -> Any:
    if not isinstance(value, dict):
        return value
    return {
        key: {"id": key, **entry} if isinstance(entry, dict) and "id" not in entry else entry
        for key, entry in value.items()
    }


class AdventureManifest(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    title: str
    start_scene: str = Field(alias="startScene")


class AdventurePackage(BaseModel):
    """Everything a scripted or narrated session is loaded from.

    Attributes:
        manifest: Title and starting scene.
        scenes: Scene table.
        enemies: Enemy definition table.
        items: Item definition table.
        player: Initial player sheet. The engine deep-copies it per session.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    manifest: AdventureManifest
    scenes: dict[str, Scene] = Field(default_factory=dict)
    enemies: dict[str, EnemyDefinition] = Field(default_factory=dict)
    items: dict[str, ItemDefinition] = Field(default_factory=dict)
    player: Player

    @field_validator("scenes", "enemies", "items", mode="before")
    @classmethod
    def key_entries_by_id(cls, value: Any) -> Any:
        return _inject_ids(value)


class NpcProfile(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    description: str = ""
    personality: str = ""


class NarrativeTemplate(BaseModel):
    """Story brief given to the narrator model.

    Attributes:
        title: Adventure title.
        setting: Background of the world.
        goal: What the player is trying to achieve.
        tone: Narrative tone.
        npcs: Characters the narrator may use.
        available_enemies: Enemy ids the narrator may pass to ``start_combat``.
        available_items: Item ids the narrator may grant.
        opening_prompt: First user message; a configured default is used if empty.
        rules_notes: Free-text house rules.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str
    setting: str = ""
    goal: str = ""
    tone: str = ""
    npcs: list[NpcProfile] = Field(default_factory=list)
    available_enemies: list[str] = Field(default_factory=list)
    available_items: list[str] = Field(default_factory=list)
    opening_prompt: str | None = None
    rules_notes: str | None = None

    @field_validator("opening_prompt", "rules_notes", mode="after")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


__all__ = [
    "AdventureManifest",
    "AdventurePackage",
    "NpcProfile",
    "NarrativeTemplate",
]
