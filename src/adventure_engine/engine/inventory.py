"""Owned items and consumable use.

The inventory is an ordered list of item ids. Duplicates are allowed:
two healing potions are two entries of the same id.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from adventure_engine.core.logging import get_logger
from adventure_engine.engine.events import (
    EventBus,
    InventoryChanged,
    InventoryEntry,
    LogMessage,
    LogType,
    PlayerChanged,
)
from adventure_engine.models.entities import ItemDefinition, Player


logger = get_logger(__name__)

UNKNOWN_ITEM_DESCRIPTION = "Unknown item"


@dataclass(frozen=True)
class ItemUseResult:
    """Outcome of :meth:`Inventory.use`.

    Attributes:
        used: False when nothing happened.
        effect: Copy of the item's effect, plus ``actual_heal`` for heals.
    """

    used: bool
    effect: dict[str, Any] | None = field(default=None)

    @property
    def actual_heal(self) -> int:
        return (self.effect or {}).get("actual_heal", 0)


class Inventory:
    """Item definition table plus the player's owned item ids."""

    def __init__(
        self,
        event_bus: EventBus,
        definitions: Mapping[str, ItemDefinition] | None = None,
    ) -> None:
        self._bus = event_bus
        self._definitions: dict[str, ItemDefinition] = dict(definitions or {})
        self._owned: list[str] = []

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def item_ids(self) -> list[str]:
        """Owned ids in acquisition order (a copy)."""
        return list(self._owned)

    @property
    def definitions(self) -> Mapping[str, ItemDefinition]:
        return self._definitions

    def definition(self, item_id: str) -> ItemDefinition | None:
        return self._definitions.get(item_id)

    def has(self, item_id: str) -> bool:
        return item_id in self._owned

    def count(self, item_id: str) -> int:
        return self._owned.count(item_id)

    def details(self) -> list[InventoryEntry]:
        """Resolve every owned unit against the definition table."""
        return [self._entry(item_id) for item_id in self._owned]

    def consumables(self) -> list[InventoryEntry]:
        return [entry for entry in self.details() if entry.consumable]

    def display_name(self, item_id: str) -> str:
        definition = self._definitions.get(item_id)
        return definition.name if definition else item_id

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def load_definitions(self, definitions: Mapping[str, ItemDefinition]) -> None:
        self._definitions = dict(definitions)

    def set_items(self, item_ids: Iterable[str]) -> None:
        """Replace the owned list, e.g. with a starting inventory."""
        self._owned = list(item_ids)
        self._publish_changed()

    def add(self, item_id: str) -> None:
        self._owned.append(item_id)
        self._bus.publish(
            LogMessage(type=LogType.INVENTORY, text=f"Gained item: {self.display_name(item_id)}")
        )
        logger.info("Item added", item_id=item_id)
        self._publish_changed()

    def remove(self, item_id: str) -> bool:
        """Remove one unit of ``item_id``.

        Returns:
            False if the item was not owned.
        """
        try:
            self._owned.remove(item_id)
        except ValueError:
            return False
        logger.info("Item removed", item_id=item_id)
        self._publish_changed()
        return True

    def use(self, item_id: str, player: Player) -> ItemUseResult:
        """Consume one unit of an item and apply its effect to ``player``.

        Using an undefined, non-consumable or unowned item is not an error;
        it returns ``used=False`` and changes nothing.

        Args:
            item_id: Item to use.
            player: Receives the effect.

        Returns:
            The use result, including the actual heal amount for heals.
        """
        definition = self._definitions.get(item_id)
        if definition is None or not definition.consumable or not self.has(item_id):
            logger.debug("Item not usable", item_id=item_id)
            return ItemUseResult(used=False)

        self.remove(item_id)

        if definition.effect is None:
            return ItemUseResult(used=True)

        effect = definition.effect.model_dump(exclude_none=True)
        if definition.effect.heal:
            healed = player.apply_healing(definition.effect.heal)
            effect["actual_heal"] = healed
            self._bus.publish(
                LogMessage(
                    type=LogType.ITEM_USE,
                    text=f"Used {definition.name}: restored {healed} HP",
                )
            )
            self._bus.publish(PlayerChanged(player=player.status()))
            logger.info("Item used", item_id=item_id, healed=healed, hp=player.hp)

        return ItemUseResult(used=True, effect=effect)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _entry(self, item_id: str) -> InventoryEntry:
        definition = self._definitions.get(item_id)
        if definition is None:
            return InventoryEntry(id=item_id, name=item_id, description=UNKNOWN_ITEM_DESCRIPTION)
        return InventoryEntry(
            id=item_id,
            name=definition.name,
            description=definition.description,
            consumable=definition.consumable,
            effect=definition.effect.model_dump(exclude_none=True) if definition.effect else None,
        )

    def _publish_changed(self) -> None:
        self._bus.publish(InventoryChanged(items=self.details()))


__all__ = [
    "UNKNOWN_ITEM_DESCRIPTION",
    "ItemUseResult",
    "Inventory",
]
