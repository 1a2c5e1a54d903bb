"""Inventory enrichment from the item catalog.

Legacy inventories stored as plain text are parsed when the Character is
validated; this module fills in catalog details for those items once the
item catalog is available.
"""

from __future__ import annotations

from collections.abc import Iterable

from dragonsheet.models.catalog import GameItem
from dragonsheet.models.character import Equipment, InventoryItem, Money


def _index_by_name(items: Iterable[GameItem]) -> dict[str, GameItem]:
    index: dict[str, GameItem] = {}
    for item in items:
        index.setdefault(item.name.lower(), item)
    return index


def enrich_item(item: InventoryItem, catalog_item: GameItem) -> InventoryItem:
    """Copy catalog details onto an inventory item, keeping its own values."""
    return item.model_copy(
        update={
            "item_id": catalog_item.id,
            "category": item.category or catalog_item.category,
            "description": item.description or catalog_item.description or None,
            "weight": item.weight if item.weight is not None else catalog_item.weight,
            "cost": item.cost
            or Money(
                gold=catalog_item.cost_gold,
                silver=catalog_item.cost_silver,
                copper=catalog_item.cost_copper,
            ),
        }
    )


def enrich_inventory(equipment: Equipment, catalog: Iterable[GameItem]) -> Equipment | None:
    """Match unmatched inventory items against the catalog by name.

    Matching is case-insensitive on the base item name.

    Returns:
        New Equipment if any item was matched, otherwise None.
    """
    if not equipment.has_unmatched_items:
        return None
    index = _index_by_name(catalog)
    if not index:
        return None

    matched = False
    inventory: list[InventoryItem] = []
    for item in equipment.inventory:
        catalog_item = index.get(item.name.lower()) if item.item_id is None else None
        if catalog_item is None:
            inventory.append(item)
            continue
        inventory.append(enrich_item(item, catalog_item))
        matched = True

    if not matched:
        return None
    return equipment.model_copy(update={"inventory": inventory})


__all__ = [
    "enrich_item",
    "enrich_inventory",
]
