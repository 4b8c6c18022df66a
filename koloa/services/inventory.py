from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from koloa.app.db.models.models_v1 import InventoryItem
from koloa.app.db.models.core_types import StockStatus
from koloa.services.errors import NotFoundError, ValidationError


@dataclass(frozen=True)
class StockUpdate:
    """Delta de stock appliqué à un article (affichage / audit)."""

    item_id: int
    item_name: str
    previous_stock: int
    added_quantity: int
    new_stock: int


def lock_inventory_items(db: Session, item_ids: Iterable[int]) -> dict[int, InventoryItem]:
    """
    Charge les articles demandés, verrouillés (FOR UPDATE) dans un ordre
    stable pour éviter les deadlocks entre deux réceptions concurrentes.
    """
    ids = sorted({int(i) for i in item_ids if i is not None})
    if not ids:
        return {}

    rows = (
        db.execute(
            select(InventoryItem)
            .where(InventoryItem.id.in_(ids))
            .order_by(InventoryItem.id.asc())
            .with_for_update()
        )
        .scalars()
        .all()
    )
    return {int(it.id): it for it in rows}


def get_inventory_item(db: Session, item_id: int) -> InventoryItem:
    item = db.get(InventoryItem, item_id)
    if not item:
        raise NotFoundError("Inventory item not found")
    return item


def add_stock(item: InventoryItem, quantity: int) -> StockUpdate:
    """
    Seule mutation de stock faite par le registre des commandes.
    quantity == 0 est accepté et produit un delta nul.
    """
    if quantity < 0:
        raise ValidationError("Stock increment cannot be negative")

    previous = int(item.stock)
    item.stock = previous + quantity
    return StockUpdate(
        item_id=int(item.id),
        item_name=item.name,
        previous_stock=previous,
        added_quantity=quantity,
        new_stock=int(item.stock),
    )


def stock_status(item: InventoryItem) -> StockStatus:
    if item.stock == 0:
        return StockStatus.out_of_stock
    if item.stock < item.min_stock:
        return StockStatus.low
    return StockStatus.normal


def stock_value(item: InventoryItem) -> Decimal:
    return Decimal(item.stock) * Decimal(item.price)
