"""
Registre des commandes de réassort.

Cycle de vie d'une commande :
    pending -> partial -> completed   (uniquement par réception de lignes)
    pending -> cancelled              (uniquement depuis pending)

Règles :
- 0 <= quantity_received <= quantity_ordered sur chaque ligne
- statut de ligne et statut de commande sont dérivés des quantités
  (line_status / order_status), jamais saisis
- toute validation est faite AVANT la première écriture
- aucune fonction ne commit: l'appelant ouvre UNE transaction par opération
  et commit / rollback en bloc (stock + ligne + commande restent cohérents)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from koloa.app.db.models.models_v1 import (
    InventoryItem,
    Order,
    OrderItem,
    User,
    utcnow,
)
from koloa.app.db.models.core_types import OrderItemStatus, OrderStatus, OrderType
from koloa.services.errors import NotFoundError, StateConflictError, ValidationError
from koloa.services.inventory import StockUpdate, add_stock, lock_inventory_items
from koloa.services.numbering import next_order_number

logger = logging.getLogger(__name__)

CONFIRMABLE_STATUSES = {OrderStatus.pending, OrderStatus.partial}


@dataclass(frozen=True)
class RequestedLine:
    inventory_item_id: int
    quantity_ordered: int


@dataclass
class ConfirmResult:
    order: Order
    stock_updates: list[StockUpdate]


@dataclass
class ReceiveResult:
    order_item: OrderItem
    order: Order
    stock_update: StockUpdate


# ---------- DERIVATIONS ----------
def line_status(quantity_ordered: int, quantity_received: int) -> OrderItemStatus:
    if quantity_received >= quantity_ordered:
        return OrderItemStatus.completed
    if quantity_received > 0:
        return OrderItemStatus.partial
    return OrderItemStatus.pending


def order_status(line_statuses: Iterable[OrderItemStatus]) -> OrderStatus:
    statuses = list(line_statuses)
    completed = sum(1 for s in statuses if s == OrderItemStatus.completed)
    partial = sum(1 for s in statuses if s == OrderItemStatus.partial)

    if statuses and completed == len(statuses):
        return OrderStatus.completed
    if completed > 0 or partial > 0:
        return OrderStatus.partial
    return OrderStatus.pending


def append_note(existing: str | None, note: str | None, label: str | None = None) -> str | None:
    """Ajoute une note à la suite des précédentes (séparateur: retour ligne)."""
    if not note or not note.strip():
        return existing
    text = f"{label}: {note.strip()}" if label else note.strip()
    return f"{existing or ''}\n{text}".strip()


# ---------- QUERIES ----------
def _order_query():
    return select(Order).options(
        selectinload(Order.user),
        selectinload(Order.items).selectinload(OrderItem.inventory_item),
    )


def list_orders(db: Session) -> list[Order]:
    return list(db.execute(_order_query().order_by(Order.created_at.desc(), Order.id.desc())).scalars().all())


def get_order(db: Session, order_id: int) -> Order:
    order = db.execute(_order_query().where(Order.id == order_id)).scalar_one_or_none()
    if not order:
        raise NotFoundError("Order not found")
    return order


def _lock_order(db: Session, order_id: int) -> Order:
    order = db.execute(select(Order).where(Order.id == order_id).with_for_update()).scalar_one_or_none()
    if not order:
        raise NotFoundError("Order not found")
    return order


# ---------- CREATE ----------
def create_order(
    db: Session,
    *,
    order_type: OrderType,
    items: Iterable[RequestedLine],
    user: User,
    brand: str | None = None,
    notes: str | None = None,
) -> Order:
    requested = list(items)

    # Tous les produits doivent exister, même ceux à quantité nulle
    found = {
        int(it.id): it
        for it in db.execute(
            select(InventoryItem).where(InventoryItem.id.in_(sorted({ln.inventory_item_id for ln in requested})))
        ).scalars()
    }
    for ln in requested:
        if ln.inventory_item_id not in found:
            raise ValidationError(f"Product with id {ln.inventory_item_id} not found")

    kept = [ln for ln in requested if ln.quantity_ordered > 0]
    if not kept:
        raise ValidationError("Order must contain at least one item with quantity > 0")

    seen: set[int] = set()
    for ln in kept:
        if ln.inventory_item_id in seen:
            raise ValidationError(f"Product with id {ln.inventory_item_id} appears more than once")
        seen.add(ln.inventory_item_id)

    total_items = 0
    total_price = Decimal("0")
    lines: list[OrderItem] = []
    for ln in kept:
        product = found[ln.inventory_item_id]
        price = Decimal(product.price)
        total_items += ln.quantity_ordered
        total_price += price * ln.quantity_ordered
        lines.append(
            OrderItem(
                inventory_item_id=product.id,
                quantity_ordered=ln.quantity_ordered,
                quantity_received=0,
                price_at_time=price,
                status=OrderItemStatus.pending,
            )
        )

    order = Order(
        order_number=next_order_number(db),
        type=order_type,
        brand=brand or None,
        status=OrderStatus.pending,
        total_items=total_items,
        total_price=total_price,
        notes=notes or None,
        user_id=user.id,
        items=lines,
    )
    db.add(order)
    db.flush()

    logger.info(
        "order %s created by user %s (%d lines, %d units)",
        order.order_number,
        user.id,
        len(lines),
        total_items,
    )
    return order


# ---------- CONFIRM (réception totale) ----------
def confirm_order(db: Session, order_id: int, notes: str | None = None) -> ConfirmResult:
    order = _lock_order(db, order_id)
    if order.status not in CONFIRMABLE_STATUSES:
        raise StateConflictError("Only pending or partial orders can be confirmed")

    products = lock_inventory_items(db, [ln.inventory_item_id for ln in order.items])
    now = utcnow()

    stock_updates: list[StockUpdate] = []
    for ln in order.items:
        product = products[ln.inventory_item_id]
        pending_qty = ln.quantity_ordered - (ln.quantity_received or 0)

        if pending_qty > 0:
            stock_updates.append(add_stock(product, pending_qty))
            ln.quantity_received = ln.quantity_ordered
            ln.status = OrderItemStatus.completed
            ln.received_at = now
        else:
            # ligne déjà reçue en entier
            stock_updates.append(add_stock(product, 0))

    order.status = OrderStatus.completed
    order.completed_at = now
    order.notes = append_note(order.notes, notes, label="Received")
    db.flush()

    logger.info(
        "order %s confirmed, %d units added to stock",
        order.order_number,
        sum(u.added_quantity for u in stock_updates),
    )
    return ConfirmResult(order=order, stock_updates=stock_updates)


# ---------- RECEIVE (réception partielle d'une ligne) ----------
def receive_order_item(
    db: Session,
    order_id: int,
    item_id: int,
    quantity_received: int,
    notes: str | None = None,
) -> ReceiveResult:
    # bool est un int en Python: on le refuse explicitement
    if isinstance(quantity_received, bool) or not isinstance(quantity_received, int) or quantity_received <= 0:
        raise ValidationError("Quantity received must be greater than 0")

    line = (
        db.execute(
            select(OrderItem)
            .where(OrderItem.id == item_id)
            .where(OrderItem.order_id == order_id)
            .with_for_update()
        )
        .scalar_one_or_none()
    )
    if not line:
        raise NotFoundError("Order item not found")

    order = _lock_order(db, order_id)
    if order.status == OrderStatus.cancelled:
        raise StateConflictError("Cannot receive items on a cancelled order")

    new_total = line.quantity_received + quantity_received
    if new_total > line.quantity_ordered:
        raise ValidationError(
            "Cannot receive more than ordered. "
            f"Ordered: {line.quantity_ordered}, already received: {line.quantity_received}"
        )

    product = lock_inventory_items(db, [line.inventory_item_id])[line.inventory_item_id]
    stock_update = add_stock(product, quantity_received)

    now = utcnow()
    line.quantity_received = new_total
    line.status = line_status(line.quantity_ordered, new_total)
    if line.status == OrderItemStatus.completed:
        line.received_at = now
    line.notes = append_note(line.notes, notes)

    order.status = order_status(ln.status for ln in order.items)
    order.completed_at = now if order.status == OrderStatus.completed else None
    db.flush()

    logger.info(
        "order %s item %s received %d (%d/%d), order now %s",
        order.order_number,
        line.id,
        quantity_received,
        line.quantity_received,
        line.quantity_ordered,
        order.status.value,
    )
    return ReceiveResult(order_item=line, order=order, stock_update=stock_update)


# ---------- CANCEL ----------
def cancel_order(db: Session, order_id: int, reason: str | None = None) -> Order:
    order = _lock_order(db, order_id)
    if order.status != OrderStatus.pending:
        raise StateConflictError("Only pending orders can be cancelled")

    order.status = OrderStatus.cancelled
    order.notes = append_note(order.notes, reason, label="Cancelled")
    db.flush()

    logger.info("order %s cancelled", order.order_number)
    return order
