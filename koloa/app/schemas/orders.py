from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from koloa.app.db.models.core_types import OrderItemStatus, OrderStatus, OrderType
from koloa.app.schemas.base import CamelModel
from koloa.app.schemas.inventory import InventoryItemRead


# ---------- Requests ----------
class OrderLineRequest(CamelModel):
    inventory_item_id: int
    # <= 0 accepté ici: la ligne est ignorée à la création
    quantity_ordered: int


class OrderCreate(CamelModel):
    type: OrderType
    brand: str | None = Field(default=None, max_length=128)
    items: list[OrderLineRequest] = Field(default_factory=list)
    notes: str | None = None


class OrderConfirm(CamelModel):
    notes: str | None = None


class OrderItemReceive(CamelModel):
    # valeur JSON brute, sans coercition (true, "2" ou 2.0 ne deviennent pas
    # des entiers): le service la valide avec son message métier
    quantity_received: Any = Field(default=None, json_schema_extra={"type": "integer", "minimum": 1})
    notes: str | None = None


class OrderCancel(CamelModel):
    reason: str | None = None


# ---------- Responses ----------
class UserSummary(CamelModel):
    id: int
    name: str


class OrderItemRead(CamelModel):
    id: int
    order_id: int
    inventory_item_id: int
    quantity_ordered: int
    quantity_received: int
    price_at_time: float
    status: OrderItemStatus
    received_at: datetime | None
    notes: str | None
    inventory_item: InventoryItemRead


class OrderRead(CamelModel):
    id: int
    order_number: str
    type: OrderType
    brand: str | None
    status: OrderStatus
    total_items: int
    total_price: float
    created_at: datetime
    completed_at: datetime | None
    notes: str | None
    user_id: int
    user: UserSummary
    items: list[OrderItemRead]


class StockUpdateRead(CamelModel):
    item_id: int
    item_name: str
    previous_stock: int
    added_quantity: int
    new_stock: int


class OrderConfirmResponse(CamelModel):
    order: OrderRead
    stock_updates: list[StockUpdateRead]


class OrderItemReceiveResponse(CamelModel):
    order_item: OrderItemRead
    order: OrderRead
    stock_update: StockUpdateRead
