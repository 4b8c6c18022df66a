from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from koloa.app.api.deps import get_db, require_permission
from koloa.app.db.models.models_v1 import User
from koloa.app.schemas.orders import (
    OrderCancel,
    OrderConfirm,
    OrderConfirmResponse,
    OrderCreate,
    OrderItemRead,
    OrderItemReceive,
    OrderItemReceiveResponse,
    OrderRead,
    StockUpdateRead,
)
from koloa.services import orders as ledger

router = APIRouter(prefix="/orders")


@router.get("", response_model=list[OrderRead])
def list_orders(
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("read", "orders")),
):
    return [OrderRead.model_validate(o) for o in ledger.list_orders(db)]


@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("read", "orders")),
):
    return OrderRead.model_validate(ledger.get_order(db, order_id))


@router.post("", response_model=OrderRead, status_code=201)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_permission("create", "orders")),
):
    try:
        order = ledger.create_order(
            db,
            order_type=payload.type,
            brand=payload.brand,
            items=[
                ledger.RequestedLine(
                    inventory_item_id=ln.inventory_item_id,
                    quantity_ordered=ln.quantity_ordered,
                )
                for ln in payload.items
            ],
            notes=payload.notes,
            user=user,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    return OrderRead.model_validate(ledger.get_order(db, order.id))


@router.put("/{order_id}/confirm", response_model=OrderConfirmResponse)
def confirm_order(
    order_id: int,
    payload: OrderConfirm | None = None,
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("confirm", "orders")),
):
    try:
        result = ledger.confirm_order(db, order_id, notes=payload.notes if payload else None)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return OrderConfirmResponse(
        order=OrderRead.model_validate(ledger.get_order(db, order_id)),
        stock_updates=[StockUpdateRead.model_validate(u) for u in result.stock_updates],
    )


@router.put("/{order_id}/items/{item_id}/receive", response_model=OrderItemReceiveResponse)
def receive_order_item(
    order_id: int,
    item_id: int,
    payload: OrderItemReceive,
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("receive", "orders")),
):
    try:
        result = ledger.receive_order_item(
            db,
            order_id,
            item_id,
            payload.quantity_received,
            notes=payload.notes,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    order = ledger.get_order(db, order_id)
    line = next(ln for ln in order.items if ln.id == item_id)
    return OrderItemReceiveResponse(
        order_item=OrderItemRead.model_validate(line),
        order=OrderRead.model_validate(order),
        stock_update=StockUpdateRead.model_validate(result.stock_update),
    )


@router.put("/{order_id}/cancel", response_model=OrderRead)
def cancel_order(
    order_id: int,
    payload: OrderCancel | None = None,
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("cancel", "orders")),
):
    try:
        ledger.cancel_order(db, order_id, reason=payload.reason if payload else None)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return OrderRead.model_validate(ledger.get_order(db, order_id))
