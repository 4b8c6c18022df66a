from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from koloa.app.api.deps import get_db, require_permission
from koloa.app.db.models.models_v1 import InventoryItem, OrderItem, User
from koloa.app.schemas.inventory import InventoryItemCreate, InventoryItemRead, InventoryItemUpdate
from koloa.services.errors import ValidationError
from koloa.services.inventory import get_inventory_item

router = APIRouter(prefix="/inventory")


@router.get("", response_model=list[InventoryItemRead])
def list_inventory(
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("read", "inventory")),
):
    rows = (
        db.execute(select(InventoryItem).order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc()))
        .scalars()
        .all()
    )
    return [InventoryItemRead.model_validate(it) for it in rows]


@router.post("", response_model=InventoryItemRead, status_code=201)
def create_inventory_item(
    payload: InventoryItemCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("create", "inventory")),
):
    item = InventoryItem(**payload.model_dump())
    db.add(item)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(item)
    return InventoryItemRead.model_validate(item)


@router.put("/{item_id}", response_model=InventoryItemRead)
def update_inventory_item(
    item_id: int,
    payload: InventoryItemUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("update", "inventory")),
):
    item = get_inventory_item(db, item_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(item, field, value)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(item)
    return InventoryItemRead.model_validate(item)


@router.delete("/{item_id}")
def delete_inventory_item(
    item_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("delete", "inventory")),
):
    item = get_inventory_item(db, item_id)

    # Les lignes de commande gardent une référence (RESTRICT)
    referenced = db.execute(select(exists().where(OrderItem.inventory_item_id == item_id))).scalar()
    if referenced:
        raise ValidationError("Product is referenced by existing orders and cannot be deleted")

    db.delete(item)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"success": True, "message": "Product deleted"}
