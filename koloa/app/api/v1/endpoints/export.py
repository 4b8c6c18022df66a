from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from koloa.app.api.deps import get_db, require_permission
from koloa.app.db.models.models_v1 import InventoryItem, User
from koloa.services import exports
from koloa.services.errors import NotFoundError
from koloa.services.orders import list_orders

router = APIRouter(prefix="/export")


def _download(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _inventory(db: Session, *order_by) -> list[InventoryItem]:
    items = db.execute(select(InventoryItem).order_by(*order_by)).scalars().all()
    if not items:
        raise NotFoundError("No inventory items to export")
    return list(items)


@router.get("/inventory")
def export_inventory(
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("read", "export")),
):
    items = _inventory(db, InventoryItem.brand, InventoryItem.name)
    return _download(
        exports.inventory_workbook(items),
        exports.XLSX_MEDIA_TYPE,
        exports.export_filename("inventory", "xlsx"),
    )


@router.get("/orders")
def export_orders(
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("read", "export")),
):
    orders = list_orders(db)
    if not orders:
        raise NotFoundError("No orders to export")
    return _download(
        exports.orders_workbook(orders),
        exports.XLSX_MEDIA_TYPE,
        exports.export_filename("orders", "xlsx"),
    )


@router.get("/inventory-pdf")
def export_inventory_pdf(
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("read", "export")),
):
    items = _inventory(db, InventoryItem.category, InventoryItem.brand, InventoryItem.name)
    return _download(
        exports.inventory_pdf(items),
        exports.PDF_MEDIA_TYPE,
        exports.export_filename("inventory", "pdf"),
    )
