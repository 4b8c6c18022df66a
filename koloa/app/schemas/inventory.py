from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from koloa.app.schemas.base import CamelModel


class InventoryItemCreate(CamelModel):
    category: str = Field(min_length=1, max_length=64)
    brand: str = Field(min_length=1, max_length=128)
    name: str = Field(min_length=1, max_length=255)
    weight: int = Field(ge=0)
    stock: int = Field(ge=0)
    min_stock: int = Field(default=0, ge=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)


class InventoryItemUpdate(CamelModel):
    category: str | None = Field(default=None, min_length=1, max_length=64)
    brand: str | None = Field(default=None, min_length=1, max_length=128)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    weight: int | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    min_stock: int | None = Field(default=None, ge=0)
    price: Decimal | None = Field(default=None, ge=0)


class InventoryItemRead(CamelModel):
    id: int
    category: str
    brand: str
    name: str
    weight: int
    stock: int
    min_stock: int
    price: float
    created_at: datetime
    updated_at: datetime
