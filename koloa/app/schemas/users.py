from __future__ import annotations

from datetime import datetime

from pydantic import Field

from koloa.app.db.models.core_types import Role
from koloa.app.schemas.base import CamelModel


class LoginRequest(CamelModel):
    code: str | None = None


class UserRead(CamelModel):
    id: int
    name: str
    role: Role


class LoginResponse(CamelModel):
    success: bool = True
    token: str
    user: UserRead


class UserCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    code: str
    role: Role = Role.user


class UserUpdate(CamelModel):
    name: str | None = Field(default=None, max_length=200)
    code: str | None = None
    role: Role | None = None
    blocked: bool | None = None


class UserAdminRead(CamelModel):
    id: int
    name: str
    role: Role
    blocked: bool
    failed_attempts: int
    created_at: datetime
    updated_at: datetime
    order_count: int = 0
