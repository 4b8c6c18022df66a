from __future__ import annotations

from datetime import datetime

from koloa.app.schemas.base import CamelModel


class ApiLogRead(CamelModel):
    id: int
    user_id: int | None
    user_name: str | None
    user_role: str | None
    method: str
    endpoint: str
    status_code: int
    ip_address: str | None
    user_agent: str | None
    response_time_ms: int
    error_message: str | None
    timestamp: datetime


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ApiLogPage(CamelModel):
    success: bool = True
    data: list[ApiLogRead]
    pagination: Pagination
