from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from koloa.app.api.deps import get_db, require_permission
from koloa.app.core import config
from koloa.app.db.models.models_v1 import User
from koloa.app.schemas.api_logs import ApiLogPage, ApiLogRead, Pagination
from koloa.services import api_logs

router = APIRouter(prefix="/logs")


def log_filters(
    method: str | None = None,
    endpoint: str | None = None,
    user_name: str | None = Query(default=None, alias="userName"),
    status_code: int | None = Query(default=None, alias="statusCode"),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
) -> api_logs.LogFilters:
    return api_logs.LogFilters(
        method=method,
        endpoint=endpoint,
        user_name=user_name,
        status_code=status_code,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("", response_model=ApiLogPage)
def list_logs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    filters: api_logs.LogFilters = Depends(log_filters),
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("read", "logs")),
):
    result = api_logs.query_logs(db, filters, page=page, limit=limit)
    return ApiLogPage(
        data=[ApiLogRead.model_validate(row) for row in result["data"]],
        pagination=Pagination(**result["pagination"]),
    )


@router.get("/stats")
def log_stats(
    filters: api_logs.LogFilters = Depends(log_filters),
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("read", "logs")),
):
    return {"success": True, "data": api_logs.log_stats(db, filters)}


@router.delete("/cleanup")
def cleanup_logs(
    days: int = Query(default=config.API_LOG_RETENTION_DAYS, ge=1),
    db: Session = Depends(get_db),
    _: User = Depends(require_permission("delete", "logs")),
):
    deleted = api_logs.cleanup_logs(db, days)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"success": True, "deletedCount": deleted, "message": f"Deleted {deleted} log entries older than {days} days"}
