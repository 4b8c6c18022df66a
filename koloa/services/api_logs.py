"""
Journal des appels API (table api_logs).

`should_log` filtre les routes trop bavardes, `record_api_call` écrit une
entrée dans sa propre session: un échec d'écriture est journalisé mais ne
remonte jamais jusqu'à la requête.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from koloa.app.db.models.models_v1 import ApiLog, utcnow

logger = logging.getLogger(__name__)

# préfixes (relatifs au préfixe API) jamais journalisés
EXCLUDED_PREFIXES = ("/health", "/auth/me", "/logs")
# préfixes journalisés sauf pour ces méthodes
EXCLUDED_METHODS = {
    "/inventory": {"GET"},
    "/orders": {"GET"},
}


@dataclass
class ApiCall:
    method: str
    endpoint: str
    status_code: int
    response_time_ms: int
    ip_address: str | None = None
    user_agent: str | None = None
    user_id: int | None = None
    user_name: str | None = None
    user_role: str | None = None
    error_message: str | None = None


@dataclass
class LogFilters:
    method: str | None = None
    endpoint: str | None = None
    user_name: str | None = None
    status_code: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


def should_log(method: str, path: str, api_prefix: str) -> bool:
    if not path.startswith(api_prefix):
        return False
    route = path[len(api_prefix):] or "/"
    if route.startswith(EXCLUDED_PREFIXES):
        return False
    for prefix, methods in EXCLUDED_METHODS.items():
        if route.startswith(prefix) and method.upper() in methods:
            return False
    return True


def record_api_call(session_factory: sessionmaker, call: ApiCall) -> None:
    db = session_factory()
    try:
        db.add(
            ApiLog(
                user_id=call.user_id,
                user_name=call.user_name,
                user_role=call.user_role,
                method=call.method,
                endpoint=call.endpoint[:255],
                status_code=call.status_code,
                ip_address=call.ip_address,
                user_agent=(call.user_agent or "")[:255] or None,
                response_time_ms=call.response_time_ms,
                error_message=call.error_message,
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("could not write api log for %s %s", call.method, call.endpoint)
    finally:
        db.close()


def _apply_filters(stmt, filters: LogFilters):
    if filters.method:
        stmt = stmt.where(ApiLog.method == filters.method.upper())
    if filters.endpoint:
        stmt = stmt.where(ApiLog.endpoint.contains(filters.endpoint))
    if filters.user_name:
        stmt = stmt.where(ApiLog.user_name.contains(filters.user_name))
    if filters.status_code is not None:
        stmt = stmt.where(ApiLog.status_code == filters.status_code)
    if filters.start_date:
        stmt = stmt.where(ApiLog.timestamp >= filters.start_date)
    if filters.end_date:
        stmt = stmt.where(ApiLog.timestamp <= filters.end_date)
    return stmt


def query_logs(db: Session, filters: LogFilters, page: int = 1, limit: int = 50) -> dict:
    total = int(db.execute(_apply_filters(select(func.count(ApiLog.id)), filters)).scalar() or 0)
    rows = (
        db.execute(
            _apply_filters(select(ApiLog), filters)
            .order_by(ApiLog.timestamp.desc(), ApiLog.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        .scalars()
        .all()
    )
    return {
        "data": rows,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
        },
    }


def log_stats(db: Session, filters: LogFilters) -> dict:
    def grouped(column, top: int | None = None, skip_null: bool = False):
        stmt = _apply_filters(select(column, func.count(ApiLog.id).label("n")), filters)
        if skip_null:
            stmt = stmt.where(column.is_not(None))
        stmt = stmt.group_by(column).order_by(func.count(ApiLog.id).desc())
        if top:
            stmt = stmt.limit(top)
        return [{"value": value, "count": int(n)} for value, n in db.execute(stmt).all()]

    total = int(db.execute(_apply_filters(select(func.count(ApiLog.id)), filters)).scalar() or 0)
    errors = int(
        db.execute(
            _apply_filters(select(func.count(ApiLog.id)), filters).where(ApiLog.status_code >= 400)
        ).scalar()
        or 0
    )
    return {
        "totalRequests": total,
        "errorRequests": errors,
        "successRate": round((total - errors) / total * 100, 2) if total else 0,
        "methodDistribution": grouped(ApiLog.method),
        "topEndpoints": grouped(ApiLog.endpoint, top=10),
        "topUsers": grouped(ApiLog.user_name, top=10, skip_null=True),
    }


def cleanup_logs(db: Session, days: int) -> int:
    cutoff = utcnow() - timedelta(days=days)
    result = db.execute(delete(ApiLog).where(ApiLog.timestamp < cutoff))
    return result.rowcount or 0
