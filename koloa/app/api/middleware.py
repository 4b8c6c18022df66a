from __future__ import annotations

import time

from fastapi import Request
from starlette.concurrency import run_in_threadpool

from koloa.app.core import config
from koloa.services.api_logs import ApiCall, record_api_call, should_log


async def api_logger(request: Request, call_next):
    if not config.API_LOG_ENABLED or not should_log(request.method, request.url.path, config.API_PREFIX):
        return await call_next(request)

    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    except Exception:
        request.state.error_message = "Internal server error"
        raise
    finally:
        user = getattr(request.state, "user", None) or {}
        call = ApiCall(
            method=request.method,
            endpoint=request.url.path,
            status_code=status_code,
            response_time_ms=int((time.perf_counter() - started) * 1000),
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("User-Agent"),
            user_id=user.get("id"),
            user_name=user.get("name"),
            user_role=user.get("role"),
            error_message=getattr(request.state, "error_message", None) if status_code >= 400 else None,
        )
        await run_in_threadpool(record_api_call, request.app.state.session_factory, call)
