from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from koloa.app.api.middleware import api_logger
from koloa.app.api.v1.router import router as v1_router
from koloa.app.core import config
from koloa.app.core.logging import configure_logging
from koloa.app.db.session import SessionLocal
from koloa.services.errors import KoloaError

logger = logging.getLogger("koloa.app")


def _error(request: Request, status_code: int, message: str) -> JSONResponse:
    request.state.error_message = message
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def _warn_insecure_settings() -> None:
    if config.PIN_PEPPER == config.DEFAULT_PIN_PEPPER:
        logger.warning("PIN_PEPPER is not set: PIN digests use the public development key")


def create_app() -> FastAPI:
    configure_logging(config.LOG_LEVEL)
    _warn_insecure_settings()

    app = FastAPI(title="KOLOA PUB", version="0.1.0")
    app.state.session_factory = SessionLocal

    @app.exception_handler(KoloaError)
    async def koloa_error_handler(request: Request, exc: KoloaError):
        return _error(request, exc.http_status, exc.message)

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return _error(request, exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(request, 400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return _error(request, 500, "Internal server error")

    app.middleware("http")(api_logger)
    app.include_router(v1_router, prefix=config.API_PREFIX)
    return app


app = create_app()
