"""
FastAPI application entry point for the PT-Log service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ptlog.config import get_settings
from ptlog.dependencies import get_db_client
from ptlog.errors import (
    ConfigurationError,
    ConstraintViolationError,
    NotFoundError,
    PersistenceError,
    PoolExhaustedError,
)
from ptlog.routes import router

logger = logging.getLogger(__name__)


def _problem(status_code: int, code: str, message: str, detail: Any | None = None) -> JSONResponse:
    payload: dict[str, Any] = {"code": code, "message": message}
    if detail is not None:
        payload["detail"] = detail
    return JSONResponse(status_code=status_code, content=payload)


def register_exception_handlers(app: FastAPI) -> None:
    """Map the error taxonomy onto HTTP status codes."""

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": e.get("loc"), "msg": e.get("msg"), "type": e.get("type")}
            for e in exc.errors()
        ]
        logger.info(
            "Request validation failed: %s %s (%d errors)",
            request.method,
            request.url.path,
            len(errors),
        )
        return _problem(400, "INVALID_INPUT", "Request validation failed", errors)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _problem(404, "NOT_FOUND", str(exc))

    @app.exception_handler(ConstraintViolationError)
    async def constraint_handler(request: Request, exc: ConstraintViolationError):
        return _problem(409, "CONSTRAINT_VIOLATION", str(exc))

    @app.exception_handler(PoolExhaustedError)
    async def pool_exhausted_handler(request: Request, exc: PoolExhaustedError):
        logger.warning("Pool exhausted on %s %s", request.method, request.url.path)
        return _problem(503, "POOL_EXHAUSTED", str(exc))

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError):
        logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return _problem(500, "DATABASE_ERROR", str(exc))

    @app.exception_handler(ConfigurationError)
    async def configuration_handler(request: Request, exc: ConfigurationError):
        logger.error("Backend unavailable: %s", exc)
        return _problem(503, "DATABASE_UNAVAILABLE", str(exc))


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fail fast: the service has no useful mode without its database.
    get_db_client()
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    app = FastAPI(title="PT-Log", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
