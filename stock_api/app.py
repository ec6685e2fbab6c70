"""
stock_api.app -- FastAPI application factory.

``create_app`` is the composition point for the HTTP surface: it resolves
configuration, initializes the engine (unless a session factory is
supplied, as the tests do), installs the error handlers and mounts the
routers.
"""

from __future__ import annotations

from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stock_api.errors import (
    storage_error_handler,
    stock_error_handler,
    validation_error_handler,
)
from stock_api.routes import approvals_router, periods_router, reconciliations_router
from stock_config import CloseConfig, StockConfiguration, get_active_config
from stock_kernel.db.engine import get_session_factory, init_engine_from_url
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.exceptions import StockKernelError
from stock_kernel.logging_config import LogContext, configure_logging, get_logger

logger = get_logger("api.app")

CORRELATION_HEADER = "X-Request-ID"


def create_app(
    config: StockConfiguration | None = None,
    session_factory: sessionmaker[Session] | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    if session_factory is None:
        config = config or get_active_config()
        configure_logging(level=config.logging.level)
        db = config.database
        init_engine_from_url(
            db.url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_timeout=db.pool_timeout,
            pool_recycle=db.pool_recycle,
        )
        session_factory = get_session_factory()
    elif config is not None:
        configure_logging(level=config.logging.level)

    app = FastAPI(title="Stock Period Close")
    app.state.session_factory = session_factory
    app.state.clock = clock or SystemClock()
    app.state.close_config = config.close if config is not None else CloseConfig()

    @app.middleware("http")
    async def _bind_request_context(request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid4())
        with LogContext.bind(
            correlation_id=correlation_id,
            actor_id=request.headers.get("X-User-Id"),
        ):
            response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    app.add_exception_handler(StockKernelError, stock_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)

    app.include_router(periods_router)
    app.include_router(approvals_router)
    app.include_router(reconciliations_router)

    @app.get("/health")
    def health():
        return {"ok": True}

    logger.info(
        "app_created",
        extra={"config_name": config.name if config is not None else None},
    )
    return app
