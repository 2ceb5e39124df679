"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__, catalog
from .api.router import api_router
from .config import Settings, get_settings
from .database import Database
from .exceptions import StockLedgerError, ValidationError
from .logging_config import configure_logging, get_logger

logger = get_logger(__name__)


async def handle_stock_ledger_error(request: Request, exc: StockLedgerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, message=exc.message)
    else:
        logger.info("request_rejected", path=request.url.path, code=exc.code, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"code": exc.code, "message": exc.message})


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed payloads with the same envelope as engine validation failures."""

    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    logger.info("request_rejected", path=request.url.path, code=ValidationError.code, message=message)
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={"code": ValidationError.code, "message": message},
    )


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or get_settings()
    database = database or Database(settings.database_url, echo=settings.echo_sql)

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        database.create_all()
        if settings.seed_data:
            with database.session_scope() as session:
                catalog.ensure_default_operation_types(session)
        logger.info("startup_complete", database=database.url, policy=settings.negative_stock_policy)
        yield

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
            allow_credentials=True,
        )
    app.add_exception_handler(StockLedgerError, handle_stock_ledger_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)

    @app.get(f"{settings.api_prefix}/health", tags=["system"])
    def health_check() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(api_router, prefix=settings.api_prefix)
    return app


def create_configured_app() -> FastAPI:
    """Entry point for ``uvicorn --factory``: logging set up from settings."""

    settings = get_settings()
    configure_logging(settings.log_level, json=settings.log_json)
    return create_app(settings)
