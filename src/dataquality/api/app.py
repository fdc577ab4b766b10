"""FastAPI application with lifespan, router mounting and error mapping."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dataquality.api.routes import health, issues, scans
from dataquality.core.config import AppSettings
from dataquality.core.exceptions import (
    CacheError,
    DataQualityError,
    InvalidRequestError,
    IssueNotFoundError,
    LedgerError,
    ScanFailedError,
    SourceUnavailableError,
)
from dataquality.core.logging import configure_logging
from dataquality.services.data_quality import DataQualityService, build_service

STATUS_CODES: dict[type[DataQualityError], int] = {
    InvalidRequestError: 422,
    IssueNotFoundError: 404,
    SourceUnavailableError: 503,
    LedgerError: 503,
    CacheError: 503,
    ScanFailedError: 500,
}


async def handle_data_quality_error(request: Request, exc: DataQualityError) -> JSONResponse:
    status_code = next(
        (code for cls, code in STATUS_CODES.items() if isinstance(exc, cls)), 500
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app(service: DataQualityService | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``service`` skips backend wiring; tests pass one built on memory backends.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize and tear down application resources."""
        settings = AppSettings()
        configure_logging(settings.log_level)
        app.state.settings = settings
        app.state.service = service or build_service(settings)
        yield

    app = FastAPI(
        title="Data Quality Scan Engine",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(DataQualityError, handle_data_quality_error)
    app.include_router(health.router)
    app.include_router(scans.router, prefix="/scans")
    app.include_router(issues.router, prefix="/issues")
    return app
