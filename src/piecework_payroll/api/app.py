"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from piecework_payroll import __version__
from piecework_payroll.api.routes import health_router, payroll_router, work_records_router
from piecework_payroll.calculators.types import NetPayCalculator
from piecework_payroll.database import dispose_db
from piecework_payroll.errors import (
    InvalidMeasurementError,
    MeasurementDisputeError,
    PayrollError,
    RecordSupersededError,
    ReviewNotFoundError,
    StaleReviewError,
    ValidationError,
    WorkRecordNotFoundError,
)
from piecework_payroll.events import EventEmitter

logger = logging.getLogger(__name__)

# Most specific first; first match wins
ERROR_STATUS: list[tuple[type[PayrollError], int]] = [
    (WorkRecordNotFoundError, status.HTTP_404_NOT_FOUND),
    (ReviewNotFoundError, status.HTTP_404_NOT_FOUND),
    (StaleReviewError, status.HTTP_409_CONFLICT),
    (MeasurementDisputeError, status.HTTP_409_CONFLICT),
    (RecordSupersededError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidMeasurementError, status.HTTP_422_UNPROCESSABLE_ENTITY),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    yield
    await dispose_db()


def create_app(
    net_pay_calculator: NetPayCalculator | None = None,
    emitter: EventEmitter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Piecework Payroll API",
        description="Measurement-based payroll with quality-gated approval",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.emitter = emitter or EventEmitter()
    app.state.net_pay_calculator = net_pay_calculator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PayrollError)
    async def payroll_error_handler(request: Request, exc: PayrollError) -> JSONResponse:
        """Map domain errors onto HTTP status codes."""
        code = status.HTTP_400_BAD_REQUEST
        for error_type, error_status in ERROR_STATUS:
            if isinstance(exc, error_type):
                code = error_status
                break
        return JSONResponse(
            status_code=code,
            content={
                "detail": str(exc),
                "code": type(exc).__name__,
                "field": getattr(exc, "field", None),
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    app.include_router(health_router)
    app.include_router(work_records_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
