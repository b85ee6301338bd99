"""
Lightning Donations API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.dependencies import build_manager
from api.models import ErrorResponse
from api.settings import Settings
from domain.errors import (
    InvalidAmountError,
    LedgerUnavailableError,
    OracleUnavailableError,
    PaymentNotFoundError,
)
from services.expiry_sweeper import ExpirySweeper
from services.lifecycle_manager import DonationLifecycleManager

logger = logging.getLogger(__name__)

ORACLE_RETRY_AFTER_SECONDS = 5


def _error(status_code: int, error: str, detail: str, headers: Optional[dict] = None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, status_code=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def create_app(
    settings: Optional[Settings] = None,
    manager: Optional[DonationLifecycleManager] = None,
) -> FastAPI:
    """
    Build the application.

    The lifecycle manager is created once per process when the app starts
    (or injected, e.g. by tests) and lives on `app.state.manager`.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or Settings.from_env()
        logging.basicConfig(level=resolved.log_level)

        app.state.settings = resolved
        owns_manager = manager is None
        app.state.manager = manager or build_manager(resolved)

        sweeper = None
        if resolved.sweep_interval_seconds > 0:
            sweeper = ExpirySweeper(app.state.manager, resolved.sweep_interval_seconds)
            sweeper.start()

        logger.info(
            "Donation service ready",
            extra={"ledger_backend": resolved.ledger_backend, "oracle_backend": resolved.oracle_backend},
        )
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.stop(timeout=5)
            if owns_manager:
                app.state.manager.close()

    app = FastAPI(
        title="Lightning Donations API",
        description="Create Lightning donation invoices, track payment and publish donation stats",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Configure CORS - Allow all origins for development
    # TODO: Restrict origins in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidAmountError)
    async def invalid_amount_handler(request: Request, exc: InvalidAmountError):
        return _error(400, "Invalid amount", str(exc))

    @app.exception_handler(PaymentNotFoundError)
    async def not_found_handler(request: Request, exc: PaymentNotFoundError):
        return _error(404, "Payment not found", str(exc))

    @app.exception_handler(OracleUnavailableError)
    async def oracle_unavailable_handler(request: Request, exc: OracleUnavailableError):
        return _error(
            503,
            "Payment oracle unavailable",
            "Unable to check payment right now; retry shortly",
            headers={"Retry-After": str(ORACLE_RETRY_AFTER_SECONDS)},
        )

    @app.exception_handler(LedgerUnavailableError)
    async def ledger_unavailable_handler(request: Request, exc: LedgerUnavailableError):
        logger.error("Ledger unavailable", extra={"error": str(exc), "path": request.url.path})
        return _error(503, "Ledger unavailable", "Donation records are temporarily unavailable")

    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Health check endpoint.

        Returns the API status and version.
        """
        return {
            "status": "healthy",
            "version": __version__,
            "service": "lightning-donations-api"
        }

    @app.get("/", tags=["Root"])
    def root():
        """
        Root endpoint with API information.
        """
        return {
            "message": "Lightning Donations API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    # Import and include routers
    from api.routers import donations, invoices

    app.include_router(invoices.router, prefix="/api/v1", tags=["Invoices"])
    app.include_router(donations.router, prefix="/api/v1", tags=["Donations"])

    return app


app = create_app()
