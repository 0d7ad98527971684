"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wire_recon.api.routes import health_router, metrics_router, payments_router
from wire_recon.config import Settings, get_settings
from wire_recon.database import create_schema, dispose_db, init_db
from wire_recon.ledger import LedgerBackend, LedgerSimulator
from wire_recon.services.errors import ReconciliationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    engine = app.state.engine
    if engine is not None:
        await create_schema(engine)
    yield
    # Shutdown
    if engine is not None:
        await dispose_db()


def create_app(
    settings: Settings | None = None,
    ledger: LedgerBackend | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Defaults to settings loaded from the environment.
        ledger: Defaults to the randomized ledger simulator.
        session_factory: Defaults to the global database session factory;
            when given, the caller owns the engine and its schema.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Wire Reconciliation API",
        description="Treasury wire payment reconciliation and manual GL posting",
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.ledger = ledger or LedgerSimulator.from_settings(settings)
    if session_factory is None:
        engine, session_factory = init_db(settings.database_url)
        app.state.engine = engine
    else:
        app.state.engine = None
    app.state.session_factory = session_factory

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ReconciliationError)
    async def reconciliation_exception_handler(
        request: Request, exc: ReconciliationError
    ) -> JSONResponse:
        """Surface domain errors with their own status code."""
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed input is a validation error (400), like service checks."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "message": "Invalid request",
                "code": "VALIDATION_ERROR",
                "errors": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(payments_router)

    return app


# Default app instance for uvicorn
app = create_app()
