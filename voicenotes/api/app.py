"""
FastAPI application factory.

``create_app()`` assembles the application with CORS, error handlers,
routers, and the health endpoint. The lifespan builds the operation
registry and shuts it down, cancelling whatever is still running. The
module-level ``app`` instance allows
``uvicorn voicenotes.api.app:app --reload``.
"""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voicenotes.api.middleware.error_handler import register_error_handlers
from voicenotes.api.routes import operations, providers
from voicenotes.core.config import get_settings
from voicenotes.core.models import HealthResponse
from voicenotes.services.credentials import SettingsCredentialStore
from voicenotes.services.orchestrator import OperationRegistry
from voicenotes.services.summarization import ProviderRegistry, SummaryService
from voicenotes.services.telemetry import LoggingTelemetryCollector

logger = logging.getLogger(__name__)


def build_registry(settings=None) -> OperationRegistry:
    """Wire the default collaborators into an operation registry."""
    settings = settings or get_settings()
    credentials = SettingsCredentialStore(settings)
    summary_service = SummaryService(
        ProviderRegistry.default(credentials, settings=settings),
        telemetry=LoggingTelemetryCollector(),
        settings=settings,
    )
    return OperationRegistry(summary_service, settings=settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if getattr(app.state, "registry", None) is None:
        app.state.registry = build_registry(settings)
    logger.info("Voice Notes processing API started")
    try:
        yield
    finally:
        await app.state.registry.shutdown()


def create_app(registry: OperationRegistry | None = None) -> FastAPI:
    """Build and return a fully configured FastAPI application.

    Args:
        registry: Pre-built registry (tests); otherwise the lifespan builds one.
    """

    app = FastAPI(
        title="Voice Notes",
        description="Transcription and summarization job orchestrator "
        "with retries, chunking, and provider fallback.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.registry = registry

    # -- CORS --
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_settings().cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Error handlers --
    register_error_handlers(app)

    # -- Health check (root-level, not under /api/v1) --
    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health() -> HealthResponse:
        return HealthResponse(timestamp=datetime.now(UTC))

    # -- REST routes --
    app.include_router(operations.router, prefix="/api/v1")
    app.include_router(providers.router, prefix="/api/v1")

    return app


app = create_app()
