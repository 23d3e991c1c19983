"""FastAPI application entry point."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from docflow.api.exception_handlers import register_exception_handlers
from docflow.api.v1.endpoints import health
from docflow.api.v1.router import api_router
from docflow.core.config import Settings, get_settings
from docflow.core.database import DatabaseClient
from docflow.core.jwt import JWTVerifier
from docflow.services.message_dispatcher import MessageDispatcher
from docflow.services.storage_service import StorageService
from docflow.utils.logging import get_logger, set_default_level

LOGGER = get_logger(__name__)


class RootResponse(BaseModel):
    """Root endpoint response payload."""

    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    db_client: DatabaseClient = app.state.db

    LOGGER.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )

    try:
        await asyncio.wait_for(db_client.connect(), timeout=settings.db_init_timeout)
        if settings.auto_migrate:
            await asyncio.wait_for(db_client.create_tables(), timeout=settings.db_init_timeout)
        LOGGER.info("Database initialized successfully")
    except asyncio.TimeoutError:
        LOGGER.error(f"Database initialization timed out after {settings.db_init_timeout}s")
    except Exception as e:
        # The service still starts; /health reports the database as unhealthy
        LOGGER.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    LOGGER.info("Shutting down application")
    await db_client.disconnect()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application and the long-lived clients it shares between requests.

    Args:
        settings: Settings to use; read from the environment when omitted

    Returns:
        FastAPI: Configured application
    """
    settings = settings or get_settings()
    set_default_level(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Document upload completion and processing dispatch service",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.db = DatabaseClient.from_settings(settings.db)
    app.state.jwt_verifier = JWTVerifier.from_settings(settings.auth)
    app.state.dispatcher = MessageDispatcher.from_settings(settings.aws)
    app.state.storage = StorageService.from_settings(settings.aws, settings.uploads)

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid4()))
        request.state.correlation_id = correlation_id
        request.state.request_id = correlation_id
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    # CORS middleware - added last to ensure it wraps all other middleware/responses
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID", "Retry-After"],
    )

    register_exception_handlers(app)

    app.include_router(api_router, prefix=settings.api_v1_prefix)
    app.include_router(health.router, prefix="/health", tags=["Health"])

    @app.get(
        "/",
        response_model=RootResponse,
        tags=["Root"],
        summary="Root endpoint",
        description="Get basic information about the API",
        operation_id="get_public_root_metadata",
    )
    async def root() -> RootResponse:
        return RootResponse(
            message="Server is running",
            version=settings.app_version,
            docs="/docs",
            health="/health",
        )

    return app


app = create_app()
