#!/usr/bin/env python3
"""
FastAPI Application Entry Point

Configures the enhancement streaming service: lifespan (logging, Redis,
orchestrator wiring), middleware, exception handlers and routes.

Run with:
    uvicorn enhance_stream.application.app:app
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from enhance_stream.application.api.dependencies import build_orchestrator, get_user_id
from enhance_stream.application.api.middleware.error_handler import (
    ErrorHandlingMiddleware,
    handle_enhance_stream_error,
)
from enhance_stream.application.api.routes.enhancement import router as enhancement_router
from enhance_stream.application.api.routes.health import router as health_router
from enhance_stream.core.config.constants import HEADER_SESSION_ID, Stage
from enhance_stream.core.config.settings import get_settings
from enhance_stream.core.exceptions import EnhanceStreamError, StorageError
from enhance_stream.core.logging.logger import get_logger, setup_logging
from enhance_stream.infrastructure.storage.redis_client import close_redis, init_redis

logger = get_logger(__name__)


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    Redis is optional: when it is disabled or unreachable, sessions are kept
    in process memory and the service still starts.
    """
    settings = get_settings()

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting Enhance Stream Service",
        stage=Stage.INITIALIZATION,
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    redis_client = None
    if settings.redis.REDIS_ENABLED:
        try:
            redis_client = await init_redis()
            logger.info("Redis connected", stage=Stage.REDIS)
        except StorageError as e:
            logger.warning(
                "Redis unavailable, sessions will be kept in memory",
                stage=Stage.REDIS,
                error=e.message,
            )

    try:
        app.state.orchestrator = build_orchestrator(settings, redis_client)
        logger.info("Application startup complete", stage=Stage.INITIALIZATION)

        yield

    finally:
        logger.info("Shutting down application", stage=Stage.INITIALIZATION)
        await close_redis()
        logger.info("Application shutdown complete", stage=Stage.INITIALIZATION)


# ============================================================================
# Application Factory
# ============================================================================


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Streams AI text enhancements to clients over Server-Sent Events",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Middleware runs in reverse registration order: errors are caught
    # before CORS headers are added, so error responses carry them too.
    app.add_middleware(
        ErrorHandlingMiddleware,
        include_traceback=(settings.app.ENVIRONMENT == "development"),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[HEADER_SESSION_ID],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        """Bind request fields to every log line emitted while serving it."""
        structlog.contextvars.bind_contextvars(
            method=request.method,
            path=request.url.path,
            user_id=get_user_id(request),
        )
        try:
            return await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

    app.add_exception_handler(EnhanceStreamError, handle_enhance_stream_error)

    app.include_router(health_router)
    app.include_router(enhancement_router, prefix=settings.app.API_PREFIX)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "docs": "/docs",
            "health": "/health",
        }

    return app


# Create application instance
app = create_app()


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "enhance_stream.application.app:app",
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
