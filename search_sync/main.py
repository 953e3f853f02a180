"""
Main application module for the Search Sync service.

This module serves as the entry point for the search sync service, which receives
content change notifications from the CMS backend and forwards them to a Redis
stream consumed by the search indexer.
"""

import argparse
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request

from search_sync.api.v1.router import api_router
from search_sync.core.config import Settings
from search_sync.core.dependencies import create_connection_manager, create_lifecycle_hooks
from search_sync.middleware.logging import LoggingMiddleware
from search_sync.services.lifecycle_hooks import LifecycleHooks
from search_sync.utils.logging import configure_logging
from search_sync.utils.metrics import setup_metrics_endpoint

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Context manager for FastAPI lifespan events.

    Builds the connection manager and hooks once for the application and starts
    the background Redis connection without waiting for it.
    """
    settings: Settings = app.state.settings
    logger.info("Starting up Search Sync service")

    connection = create_connection_manager(settings)
    app.state.connection_manager = connection
    app.state.hooks = create_lifecycle_hooks(settings, connection)

    if connection is not None:
        await connection.start()

    logger.info(
        "Search Sync service started",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        search_sync_enabled=connection is not None,
    )

    yield

    logger.info("Shutting down Search Sync service")

    if connection is not None:
        await connection.stop()

    logger.info("Search Sync service shut down")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Application settings; read from the environment if omitted

    Returns:
        Configured application
    """
    settings = settings or Settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description=settings.PROJECT_DESCRIPTION,
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.connection_manager = None
    app.state.hooks = LifecycleHooks(None)

    setup_metrics_endpoint(app, version=settings.VERSION, environment=str(settings.ENVIRONMENT))

    app.add_middleware(LoggingMiddleware)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/health")
    async def health_check(request: Request):
        """
        Health check endpoint.

        The service is healthy even when Redis is down; the connection
        state is reported alongside.
        """
        connection = request.app.state.connection_manager
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "search_sync": {
                "enabled": connection is not None,
                "connection": connection.get_status() if connection is not None else None,
            },
        }

    return app


def run() -> None:
    """Entry point for the service."""
    import uvicorn

    settings = Settings()

    parser = argparse.ArgumentParser(description="Search Sync Service")
    parser.add_argument("--host", default=settings.HOST, help="Interface to bind")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Port to bind")
    args = parser.parse_args()

    uvicorn.run(
        "search_sync.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=settings.DEBUG,
        log_level=str(settings.LOG_LEVEL).lower(),
    )


if __name__ == "__main__":
    run()
