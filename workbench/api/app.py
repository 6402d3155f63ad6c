"""Main FastAPI application.

This module creates the FastAPI application with:
- Middleware for error handling and logging
- Channel resolution (NDJSON stream and WebSocket), video detail and health routes
- Cleanup of pooled HTTP clients and the MongoDB store on shutdown
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from workbench.api.dependencies import reset_youtube_client
from workbench.api.middleware import setup_error_handler, setup_logging_middleware
from workbench.api.routers import channels_router, health_router, videos_router
from workbench.core.config import get_settings
from workbench.core.constants import API_V1_PREFIX, APP_DESCRIPTION, APP_NAME, APP_VERSION
from workbench.core.exceptions import LocalDataError
from workbench.core.http_session import close_all_clients
from workbench.core.logging_config import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events including:
    - MongoDB index creation when the Mongo store is the local source
    - Closing pooled HTTP clients and the database connection on shutdown

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    logger.info("Starting %s v%s", APP_NAME, APP_VERSION)
    settings = get_settings()
    db_manager = None

    if settings.local_source == "mongo":
        from workbench.database import get_db_manager

        db_manager = get_db_manager()
        try:
            await db_manager.init_indexes()
            logger.info("Database indexes initialized")
        except LocalDataError as e:
            # The local cache is optional; resolutions fall back to the remote API
            logger.warning("MongoDB unavailable at startup: %s", e)

    try:
        yield
    finally:
        logger.info("Shutting down %s", APP_NAME)
        await close_all_clients()
        reset_youtube_client()
        if db_manager is not None:
            await db_manager.close()
            logger.info("Database connection closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Add CORS middleware (all origins for development)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_logging_middleware(app)
    setup_error_handler(app)

    app.include_router(channels_router, prefix=API_V1_PREFIX)
    app.include_router(videos_router, prefix=API_V1_PREFIX)
    app.include_router(health_router)  # Health endpoints at root level

    logger.info("Application created successfully")
    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "workbench.api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
