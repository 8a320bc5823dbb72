"""FastAPI application factory and main entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .deps import (
    get_cached_settings,
    get_orchestrator,
    get_teardown_coordinator,
    get_voice_client,
    get_webrtc_client,
)
from .logging_config import setup_logging
from .routers import callbacks_router, client_ws_router, fallback_router, status_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    # Startup
    logger.info("Starting WebRTC bridge application")
    settings = get_cached_settings()
    logger.info(f"Loaded settings - Callback base: {settings.base_callback_url}")
    logger.info(f"Application number: {settings.application_number}")

    yield

    # Shutdown: uvicorn turns SIGINT/SIGTERM into this branch.
    logger.info("Shutting down WebRTC bridge application")
    try:
        await get_teardown_coordinator().teardown_all()
        await get_orchestrator().drain()
    finally:
        await get_voice_client().close()
        await get_webrtc_client().close()


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    # Setup logging first
    setup_logging()

    app = FastAPI(
        title="WebRTC Bridge",
        description="Bridges PSTN calls to a browser WebRTC session over a SIP leg",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Mount routers; the catch-all must come last.
    app.include_router(callbacks_router, tags=["callbacks"])
    app.include_router(client_ws_router, tags=["client"])
    app.include_router(status_router, tags=["status"])
    app.include_router(fallback_router, tags=["fallback"])

    logger.info("FastAPI application created and configured")
    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=get_cached_settings().port,
        log_level="info",
    )
