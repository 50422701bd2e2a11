"""
SynthVerify FastAPI Application.

HTTP surface over the curation workspaces of open sessions.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from synthverify import __version__
from synthverify.api.routes import (
    analytics,
    duplicates,
    export,
    items,
    notifications,
    sessions,
)
from synthverify.config import Settings, settings
from synthverify.curation.workspace import CurationWorkspace, WorkspaceRegistry
from synthverify.logging_config import setup_logging
from synthverify.notifications import NotificationCenter
from synthverify.startup import run_all_startup_checks
from synthverify.stores.hub import HubUploader
from synthverify.stores.sql import SessionFactory, SqlBackingStore, SqlSessionStore

logger = logging.getLogger(__name__)


def configure_services(
    app: FastAPI,
    session_factory: Optional[SessionFactory] = None,
    config: Optional[Settings] = None,
) -> WorkspaceRegistry:
    """
    Build the stores, notifier and workspace registry on ``app.state``.

    Args:
        app: Application to configure
        session_factory: SQLAlchemy session factory (defaults to SessionLocal)
        config: Settings (defaults to the global settings)

    Returns:
        The workspace registry
    """
    config = config or settings
    backing_store = SqlBackingStore(session_factory, enabled=config.backing_store_enabled)
    session_store = SqlSessionStore(session_factory)
    uploader = HubUploader(endpoint=config.hub_endpoint)
    notifier = NotificationCenter()

    def factory(session_id: str) -> CurationWorkspace:
        return CurationWorkspace(
            session_id, backing_store, session_store, uploader, notifier, config=config
        )

    registry = WorkspaceRegistry(factory)
    app.state.backing_store = backing_store
    app.state.session_store = session_store
    app.state.uploader = uploader
    app.state.notifier = notifier
    app.state.registry = registry
    return registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Runs startup checks before the application starts serving requests and
    closes every open workspace on shutdown.
    """
    # Initialize logging first
    setup_logging(context="api")

    logger.info("Running startup checks...")
    run_all_startup_checks()
    logger.info("✓ Startup checks passed")

    if getattr(app.state, "registry", None) is None:
        configure_services(app)
    logger.info("Application startup complete")

    yield

    logger.info("Application shutdown initiated...")
    try:
        await app.state.registry.close_all()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)

    logger.info("Application shutdown complete")


app = FastAPI(
    lifespan=lifespan,
    title="SynthVerify API",
    description="API for curating synthetic training data",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],  # Vite default
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint - API health check."""
    return {
        "status": "ok",
        "message": "SynthVerify API is running",
        "version": __version__,
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    from synthverify.db.connection import check_connection

    db_status = "healthy" if check_connection() else "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "database": db_status,
    }


app.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
app.include_router(items.router, prefix="/sessions/{session_id}/items", tags=["items"])
app.include_router(
    duplicates.router, prefix="/sessions/{session_id}/duplicates", tags=["duplicates"]
)
app.include_router(
    analytics.router, prefix="/sessions/{session_id}/analytics", tags=["analytics"]
)
app.include_router(export.router, prefix="/sessions/{session_id}/export", tags=["export"])
app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
