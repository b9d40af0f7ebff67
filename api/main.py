
"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, sync
from core.config import settings
from core.database import Database
from core.logging import setup_logging
import logging
from api.middleware import RequestContextMiddleware
from ingestion.fetcher import SourceFetcher
from ingestion.scheduler import SyncScheduler

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="PolitiqueFR Sync API",
    description="Synchronization of French public datasets on elected officials and legislation",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(sync.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting PolitiqueFR Sync API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    # Tests install their own database and fetcher before startup
    if getattr(app.state, "db", None) is None:
        app.state.db = Database()
        logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")
    if getattr(app.state, "fetcher_factory", None) is None:
        app.state.fetcher_factory = SourceFetcher

    app.state.scheduler = None
    if settings.SCHEDULER_ENABLED:
        app.state.scheduler = SyncScheduler(app.state.db)
        app.state.scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down PolitiqueFR Sync API")
    if app.state.scheduler is not None:
        app.state.scheduler.stop()
    await app.state.db.dispose()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "PolitiqueFR Sync API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "sync": "/api/v1/sync/{dataset}",
            "sync_all": "/api/v1/sync/tout",
            "status": "/api/v1/sync/status",
            "jobs": "/api/v1/sync/jobs"
        }
    }
