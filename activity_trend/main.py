"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from activity_trend.api.routes import get_service, router as api_router
from activity_trend.config import settings

# Set up logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, settings.log_level.upper(), logging.INFO)
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: restore the locally stored activity set
    service = app.dependency_overrides.get(get_service, get_service)()
    service.load()
    yield
    logger.info("Shutting down Activity Trend")


# Create FastAPI app
app = FastAPI(
    title="Activity Trend",
    description="Strava activity history sync with similar-effort matching and segment performance history",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Include API routes
app.include_router(api_router, prefix="/api/v1", tags=["Activity Trend"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": "Activity Trend",
        "version": "0.1.0"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "activity_trend.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug
    )
