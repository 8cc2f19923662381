"""
Main FastAPI application module.
"""

from fastapi import FastAPI
import uvicorn
import logging
from contextlib import asynccontextmanager

from gazette.config import settings, configure_logging
from gazette.api.changelogs import router as changelogs_router
from gazette.api.health import router as health_router


# Configure logging
configure_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Gazette...")
    logger.info(
        f"AI provider: {settings.get_ai_provider().short_name} ({settings.get_ai_model()}), "
        f"Jira context: {'enabled' if settings.jira_configured else 'disabled'}"
    )

    yield

    # Shutdown
    logger.info("Shutting down Gazette...")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="AI-generated changelogs from recently merged pull requests",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Include routers
app.include_router(health_router, prefix=settings.API_V1_STR, tags=["health"])
app.include_router(changelogs_router, prefix=settings.API_V1_STR, tags=["changelogs"])


@app.get("/info")
async def get_app_info():
    """Get application information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "debug": settings.DEBUG,
        "ai_provider": settings.get_ai_provider().value,
        "ai_model": settings.get_ai_model(),
        "time_window": str(settings.get_time_window()),
    }


def run(host: str = "127.0.0.1", port: int = 8000) -> None:
    uvicorn.run(
        "gazette.main:app",
        host=host,
        port=port,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
