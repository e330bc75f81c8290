"""Big Picture Auction FastAPI application.

Movie auction leaderboard and the cron-triggered movie stats update.
"""

from contextlib import asynccontextmanager

import redis.asyncio as redis
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bigpicture import __version__
from bigpicture.api.routes import cron, health, leaderboard
from bigpicture.config import get_settings
from bigpicture.config.logging import configure_logging
from bigpicture.models import Database

settings = get_settings()
configure_logging(settings.log_level)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database pool and Redis client; close them on shutdown."""
    logger.info("starting_bigpicture", version=__version__)
    app.state.database = Database.from_settings(settings)
    app.state.redis = redis.from_url(settings.redis_url)
    try:
        yield
    finally:
        await app.state.redis.aclose()
        await app.state.database.dispose()
        logger.info("shutting_down_bigpicture")


# Create FastAPI application
app = FastAPI(
    title="Big Picture Auction",
    description="Movie auction stats reconciliation and leaderboard",
    version=__version__,
    lifespan=lifespan,
)

# Include API routers
app.include_router(health.router)
app.include_router(leaderboard.router)
app.include_router(cron.router)


# Error handlers
@app.exception_handler(500)
async def server_error_handler(request: Request, exc):
    """Log unhandled errors and answer with a JSON body."""
    logger.error("server_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
