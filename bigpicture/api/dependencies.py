"""FastAPI dependencies for Big Picture Auction."""

import hmac
from collections.abc import AsyncGenerator

import redis.asyncio as redis
import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from bigpicture.config import Settings, get_settings
from bigpicture.models import Database
from bigpicture.services.batch import BatchOrchestrator
from bigpicture.services.pipeline import build_orchestrator

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_database(request: Request) -> Database:
    """Database handle created in the application lifespan."""
    return request.app.state.database


async def get_db(
    database: Database = Depends(get_database),
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with database.session() as session:
        yield session


def get_redis(request: Request) -> redis.Redis:
    """Redis client created in the application lifespan."""
    return request.app.state.redis


def verify_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Require ``Authorization: Bearer <CRON_SECRET>``.

    An unset secret rejects every request.
    """
    expected = settings.cron_secret
    supplied = credentials.credentials if credentials else ""
    if not expected or not hmac.compare_digest(supplied.encode(), expected.encode()):
        logger.warning("cron_unauthorized")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_orchestrator(
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> AsyncGenerator[BatchOrchestrator, None]:
    """Get batch orchestrator dependency."""
    async with build_orchestrator(db, redis_client, settings) as orchestrator:
        yield orchestrator
