"""Health check endpoints."""

from datetime import datetime, timezone

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from bigpicture.api.dependencies import get_db, get_redis
from bigpicture.config import get_settings
from bigpicture.models import JobRun

BATCH_JOB_NAME = "update_all_movie_stats"

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime


class ReadyCheck(BaseModel):
    """Individual readiness check."""

    status: str
    message: str | None = None


async def latest_batch_check(db: AsyncSession) -> ReadyCheck:
    """
    Outcome of the most recent scheduled stats update.

    A failed or missing run is a warning only; the API can still serve the
    last leaderboard projection.
    """
    result = await db.execute(
        select(JobRun)
        .where(JobRun.job_name == BATCH_JOB_NAME)
        .order_by(JobRun.started_at.desc())
        .limit(1)
    )
    run = result.scalar_one_or_none()
    if run is None:
        return ReadyCheck(status="warning", message="no runs yet")

    started = run.started_at.isoformat()
    if run.status in ("success", "running"):
        return ReadyCheck(status="ok", message=f"{run.status} at {started}")
    detail = f": {run.error_message}" if run.error_message else ""
    return ReadyCheck(status="warning", message=f"{run.status} at {started}{detail}")


class ReadyResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    checks: dict[str, ReadyCheck]


@router.get("/health", response_model=HealthResponse)
async def health():
    """
    Basic health check.

    Returns healthy if the service is running.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/ready", response_model=ReadyResponse)
async def ready(
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
):
    """
    Readiness check for all dependencies.

    Checks:
    - Database connectivity
    - Redis connectivity
    - OMDb key configured (warning only)
    - Last scheduled stats update (warning only)
    """
    checks = {}
    all_ready = True

    try:
        await db.execute(text("SELECT 1"))
        checks["db"] = ReadyCheck(status="ok")
    except Exception as e:
        checks["db"] = ReadyCheck(status="error", message=str(e))
        all_ready = False

    if all_ready:
        try:
            checks["last_update"] = await latest_batch_check(db)
        except Exception as e:
            checks["last_update"] = ReadyCheck(status="warning", message=str(e))

    try:
        await redis_client.ping()
        checks["redis"] = ReadyCheck(status="ok")
    except Exception as e:
        checks["redis"] = ReadyCheck(status="error", message=str(e))
        all_ready = False

    settings = get_settings()
    if settings.omdb_configured:
        checks["omdb"] = ReadyCheck(status="ok", message="API key configured")
    else:
        checks["omdb"] = ReadyCheck(status="warning", message="API key not configured")

    return ReadyResponse(ready=all_ready, checks=checks)
