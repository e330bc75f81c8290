"""Cron trigger endpoints.

Every endpoint requires ``Authorization: Bearer <CRON_SECRET>``; the check
runs before any other dependency so a rejected call has no side effects.
"""

from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from bigpicture.api.dependencies import get_db, get_orchestrator, verify_cron_secret
from bigpicture.config import Settings, get_settings
from bigpicture.services.aggregate import AggregateRefresher
from bigpicture.services.batch import BatchOrchestrator
from bigpicture.services.notifications import send_run_report
from bigpicture.services.reconciliation import (
    AmbiguousTitleError,
    BatchInProgressError,
    PersistenceError,
)

router = APIRouter(
    prefix="/api/cron",
    tags=["cron"],
    dependencies=[Depends(verify_cron_secret)],
)
logger = structlog.get_logger(__name__)


class BatchRunResponse(BaseModel):
    """Response from a full batch run."""

    success: bool
    timestamp: datetime
    results: dict[str, Any]


class MovieRunResponse(BaseModel):
    """Response from a single-title run."""

    success: bool
    timestamp: datetime
    result: dict[str, Any]


class RefreshResponse(BaseModel):
    success: bool
    timestamp: datetime
    rows: int


@router.api_route("/update-movies", methods=["GET", "POST"], response_model=BatchRunResponse)
async def update_movies(
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
) -> BatchRunResponse:
    """
    Reconcile stats for every movie, refresh the leaderboard projection and
    e-mail the run report.
    """
    try:
        report = await orchestrator.run_all()
    except BatchInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PersistenceError as e:
        logger.error("cron_batch_failed", error=str(e))
        raise HTTPException(status_code=500, detail=f"Batch failed: {e}")

    results = report.to_dict()
    await send_run_report(results, refresh_error=report.refresh_error, settings=settings)

    logger.info(
        "cron_batch_complete",
        total=report.total,
        successful=report.successful,
        with_errors=report.with_errors,
        skipped=report.skipped,
    )
    return BatchRunResponse(
        success=True,
        timestamp=datetime.now(timezone.utc),
        results=results,
    )


@router.post("/update-movie", response_model=MovieRunResponse)
async def update_movie(
    title: str = Query(..., min_length=1, description="Case-insensitive title fragment"),
    strict: bool = Query(False, description="Reject ambiguous matches"),
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
) -> MovieRunResponse:
    """Reconcile stats for one movie found by title."""
    try:
        result = await orchestrator.run_for_title(title, strict=strict)
    except AmbiguousTitleError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": str(e), "candidates": e.candidates},
        )
    except BatchInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=f"Update failed: {e}")

    if result is None:
        raise HTTPException(status_code=404, detail=f"No movie matches '{title}'")

    return MovieRunResponse(
        success=result.wrote_stats,
        timestamp=datetime.now(timezone.utc),
        result=result.to_dict(),
    )


@router.post("/refresh-aggregate", response_model=RefreshResponse)
async def refresh_aggregate(db: AsyncSession = Depends(get_db)) -> RefreshResponse:
    """Rebuild the leaderboard projection without fetching anything."""
    try:
        rows = await AggregateRefresher(db).refresh()
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return RefreshResponse(success=True, timestamp=datetime.now(timezone.utc), rows=rows)
