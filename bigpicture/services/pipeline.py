"""Wiring of the reconciliation pipeline from settings."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from bigpicture.config import Settings, get_settings
from bigpicture.services.aggregate import AggregateRefresher
from bigpicture.services.batch import BatchOrchestrator
from bigpicture.services.locking import BatchLock
from bigpicture.services.reconciliation import StatReconciler, StatsStore
from bigpicture.services.scoring import ScoringEngine
from bigpicture.services.sources import (
    AwardNominationSource,
    BoxOfficeSource,
    CriticScoreSource,
    OMDbClient,
    SourceRateLimiter,
    TMDBClient,
    fit_request_timeout,
)


def source_budgets(timeout: float, with_tmdb: bool) -> tuple[float, float]:
    """
    Split one adapter timeout between the OMDb call and each TMDB call.

    The box office fetch makes one OMDb call and then two TMDB calls (search,
    details) in sequence, so together they must fit in ``timeout``.
    """
    if not with_tmdb:
        return timeout, 0.0
    return timeout / 2, timeout / 4


def source_client_options(settings: Settings, budget: float) -> dict[str, Any]:
    """HTTP client options whose attempts, backoff and token waits fit in ``budget``."""
    return {
        "timeout": fit_request_timeout(
            budget,
            settings.source_max_retries,
            settings.source_backoff_seconds,
            queue_wait=settings.source_rate_limit_wait,
        ),
        "max_retries": settings.source_max_retries,
        "backoff_base": settings.source_backoff_seconds,
    }


@asynccontextmanager
async def build_orchestrator(
    session: AsyncSession,
    redis_client: redis.Redis | None = None,
    settings: Settings | None = None,
    engine: ScoringEngine | None = None,
) -> AsyncIterator[BatchOrchestrator]:
    """
    Build a batch orchestrator bound to one session.

    With a Redis client, outbound requests are rate limited and runs are
    serialized by the batch lock. HTTP clients are closed on exit.
    """
    settings = settings or get_settings()
    timeout = settings.source_timeout_seconds

    rate_limiter = (
        SourceRateLimiter(
            redis_client,
            rate=settings.source_rate_limit,
            max_wait=settings.source_rate_limit_wait,
        )
        if redis_client is not None
        else None
    )

    omdb_budget, tmdb_budget = source_budgets(timeout, bool(settings.tmdb_api_key))
    omdb = OMDbClient(
        settings.omdb_api_key,
        rate_limiter=rate_limiter,
        **source_client_options(settings, omdb_budget),
    )
    tmdb = (
        TMDBClient(
            settings.tmdb_api_key,
            rate_limiter=rate_limiter,
            **source_client_options(settings, tmdb_budget),
        )
        if settings.tmdb_api_key
        else None
    )

    try:
        store = StatsStore(session)
        reconciler = StatReconciler(
            store,
            critic=CriticScoreSource(omdb, timeout),
            box_office=BoxOfficeSource(omdb, tmdb, timeout),
            awards=AwardNominationSource(omdb, timeout),
        )
        refresher = AggregateRefresher(session, engine or ScoringEngine())
        lock = (
            BatchLock(redis_client, ttl_seconds=settings.batch_lock_ttl_seconds)
            if redis_client is not None
            else None
        )
        yield BatchOrchestrator(
            store,
            reconciler,
            refresher,
            lock=lock,
            delay_seconds=settings.batch_delay_seconds,
            timeout_seconds=settings.batch_timeout_seconds,
        )
    finally:
        await omdb.close()
        if tmdb is not None:
            await tmdb.close()
