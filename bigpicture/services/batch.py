"""Batch orchestrator.

Drives the stat reconciler over every movie (or one movie found by title),
accumulates the run report and refreshes the leaderboard projection once
at the end.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog

from bigpicture.services.locking import BatchLock
from bigpicture.services.reconciliation.errors import AmbiguousTitleError
from bigpicture.services.reconciliation.reconciler import (
    MovieResult,
    ReconcileStatus,
    StatReconciler,
)
from bigpicture.services.reconciliation.store import MovieRecord, StatsStore

logger = structlog.get_logger(__name__)

DEADLINE_ERROR = "Batch deadline exceeded"


class Refresher(Protocol):
    async def refresh(self) -> int: ...


@dataclass
class RunReport:
    """Summary of one batch run."""

    movies: list[MovieResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    aggregate_rows: int | None = None
    refresh_error: str | None = None

    def add(self, result: MovieResult) -> None:
        self.movies.append(result)

    def _count(self, *statuses: ReconcileStatus) -> int:
        return sum(1 for m in self.movies if m.status in statuses)

    @property
    def total(self) -> int:
        return len(self.movies)

    @property
    def successful(self) -> int:
        return self._count(ReconcileStatus.SUCCESS)

    @property
    def with_errors(self) -> int:
        """Partial and failed movies."""
        return self._count(ReconcileStatus.PARTIAL, ReconcileStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(ReconcileStatus.SKIPPED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the run report shape consumed by notifications and the API."""
        return {
            "total": self.total,
            "successful": self.successful,
            "withErrors": self.with_errors,
            "skipped": self.skipped,
            "movies": [m.to_dict() for m in self.movies],
        }


class BatchOrchestrator:
    """
    Run reconciliation across movies.

    Movies are processed one at a time in title order with a pause between
    them. The projection is refreshed once per run; a refresh failure is
    logged and does not fail the run.
    """

    def __init__(
        self,
        store: StatsStore,
        reconciler: StatReconciler,
        refresher: Refresher,
        lock: BatchLock | None = None,
        delay_seconds: float = 0.5,
        timeout_seconds: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Stats store used for movie lookups
            reconciler: Per-movie reconciler
            refresher: Aggregate refresher, called after writes
            lock: Optional batch lock; when set, runs are mutually exclusive
            delay_seconds: Pause between movies
            timeout_seconds: Deadline for a whole run, None for no limit
        """
        self.store = store
        self.reconciler = reconciler
        self.refresher = refresher
        self.lock = lock
        self.delay_seconds = delay_seconds
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep
        self._clock = clock

    async def run_all(self) -> RunReport:
        """
        Reconcile every movie.

        Raises:
            BatchInProgressError: If another run holds the lock
            PersistenceError: If the movie list cannot be read
        """
        if self.lock is None:
            return await self._run_all()
        async with self.lock.hold():
            return await self._run_all()

    async def run_for_title(self, title: str, strict: bool = False) -> MovieResult | None:
        """
        Reconcile the movie whose title contains ``title``.

        With several matches the first by title is used, unless ``strict``
        is set.

        Returns:
            The movie's result, or None if no title matches

        Raises:
            AmbiguousTitleError: Several matches in strict mode
            BatchInProgressError: If another run holds the lock
        """
        matches = sorted(await self.store.search_movies(title), key=lambda m: m.title)
        if not matches:
            logger.info("title_not_found", query=title)
            return None

        if len(matches) > 1:
            candidates = [m.title for m in matches]
            if strict:
                raise AmbiguousTitleError(title, candidates)
            logger.warning(
                "ambiguous_title_match",
                query=title,
                chosen=matches[0].title,
                candidates=candidates,
            )

        movie = matches[0]
        if self.lock is None:
            return await self._run_one(movie)
        async with self.lock.hold():
            return await self._run_one(movie)

    async def _run_one(self, movie: MovieRecord) -> MovieResult:
        result = await self._reconcile(movie)
        if result.wrote_stats:
            await self._refresh()
        return result

    async def _run_all(self) -> RunReport:
        report = RunReport()
        movies = sorted(await self.store.list_movies(), key=lambda m: m.title)
        deadline = (
            self._clock() + self.timeout_seconds if self.timeout_seconds else None
        )

        logger.info("batch_started", movies=len(movies))

        for index, movie in enumerate(movies):
            if index > 0 and self.delay_seconds > 0:
                await self._sleep(self.delay_seconds)

            if deadline is not None and self._clock() >= deadline:
                for remaining in movies[index:]:
                    report.add(
                        MovieResult(
                            title=remaining.title,
                            status=ReconcileStatus.FAILED,
                            errors=[DEADLINE_ERROR],
                        )
                    )
                logger.warning(
                    "batch_deadline_exceeded",
                    processed=index,
                    remaining=len(movies) - index,
                )
                break

            report.add(await self._reconcile(movie))

        rows, error = await self._refresh()
        report.aggregate_rows = rows
        report.refresh_error = error
        report.finished_at = datetime.now(timezone.utc)

        logger.info(
            "batch_complete",
            total=report.total,
            successful=report.successful,
            with_errors=report.with_errors,
            skipped=report.skipped,
            duration_seconds=(report.finished_at - report.started_at).total_seconds(),
        )
        return report

    async def _reconcile(self, movie: MovieRecord) -> MovieResult:
        try:
            return await self.reconciler.reconcile(movie)
        except Exception as e:
            # One broken movie must not stop the batch
            logger.exception("movie_reconcile_crashed", title=movie.title)
            return MovieResult(
                title=movie.title,
                status=ReconcileStatus.FAILED,
                errors=[f"Unexpected error: {e}"],
            )

    async def _refresh(self) -> tuple[int | None, str | None]:
        try:
            rows = await self.refresher.refresh()
        except Exception as e:
            logger.warning("aggregate_refresh_failed", error=str(e))
            return None, str(e)
        return rows, None
