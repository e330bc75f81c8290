"""Stat reconciler.

Produces the next movie_stats row for one movie and a result describing
what happened:

1. Unreleased movies are reset to the empty/pending state without any
   fetch.
2. A manual award override, when present, replaces the nomination fetch.
3. Nominations stay pending until the ceremony year (release year + 1).
4. The remaining sources are fetched concurrently.
5. Fields are merged without ever regressing to unknown: a failed fetch
   keeps the stored value.
6. Changes between non-absent old and new values are recorded.
7. The row is upserted.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

import structlog

from bigpicture.config.award_overrides import AwardOverride, get_award_override
from bigpicture.services.reconciliation.eligibility import awards_pending, is_unreleased
from bigpicture.services.reconciliation.errors import PersistenceError
from bigpicture.services.reconciliation.store import MovieRecord, StatsSnapshot, StatsStore
from bigpicture.services.sources import (
    BoxOfficeFigures,
    FetchError,
    FetchResult,
    Found,
    NotFound,
    StatSource,
)

logger = structlog.get_logger(__name__)

NOT_RELEASED_REASON = "Not released yet"

# Labels used in the run report's changes map
METACRITIC_LABEL = "Metacritic Score"
DOMESTIC_LABEL = "Domestic Box Office"
INTERNATIONAL_LABEL = "International Box Office"
NOMINATIONS_LABEL = "Oscar Nominations"


class ReconcileStatus(str, Enum):
    """Terminal status of one movie's reconciliation."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class MovieResult:
    """Outcome of reconciling one movie."""

    title: str
    status: ReconcileStatus = ReconcileStatus.SUCCESS
    errors: list[str] = field(default_factory=list)
    updates: dict[str, Any] = field(default_factory=dict)
    changes: dict[str, dict[str, Any]] = field(default_factory=dict)
    reason: str | None = None
    stats: StatsSnapshot | None = None

    @property
    def wrote_stats(self) -> bool:
        """Whether the store holds this run's values."""
        return self.status != ReconcileStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Convert to the run report's per-movie shape."""
        data: dict[str, Any] = {
            "title": self.title,
            "status": self.status.value,
            "errors": list(self.errors),
            "updates": dict(self.updates),
            "changes": dict(self.changes),
        }
        if self.reason:
            data["reason"] = self.reason
        return data


def format_gross(amount: int) -> str:
    """Format a gross as millions, e.g. 150000000 -> "$150.0M"."""
    return f"${amount / 1_000_000:.1f}M"


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _merge(result: FetchResult, previous: Any, absent: Any) -> Any:
    """
    Merge one fetched field with its stored value.

    Found wins, NotFound is a confirmed absence, and an error keeps the
    previous value (or the absent value when nothing was stored).
    """
    if isinstance(result, Found):
        return result.value
    if isinstance(result, NotFound):
        return absent
    return absent if previous is None else previous


def _record_change(
    changes: dict[str, dict[str, Any]],
    label: str,
    old: Any,
    new: Any,
    present: Callable[[Any], bool],
) -> None:
    if present(old) and present(new) and old != new:
        changes[label] = {"old": old, "new": new}


def _is_known(value: Any) -> bool:
    return value is not None


def _is_positive(value: Any) -> bool:
    return bool(value and value > 0)


class StatReconciler:
    """
    Reconciles one movie at a time against the stats store.

    Args:
        store: Stats store to read previous values from and write to
        critic: Critic score source
        box_office: Box office source
        awards: Award nomination source
        overrides: Award override table, defaults to the built-in one
        today: Callable returning the reference date, defaults to UTC today
    """

    def __init__(
        self,
        store: StatsStore,
        critic: StatSource,
        box_office: StatSource,
        awards: StatSource,
        overrides: dict[tuple[str, int], AwardOverride] | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.store = store
        self.critic = critic
        self.box_office = box_office
        self.awards = awards
        self.overrides = overrides
        self._today = today or _utc_today

    async def reconcile(self, movie: MovieRecord) -> MovieResult:
        """
        Reconcile one movie.

        Never raises for adapter or database failures; they are reported in
        the result.
        """
        result = MovieResult(title=movie.title)
        today = self._today()

        try:
            previous = await self.store.get(movie.id)
        except PersistenceError as e:
            result.status = ReconcileStatus.FAILED
            result.errors.append(f"Database: {e}")
            return result

        if is_unreleased(movie.release_date, movie.year, today):
            return await self._reset_unreleased(movie, previous, result)

        snapshot = await self._fetch_and_merge(movie, previous, today, result)
        adapter_errors = bool(result.errors)

        try:
            await self.store.upsert(movie.id, snapshot)
        except PersistenceError as e:
            result.status = ReconcileStatus.FAILED
            result.errors.append(f"Database: {e}")
            logger.error("movie_reconcile_failed", title=movie.title, error=str(e))
            return result

        result.stats = snapshot
        result.status = (
            ReconcileStatus.PARTIAL if adapter_errors else ReconcileStatus.SUCCESS
        )
        logger.info(
            "movie_reconciled",
            title=movie.title,
            status=result.status.value,
            errors=len(result.errors),
            changes=list(result.changes),
        )
        return result

    async def _reset_unreleased(
        self,
        movie: MovieRecord,
        previous: StatsSnapshot | None,
        result: MovieResult,
    ) -> MovieResult:
        # Stored values for an unreleased movie are stale by definition
        snapshot = StatsSnapshot(oscar_wins=previous.oscar_wins if previous else 0)
        result.reason = NOT_RELEASED_REASON

        try:
            await self.store.upsert(movie.id, snapshot)
        except PersistenceError as e:
            result.status = ReconcileStatus.FAILED
            result.errors.append(f"Database: {e}")
            logger.error("movie_reset_failed", title=movie.title, error=str(e))
            return result

        result.stats = snapshot
        result.status = ReconcileStatus.SKIPPED
        logger.info(
            "movie_skipped_unreleased",
            title=movie.title,
            release_date=str(movie.release_date) if movie.release_date else None,
        )
        return result

    async def _fetch_and_merge(
        self,
        movie: MovieRecord,
        previous: StatsSnapshot | None,
        today: date,
        result: MovieResult,
    ) -> StatsSnapshot:
        title, year = movie.title, movie.year

        override = get_award_override(title, year, self.overrides)
        nominations_pending = override is None and awards_pending(year, today)
        fetch_awards = override is None and not nominations_pending

        fetches = [
            self.critic.fetch(title, year),
            self.box_office.fetch(title, year),
        ]
        if fetch_awards:
            fetches.append(self.awards.fetch(title, year))

        outcomes = await asyncio.gather(*fetches)
        critic_result, box_result = outcomes[0], outcomes[1]

        prev = previous or StatsSnapshot()
        had_previous = previous is not None

        # Critic score
        score = _merge(
            critic_result, prev.metacritic_score if had_previous else None, None
        )
        if isinstance(critic_result, Found):
            result.updates["metacritic"] = critic_result.value
        elif isinstance(critic_result, FetchError):
            result.errors.append(f"Metacritic: {critic_result.detail}")

        # Box office
        if isinstance(box_result, Found):
            figures: BoxOfficeFigures = box_result.value
            domestic, international = figures.domestic, figures.international
            if international is None:
                international = prev.international_box_office if had_previous else 0
            result.updates["boxOffice"] = format_gross(domestic)
        elif isinstance(box_result, NotFound):
            domestic, international = 0, 0
        else:
            domestic = prev.domestic_box_office if had_previous else 0
            international = prev.international_box_office if had_previous else 0
            result.errors.append(f"Box Office: {box_result.detail}")

        # Nominations
        if override is not None:
            nominations = override.nominations
            result.updates["oscars"] = f"{nominations} nominations (override)"
            logger.info(
                "award_override_applied",
                title=title,
                year=year,
                nominations=nominations,
            )
        elif nominations_pending:
            nominations = None
            result.updates["oscars"] = "pending"
        else:
            awards_result = outcomes[2]
            nominations = _merge(
                awards_result, prev.oscar_nominations if had_previous else None, None
            )
            if isinstance(awards_result, Found):
                result.updates["oscars"] = f"{awards_result.value} nominations"
            elif isinstance(awards_result, FetchError):
                result.errors.append(f"Oscars: {awards_result.detail}")

        snapshot = StatsSnapshot(
            metacritic_score=score,
            domestic_box_office=domestic,
            international_box_office=international,
            oscar_nominations=nominations,
            oscar_wins=prev.oscar_wins,
        )

        if had_previous:
            changes = result.changes
            _record_change(changes, METACRITIC_LABEL, prev.metacritic_score, score, _is_known)
            _record_change(changes, DOMESTIC_LABEL, prev.domestic_box_office, domestic, _is_positive)
            _record_change(
                changes, INTERNATIONAL_LABEL, prev.international_box_office, international, _is_positive
            )
            _record_change(changes, NOMINATIONS_LABEL, prev.oscar_nominations, nominations, _is_known)

        return snapshot
