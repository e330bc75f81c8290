"""Pytest configuration and fixtures for Big Picture Auction tests."""

import asyncio
from datetime import date
from typing import Any

import pytest

from bigpicture.services.reconciliation import (
    MovieRecord,
    PersistenceError,
    StatReconciler,
    StatsSnapshot,
)
from bigpicture.services.sources import StatSource

TODAY = date(2026, 10, 17)


class FakeStatsStore:
    """In-memory stats store."""

    def __init__(
        self,
        movies: list[MovieRecord] | None = None,
        stats: dict[int, StatsSnapshot] | None = None,
        fail_upsert_for: set[int] | None = None,
    ):
        self.movies = list(movies or [])
        self.stats = dict(stats or {})
        self.fail_upsert_for = set(fail_upsert_for or ())
        self.upserts: list[tuple[int, StatsSnapshot]] = []

    async def get(self, movie_id: int) -> StatsSnapshot | None:
        return self.stats.get(movie_id)

    async def upsert(self, movie_id: int, snapshot: StatsSnapshot) -> None:
        if movie_id in self.fail_upsert_for:
            raise PersistenceError("connection refused")
        self.stats[movie_id] = snapshot
        self.upserts.append((movie_id, snapshot))

    async def list_movies(self) -> list[MovieRecord]:
        return list(self.movies)

    async def search_movies(self, title: str) -> list[MovieRecord]:
        matches = [m for m in self.movies if title.casefold() in m.title.casefold()]
        return sorted(matches, key=lambda m: m.title)


class StubSource(StatSource):
    """
    Source returning canned values.

    ``value`` is returned for every title unless ``by_title`` has an entry.
    An Exception instance is raised instead of returned.
    """

    name = "stub"

    def __init__(
        self,
        value: Any = None,
        by_title: dict[str, Any] | None = None,
        delay: float = 0.0,
        timeout_seconds: float = 1.0,
    ):
        super().__init__(timeout_seconds)
        self.value = value
        self.by_title = by_title or {}
        self.delay = delay
        self.calls: list[tuple[str, int | None]] = []

    async def _fetch(self, title: str, year: int | None) -> Any:
        self.calls.append((title, year))
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.by_title.get(title, self.value)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeRefresher:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0

    async def refresh(self) -> int:
        self.calls += 1
        if self.fail:
            raise PersistenceError("Aggregate refresh failed: deadlock detected")
        return 7


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def make_reconciler():
    """Build a reconciler over fakes; overrides default to an empty table."""

    def _make(
        store: FakeStatsStore,
        critic: StatSource | None = None,
        box_office: StatSource | None = None,
        awards: StatSource | None = None,
        overrides: dict | None = None,
    ) -> StatReconciler:
        return StatReconciler(
            store,
            critic=critic or StubSource(),
            box_office=box_office or StubSource(),
            awards=awards or StubSource(),
            overrides={} if overrides is None else overrides,
            today=lambda: TODAY,
        )

    return _make
