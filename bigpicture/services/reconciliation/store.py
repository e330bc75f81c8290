"""Stats store: persistence for MovieStats plus the movie lookups the
pipeline needs.

No business rules live here. Only the stat reconciler writes stats.
"""

from dataclasses import asdict, dataclass
from datetime import date

import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bigpicture.models import Movie, MovieStats
from bigpicture.services.reconciliation.eligibility import release_date_of, year_of
from bigpicture.services.reconciliation.errors import PersistenceError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MovieRecord:
    """The movie fields reconciliation reads."""

    id: int
    title: str
    actual_release_date: date | None = None
    anticipated_release_date: date | None = None

    @property
    def release_date(self) -> date | None:
        return release_date_of(self.actual_release_date, self.anticipated_release_date)

    @property
    def year(self) -> int | None:
        return year_of(self.release_date)


@dataclass(frozen=True)
class StatsSnapshot:
    """
    One movie's stats as stored.

    oscar_nominations None means pending/unknown, 0 means confirmed zero.
    """

    metacritic_score: int | None = None
    domestic_box_office: int = 0
    international_box_office: int = 0
    oscar_nominations: int | None = None
    oscar_wins: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class StatsStore:
    """Reads and writes movie_stats rows for one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, movie_id: int) -> StatsSnapshot | None:
        """Get the stored stats for a movie, or None if never reconciled."""
        try:
            result = await self.session.execute(
                select(MovieStats).where(MovieStats.movie_id == movie_id)
            )
            row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e

        if row is None:
            return None
        return StatsSnapshot(
            metacritic_score=row.metacritic_score,
            domestic_box_office=row.domestic_box_office or 0,
            international_box_office=row.international_box_office or 0,
            oscar_nominations=row.oscar_nominations,
            oscar_wins=row.oscar_wins or 0,
        )

    async def upsert(self, movie_id: int, snapshot: StatsSnapshot) -> None:
        """
        Insert or update the stats row for a movie and commit.

        Raises:
            PersistenceError: If the write fails; the session is rolled back
        """
        values = snapshot.to_dict()
        stmt = insert(MovieStats).values(movie_id=movie_id, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["movie_id"],
            set_={**values, "updated_at": func.now()},
        )
        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("stats_upsert_failed", movie_id=movie_id, error=str(e))
            raise PersistenceError(str(e)) from e

    async def list_movies(self) -> list[MovieRecord]:
        """All movies, ordered by title."""
        return await self._select_movies(select(Movie).order_by(Movie.title))

    async def search_movies(self, title: str) -> list[MovieRecord]:
        """Movies whose title contains ``title`` (case-insensitive), ordered by title."""
        stmt = (
            select(Movie)
            .where(Movie.title.icontains(title, autoescape=True))
            .order_by(Movie.title)
        )
        return await self._select_movies(stmt)

    async def _select_movies(self, stmt) -> list[MovieRecord]:
        try:
            result = await self.session.execute(stmt)
            movies = result.scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e
        return [
            MovieRecord(
                id=m.id,
                title=m.title,
                actual_release_date=m.actual_release_date,
                anticipated_release_date=m.anticipated_release_date,
            )
            for m in movies
        ]
