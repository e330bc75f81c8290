"""Aggregate view refresher.

Rebuilds movie_pick_scores (pick x movie x stats x points) and the cached
player_auctions.total_points from scratch. The rebuild runs in a single
transaction under an advisory lock, so readers see either the previous or
the new projection and two refreshes never interleave.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import delete, insert, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bigpicture.models import Auction, Movie, MoviePickScore, MovieStats, Pick, Player, PlayerAuction
from bigpicture.services.reconciliation.errors import PersistenceError
from bigpicture.services.scoring import ScoringEngine

logger = structlog.get_logger(__name__)

# pg_advisory_xact_lock key for the projection rebuild
AGGREGATE_LOCK_KEY = 0x6270_5F61_6767


def build_aggregate_rows(
    source_rows: Iterable[Mapping[str, Any]],
    engine: ScoringEngine,
    refreshed_at: datetime,
) -> list[dict[str, Any]]:
    """
    Score joined pick rows into movie_pick_scores rows.

    Args:
        source_rows: Picks joined with player, movie, auction and (optional) stats
        engine: Scoring engine
        refreshed_at: Timestamp stamped on every row

    Returns:
        One dict per pick, ready for insert
    """
    rows = []
    for src in source_rows:
        domestic = src.get("domestic_box_office") or 0
        international = src.get("international_box_office") or 0
        score = engine.calculate_score(
            src.get("metacritic_score"),
            domestic,
            src.get("oscar_nominations"),
        )
        rows.append(
            {
                "pick_id": src["pick_id"],
                "player_id": src["player_id"],
                "player_name": f"{src['first_name']} {src['last_name']}",
                "movie_id": src["movie_id"],
                "movie_title": src["movie_title"],
                "auction_id": src["auction_id"],
                "auction_year": src["auction_year"],
                "auction_cycle": src["auction_cycle"],
                "purchase_amount": src["purchase_amount"],
                "pick_date": src.get("pick_date"),
                "metacritic_score": src.get("metacritic_score"),
                "domestic_box_office": domestic,
                "international_box_office": international,
                "oscar_nominations": src.get("oscar_nominations"),
                "box_office_status": score.box_office.status.value,
                "oscar_status": score.oscar.status.value,
                "metacritic_status": score.metacritic.status.value,
                "total_points": score.points,
                "refreshed_at": refreshed_at,
            }
        )
    return rows


def player_totals(rows: Iterable[Mapping[str, Any]]) -> dict[tuple[int, int], int]:
    """Sum total_points per (player_id, auction_id)."""
    totals: dict[tuple[int, int], int] = defaultdict(int)
    for row in rows:
        totals[(row["player_id"], row["auction_id"])] += row["total_points"]
    return dict(totals)


class AggregateRefresher:
    """Full rebuild of the leaderboard projection."""

    def __init__(self, session: AsyncSession, engine: ScoringEngine | None = None):
        self.session = session
        self.engine = engine or ScoringEngine()

    def _source_query(self):
        return (
            select(
                Pick.id.label("pick_id"),
                Pick.player_id,
                Player.first_name,
                Player.last_name,
                Pick.movie_id,
                Movie.title.label("movie_title"),
                Pick.auction_id,
                Auction.year.label("auction_year"),
                Auction.cycle.label("auction_cycle"),
                Pick.purchase_amount,
                Pick.created_at.label("pick_date"),
                MovieStats.metacritic_score,
                MovieStats.domestic_box_office,
                MovieStats.international_box_office,
                MovieStats.oscar_nominations,
            )
            .select_from(Pick)
            .join(Player, Player.id == Pick.player_id)
            .join(Movie, Movie.id == Pick.movie_id)
            .join(Auction, Auction.id == Pick.auction_id)
            .outerjoin(MovieStats, MovieStats.movie_id == Pick.movie_id)
            .order_by(Pick.id)
        )

    async def refresh(self) -> int:
        """
        Rebuild the projection.

        Returns:
            Number of movie_pick_scores rows written

        Raises:
            PersistenceError: If the rebuild fails; nothing is changed
        """
        refreshed_at = datetime.now(timezone.utc)
        try:
            await self.session.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": AGGREGATE_LOCK_KEY},
            )

            result = await self.session.execute(self._source_query())
            rows = build_aggregate_rows(result.mappings().all(), self.engine, refreshed_at)

            await self.session.execute(delete(MoviePickScore))
            if rows:
                await self.session.execute(insert(MoviePickScore), rows)

            await self.session.execute(update(PlayerAuction).values(total_points=0))
            for (player_id, auction_id), points in player_totals(rows).items():
                await self.session.execute(
                    update(PlayerAuction)
                    .where(
                        PlayerAuction.player_id == player_id,
                        PlayerAuction.auction_id == auction_id,
                    )
                    .values(total_points=points)
                )

            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("aggregate_refresh_error", error=str(e))
            raise PersistenceError(f"Aggregate refresh failed: {e}") from e

        logger.info("aggregate_refreshed", rows=len(rows))
        return len(rows)
