"""Leaderboard queries.

Reads the movie_pick_scores projection and the player_auctions budgets and
ranks players by points.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bigpicture.models import Auction, MoviePickScore, Player, PlayerAuction
from bigpicture.services.scoring import (
    CriterionResult,
    CriterionStatus,
    MovieScore,
    ScoringEngine,
)
from bigpicture.services.scoring.engine import (
    format_box_office,
    format_metacritic,
    format_nominations,
)

logger = structlog.get_logger(__name__)


def projected_score(pick: Mapping[str, Any]) -> MovieScore:
    """Score of one movie_pick_scores row as stored by the last refresh."""
    return MovieScore(
        box_office=CriterionResult(
            CriterionStatus(pick["box_office_status"]),
            format_box_office(pick["domestic_box_office"]),
        ),
        oscar=CriterionResult(
            CriterionStatus(pick["oscar_status"]),
            format_nominations(pick["oscar_nominations"]),
        ),
        metacritic=CriterionResult(
            CriterionStatus(pick["metacritic_status"]),
            format_metacritic(pick["metacritic_score"]),
        ),
    )


def build_leaderboard(
    entries: Iterable[Mapping[str, Any]],
    picks: Iterable[Mapping[str, Any]],
    engine: ScoringEngine | None = None,
    award_threshold: int | None = None,
) -> list[dict[str, Any]]:
    """
    Group picks by player and rank players by points.

    Without ``award_threshold`` the statuses and player totals written by the
    aggregate refresh are used as stored. With it (yearly view) every pick is
    rescored from its raw stats and player points are summed here.

    Args:
        entries: One mapping per player with player_id, name, spent, left
            and the stored points
        picks: Projection rows with player_id, movie_title, purchase_amount,
            the raw stats and the stored statuses
        engine: Scoring engine, required when rescoring
        award_threshold: Nomination threshold override (yearly view)

    Returns:
        Ranked leaderboard. Players are taken in name order and then stably
        sorted by points, so ties keep name order.
    """
    movies_by_player: dict[int, list[dict[str, Any]]] = defaultdict(list)
    points_by_player: dict[int, int] = defaultdict(int)

    rescore = award_threshold is not None
    if rescore and engine is None:
        raise ValueError("A scoring engine is required to rescore picks")

    for pick in picks:
        if rescore:
            score = engine.calculate_score(
                pick["metacritic_score"],
                pick["domestic_box_office"],
                pick["oscar_nominations"],
                award_threshold=award_threshold,
            )
        else:
            score = projected_score(pick)
        movies_by_player[pick["player_id"]].append(
            {"title": pick["movie_title"], "price": pick["purchase_amount"], **score.to_dict()}
        )
        points_by_player[pick["player_id"]] += score.points

    board = [
        {
            "name": entry["name"],
            "spent": entry["spent"],
            "left": entry["left"],
            "points": (
                points_by_player.get(entry["player_id"], 0) if rescore else entry["points"]
            ),
            "movies": movies_by_player.get(entry["player_id"], []),
        }
        for entry in sorted(entries, key=lambda e: e["name"])
    ]
    board.sort(key=lambda row: row["points"], reverse=True)

    return [{"rank": index + 1, **row} for index, row in enumerate(board)]


class LeaderboardService:
    """Leaderboard for one auction, the latest auction, or a whole year."""

    def __init__(self, session: AsyncSession, engine: ScoringEngine | None = None):
        self.session = session
        self.engine = engine or ScoringEngine()

    async def for_auction(self, auction_id: int) -> list[dict[str, Any]] | None:
        """
        Leaderboard for one auction cycle.

        Returns:
            Ranked players, or None if the auction does not exist
        """
        auction = await self.session.get(Auction, auction_id)
        if auction is None:
            return None

        entries = await self._entries(PlayerAuction.auction_id == auction_id)
        picks = await self._picks(MoviePickScore.auction_id == auction_id)
        return build_leaderboard(entries, picks)

    async def for_latest_auction(self) -> list[dict[str, Any]] | None:
        """Leaderboard for the most recent auction (highest year, then cycle)."""
        result = await self.session.execute(
            select(Auction.id)
            .order_by(Auction.year.desc(), Auction.cycle.desc())
            .limit(1)
        )
        auction_id = result.scalar_one_or_none()
        if auction_id is None:
            return None
        return await self.for_auction(auction_id)

    async def for_year(self, year: int) -> list[dict[str, Any]]:
        """
        Leaderboard across every auction cycle of a year.

        Spend and budget are summed over the player's cycles. Oscars are
        judged against the yearly nomination threshold.
        """
        auction_ids = select(Auction.id).where(Auction.year == year)
        entries = await self._entries(PlayerAuction.auction_id.in_(auction_ids))
        picks = await self._picks(MoviePickScore.auction_year == year)

        logger.debug(
            "yearly_leaderboard",
            year=year,
            players=len(entries),
            picks=len(picks),
            award_threshold=self.engine.yearly_award_threshold,
        )
        return build_leaderboard(
            entries,
            picks,
            self.engine,
            award_threshold=self.engine.yearly_award_threshold,
        )

    async def _entries(self, condition) -> list[dict[str, Any]]:
        result = await self.session.execute(
            select(
                Player.id.label("player_id"),
                Player.first_name,
                Player.last_name,
                func.sum(PlayerAuction.total_spent).label("spent"),
                func.sum(PlayerAuction.remaining_budget).label("left"),
                func.sum(PlayerAuction.total_points).label("points"),
            )
            .join(PlayerAuction, PlayerAuction.player_id == Player.id)
            .where(condition)
            .group_by(Player.id, Player.first_name, Player.last_name)
        )
        return [
            {
                "player_id": row.player_id,
                "name": f"{row.first_name} {row.last_name}",
                "spent": int(row.spent or 0),
                "left": int(row.left or 0),
                "points": int(row.points or 0),
            }
            for row in result
        ]

    async def _picks(self, condition) -> list[Mapping[str, Any]]:
        result = await self.session.execute(
            select(
                MoviePickScore.player_id,
                MoviePickScore.movie_title,
                MoviePickScore.purchase_amount,
                MoviePickScore.metacritic_score,
                MoviePickScore.domestic_box_office,
                MoviePickScore.oscar_nominations,
                MoviePickScore.box_office_status,
                MoviePickScore.oscar_status,
                MoviePickScore.metacritic_status,
            )
            .where(condition)
            .order_by(MoviePickScore.auction_cycle, MoviePickScore.pick_id)
        )
        return list(result.mappings().all())
