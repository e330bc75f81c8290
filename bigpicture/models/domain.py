"""Domain models for Big Picture Auction.

Players bid on movies in auction cycles. Movie outcomes (box office, Oscar
nominations, Metacritic score) live in movie_stats and are written only by
the stats reconciler. movie_pick_scores is a rebuilt projection that serves
the leaderboard.
"""

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bigpicture.models.base import Base, TimestampMixin


class Player(Base, TimestampMixin):
    """A person taking part in auctions."""

    __tablename__ = "players"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Relationships
    picks: Mapped[list["Pick"]] = relationship("Pick", back_populates="player")
    auctions: Mapped[list["PlayerAuction"]] = relationship(
        "PlayerAuction", back_populates="player"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Player {self.full_name}>"


class Movie(Base, TimestampMixin):
    """
    A movie that can be bid on.

    The release date drives eligibility: actual_release_date once the movie
    is out, otherwise anticipated_release_date.
    """

    __tablename__ = "movies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False, index=True)
    genre: Mapped[str | None] = mapped_column(String(50), nullable=True)
    poster_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    anticipated_release_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    actual_release_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Relationships
    stats: Mapped["MovieStats | None"] = relationship(
        "MovieStats", back_populates="movie", uselist=False
    )
    picks: Mapped[list["Pick"]] = relationship("Pick", back_populates="movie")

    def __repr__(self) -> str:
        return f"<Movie {self.title}>"


class MovieStats(Base):
    """
    Current outcome stats for one movie.

    oscar_nominations NULL means unknown/pending; 0 means confirmed zero.
    Gross amounts are whole dollars and 0 until data is available.
    """

    __tablename__ = "movie_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    movie_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    metacritic_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    domestic_box_office: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, server_default="0"
    )
    international_box_office: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, server_default="0"
    )
    oscar_nominations: Mapped[int | None] = mapped_column(Integer, nullable=True)
    oscar_wins: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    movie: Mapped["Movie"] = relationship("Movie", back_populates="stats")

    __table_args__ = (
        CheckConstraint(
            "metacritic_score IS NULL OR metacritic_score BETWEEN 0 AND 100",
            name="ck_movie_stats_metacritic_range",
        ),
        CheckConstraint("domestic_box_office >= 0", name="ck_movie_stats_domestic"),
        CheckConstraint(
            "international_box_office >= 0", name="ck_movie_stats_international"
        ),
    )

    def __repr__(self) -> str:
        return f"<MovieStats movie={self.movie_id}>"


class Auction(Base, TimestampMixin):
    """
    One auction cycle.

    Several cycles can share a year; the yearly leaderboard spans all of them.
    """

    __tablename__ = "auctions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    cycle: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    budget_per_player: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="announced",
        doc="'announced', 'active' or 'completed'",
    )

    # Relationships
    players: Mapped[list["PlayerAuction"]] = relationship(
        "PlayerAuction", back_populates="auction"
    )
    picks: Mapped[list["Pick"]] = relationship("Pick", back_populates="auction")

    __table_args__ = (UniqueConstraint("year", "cycle", name="uq_auction_year_cycle"),)

    def __repr__(self) -> str:
        return f"<Auction {self.year}/{self.cycle} ({self.status})>"


class PlayerAuction(Base):
    """
    A player's budget and cached score within one auction.

    total_points is recomputed by the aggregate refresher, never incremented.
    """

    __tablename__ = "player_auctions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=False
    )
    auction_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("auctions.id"), nullable=False
    )
    remaining_budget: Mapped[int] = mapped_column(Integer, nullable=False)
    total_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    player: Mapped["Player"] = relationship("Player", back_populates="auctions")
    auction: Mapped["Auction"] = relationship("Auction", back_populates="players")

    __table_args__ = (
        UniqueConstraint("player_id", "auction_id", name="uq_player_auction"),
    )

    def __repr__(self) -> str:
        return f"<PlayerAuction player={self.player_id} auction={self.auction_id}>"


class Pick(Base):
    """A player's winning bid on a movie. Immutable once created."""

    __tablename__ = "picks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=False
    )
    movie_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("movies.id"), nullable=False
    )
    auction_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("auctions.id"), nullable=False
    )
    purchase_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    player: Mapped["Player"] = relationship("Player", back_populates="picks")
    movie: Mapped["Movie"] = relationship("Movie", back_populates="picks")
    auction: Mapped["Auction"] = relationship("Auction", back_populates="picks")

    __table_args__ = (
        UniqueConstraint(
            "player_id", "movie_id", "auction_id", name="uq_pick_player_movie_auction"
        ),
        CheckConstraint("purchase_amount > 0", name="ck_pick_purchase_positive"),
    )

    def __repr__(self) -> str:
        return f"<Pick player={self.player_id} movie={self.movie_id} ${self.purchase_amount}>"


class MoviePickScore(Base):
    """
    Denormalized pick x movie x stats x points projection.

    Rebuilt wholesale by the aggregate refresher inside one transaction.
    Never updated row by row.
    """

    __tablename__ = "movie_pick_scores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pick_id: Mapped[int] = mapped_column(Integer, nullable=False)
    player_id: Mapped[int] = mapped_column(Integer, nullable=False)
    player_name: Mapped[str] = mapped_column(String(201), nullable=False)
    movie_id: Mapped[int] = mapped_column(Integer, nullable=False)
    movie_title: Mapped[str] = mapped_column(String(300), nullable=False)
    auction_id: Mapped[int] = mapped_column(Integer, nullable=False)
    auction_year: Mapped[int] = mapped_column(Integer, nullable=False)
    auction_cycle: Mapped[int] = mapped_column(Integer, nullable=False)
    purchase_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    pick_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Raw stats at refresh time
    metacritic_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    domestic_box_office: Mapped[int] = mapped_column(BigInteger, nullable=False)
    international_box_office: Mapped[int] = mapped_column(BigInteger, nullable=False)
    oscar_nominations: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Derived by the scoring engine
    box_office_status: Mapped[str] = mapped_column(String(10), nullable=False)
    oscar_status: Mapped[str] = mapped_column(String(10), nullable=False)
    metacritic_status: Mapped[str] = mapped_column(String(10), nullable=False)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False)

    refreshed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "player_id", "movie_id", "auction_id", name="uq_pick_score_player_movie_auction"
        ),
        Index("idx_pick_scores_auction", "auction_year", "auction_cycle"),
    )

    def __repr__(self) -> str:
        return f"<MoviePickScore {self.player_name} / {self.movie_title}: {self.total_points}>"


class JobRun(Base):
    """
    Task execution audit log.

    Every scheduled stats update is logged here with its run report
    in job_metadata.
    """

    __tablename__ = "job_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_name: Mapped[str] = mapped_column(String(100), nullable=False)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, doc="'running', 'success', 'skipped', 'failed'"
    )
    records_processed: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSONB, nullable=True
    )

    def __repr__(self) -> str:
        return f"<JobRun {self.job_name} status={self.status}>"
