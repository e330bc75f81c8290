"""Initial schema for Big Picture Auction.

Revision ID: 0001
Revises:
Create Date: 2026-10-17

This migration creates all the core tables:
- Players, Movies, MovieStats
- Auctions, PlayerAuctions, Picks
- MoviePickScores, the rebuilt leaderboard projection
- JobRuns for task audit logging

movie_stats.oscar_nominations is nullable on purpose: NULL is pending,
0 is a confirmed zero.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "movies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("genre", sa.String(length=50), nullable=True),
        sa.Column("poster_url", sa.String(length=500), nullable=True),
        sa.Column("anticipated_release_date", sa.Date(), nullable=True),
        sa.Column("actual_release_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_movies_title", "movies", ["title"])

    op.create_table(
        "movie_stats",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("movie_id", sa.Integer(), nullable=False),
        sa.Column("metacritic_score", sa.Integer(), nullable=True),
        sa.Column("domestic_box_office", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column(
            "international_box_office", sa.BigInteger(), server_default="0", nullable=False
        ),
        sa.Column("oscar_nominations", sa.Integer(), nullable=True),
        sa.Column("oscar_wins", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(["movie_id"], ["movies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("movie_id"),
        sa.CheckConstraint(
            "metacritic_score IS NULL OR metacritic_score BETWEEN 0 AND 100",
            name="ck_movie_stats_metacritic_range",
        ),
        sa.CheckConstraint("domestic_box_office >= 0", name="ck_movie_stats_domestic"),
        sa.CheckConstraint(
            "international_box_office >= 0", name="ck_movie_stats_international"
        ),
    )

    op.create_table(
        "auctions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("cycle", sa.Integer(), nullable=False),
        sa.Column("budget_per_player", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.String(length=20),
            nullable=False,
            comment="'announced', 'active' or 'completed'",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("year", "cycle", name="uq_auction_year_cycle"),
    )

    op.create_table(
        "player_auctions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("auction_id", sa.Integer(), nullable=False),
        sa.Column("remaining_budget", sa.Integer(), nullable=False),
        sa.Column("total_spent", sa.Integer(), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["auction_id"], ["auctions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("player_id", "auction_id", name="uq_player_auction"),
    )

    op.create_table(
        "picks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("movie_id", sa.Integer(), nullable=False),
        sa.Column("auction_id", sa.Integer(), nullable=False),
        sa.Column("purchase_amount", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["movie_id"], ["movies.id"]),
        sa.ForeignKeyConstraint(["auction_id"], ["auctions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "player_id", "movie_id", "auction_id", name="uq_pick_player_movie_auction"
        ),
        sa.CheckConstraint("purchase_amount > 0", name="ck_pick_purchase_positive"),
    )

    op.create_table(
        "movie_pick_scores",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("pick_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("player_name", sa.String(length=201), nullable=False),
        sa.Column("movie_id", sa.Integer(), nullable=False),
        sa.Column("movie_title", sa.String(length=300), nullable=False),
        sa.Column("auction_id", sa.Integer(), nullable=False),
        sa.Column("auction_year", sa.Integer(), nullable=False),
        sa.Column("auction_cycle", sa.Integer(), nullable=False),
        sa.Column("purchase_amount", sa.Integer(), nullable=False),
        sa.Column("pick_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metacritic_score", sa.Integer(), nullable=True),
        sa.Column("domestic_box_office", sa.BigInteger(), nullable=False),
        sa.Column("international_box_office", sa.BigInteger(), nullable=False),
        sa.Column("oscar_nominations", sa.Integer(), nullable=True),
        sa.Column("box_office_status", sa.String(length=10), nullable=False),
        sa.Column("oscar_status", sa.String(length=10), nullable=False),
        sa.Column("metacritic_status", sa.String(length=10), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False),
        sa.Column("refreshed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "player_id", "movie_id", "auction_id", name="uq_pick_score_player_movie_auction"
        ),
    )
    op.create_index(
        "idx_pick_scores_auction",
        "movie_pick_scores",
        ["auction_year", "auction_cycle"],
    )

    op.create_table(
        "job_runs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_name", sa.String(length=100), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("records_processed", sa.Integer(), nullable=True, default=0),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("job_runs")
    op.drop_index("idx_pick_scores_auction", table_name="movie_pick_scores")
    op.drop_table("movie_pick_scores")
    op.drop_table("picks")
    op.drop_table("player_auctions")
    op.drop_table("auctions")
    op.drop_table("movie_stats")
    op.drop_index("ix_movies_title", table_name="movies")
    op.drop_table("movies")
    op.drop_table("players")
