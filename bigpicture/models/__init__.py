"""Database models for Big Picture Auction."""

from bigpicture.models.base import Base, Database, get_task_database
from bigpicture.models.domain import (
    Auction,
    JobRun,
    Movie,
    MoviePickScore,
    MovieStats,
    Pick,
    Player,
    PlayerAuction,
)

__all__ = [
    # Base
    "Base",
    "Database",
    "get_task_database",
    # Domain models
    "Player",
    "Movie",
    "MovieStats",
    "Auction",
    "PlayerAuction",
    "Pick",
    "MoviePickScore",
    "JobRun",
]
