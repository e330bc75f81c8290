"""Scoring module for Big Picture Auction."""

from bigpicture.services.scoring.engine import (
    CriterionResult,
    CriterionStatus,
    MovieScore,
    ScoringEngine,
    score_movie,
)

__all__ = ["CriterionResult", "CriterionStatus", "MovieScore", "ScoringEngine", "score_movie"]
