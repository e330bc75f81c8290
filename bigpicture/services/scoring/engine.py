"""Movie scoring engine.

Maps a movie's stats to three criterion statuses and a points total.

Criteria:
- Box office: domestic gross at or above the threshold
- Oscars: nomination count at or above the threshold
- Metacritic: critic score at or above the threshold

A criterion with no data is pending, never failed. A domestic gross of 0
is treated as no data. Points are the number of achieved criteria; 0 is
shown as "no score yet" (None).
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)


class CriterionStatus(str, Enum):
    ACHIEVED = "achieved"
    FAILED = "failed"
    PENDING = "pending"


@dataclass(frozen=True)
class CriterionResult:
    """Status and display value of one criterion."""

    status: CriterionStatus
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status.value, "value": self.value}


@dataclass(frozen=True)
class MovieScore:
    """Result of scoring one movie."""

    box_office: CriterionResult
    oscar: CriterionResult
    metacritic: CriterionResult

    @property
    def points(self) -> int:
        """Number of achieved criteria (0-3)."""
        return sum(
            1
            for criterion in (self.box_office, self.oscar, self.metacritic)
            if criterion.status == CriterionStatus.ACHIEVED
        )

    @property
    def display_points(self) -> int | None:
        """Points as shown to players: None instead of 0."""
        return self.points or None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the leaderboard's per-movie shape (without title/price)."""
        return {
            "boxOffice": self.box_office.to_dict(),
            "oscar": self.oscar.to_dict(),
            "metacritic": self.metacritic.to_dict(),
            "points": self.display_points,
        }


def format_box_office(domestic: int | None) -> str:
    """Display value for the box office criterion, e.g. "$150M"."""
    if not domestic:
        return "TBD"
    return f"${round(domestic / 1_000_000)}M"


def format_nominations(nominations: int | None) -> str:
    if nominations is None:
        return "TBD"
    if nominations == 0:
        return "None"
    if nominations == 1:
        return "1 Nom"
    return f"{nominations} Noms"


def format_metacritic(score: int | None) -> str:
    return "TBD" if score is None else str(score)


class ScoringEngine:
    """
    Score movies against configurable thresholds.

    Thresholds come from the ``scoring`` section of defaults.yaml:

    thresholds.box_office_domestic: domestic gross needed (whole dollars)
    thresholds.metacritic: critic score needed
    thresholds.award_nominations: nominations needed for one auction
    yearly.award_nominations: nominations needed when a whole year of
        auction cycles is scored together
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        award_threshold: int | None = None,
    ):
        """
        Initialize scoring engine.

        Args:
            config: Optional scoring configuration. If not provided,
                   loads from defaults.yaml
            award_threshold: Override for the single-auction nomination
                   threshold
        """
        if config is None:
            config = self._load_default_config()

        self.config = config
        self.thresholds = config.get("thresholds", {})
        self.yearly = config.get("yearly", {})

        self._validate_config()

        self.box_office_threshold: int = int(self.thresholds["box_office_domestic"])
        self.metacritic_threshold: int = int(self.thresholds["metacritic"])
        self.award_threshold: int = int(
            award_threshold
            if award_threshold is not None
            else self.thresholds["award_nominations"]
        )
        self.yearly_award_threshold: int = int(
            self.yearly.get("award_nominations", self.award_threshold)
        )

    def _load_default_config(self) -> dict[str, Any]:
        """Load scoring config from defaults.yaml."""
        config_path = Path(__file__).parent.parent.parent / "config" / "defaults.yaml"
        if config_path.exists():
            with open(config_path) as f:
                full_config = yaml.safe_load(f) or {}
                if "scoring" in full_config:
                    return full_config["scoring"]
        return self._get_fallback_config()

    def _get_fallback_config(self) -> dict[str, Any]:
        """Fallback configuration if defaults.yaml not found."""
        return {
            "thresholds": {
                "box_office_domestic": 100_000_000,
                "metacritic": 85,
                "award_nominations": 1,
            },
            "yearly": {"award_nominations": 1},
        }

    def _validate_config(self) -> None:
        """Validate configuration has all required keys."""
        for key in ("box_office_domestic", "metacritic", "award_nominations"):
            if key not in self.thresholds:
                raise ValueError(f"Missing threshold: {key}")

    def box_office_status(self, domestic: int | None) -> CriterionStatus:
        # 0 is never a real gross here, only "no data yet"
        if not domestic or domestic <= 0:
            return CriterionStatus.PENDING
        if domestic >= self.box_office_threshold:
            return CriterionStatus.ACHIEVED
        return CriterionStatus.FAILED

    def oscar_status(
        self, nominations: int | None, threshold: int | None = None
    ) -> CriterionStatus:
        if nominations is None:
            return CriterionStatus.PENDING
        needed = self.award_threshold if threshold is None else threshold
        if nominations >= needed:
            return CriterionStatus.ACHIEVED
        return CriterionStatus.FAILED

    def metacritic_status(self, score: int | None) -> CriterionStatus:
        if score is None:
            return CriterionStatus.PENDING
        if score >= self.metacritic_threshold:
            return CriterionStatus.ACHIEVED
        return CriterionStatus.FAILED

    def calculate_score(
        self,
        metacritic_score: int | None,
        domestic_box_office: int | None,
        oscar_nominations: int | None,
        award_threshold: int | None = None,
    ) -> MovieScore:
        """
        Score one movie's stats.

        Args:
            metacritic_score: Critic score, None if unknown
            domestic_box_office: Domestic gross, 0 or None if unknown
            oscar_nominations: Nomination count, None if pending
            award_threshold: Override for the nomination threshold

        Returns:
            MovieScore with per-criterion status and display values
        """
        return MovieScore(
            box_office=CriterionResult(
                self.box_office_status(domestic_box_office),
                format_box_office(domestic_box_office),
            ),
            oscar=CriterionResult(
                self.oscar_status(oscar_nominations, award_threshold),
                format_nominations(oscar_nominations),
            ),
            metacritic=CriterionResult(
                self.metacritic_status(metacritic_score),
                format_metacritic(metacritic_score),
            ),
        )

    def score_stats(self, stats: Any, award_threshold: int | None = None) -> MovieScore:
        """Score any object carrying metacritic_score, domestic_box_office and oscar_nominations."""
        return self.calculate_score(
            stats.metacritic_score,
            stats.domestic_box_office,
            stats.oscar_nominations,
            award_threshold=award_threshold,
        )


# Convenience function for testing
def score_movie(
    metacritic_score: int | None = None,
    domestic_box_office: int | None = 0,
    oscar_nominations: int | None = None,
    award_threshold: int | None = None,
) -> MovieScore:
    """
    Quick scoring function with default thresholds.

    Returns:
        MovieScore
    """
    engine = ScoringEngine(award_threshold=award_threshold)
    return engine.calculate_score(metacritic_score, domestic_box_office, oscar_nominations)
