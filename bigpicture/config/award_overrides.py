"""Manually verified Oscar nomination counts.

Used where the automated nomination source is wrong or lags behind the
Academy announcement. An override is authoritative: when one exists for
(title, year) the nomination source is not consulted.

Source: 98th Academy Awards nominations (films released in 2025).
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class AwardOverride:
    """A verified nomination count for one title and release year."""
    title: str
    year: int
    nominations: int
    note: str | None = None


_OVERRIDES: tuple[AwardOverride, ...] = (
    AwardOverride("One Battle After Another", 2025, 13, "13 nominations at 98th Academy Awards"),
    AwardOverride("It Was Just An Accident", 2025, 2, "2 nominations at 98th Academy Awards"),
    AwardOverride("Avatar: Fire and Ash", 2025, 2, "2 nominations at 98th Academy Awards"),
    AwardOverride("Hamnet", 2025, 6, "6 nominations at 98th Academy Awards"),
    AwardOverride("Sinners", 2025, 16, "Record 16 nominations at 98th Academy Awards"),
    AwardOverride("F1", 2025, 4, "4 nominations at 98th Academy Awards"),
    AwardOverride("F1: The Movie", 2025, 4, "Alternate title of F1"),
    AwardOverride("Marty Supreme", 2025, 6, "6 nominations at 98th Academy Awards"),
    AwardOverride("Sentimental Value", 2025, 7, "7 nominations at 98th Academy Awards"),
    AwardOverride("Jurassic World Rebirth", 2025, 1, "1 nomination at 98th Academy Awards"),
    AwardOverride("Weapons", 2025, 1, "1 nomination at 98th Academy Awards"),
)

AWARD_OVERRIDES: dict[tuple[str, int], AwardOverride] = {
    (o.title, o.year): o for o in _OVERRIDES
}


def get_award_override(
    title: str,
    year: int | None,
    overrides: dict[tuple[str, int], AwardOverride] | None = None,
) -> AwardOverride | None:
    """
    Look up a nomination override.

    Matching is exact on title. Without a year there is never a match.
    """
    if year is None:
        return None
    table = AWARD_OVERRIDES if overrides is None else overrides
    return table.get((title, year))
