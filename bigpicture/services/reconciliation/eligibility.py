"""Temporal eligibility rules.

A movie is only worth fetching once it is out, and its Oscar nominations
only exist once the ceremony year (release year + 1) has arrived.
"""

from datetime import date


def release_date_of(
    actual_release_date: date | None,
    anticipated_release_date: date | None,
) -> date | None:
    """The actual release date if known, else the anticipated one."""
    return actual_release_date or anticipated_release_date


def year_of(release_date: date | None) -> int | None:
    return release_date.year if release_date else None


def is_unreleased(release_date: date | None, year: int | None, today: date) -> bool:
    """
    Check whether a movie is still unreleased.

    Args:
        release_date: Effective release date, if any
        year: Release year, used when no full date is known
        today: Reference date

    Returns:
        True if the date (or, failing that, the year) lies in the future
    """
    if release_date is not None:
        return release_date > today
    if year is not None:
        return year > today.year
    return False


def awards_pending(year: int | None, today: date) -> bool:
    """True while the ceremony for a release year has not happened yet."""
    if year is None:
        return False
    return year + 1 > today.year
