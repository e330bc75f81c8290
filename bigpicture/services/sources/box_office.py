"""Box office source.

Domestic gross comes from OMDb's BoxOffice field. When a TMDB client is
available its worldwide revenue is used to derive the international share.
"""

import re
from dataclasses import dataclass

import structlog

from bigpicture.services.sources.base import StatSource
from bigpicture.services.sources.client import SourceAPIError
from bigpicture.services.sources.omdb import OMDbClient
from bigpicture.services.sources.tmdb import TMDBClient

_DOLLAR_RE = re.compile(r"\$?\s*([\d,]+(?:\.\d+)?)\s*([MBK])?", re.IGNORECASE)
_MULTIPLIERS = {"K": 1_000, "M": 1_000_000, "B": 1_000_000_000}

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BoxOfficeFigures:
    """
    Gross amounts in whole dollars.

    international is None when the worldwide figure could not be fetched.
    """

    domestic: int
    international: int | None = 0

    @property
    def total(self) -> int:
        return self.domestic + (self.international or 0)


def parse_dollar_amount(text: str | None) -> int:
    """
    Parse amounts like "$150,000,000", "$1.2B" or "$45.3M".

    Returns:
        Whole dollars, 0 when nothing parseable is present
    """
    if not text or text == "N/A":
        return 0
    match = _DOLLAR_RE.search(text)
    if not match:
        return 0
    amount = float(match.group(1).replace(",", ""))
    suffix = (match.group(2) or "").upper()
    return int(round(amount * _MULTIPLIERS.get(suffix, 1)))


class BoxOfficeSource(StatSource):
    name = "box_office"

    def __init__(
        self,
        omdb: OMDbClient,
        tmdb: TMDBClient | None = None,
        timeout_seconds: float = 10.0,
    ):
        super().__init__(timeout_seconds)
        self.omdb = omdb
        self.tmdb = tmdb

    async def _fetch(self, title: str, year: int | None) -> BoxOfficeFigures | None:
        data = await self.omdb.get_movie(title, year)
        if data is None:
            return None

        domestic = parse_dollar_amount(data.get("BoxOffice"))
        if domestic <= 0:
            return None

        international: int | None = 0
        if self.tmdb is not None:
            try:
                worldwide = await self.tmdb.get_worldwide_revenue(title, year)
            except SourceAPIError as e:
                # International unknown, the stored figure is kept
                logger.warning(
                    "worldwide_revenue_unavailable",
                    title=title,
                    year=year,
                    error=str(e),
                )
                worldwide, international = None, None
            if worldwide:
                international = max(worldwide - domestic, 0)

        return BoxOfficeFigures(domestic=domestic, international=international)
