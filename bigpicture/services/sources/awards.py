"""Oscar nomination source (OMDb Awards summary)."""

import re

from bigpicture.services.sources.base import StatSource
from bigpicture.services.sources.omdb import OMDbClient

_NOMINATED_RE = re.compile(r"Nominated for (\d+) Oscars?", re.IGNORECASE)
_WON_WITH_NOMINATIONS_RE = re.compile(r"Won (\d+) Oscars?\.\s*(\d+) nominations", re.IGNORECASE)
_WON_RE = re.compile(r"Won (\d+) Oscars?", re.IGNORECASE)


def parse_award_nominations(awards: str | None) -> int:
    """
    Extract the Oscar nomination count from an OMDb Awards string.

    Examples:
        "Nominated for 8 Oscars. Another 43 wins & 143 nominations." -> 8
        "Won 2 Oscars. 8 nominations." -> 8
        "Won 1 Oscar. Another 43 wins & 143 nominations." -> 1
        "3 wins & 12 nominations." -> 0
    """
    if not awards or awards == "N/A":
        return 0

    match = _NOMINATED_RE.search(awards)
    if match:
        return int(match.group(1))

    match = _WON_WITH_NOMINATIONS_RE.search(awards)
    if match:
        return int(match.group(2))

    # Every win was a nomination
    match = _WON_RE.search(awards)
    if match:
        return int(match.group(1))

    return 0


class AwardNominationSource(StatSource):
    name = "oscars"

    def __init__(self, omdb: OMDbClient, timeout_seconds: float = 10.0):
        super().__init__(timeout_seconds)
        self.omdb = omdb

    async def _fetch(self, title: str, year: int | None) -> int | None:
        data = await self.omdb.get_movie(title, year)
        if data is None:
            return None
        return parse_award_nominations(data.get("Awards"))
