"""Critic score source (Metacritic Metascore via OMDb)."""

from bigpicture.services.sources.base import StatSource
from bigpicture.services.sources.omdb import OMDbClient


def parse_metascore(raw: str | None) -> int | None:
    """Parse OMDb's Metascore field. "N/A" and junk give None."""
    if not raw or raw == "N/A":
        return None
    try:
        score = int(raw)
    except ValueError:
        return None
    if 0 <= score <= 100:
        return score
    return None


class CriticScoreSource(StatSource):
    name = "metacritic"

    def __init__(self, omdb: OMDbClient, timeout_seconds: float = 10.0):
        super().__init__(timeout_seconds)
        self.omdb = omdb

    async def _fetch(self, title: str, year: int | None) -> int | None:
        data = await self.omdb.get_movie(title, year)
        if data is None:
            return None
        return parse_metascore(data.get("Metascore"))
