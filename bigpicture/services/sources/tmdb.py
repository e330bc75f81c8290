"""TMDB API client, used for worldwide revenue."""

from typing import Any

from bigpicture.services.sources.client import ExternalAPIClient
from bigpicture.services.sources.rate_limiter import SourceRateLimiter

TMDB_API_URL = "https://api.themoviedb.org/3"


class TMDBClient(ExternalAPIClient):
    name = "tmdb"
    base_url = TMDB_API_URL

    def __init__(
        self,
        api_key: str,
        rate_limiter: SourceRateLimiter | None = None,
        **kwargs: Any,
    ):
        super().__init__(rate_limiter=rate_limiter, **kwargs)
        self.api_key = api_key

    async def search_movie_id(self, title: str, year: int | None = None) -> int | None:
        """Return the TMDB id of the best search hit, or None."""
        params: dict[str, Any] = {"api_key": self.api_key, "query": title}
        if year:
            params["primary_release_year"] = year

        data = await self._request("/search/movie", params)
        results = data.get("results") or []
        if not results:
            return None
        return results[0]["id"]

    async def get_worldwide_revenue(self, title: str, year: int | None = None) -> int | None:
        """
        Get worldwide revenue in whole dollars.

        Returns:
            Revenue, or None when TMDB has no movie or reports 0
        """
        movie_id = await self.search_movie_id(title, year)
        if movie_id is None:
            return None

        details = await self._request(f"/movie/{movie_id}", {"api_key": self.api_key})
        revenue = details.get("revenue") or 0
        return revenue if revenue > 0 else None
