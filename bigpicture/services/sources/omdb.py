"""OMDb API client.

One title lookup returns the Metascore, the domestic gross and the awards
summary, so the three adapters share a client and a per-run memo of
lookups.
"""

import asyncio
import functools
from typing import Any

import structlog

from bigpicture.services.sources.client import (
    ExternalAPIClient,
    SourceAPIError,
    SourceErrorType,
)
from bigpicture.services.sources.rate_limiter import SourceRateLimiter

logger = structlog.get_logger(__name__)

OMDB_API_URL = "https://www.omdbapi.com/"


class OMDbClient(ExternalAPIClient):
    """OMDb title lookup with an in-flight memo keyed by (title, year)."""

    name = "omdb"
    base_url = OMDB_API_URL

    def __init__(
        self,
        api_key: str,
        rate_limiter: SourceRateLimiter | None = None,
        **kwargs: Any,
    ):
        super().__init__(rate_limiter=rate_limiter, **kwargs)
        self.api_key = api_key
        self._lookups: dict[tuple[str, int | None], asyncio.Task] = {}
        self._waiters: dict[tuple[str, int | None], int] = {}

    async def get_movie(self, title: str, year: int | None = None) -> dict[str, Any] | None:
        """
        Look up a movie by exact title.

        Concurrent callers asking for the same (title, year) share one
        request. The request is cancelled once every caller has given up,
        and failed lookups are forgotten so a later call asks again.

        Returns:
            The OMDb record, or None if OMDb does not know the title

        Raises:
            SourceAPIError: On transport failures or API-level errors
        """
        key = (title.casefold(), year)
        lookup = self._lookups.get(key)
        if lookup is None:
            lookup = asyncio.ensure_future(self._lookup(title, year))
            lookup.add_done_callback(functools.partial(self._forget_failed, key))
            self._lookups[key] = lookup

        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            # Shielded so one caller's timeout does not cancel the others
            return await asyncio.shield(lookup)
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                if not lookup.done():
                    logger.debug("omdb_lookup_abandoned", title=title, year=year)
                    lookup.cancel()
                    await asyncio.wait({lookup})

    def _forget_failed(self, key: tuple[str, int | None], lookup: asyncio.Task) -> None:
        if lookup.cancelled() or lookup.exception() is not None:
            if self._lookups.get(key) is lookup:
                del self._lookups[key]

    async def _lookup(self, title: str, year: int | None) -> dict[str, Any] | None:
        if not self.api_key:
            raise SourceAPIError(
                "OMDb API key not configured",
                SourceErrorType.NOT_CONFIGURED,
            )

        params: dict[str, Any] = {"apikey": self.api_key, "t": title, "type": "movie"}
        if year:
            params["y"] = str(year)

        data = await self._request("", params)

        if data.get("Response") == "False":
            error = data.get("Error", "Unknown error")
            if "not found" in error.lower():
                logger.info("omdb_title_not_found", title=title, year=year)
                return None
            raise SourceAPIError(f"OMDb error: {error}", SourceErrorType.UNKNOWN)

        logger.debug(
            "omdb_title_found",
            title=data.get("Title"),
            year=data.get("Year"),
        )
        return data
