"""Shared HTTP client for external movie data APIs.

Provides async access to JSON APIs with:
- Optional rate limiting
- Retry with exponential backoff
- Error classification
"""

import asyncio
from enum import Enum
from typing import Any

import httpx
import structlog

from bigpicture.services.sources.rate_limiter import SourceRateLimiter

logger = structlog.get_logger(__name__)


class SourceErrorType(Enum):
    """Classification of external API errors."""

    UNAUTHORIZED = "UNAUTHORIZED"
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_INPUT = "INVALID_INPUT"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    NOT_CONFIGURED = "NOT_CONFIGURED"
    UNKNOWN = "UNKNOWN"


class SourceAPIError(Exception):
    """External API error with classification."""

    def __init__(self, message: str, error_type: SourceErrorType, retryable: bool = False):
        super().__init__(message)
        self.error_type = error_type
        self.retryable = retryable


def fit_request_timeout(
    budget: float,
    max_retries: int,
    backoff_base: float,
    queue_wait: float = 0.0,
) -> float:
    """
    Per-attempt HTTP timeout that keeps a whole call inside ``budget``.

    Every attempt may wait ``queue_wait`` for a rate limit token and every
    retry is preceded by a ``backoff_base * 2**attempt`` pause.

    Raises:
        ValueError: If the pauses alone use up the budget
    """
    attempts = max_retries + 1
    backoff = sum(backoff_base * 2**attempt for attempt in range(max_retries))
    remaining = budget - backoff - attempts * queue_wait
    if remaining <= 0:
        raise ValueError(
            f"Budget of {budget:g}s leaves no time for {attempts} request attempts"
        )
    return remaining / attempts


class ExternalAPIClient:
    """
    Base client for one external JSON API.

    Subclasses set ``name`` and ``base_url`` and build their queries on
    top of ``_request``.
    """

    name: str = "external"
    base_url: str = ""

    def __init__(
        self,
        rate_limiter: SourceRateLimiter | None = None,
        timeout: float = 30.0,
        max_retries: int = 2,
        backoff_base: float = 1.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the client.

        Args:
            rate_limiter: Optional shared rate limiter
            timeout: Per-request HTTP timeout in seconds
            max_retries: Retry attempts for retryable failures
            backoff_base: Multiplier for the 2**attempt backoff
            http_client: Optional preconfigured httpx client
        """
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._http_client = http_client
        self._owns_client = http_client is None

    async def __aenter__(self) -> "ExternalAPIClient":
        """Async context manager entry."""
        await self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
        self._http_client = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._http_client

    async def _backoff(self, attempt: int) -> None:
        await asyncio.sleep(self.backoff_base * 2**attempt)

    async def _request(self, path: str, params: dict[str, Any]) -> Any:
        """
        Make a GET request with rate limiting and retry.

        Args:
            path: Path relative to ``base_url``
            params: Query parameters

        Returns:
            Decoded JSON body

        Raises:
            SourceAPIError: If the request fails after retries
        """
        url = f"{self.base_url}{path}"

        for attempt in range(self.max_retries + 1):
            try:
                if self.rate_limiter:
                    await self.rate_limiter.wait_if_needed(self.name)

                client = await self._get_client()
                response = await client.get(
                    url, params=params, headers={"Accept": "application/json"}
                )
                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException:
                if attempt < self.max_retries:
                    logger.warning(
                        "timeout_retrying",
                        source=self.name,
                        path=path,
                        attempt=attempt,
                    )
                    await self._backoff(attempt)
                    continue
                raise SourceAPIError(
                    f"{self.name} request timeout",
                    SourceErrorType.TIMEOUT,
                    retryable=True,
                )

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                error_type, retryable = self._classify_status(status_code)

                if retryable and attempt < self.max_retries:
                    logger.warning(
                        "api_error_retrying",
                        source=self.name,
                        path=path,
                        status_code=status_code,
                        attempt=attempt,
                    )
                    await self._backoff(attempt)
                    continue

                if error_type == SourceErrorType.INVALID_INPUT:
                    logger.warning(
                        "bad_request",
                        source=self.name,
                        path=path,
                        status_code=status_code,
                        response_text=e.response.text[:500] if e.response.text else "",
                    )
                raise SourceAPIError(
                    f"{self.name} returned HTTP {status_code}",
                    error_type,
                    retryable=retryable,
                )

            except httpx.TransportError as e:
                if attempt < self.max_retries:
                    await self._backoff(attempt)
                    continue
                raise SourceAPIError(
                    f"{self.name} connection failed: {e}",
                    SourceErrorType.SERVICE_UNAVAILABLE,
                    retryable=True,
                )

        # Unreachable: every branch above returns, continues or raises
        raise SourceAPIError(f"{self.name} request failed", SourceErrorType.UNKNOWN)

    def _classify_status(self, status_code: int) -> tuple[SourceErrorType, bool]:
        """Classify an HTTP status and determine if retryable."""
        if status_code == 429:
            return SourceErrorType.RATE_LIMITED, True
        if status_code >= 500:
            return SourceErrorType.SERVICE_UNAVAILABLE, True
        if status_code in (401, 403):
            return SourceErrorType.UNAUTHORIZED, False
        if status_code == 400:
            return SourceErrorType.INVALID_INPUT, False
        return SourceErrorType.UNKNOWN, False
