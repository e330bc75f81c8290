"""Tagged fetch outcomes and the common adapter contract.

Every adapter answers ``fetch(title, year)`` with exactly one of:

- ``Found(value)``: the source confirmed a value
- ``NotFound()``: the source confirmed there is nothing to report
- ``FetchError(detail)``: the source could not be asked (timeout, HTTP
  failure, unexpected payload)

``fetch`` never raises. Callers rely on the distinction between
``NotFound`` and ``FetchError`` to decide whether stored data may be
replaced.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    """A confirmed value."""

    value: T


@dataclass(frozen=True)
class NotFound:
    """Confirmed absence."""


@dataclass(frozen=True)
class FetchError:
    """The source could not be consulted."""

    detail: str


FetchResult = Found[Any] | NotFound | FetchError


class StatSource(ABC):
    """
    Base class for one external signal.

    Subclasses implement ``_fetch`` and return the value, or None when the
    source has nothing for the title. Exceptions and timeouts are turned
    into ``FetchError`` here.
    """

    name: str = "source"

    def __init__(self, timeout_seconds: float = 10.0):
        self.timeout_seconds = timeout_seconds

    async def fetch(self, title: str, year: int | None = None) -> FetchResult:
        try:
            value = await asyncio.wait_for(
                self._fetch(title, year), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                "source_timeout",
                source=self.name,
                title=title,
                timeout=self.timeout_seconds,
            )
            return FetchError(f"timed out after {self.timeout_seconds:g}s")
        except Exception as e:
            logger.warning(
                "source_fetch_failed",
                source=self.name,
                title=title,
                error=str(e),
                error_type=type(e).__name__,
            )
            return FetchError(str(e) or type(e).__name__)

        if value is None:
            return NotFound()
        return Found(value)

    @abstractmethod
    async def _fetch(self, title: str, year: int | None) -> Any | None:
        """Return the signal's value, or None when confirmed absent."""
