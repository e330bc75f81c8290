"""External movie data sources."""

from bigpicture.services.sources.awards import AwardNominationSource, parse_award_nominations
from bigpicture.services.sources.base import (
    FetchError,
    FetchResult,
    Found,
    NotFound,
    StatSource,
)
from bigpicture.services.sources.box_office import (
    BoxOfficeFigures,
    BoxOfficeSource,
    parse_dollar_amount,
)
from bigpicture.services.sources.client import (
    SourceAPIError,
    SourceErrorType,
    fit_request_timeout,
)
from bigpicture.services.sources.critic import CriticScoreSource, parse_metascore
from bigpicture.services.sources.omdb import OMDbClient
from bigpicture.services.sources.rate_limiter import SourceRateLimiter
from bigpicture.services.sources.tmdb import TMDBClient

__all__ = [
    "AwardNominationSource",
    "BoxOfficeFigures",
    "BoxOfficeSource",
    "CriticScoreSource",
    "FetchError",
    "FetchResult",
    "Found",
    "NotFound",
    "OMDbClient",
    "SourceAPIError",
    "SourceErrorType",
    "SourceRateLimiter",
    "StatSource",
    "TMDBClient",
    "fit_request_timeout",
    "parse_award_nominations",
    "parse_dollar_amount",
    "parse_metascore",
]
