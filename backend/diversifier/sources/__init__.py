"""Data sources submodule."""

from diversifier.sources.base import (
    UniverseSource,
    SeriesSource,
    ResultSink,
    StaticUniverseSource,
)
from diversifier.sources.coingecko import (
    CoinGeckoClient,
    CoinGeckoError,
    CoinGeckoRateLimitError,
)
from diversifier.sources.fetcher import RateLimiter, SeriesFetcher

__all__ = [
    "UniverseSource",
    "SeriesSource",
    "ResultSink",
    "StaticUniverseSource",
    "CoinGeckoClient",
    "CoinGeckoError",
    "CoinGeckoRateLimitError",
    "RateLimiter",
    "SeriesFetcher",
]
