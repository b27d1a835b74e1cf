"""
Paced, cached batch fetching of price series.

Fetches one series per asset through a SeriesSource. Request starts are
spaced by a shared RateLimiter so that concurrent workers still respect the
upstream rate limit.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence

from diversifier.core.cache import FetchParams, SeriesCache
from diversifier.core.config import FetcherConfig
from diversifier.sources.base import SeriesSource

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Thread-safe pacing of request starts.

    Each call to wait() reserves the next free slot, min_interval seconds
    after the previous one, and sleeps until it arrives.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.min_interval = max(min_interval, 0.0)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_allowed = 0.0

    @classmethod
    def from_config(cls, config: FetcherConfig) -> "RateLimiter":
        return cls(config.min_interval_seconds)

    def wait(self) -> float:
        """
        Block until the caller may start a request.

        Returns:
            Seconds waited
        """
        with self._lock:
            now = self._clock()
            start_at = max(now, self._next_allowed)
            self._next_allowed = start_at + self.min_interval
        wait_seconds = start_at - now

        if wait_seconds > 0:
            logger.debug(f"Rate limiter wait: {wait_seconds:.3f}s")
            self._sleep(wait_seconds)

        return wait_seconds


class SeriesFetcher:
    """
    Fetches series for a whole universe with pacing, concurrency and caching.
    """

    def __init__(
        self,
        source: SeriesSource,
        config: FetcherConfig,
        cache: Optional[SeriesCache] = None,
        vs_currency: str = "usd",
        rate_limiter: Optional[RateLimiter] = None
    ):
        """
        Initialize fetcher.

        Args:
            source: Series source invoked once per asset
            config: Fetcher configuration (workers, pacing)
            cache: Optional series cache (None = no caching)
            vs_currency: Quote currency, part of the cache key
            rate_limiter: Override pacing (default derived from config)
        """
        self.source = source
        self.config = config
        self.cache = cache if config.cache_enabled else None
        self.vs_currency = vs_currency
        self.rate_limiter = rate_limiter or RateLimiter.from_config(config)

        self._stats_lock = threading.Lock()
        self.fetch_stats = {
            "fetched": 0,
            "cached": 0,
            "empty": 0,
            "failed": 0
        }

    def _count(self, key: str):
        with self._stats_lock:
            self.fetch_stats[key] += 1

    def fetch_series(self, asset_id: str, start_time: int, end_time: int) -> list[float]:
        """
        Fetch one series, consulting the cache first.

        Never raises: a source that breaks its contract is logged and
        treated as having returned an empty series.
        """
        params = FetchParams(
            asset_id=asset_id,
            start_time=start_time,
            end_time=end_time,
            vs_currency=self.vs_currency,
            precision=self.config.precision
        )

        if self.cache:
            cached = self.cache.get(params)
            if cached is not None:
                self._count("cached")
                return cached

        self.rate_limiter.wait()

        try:
            series = list(self.source.get_series(asset_id, start_time, end_time) or [])
        except Exception as e:
            self._count("failed")
            logger.error(f"{asset_id}: Series source raised - {e}")
            return []

        if not series:
            self._count("empty")
            return []

        if self.cache:
            try:
                self.cache.put(params, series)
            except Exception as e:
                logger.warning(f"{asset_id}: Cache write failed - {e}")

        self._count("fetched")
        logger.info(f"Data fetched successfully for: {asset_id} ({len(series)} points)")
        return series

    def fetch_batch(
        self,
        assets: Sequence[str],
        start_time: int,
        end_time: int,
        progress_callback: Optional[Callable[[int, int, str], None]] = None
    ) -> dict[str, list[float]]:
        """
        Fetch series for every asset.

        Args:
            assets: Ordered asset ids
            start_time: Window start (unix seconds)
            end_time: Window end (unix seconds)
            progress_callback: Optional callback(current, total, asset_id)

        Returns:
            Dict mapping every asset to its series ([] on failure), in the
            order of assets
        """
        total = len(assets)
        if total == 0:
            return {}

        workers = min(self.config.max_workers, total)
        logger.info(
            f"Fetching {total} series with {workers} workers, "
            f"{self.rate_limiter.min_interval:.2f}s between request starts"
        )

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                asset: executor.submit(self.fetch_series, asset, start_time, end_time)
                for asset in assets
            }

            results = {}
            for i, asset in enumerate(assets):
                results[asset] = futures[asset].result()
                if progress_callback:
                    progress_callback(i + 1, total, asset)

        non_empty = sum(1 for s in results.values() if s)
        logger.info(
            f"Fetch complete: {non_empty}/{total} non-empty, "
            f"{self.fetch_stats['cached']} cached, "
            f"{self.fetch_stats['empty'] + self.fetch_stats['failed']} empty or failed"
        )

        return results

    def get_stats(self) -> dict:
        """Get fetch statistics."""
        with self._stats_lock:
            return self.fetch_stats.copy()
