"""
CoinGecko universe and series sources with retry and backoff.

Both public methods honour the source contracts: failures are logged and
turned into empty results instead of propagating.
"""

import logging
import time
from typing import Any, Optional

import httpx

from diversifier.core.config import CoinGeckoSettings, FetcherConfig, UniverseConfig

logger = logging.getLogger(__name__)


class CoinGeckoError(RuntimeError):
    """Base error raised for CoinGecko request failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CoinGeckoRateLimitError(CoinGeckoError):
    """Raised when CoinGecko rate limiting persists after retries."""


def _parse_retry_after_seconds(response: httpx.Response) -> Optional[float]:
    """Parse Retry-After header in seconds if provided."""
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


def filter_mid_caps(
    markets: list[dict[str, Any]],
    min_market_cap: float,
    max_market_cap: float
) -> list[str]:
    """
    Keep coins whose market cap lies strictly between the bounds.

    Args:
        markets: Rows from /coins/markets
        min_market_cap: Exclusive lower bound
        max_market_cap: Exclusive upper bound

    Returns:
        Coin ids in response order, deduplicated
    """
    ids = []
    for coin in markets:
        coin_id = coin.get("id")
        market_cap = coin.get("market_cap")
        if not coin_id or market_cap is None:
            continue
        if min_market_cap < market_cap < max_market_cap:
            ids.append(coin_id)
    return list(dict.fromkeys(ids))


def extract_prices(payload: Any) -> list[float]:
    """Take the price from each [timestamp_ms, price] row of a market_chart payload."""
    if not isinstance(payload, dict):
        return []
    rows = payload.get("prices") or []
    return [float(row[1]) for row in rows if row is not None and len(row) > 1 and row[1] is not None]


class CoinGeckoClient:
    """
    CoinGecko REST client implementing UniverseSource and SeriesSource.
    """

    def __init__(
        self,
        fetcher_config: FetcherConfig,
        universe_config: Optional[UniverseConfig] = None,
        vs_currency: str = "usd",
        settings: Optional[CoinGeckoSettings] = None,
        http_client: Optional[httpx.Client] = None
    ):
        """
        Initialize client.

        Args:
            fetcher_config: Timeouts, retry policy and base URL
            universe_config: Market query and market-cap filter
            vs_currency: Quote currency for prices
            settings: API credentials (None = anonymous public API)
            http_client: Pre-built httpx client (e.g. with a mock transport)
        """
        self.config = fetcher_config
        self.universe_config = universe_config or UniverseConfig()
        self.vs_currency = vs_currency

        headers = {"Accept": "application/json"}
        if settings is not None and settings.api_key:
            headers[settings.api_key_header] = settings.api_key

        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            base_url=fetcher_config.base_url,
            timeout=fetcher_config.timeout_seconds,
            headers=headers
        )

    def close(self):
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        """
        GET a JSON document with retry on 429, 5xx and network errors.

        Delay: Retry-After (if present) else base_retry_delay * 2^attempt.

        Raises:
            CoinGeckoRateLimitError: Still rate limited after max_retries
            CoinGeckoError: Any other non-retryable or exhausted failure
        """
        max_retries = self.config.max_retries

        for attempt in range(max_retries + 1):
            backoff = self.config.base_retry_delay_seconds * (2 ** attempt)

            try:
                response = self._client.get(path, params=params)
            except httpx.RequestError as exc:
                if attempt >= max_retries:
                    raise CoinGeckoError(f"Request to {path} failed after retries: {exc}") from exc
                logger.warning(
                    f"Network error on {path} (attempt {attempt + 1}/{max_retries + 1}), "
                    f"retrying in {backoff:.1f}s: {exc}"
                )
                time.sleep(backoff)
                continue

            if response.status_code == 200:
                try:
                    return response.json()
                except ValueError as exc:
                    raise CoinGeckoError(f"Non-JSON response body from {path}") from exc

            retryable = response.status_code == 429 or 500 <= response.status_code < 600
            if retryable and attempt < max_retries:
                retry_after = _parse_retry_after_seconds(response)
                delay = retry_after if retry_after is not None else backoff
                logger.warning(
                    f"{path}: status {response.status_code} "
                    f"(attempt {attempt + 1}/{max_retries + 1}), waiting {delay:.1f}s"
                )
                time.sleep(delay)
                continue

            body_preview = response.text[:300]
            if response.status_code == 429:
                raise CoinGeckoRateLimitError(
                    f"Rate limit exceeded after retries: {body_preview}",
                    status_code=response.status_code
                )
            raise CoinGeckoError(
                f"CoinGecko API error: {response.status_code} - {body_preview}",
                status_code=response.status_code
            )

        raise CoinGeckoError(f"Request to {path} unexpectedly terminated")

    def get_universe(self) -> list[str]:
        """
        Fetch mid-cap coin ids ordered by the configured market order.

        Returns:
            Coin ids, or [] if the request fails
        """
        uc = self.universe_config
        params = {
            "vs_currency": self.vs_currency,
            "order": uc.order,
            "per_page": uc.per_page,
            "page": uc.page,
            "sparkline": "false",
            "locale": "en",
            "precision": self.config.precision,
        }

        try:
            markets = self._get_json("/coins/markets", params)
        except CoinGeckoError as e:
            logger.error(f"Error fetching universe: {e}")
            return []

        if not isinstance(markets, list):
            logger.error(f"Unexpected /coins/markets payload: {type(markets).__name__}")
            return []

        universe = filter_mid_caps(markets, uc.min_market_cap, uc.max_market_cap)
        logger.info(f"Universe: {len(universe)}/{len(markets)} coins within market cap bounds")
        return universe

    def get_series(self, asset_id: str, start_time: int, end_time: int) -> list[float]:
        """
        Fetch the price series for one coin.

        Args:
            asset_id: CoinGecko coin id
            start_time: Window start (unix seconds)
            end_time: Window end (unix seconds)

        Returns:
            Prices in chronological order, or [] on failure
        """
        params = {
            "vs_currency": self.vs_currency,
            "from": int(start_time),
            "to": int(end_time),
            "precision": self.config.precision,
        }

        try:
            payload = self._get_json(f"/coins/{asset_id}/market_chart/range", params)
            prices = extract_prices(payload)
        except CoinGeckoError as e:
            logger.error(f"{asset_id}: Fetch failed - {e}")
            return []
        except (TypeError, ValueError) as e:
            logger.error(f"{asset_id}: Malformed price payload - {e}")
            return []

        if not prices:
            logger.warning(f"{asset_id}: No data returned")

        return prices
