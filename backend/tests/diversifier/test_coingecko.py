"""
Tests for the CoinGecko universe and series sources.

HTTP is served by httpx.MockTransport; no network access.
"""

import httpx
import pytest

from diversifier.core.config import CoinGeckoSettings, FetcherConfig, UniverseConfig
from diversifier.sources import coingecko as cg
from diversifier.sources.coingecko import (
    CoinGeckoClient,
    CoinGeckoError,
    CoinGeckoRateLimitError,
    extract_prices,
    filter_mid_caps,
)

BASE_URL = "https://api.coingecko.com/api/v3"

MARKETS = [
    {"id": "bitcoin", "market_cap": 1_300_000_000_000},
    {"id": "render-token", "market_cap": 3_000_000_000},
    {"id": "tiny-coin", "market_cap": 2_000_000},
    {"id": "ondo-finance", "market_cap": 1_200_000_000},
    {"id": "no-cap", "market_cap": None},
    {"id": "render-token", "market_cap": 3_000_000_000},
]


def _make_client(handler, **fetcher_kwargs) -> CoinGeckoClient:
    fetcher_kwargs.setdefault("base_retry_delay_seconds", 0)
    config = FetcherConfig(**fetcher_kwargs)
    http_client = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return CoinGeckoClient(config, universe_config=UniverseConfig(), http_client=http_client)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    sleeps = []
    monkeypatch.setattr(cg.time, "sleep", lambda s: sleeps.append(s))
    return sleeps


class TestHelpers:
    def test_filter_mid_caps_bounds_are_exclusive(self):
        markets = [
            {"id": "low", "market_cap": 10_000_000},
            {"id": "mid", "market_cap": 10_000_001},
            {"id": "high", "market_cap": 5_000_000_000},
        ]
        assert filter_mid_caps(markets, 10_000_000, 5_000_000_000) == ["mid"]

    def test_filter_mid_caps_dedups_and_keeps_order(self):
        assert filter_mid_caps(MARKETS, 10_000_000, 5_000_000_000) == ["render-token", "ondo-finance"]

    def test_extract_prices(self):
        payload = {"prices": [[1710277894000, 1.5], [1710281494000, 1.75]]}
        assert extract_prices(payload) == [1.5, 1.75]

    def test_extract_prices_missing_key(self):
        assert extract_prices({}) == []
        assert extract_prices({"prices": None}) == []
        assert extract_prices(None) == []


class TestGetUniverse:
    def test_filters_market_caps(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=MARKETS)

        with _make_client(handler) as client:
            universe = client.get_universe()

        assert universe == ["render-token", "ondo-finance"]
        assert requests[0].url.path == "/api/v3/coins/markets"
        params = requests[0].url.params
        assert params["vs_currency"] == "usd"
        assert params["order"] == "volume_desc"
        assert params["per_page"] == "100"

    def test_server_error_returns_empty(self):
        def handler(request):
            return httpx.Response(500, text="oops")

        with _make_client(handler, max_retries=1) as client:
            assert client.get_universe() == []

    def test_unexpected_payload_returns_empty(self):
        def handler(request):
            return httpx.Response(200, json={"error": "nope"})

        with _make_client(handler) as client:
            assert client.get_universe() == []


class TestGetSeries:
    def test_parses_prices(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={
                "prices": [[1, 10.0], [2, 11.0], [3, 12.5]],
                "market_caps": [],
                "total_volumes": []
            })

        with _make_client(handler) as client:
            series = client.get_series("render-token", 1710277894, 1712858541)

        assert series == [10.0, 11.0, 12.5]
        url = requests[0].url
        assert url.path == "/api/v3/coins/render-token/market_chart/range"
        assert url.params["from"] == "1710277894"
        assert url.params["to"] == "1712858541"
        assert url.params["precision"] == "3"

    def test_missing_prices_returns_empty(self):
        def handler(request):
            return httpx.Response(200, json={})

        with _make_client(handler) as client:
            assert client.get_series("ghost", 0, 10) == []

    def test_not_found_returns_empty_without_retry(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404, json={"error": "coin not found"})

        with _make_client(handler, max_retries=3) as client:
            assert client.get_series("ghost", 0, 10) == []

        assert len(calls) == 1

    def test_rate_limit_retried_with_retry_after(self, no_sleep):
        responses = [
            httpx.Response(429, text="slow down", headers={"Retry-After": "7"}),
            httpx.Response(200, json={"prices": [[1, 1.0], [2, 2.0]]}),
        ]

        def handler(request):
            return responses.pop(0)

        with _make_client(handler, max_retries=3) as client:
            assert client.get_series("bitcoin", 0, 10) == [1.0, 2.0]

        assert no_sleep == [7.0]

    def test_exponential_backoff_without_retry_after(self, no_sleep):
        responses = [
            httpx.Response(503, text="unavailable"),
            httpx.Response(503, text="unavailable"),
            httpx.Response(200, json={"prices": [[1, 1.0]]}),
        ]

        def handler(request):
            return responses.pop(0)

        with _make_client(handler, max_retries=3, base_retry_delay_seconds=2) as client:
            assert client.get_series("bitcoin", 0, 10) == [1.0]

        assert no_sleep == [2.0, 4.0]

    def test_retry_log_counts_total_attempts(self, caplog):
        responses = [
            httpx.Response(503, text="unavailable"),
            httpx.Response(503, text="unavailable"),
            httpx.Response(200, json={"prices": [[1, 1.0]]}),
        ]

        def handler(request):
            return responses.pop(0)

        with caplog.at_level("WARNING", logger="diversifier.sources.coingecko"):
            with _make_client(handler, max_retries=2) as client:
                client.get_series("bitcoin", 0, 10)

        messages = [r.getMessage() for r in caplog.records]
        assert any("(attempt 1/3)" in m for m in messages)
        assert any("(attempt 2/3)" in m for m in messages)

    def test_network_error_returns_empty_after_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("unreachable", request=request)

        with _make_client(handler, max_retries=2) as client:
            assert client.get_series("bitcoin", 0, 10) == []

        assert len(calls) == 3

    def test_malformed_rows_return_empty(self):
        def handler(request):
            return httpx.Response(200, json={"prices": [[1, "abc"]]})

        with _make_client(handler) as client:
            assert client.get_series("bitcoin", 0, 10) == []


class TestRequestErrors:
    def test_persistent_rate_limit_raises_internally(self):
        def handler(request):
            return httpx.Response(429, text="rate limit")

        with _make_client(handler, max_retries=2) as client:
            with pytest.raises(CoinGeckoRateLimitError) as exc_info:
                client._get_json("/coins/markets", {})

        assert exc_info.value.status_code == 429

    def test_non_json_body_raises_internally(self):
        def handler(request):
            return httpx.Response(200, text="<html>")

        with _make_client(handler) as client:
            with pytest.raises(CoinGeckoError):
                client._get_json("/coins/markets", {})


class TestApiKey:
    def test_api_key_header_sent(self, monkeypatch):
        monkeypatch.setenv("COINGECKO_API_KEY", "secret")
        monkeypatch.setenv("COINGECKO_API_PLAN", "pro")
        settings = CoinGeckoSettings(_env_file=None)

        assert settings.api_key_header == "x-cg-pro-api-key"

        client = CoinGeckoClient(FetcherConfig(), settings=settings)
        try:
            assert client._client.headers["x-cg-pro-api-key"] == "secret"
        finally:
            client.close()
