"""
Pytest configuration and fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "online: marks tests that require internet access (CoinGecko API)"
    )
    config.addinivalue_line(
        "markers",
        "slow: marks tests that are slow to execute"
    )


@pytest.fixture
def random_walks():
    """Five independent random-walk price series of length 200."""
    rng = np.random.default_rng(42)
    assets = ["alpha", "bravo", "charlie", "delta", "echo"]

    series = {}
    for asset in assets:
        returns = rng.normal(0, 0.02, 200)
        series[asset] = (100 * np.exp(np.cumsum(returns))).tolist()

    return assets, series


class FakeSeriesSource:
    """In-memory series source that records calls."""

    def __init__(self, series_by_asset, fail_for=(), raise_for=()):
        self.series_by_asset = series_by_asset
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)
        self.calls = []

    def get_series(self, asset_id, start_time, end_time):
        self.calls.append((asset_id, start_time, end_time))
        if asset_id in self.raise_for:
            raise RuntimeError(f"boom: {asset_id}")
        if asset_id in self.fail_for:
            return []
        return list(self.series_by_asset.get(asset_id, []))


class FakeUniverseSource:
    def __init__(self, assets):
        self.assets = list(assets)

    def get_universe(self):
        return list(self.assets)


class RecordingSink:
    def __init__(self):
        self.runs = []

    def emit(self, run):
        self.runs.append(run)


@pytest.fixture
def fake_series_source():
    return FakeSeriesSource


@pytest.fixture
def fake_universe_source():
    return FakeUniverseSource


@pytest.fixture
def recording_sink():
    return RecordingSink()
