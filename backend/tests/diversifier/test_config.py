"""
Tests for YAML configuration loading, run context and fingerprints.
"""

import pytest
import yaml
from pydantic import ValidationError

from diversifier.core.config import (
    DiversifierConfig,
    FetcherConfig,
    compute_config_hash,
    load_config,
)
from diversifier.core.fingerprint import compute_fingerprint
from diversifier.core.run_context import (
    SECONDS_PER_DAY,
    RunContext,
    generate_run_id,
    resolve_time_window,
)


class TestLoadConfig:
    def test_defaults(self):
        config = DiversifierConfig()

        assert config.vs_currency == "usd"
        assert config.top_k.k == 46
        assert config.greedy.target_size == 5
        assert config.greedy.threshold == 0.2
        assert config.universe.min_market_cap == 10_000_000
        assert config.universe.max_market_cap == 5_000_000_000

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            "vs_currency": "EUR",
            "universe": {"assets": "bitcoin, ethereum ,solana"},
            "greedy": {"target_size": 3, "threshold": 0.35},
            "fetcher": {"start_delay_seconds": 25},
            "log_level": "debug",
        }))

        config = load_config(path)

        assert config.vs_currency == "eur"
        assert config.universe.assets == ["bitcoin", "ethereum", "solana"]
        assert config.greedy.target_size == 3
        assert config.greedy.threshold == 0.35
        assert config.fetcher.min_interval_seconds == 25
        assert config.log_level == "DEBUG"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(path) == DiversifierConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_values_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"fetcher": {"max_workers": 0}}))

        with pytest.raises(ValidationError):
            load_config(path)

    def test_strategy_sizes_may_be_non_positive(self):
        """Non-positive k / target_size are valid and yield empty selections."""
        config = DiversifierConfig(top_k={"k": 0}, greedy={"target_size": -1})
        assert config.top_k.k == 0
        assert config.greedy.target_size == -1

    def test_min_interval_from_rate(self):
        assert FetcherConfig(calls_per_minute=120).min_interval_seconds == 0.5


class TestConfigHash:
    def test_hash_is_deterministic(self):
        assert compute_config_hash(DiversifierConfig()) == compute_config_hash(DiversifierConfig())

    def test_hash_changes_with_content(self):
        a = DiversifierConfig()
        b = DiversifierConfig(greedy={"threshold": 0.3})
        assert compute_config_hash(a) != compute_config_hash(b)

    def test_fingerprint_format_and_key_order(self):
        fp1 = compute_fingerprint({"a": 1, "b": [1, 2]})
        fp2 = compute_fingerprint({"b": [1, 2], "a": 1})

        assert fp1 == fp2
        assert fp1.startswith("sha256:")
        assert len(fp1) == len("sha256:") + 64


class TestRunContext:
    def test_run_id_format(self):
        run_id = generate_run_id("sel")
        prefix, date_part, suffix = run_id.split("-")

        assert prefix == "sel"
        assert len(date_part) == 8 and date_part.isdigit()
        assert len(suffix) == 6

    def test_context_snapshot(self):
        ctx = RunContext()
        data = ctx.to_dict()

        assert data["run_id"].startswith("sel-")
        assert data["generated_at"].endswith("Z")
        assert "python" in data["lib_versions"]


class TestResolveTimeWindow:
    def test_lookback_from_now(self):
        assert resolve_time_window(None, None, 30, now=10_000_000) == (
            10_000_000 - 30 * SECONDS_PER_DAY,
            10_000_000,
        )

    def test_now_derived_end_is_aligned(self):
        hour = 3600
        now = 500 * hour + 125

        assert resolve_time_window(None, None, 30, now=now, align_seconds=hour) == (
            500 * hour - 30 * SECONDS_PER_DAY,
            500 * hour,
        )

    def test_runs_a_minute_apart_share_a_window(self):
        now = 500 * 3600 + 125
        first = resolve_time_window(None, None, 30, now=now, align_seconds=3600)
        second = resolve_time_window(None, None, 30, now=now + 60, align_seconds=3600)

        assert first == second

    def test_alignment_ignored_for_explicit_end(self):
        assert resolve_time_window(None, 1712858541, 1, align_seconds=3600) == (
            1712858541 - SECONDS_PER_DAY,
            1712858541,
        )

    def test_explicit_window(self):
        assert resolve_time_window(1710277894, 1712858541, 30) == (1710277894, 1712858541)

    def test_start_only(self):
        assert resolve_time_window(100, None, 1) == (100, 100 + SECONDS_PER_DAY)

    def test_inverted_window_rejected(self):
        with pytest.raises(ValueError):
            resolve_time_window(200, 100, 30)
