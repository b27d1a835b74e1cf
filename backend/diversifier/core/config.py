"""
Configuration management for the diversifier module.

Loads YAML config with validation via Pydantic models. Secrets (API keys)
come from the environment via pydantic-settings, never from the YAML file.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class UniverseConfig(BaseModel):
    """Configuration for universe discovery."""

    # Explicit universe; when non-empty the remote universe is not queried
    assets: list[str] = Field(default_factory=list)

    # CoinGecko /coins/markets query
    per_page: int = Field(default=100, ge=1, le=250)
    page: int = Field(default=1, ge=1)
    order: str = Field(default="volume_desc")

    # Mid-cap filter (exclusive bounds)
    min_market_cap: float = Field(default=10_000_000, ge=0)
    max_market_cap: float = Field(default=5_000_000_000, gt=0)

    @field_validator("assets", mode="before")
    @classmethod
    def parse_assets(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [a.strip() for a in v.split(",") if a.strip()]
        return v


class FetcherConfig(BaseModel):
    """Configuration for price fetching."""

    base_url: str = Field(default="https://api.coingecko.com/api/v3")
    calls_per_minute: int = Field(default=30, ge=1)

    # Explicit pacing between request starts; overrides calls_per_minute
    start_delay_seconds: Optional[float] = Field(default=None, ge=0)

    max_workers: int = Field(default=4, ge=1)
    max_retries: int = Field(default=3, ge=0)
    base_retry_delay_seconds: float = Field(default=5.0, ge=0)
    timeout_seconds: float = Field(default=30.0, gt=0)
    precision: int = Field(default=3, ge=0, le=18)
    cache_enabled: bool = Field(default=True)

    # Cached series older than this are pruned at the start of a run (None = keep)
    cache_max_age_days: Optional[int] = Field(default=7, ge=1)

    @property
    def min_interval_seconds(self) -> float:
        """Minimum spacing between two request starts."""
        if self.start_delay_seconds is not None:
            return self.start_delay_seconds
        return 60.0 / self.calls_per_minute


class TopKConfig(BaseModel):
    """Configuration for the Top-K pair ranking strategy."""

    k: int = Field(default=46)


class GreedyConfig(BaseModel):
    """Configuration for the greedy uncorrelated selection strategy."""

    target_size: int = Field(default=5)
    threshold: float = Field(default=0.2, ge=0)


class DiversifierConfig(BaseModel):
    """Root configuration for the diversifier module."""

    # Quote currency for prices and market caps
    vs_currency: str = Field(default="usd")

    # Time window (unix seconds). When unset, the window ends now and
    # spans lookback_days.
    lookback_days: int = Field(default=30, ge=1)

    # A now-derived window end is floored to this many seconds
    window_alignment_seconds: int = Field(default=3600, ge=0)
    start_time: Optional[int] = Field(default=None, ge=0)
    end_time: Optional[int] = Field(default=None, ge=0)

    # Sub-configs
    universe: UniverseConfig = Field(default_factory=UniverseConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    top_k: TopKConfig = Field(default_factory=TopKConfig)
    greedy: GreedyConfig = Field(default_factory=GreedyConfig)

    # Artifact storage
    artifact_base_dir: str = Field(default="artifacts")

    # Logging
    log_level: str = Field(default="INFO")

    @field_validator("vs_currency")
    @classmethod
    def lower_currency(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.strip().upper()


class CoinGeckoSettings(BaseSettings):
    """CoinGecko credentials loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="COINGECKO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: Optional[str] = None
    api_plan: Literal["demo", "pro"] = "demo"

    @property
    def api_key_header(self) -> str:
        return f"x-cg-{self.api_plan}-api-key"


@lru_cache
def get_coingecko_settings() -> CoinGeckoSettings:
    """Get cached CoinGecko settings instance."""
    return CoinGeckoSettings()


def load_config(config_path: str | Path) -> DiversifierConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML config file

    Returns:
        DiversifierConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config validation fails
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}

    logger.info(f"Loaded config from {path}")

    return DiversifierConfig(**raw_config)


def compute_config_hash(config: DiversifierConfig) -> str:
    """
    Compute deterministic hash of configuration.

    Uses JSON serialization with sorted keys for consistency.
    """
    from diversifier.core.fingerprint import compute_fingerprint

    config_dict = config.model_dump(mode="json")

    return compute_fingerprint(config_dict)
