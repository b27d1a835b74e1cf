"""
Run context management for selection runs.

Provides:
- Unique run ID generation
- Git commit detection
- Library version capture
- Time window resolution
"""

import importlib.metadata
import secrets
import subprocess
import sys
import time
from datetime import datetime, timezone
from typing import Optional

SECONDS_PER_DAY = 24 * 60 * 60


def generate_run_id(prefix: str = "sel") -> str:
    """
    Generate unique run ID.

    Format: {prefix}-{YYYYMMDD}-{random6}
    Example: sel-20260119-abc123
    """
    date_str = datetime.now(timezone.utc).strftime("%Y%m%d")
    random_suffix = secrets.token_hex(3)
    return f"{prefix}-{date_str}-{random_suffix}"


def get_git_commit() -> Optional[str]:
    """
    Get current git commit hash.

    Returns:
        Short commit hash or None if not in a git repo
    """
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (subprocess.TimeoutExpired, FileNotFoundError):
        pass

    return None


def get_lib_versions() -> dict[str, str]:
    """
    Get versions of key libraries.

    Returns:
        Dict mapping library name to version string
    """
    libs = ["httpx", "pandas", "numpy", "pydantic"]
    versions = {
        "python": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    }

    for lib in libs:
        try:
            versions[lib] = importlib.metadata.version(lib)
        except importlib.metadata.PackageNotFoundError:
            versions[lib] = "not_installed"

    return versions


def get_current_timestamp() -> str:
    """Get current UTC timestamp in ISO 8601 format with Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def resolve_time_window(
    start_time: Optional[int],
    end_time: Optional[int],
    lookback_days: int,
    now: Optional[float] = None,
    align_seconds: int = 0
) -> tuple[int, int]:
    """
    Resolve the (start, end) fetch window in unix seconds.

    Missing bounds are derived from the other bound and lookback_days;
    a missing end defaults to now, floored to a multiple of align_seconds
    so that runs close together share the same window and cache keys.

    Args:
        start_time: Explicit window start or None
        end_time: Explicit window end or None
        lookback_days: Window length used when start_time is None
        now: Override for the current time (unix seconds)
        align_seconds: Granularity of a now-derived end (0 = no alignment)

    Returns:
        Tuple of (start_time, end_time)

    Raises:
        ValueError: If the resolved window is empty or inverted
    """
    if end_time is None:
        if start_time is not None:
            end_time = start_time + lookback_days * SECONDS_PER_DAY
        else:
            end_time = int(now if now is not None else time.time())
            if align_seconds > 0:
                end_time -= end_time % align_seconds

    if start_time is None:
        start_time = end_time - lookback_days * SECONDS_PER_DAY

    if start_time >= end_time:
        raise ValueError(f"Invalid time window: start {start_time} >= end {end_time}")

    return start_time, end_time


class RunContext:
    """
    Encapsulates all metadata for a single run.

    Provides immutable snapshot of run context at creation time.
    """

    def __init__(self, prefix: str = "sel"):
        self.run_id = generate_run_id(prefix)
        self.generated_at = get_current_timestamp()
        self.git_commit = get_git_commit()
        self.lib_versions = get_lib_versions()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "run_id": self.run_id,
            "generated_at": self.generated_at,
            "git_commit": self.git_commit,
            "lib_versions": self.lib_versions
        }


# Data provider notes (static, documented limitations)
DATA_PROVIDER_NOTES = [
    "coingecko: series are compared by position, not timestamp; unequal lengths correlate as 0",
    "coingecko: market_chart/range granularity depends on window length (5m, hourly or daily)",
    "coingecko: public API is rate limited; request starts are paced and 429s backed off",
    "coingecko: a failed fetch yields an empty series rather than aborting the run"
]
