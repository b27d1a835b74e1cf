"""
File-based cache for price series with collision-proof keys.

Provides:
- Parquet-based storage for efficiency
- Collision-proof cache keys via fetch params fingerprint
- Cache invalidation and cleanup
"""

import hashlib
import json
import logging
import os
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pandas as pd

from diversifier.core.fingerprint import compute_file_fingerprint

logger = logging.getLogger(__name__)


class FetchParams:
    """
    Immutable fetch parameters that define a unique cache entry.

    Any change to these parameters produces a different cache key.
    """

    def __init__(
        self,
        asset_id: str,
        start_time: int,
        end_time: int,
        vs_currency: str = "usd",
        precision: int = 3
    ):
        self.asset_id = asset_id
        self.start_time = start_time
        self.end_time = end_time
        self.vs_currency = vs_currency
        self.precision = precision

    def to_dict(self) -> dict:
        """Convert to ordered dict for hashing."""
        return {
            "asset_id": self.asset_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "vs_currency": self.vs_currency,
            "precision": self.precision
        }

    def fingerprint(self) -> str:
        """Compute 8-char hex fingerprint of fetch params."""
        data = json.dumps(self.to_dict(), sort_keys=True).encode("utf-8")
        return hashlib.sha256(data).hexdigest()[:8]

    def cache_key(self) -> str:
        """
        Generate collision-proof cache key.

        Format: {safe_asset}_{start}_{end}_{params_fingerprint}

        Example: render-token_1710277894_1712858541_a3f2c891
        """
        safe_asset = "".join(c if c.isalnum() or c in "-_" else "_" for c in self.asset_id)
        return f"{safe_asset}_{self.start_time}_{self.end_time}_{self.fingerprint()}"


class SeriesCache:
    """
    File-based cache for fetched price series.

    Stores each series as a single-column ("price") Parquet file and
    tracks file checksums in checksums.json for integrity checks.
    """

    def __init__(self, cache_dir: str | Path, namespace: Optional[str] = None):
        """
        Initialize cache.

        Args:
            cache_dir: Base directory for cache files
            namespace: Optional namespace subdirectory
        """
        self.base_dir = Path(cache_dir)
        self.cache_dir = self.base_dir / namespace if namespace else self.base_dir

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.checksums_file = self.cache_dir / "checksums.json"
        self._checksums: dict[str, dict] = {}
        self._lock = threading.Lock()
        self._load_checksums()

    def _load_checksums(self):
        if self.checksums_file.exists():
            with open(self.checksums_file, "r") as f:
                self._checksums = json.load(f)

    def _save_checksums(self):
        with open(self.checksums_file, "w") as f:
            json.dump(self._checksums, f, indent=2, sort_keys=True)

    def _make_path(self, cache_key: str) -> Path:
        return self.cache_dir / f"{cache_key}.parquet"

    def get(self, params: FetchParams) -> Optional[list[float]]:
        """
        Get cached series for fetch params.

        Returns:
            List of prices if cached and readable, None otherwise
        """
        path = self._make_path(params.cache_key())

        if not path.exists():
            return None

        try:
            df = pd.read_parquet(path)
            logger.debug(f"Cache hit: {params.asset_id} ({len(df)} rows)")
            return [float(v) for v in df["price"].tolist()]
        except Exception as e:
            logger.warning(f"Cache read failed for {params.asset_id}: {e}")
            return None

    def put(self, params: FetchParams, series: list[float]) -> Optional[str]:
        """
        Store series in cache.

        Empty series are not cached so a failed fetch is retried next run.

        Returns:
            Fingerprint of stored file, or None if nothing was stored
        """
        if not series:
            return None

        cache_key = params.cache_key()
        path = self._make_path(cache_key)

        pd.DataFrame({"price": series}).to_parquet(path, index=False)
        fingerprint = compute_file_fingerprint(path)

        with self._lock:
            self._checksums[cache_key] = {
                "sha256": fingerprint,
                "params": params.to_dict(),
                "rows": len(series),
                "cached_at": datetime.now(timezone.utc).isoformat()
            }
            self._save_checksums()

        logger.debug(f"Cached: {params.asset_id} ({len(series)} rows)")
        return fingerprint

    def has(self, params: FetchParams) -> bool:
        return self._make_path(params.cache_key()).exists()

    def get_metadata(self, params: FetchParams) -> Optional[dict]:
        return self._checksums.get(params.cache_key())

    def clear(self, older_than_days: Optional[int] = None) -> int:
        """
        Clear cache files.

        Args:
            older_than_days: Only clear files older than N days (None = all)

        Returns:
            Number of files removed
        """
        cutoff = None
        if older_than_days is not None:
            cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)

        cleared = 0
        for path in self.cache_dir.glob("*.parquet"):
            if cutoff is not None:
                mtime = datetime.fromtimestamp(os.path.getmtime(path), tz=timezone.utc)
                if mtime >= cutoff:
                    continue
            path.unlink()
            cleared += 1

        remaining_keys = {path.stem for path in self.cache_dir.glob("*.parquet")}
        with self._lock:
            self._checksums = {k: v for k, v in self._checksums.items() if k in remaining_keys}
            self._save_checksums()

        logger.info(f"Cleared {cleared} cache files")
        return cleared
