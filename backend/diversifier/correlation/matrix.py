"""
Pairwise correlation matrix over an ordered asset universe.

Enumerates every unordered pair (i < j) in universe order. A failure on one
pair is logged and the pair is left out; it never aborts the whole build.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from diversifier.correlation.normalize import PriceSeries
from diversifier.correlation.pearson import correlation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairRecord:
    """Correlation of an unordered asset pair; asset_a comes first in the universe."""

    asset_a: str
    asset_b: str
    correlation: float

    @property
    def label(self) -> str:
        return f"{self.asset_a}:{self.asset_b}"

    @property
    def abs_correlation(self) -> float:
        return abs(self.correlation)

    def to_dict(self) -> dict:
        return {
            "pair": self.label,
            "asset_a": self.asset_a,
            "asset_b": self.asset_b,
            "correlation": self.correlation
        }


def build_matrix(
    universe: Sequence[str],
    series_by_asset: Mapping[str, Optional[PriceSeries]]
) -> list[PairRecord]:
    """
    Compute correlations for all unordered pairs in the universe.

    Args:
        universe: Ordered asset ids
        series_by_asset: Mapping from asset id to its price series;
            missing assets are treated as empty series

    Returns:
        PairRecords ordered by (i ascending, j ascending)
    """
    pairs: list[PairRecord] = []
    failed = 0
    n = len(universe)

    for i in range(n):
        asset_a = universe[i]
        series_a = series_by_asset.get(asset_a)
        for j in range(i + 1, n):
            asset_b = universe[j]
            try:
                value = correlation(series_a, series_by_asset.get(asset_b))
            except Exception as e:
                failed += 1
                logger.warning(f"Error calculating correlation for {asset_a}:{asset_b} - {e}")
                continue
            pairs.append(PairRecord(asset_a, asset_b, value))

    logger.info(
        f"Correlation matrix: {len(pairs)} pairs from {n} assets"
        + (f", {failed} failed" if failed else "")
    )

    return pairs


def to_frame(universe: Sequence[str], pairs: Sequence[PairRecord]) -> pd.DataFrame:
    """
    Expand pair records into a square symmetric correlation matrix.

    The diagonal is 1.0 and pairs missing from the records are NaN.

    Args:
        universe: Ordered asset ids (row and column order)
        pairs: Pair records, typically from build_matrix()

    Returns:
        DataFrame indexed and columned by asset id
    """
    assets = list(dict.fromkeys(universe))
    position = {asset: idx for idx, asset in enumerate(assets)}

    values = np.full((len(assets), len(assets)), np.nan)
    np.fill_diagonal(values, 1.0)

    for pair in pairs:
        i = position.get(pair.asset_a)
        j = position.get(pair.asset_b)
        if i is None or j is None:
            continue
        values[i, j] = pair.correlation
        values[j, i] = pair.correlation

    return pd.DataFrame(values, index=assets, columns=assets)
