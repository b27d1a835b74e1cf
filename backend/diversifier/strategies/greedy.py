"""
Greedy uncorrelated asset selection.

Single left-to-right pass over the universe: a candidate is accepted when its
absolute correlation with every asset selected so far is strictly below the
threshold. There is no backtracking, so the result depends on universe order.
"""

import logging
from typing import Mapping, Optional, Sequence

from diversifier.correlation.normalize import PriceSeries
from diversifier.correlation.pearson import correlation

logger = logging.getLogger(__name__)


def select_uncorrelated(
    universe: Sequence[str],
    series_by_asset: Mapping[str, Optional[PriceSeries]],
    target_size: int,
    threshold: float
) -> list[str]:
    """
    Grow a set of mutually uncorrelated assets.

    Args:
        universe: Ordered candidate asset ids, each visited once
        series_by_asset: Mapping from asset id to price series; missing
            assets are treated as empty series
        target_size: Stop once this many assets are selected
        threshold: Accept a candidate only if |corr| < threshold against
            every selected asset

    Returns:
        Selected asset ids in acceptance order (at most target_size)
    """
    if target_size <= 0:
        return []

    selected: list[str] = []

    for candidate in universe:
        candidate_series = series_by_asset.get(candidate)

        blocker = None
        for asset in selected:
            value = correlation(candidate_series, series_by_asset.get(asset))
            if abs(value) >= threshold:
                blocker = (asset, value)
                break

        if blocker is None:
            selected.append(candidate)
            logger.debug(f"{candidate}: accepted ({len(selected)}/{target_size})")
        else:
            logger.debug(f"{candidate}: rejected, |corr| with {blocker[0]} = {abs(blocker[1]):.4f}")

        if len(selected) >= target_size:
            break

    logger.info(
        f"Greedy selection complete: {len(selected)}/{target_size} assets "
        f"from {len(universe)} candidates (threshold={threshold})"
    )

    return selected
