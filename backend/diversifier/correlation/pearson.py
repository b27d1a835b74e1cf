"""
Pearson cross-correlation between two price series.

Degenerate inputs never raise; they correlate as 0.0:
- empty or missing series
- series of different lengths
- constant series (zero variance)
- series containing NaN or infinite values

Sums are accumulated left to right in plain Python floats so results are
reproducible bit-for-bit across runs and platforms.
"""

import logging
import math
from typing import Optional

from diversifier.correlation.normalize import (
    PriceSeries,
    is_comparable,
    is_constant,
    is_finite_series,
    mean,
)

logger = logging.getLogger(__name__)


def correlation(
    series1: Optional[PriceSeries],
    series2: Optional[PriceSeries]
) -> float:
    """
    Compute the Pearson product-moment correlation coefficient.

    Args:
        series1: First price series
        series2: Second price series, same length and cadence as series1

    Returns:
        Correlation in [-1, 1], or 0.0 for degenerate input
    """
    if not is_comparable(series1, series2):
        return 0.0

    if not (is_finite_series(series1) and is_finite_series(series2)):
        return 0.0

    if is_constant(series1) or is_constant(series2):
        return 0.0

    mean1 = mean(series1)
    mean2 = mean(series2)

    numerator = 0.0
    denom1 = 0.0
    denom2 = 0.0

    for x, y in zip(series1, series2):
        diff1 = x - mean1
        diff2 = y - mean2
        numerator += diff1 * diff2
        denom1 += diff1 ** 2
        denom2 += diff2 ** 2

    # Zero variance: a constant series is uncorrelated with anything
    if denom1 == 0 or denom2 == 0:
        return 0.0

    result = numerator / math.sqrt(denom1 * denom2)

    # Overflow in the accumulators
    if not math.isfinite(result):
        logger.debug("Non-finite correlation from finite inputs, returning 0.0")
        return 0.0

    return result
