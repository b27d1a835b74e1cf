"""
Shape checks for price series before correlation.

Series are compared position-wise, so two series are comparable only when
both are non-empty and have the same length. Callers are responsible for
sampling them over matching windows and cadence.
"""

import math
from typing import Optional, Sequence

PriceSeries = Sequence[float]


def as_series(series: Optional[PriceSeries]) -> PriceSeries:
    """Treat a missing series as empty."""
    return series if series is not None else ()


def is_comparable(
    series1: Optional[PriceSeries],
    series2: Optional[PriceSeries]
) -> bool:
    """
    Check whether two series can be correlated.

    Args:
        series1: First price series (None is treated as empty)
        series2: Second price series (None is treated as empty)

    Returns:
        True iff both series are non-empty and of equal length
    """
    try:
        len1 = len(as_series(series1))
        len2 = len(as_series(series2))
    except TypeError:
        return False

    return len1 > 0 and len1 == len2


def mean(series: Optional[PriceSeries]) -> float:
    """Arithmetic mean, summed left to right. The mean of nothing is 0."""
    values = as_series(series)
    if len(values) == 0:
        return 0.0

    total = 0.0
    for value in values:
        total += value
    return total / len(values)


def is_constant(series: Optional[PriceSeries]) -> bool:
    """True if every value in the series is equal (an empty series counts as constant)."""
    values = as_series(series)
    if len(values) == 0:
        return True
    return min(values) == max(values)


def is_finite_series(series: Optional[PriceSeries]) -> bool:
    """True if every value in the series is a finite number."""
    return all(math.isfinite(v) for v in as_series(series))
