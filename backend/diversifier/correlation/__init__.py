"""Correlation submodule."""

from diversifier.correlation.normalize import is_comparable, mean
from diversifier.correlation.pearson import correlation
from diversifier.correlation.matrix import PairRecord, build_matrix, to_frame

__all__ = [
    "is_comparable",
    "mean",
    "correlation",
    "PairRecord",
    "build_matrix",
    "to_frame",
]
