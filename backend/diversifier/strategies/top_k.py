"""
Top-K pair ranking by absolute correlation.
"""

from typing import Sequence

from diversifier.correlation.matrix import PairRecord


def top_k(pairs: Sequence[PairRecord], k: int) -> list[PairRecord]:
    """
    Return the k pairs with the strongest absolute correlation.

    Sorting is stable, so pairs with equal |correlation| keep their input
    order. The input sequence is not modified.

    Args:
        pairs: Pair records, e.g. from build_matrix()
        k: Number of pairs to return

    Returns:
        Up to k pairs, sorted by descending |correlation|
    """
    if k <= 0:
        return []

    ranked = sorted(pairs, key=lambda p: abs(p.correlation), reverse=True)
    return ranked[:k]
