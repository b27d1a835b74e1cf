"""Selection strategies submodule."""

from diversifier.strategies.top_k import top_k
from diversifier.strategies.greedy import select_uncorrelated

STRATEGIES = ("top_k", "greedy")

__all__ = [
    "top_k",
    "select_uncorrelated",
    "STRATEGIES",
]
