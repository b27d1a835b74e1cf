"""
Collaborator contracts between the pipeline and the outside world.

Implementations must not raise past these boundaries: a failed universe
lookup is an empty list and a failed series fetch is an empty series.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class UniverseSource(Protocol):
    def get_universe(self) -> list[str]:
        """Ordered asset ids, or [] on failure."""
        ...


@runtime_checkable
class SeriesSource(Protocol):
    def get_series(self, asset_id: str, start_time: int, end_time: int) -> list[float]:
        """Prices for one asset over [start_time, end_time] (unix seconds), or [] on failure."""
        ...


@runtime_checkable
class ResultSink(Protocol):
    def emit(self, output: Any) -> None:
        """Persist or report a selection output. Return value is ignored."""
        ...


class StaticUniverseSource:
    """Universe source backed by a fixed list of asset ids."""

    def __init__(self, assets: list[str]):
        self.assets = list(dict.fromkeys(assets))

    def get_universe(self) -> list[str]:
        return list(self.assets)
