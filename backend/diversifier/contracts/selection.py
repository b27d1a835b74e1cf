"""
Pydantic models for the selection output contract.

Defines the structure of selection_output.json with full validation.
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field


class SelectionMeta(BaseModel):
    """Metadata for a selection run."""

    generated_at: str = Field(description="ISO 8601 timestamp")
    run_id: str = Field(pattern=r"^sel-[0-9]{8}-[a-z0-9]+$")
    git_commit: Optional[str] = None
    config_hash: str = Field(pattern=r"^sha256:[a-f0-9]+$")
    lib_versions: dict[str, str]
    data_provider_notes: list[str] = Field(default_factory=list)


class SelectionParameters(BaseModel):
    """Parameters used for the selection."""

    vs_currency: str
    start_time: int  # unix seconds
    end_time: int    # unix seconds

    # top_k
    k: Optional[int] = None

    # greedy
    target_size: Optional[int] = None
    threshold: Optional[float] = None


class PairEntry(BaseModel):
    """A ranked asset pair."""

    rank: int = Field(ge=1)
    pair: str
    asset_a: str
    asset_b: str
    correlation: float


class SelectionOutput(BaseModel):
    """
    Complete output contract for a selection run.

    FINGERPRINT POLICY:
        - content_fingerprint: Hash of analysis content only (deterministic).
          Excludes meta (run_id, generated_at, git_commit, lib_versions).
        - output_fingerprint: Hash of full output envelope, changes every run.
    """

    meta: SelectionMeta
    strategy: Literal["top_k", "greedy"]
    parameters: SelectionParameters

    # Universe in processing order, with fetched series lengths
    universe: list[str]
    series_lengths: dict[str, int] = Field(default_factory=dict)

    # top_k result
    pairs: list[PairEntry] = Field(default_factory=list)
    matrix_size: Optional[int] = None

    # greedy result
    selected: list[str] = Field(default_factory=list)

    content_fingerprint: str = Field(pattern=r"^sha256:[a-f0-9]+$")
    output_fingerprint: str = Field(pattern=r"^sha256:[a-f0-9]+$")

    def get_top_pairs(self, n: int = 10) -> list[PairEntry]:
        return self.pairs[:n]


def build_content_dict(
    strategy: str,
    parameters: dict,
    universe: list[str],
    series_lengths: dict[str, int],
    pairs: list[dict],
    matrix_size: Optional[int],
    selected: list[str]
) -> dict:
    """
    Build canonical content dict for the selection fingerprint.

    Universe, pair and selection order are kept as-is: both strategies are
    order-sensitive, so a reordered universe is different content.
    """
    return {
        "strategy": strategy,
        "parameters": parameters,
        "universe": list(universe),
        "series_lengths": dict(sorted(series_lengths.items())),
        "pairs": list(pairs),
        "matrix_size": matrix_size,
        "selected": list(selected)
    }
