"""
Selection pipeline orchestrator.

Coordinates universe discovery, series fetching, correlation, strategy
selection and result emission.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from diversifier.contracts.selection import (
    PairEntry,
    SelectionMeta,
    SelectionOutput,
    SelectionParameters,
    build_content_dict,
)
from diversifier.core.cache import SeriesCache
from diversifier.core.config import (
    DiversifierConfig,
    compute_config_hash,
    get_coingecko_settings,
    load_config,
)
from diversifier.core.fingerprint import compute_fingerprint
from diversifier.core.run_context import DATA_PROVIDER_NOTES, RunContext, resolve_time_window
from diversifier.correlation.matrix import PairRecord, build_matrix, to_frame
from diversifier.pipeline.sinks import ArtifactSink, ConsoleSink, SelectionRun
from diversifier.sources.base import ResultSink, SeriesSource, StaticUniverseSource, UniverseSource
from diversifier.sources.coingecko import CoinGeckoClient
from diversifier.sources.fetcher import SeriesFetcher
from diversifier.strategies import STRATEGIES
from diversifier.strategies.greedy import select_uncorrelated
from diversifier.strategies.top_k import top_k

logger = logging.getLogger(__name__)


class SelectionPipeline:
    """
    Main orchestrator for uncorrelated asset selection.

    Owns all per-run state; nothing is shared between runs.
    """

    def __init__(
        self,
        config: DiversifierConfig,
        universe_source: UniverseSource,
        series_source: SeriesSource,
        sinks: Optional[Sequence[ResultSink]] = None,
        cache: Optional[SeriesCache] = None
    ):
        """
        Initialize pipeline.

        Args:
            config: Diversifier configuration
            universe_source: Provides the ordered asset universe
            series_source: Provides one price series per asset
            sinks: Receivers of the final SelectionRun
            cache: Optional series cache
        """
        self.config = config
        self.universe_source = universe_source
        self.context = RunContext(prefix="sel")
        self.sinks = list(sinks or [])

        self.start_time, self.end_time = resolve_time_window(
            config.start_time,
            config.end_time,
            config.lookback_days,
            align_seconds=config.window_alignment_seconds
        )

        self.fetcher = SeriesFetcher(
            series_source,
            config.fetcher,
            cache=cache,
            vs_currency=config.vs_currency
        )

        # Run state
        self.universe: list[str] = []
        self.series_by_asset: dict[str, list[float]] = {}
        self.pairs: list[PairRecord] = []
        self.ranked: list[PairRecord] = []
        self.selected: list[str] = []
        self.output: Optional[SelectionOutput] = None

    def fetch_universe(self) -> int:
        """
        Resolve the asset universe.

        An explicit config.universe.assets list takes precedence over the
        universe source.

        Returns:
            Number of assets in the universe
        """
        source = self.universe_source
        if self.config.universe.assets:
            source = StaticUniverseSource(self.config.universe.assets)
            logger.info(f"Using configured universe of {len(source.assets)} assets")

        try:
            assets = source.get_universe()
        except Exception as e:
            logger.error(f"Universe source raised - {e}")
            assets = []

        self.universe = list(dict.fromkeys(assets))

        if len(self.universe) < 2:
            logger.warning(f"Universe has {len(self.universe)} assets; no pairs can be formed")

        logger.info(f"Universe: {self.universe}")
        return len(self.universe)

    def fetch_series(self) -> int:
        """
        Fetch price series for every asset in the universe.

        Returns:
            Number of assets with a non-empty series
        """
        logger.info(f"Fetching {len(self.universe)} series from {self.start_time} to {self.end_time}")

        def progress_callback(current, total, asset):
            if current % 20 == 0 or current == total:
                logger.info(f"Fetch progress: {current}/{total} ({asset})")

        self.series_by_asset = self.fetcher.fetch_batch(
            self.universe,
            self.start_time,
            self.end_time,
            progress_callback=progress_callback
        )

        return sum(1 for s in self.series_by_asset.values() if s)

    def run_top_k(self, k: Optional[int] = None) -> list[PairRecord]:
        """Build the full correlation matrix and rank its pairs."""
        k = self.config.top_k.k if k is None else k

        self.pairs = build_matrix(self.universe, self.series_by_asset)
        self.ranked = top_k(self.pairs, k)

        logger.info(f"Top {len(self.ranked)} pairs with the strongest absolute correlation selected")
        return self.ranked

    def run_greedy(
        self,
        target_size: Optional[int] = None,
        threshold: Optional[float] = None
    ) -> list[str]:
        """Greedily select mutually uncorrelated assets."""
        target_size = self.config.greedy.target_size if target_size is None else target_size
        threshold = self.config.greedy.threshold if threshold is None else threshold

        self.selected = select_uncorrelated(
            self.universe,
            self.series_by_asset,
            target_size,
            threshold
        )
        return self.selected

    def build_output(
        self,
        strategy: str,
        k: Optional[int] = None,
        target_size: Optional[int] = None,
        threshold: Optional[float] = None
    ) -> SelectionOutput:
        """
        Build the output contract for the strategy that was run.

        Args:
            strategy: "top_k" or "greedy"
            k, target_size, threshold: Effective strategy parameters
                (None = config defaults)
        """
        if strategy == "top_k":
            parameters = SelectionParameters(
                vs_currency=self.config.vs_currency,
                start_time=self.start_time,
                end_time=self.end_time,
                k=self.config.top_k.k if k is None else k
            )
            pairs = [
                PairEntry(rank=rank, **p.to_dict())
                for rank, p in enumerate(self.ranked, start=1)
            ]
            matrix_size = len(self.pairs)
            selected = []
        elif strategy == "greedy":
            parameters = SelectionParameters(
                vs_currency=self.config.vs_currency,
                start_time=self.start_time,
                end_time=self.end_time,
                target_size=self.config.greedy.target_size if target_size is None else target_size,
                threshold=self.config.greedy.threshold if threshold is None else threshold
            )
            pairs = []
            matrix_size = None
            selected = list(self.selected)
        else:
            raise ValueError(f"Unknown strategy: {strategy}")

        series_lengths = {asset: len(self.series_by_asset.get(asset) or []) for asset in self.universe}

        meta = SelectionMeta(
            generated_at=self.context.generated_at,
            run_id=self.context.run_id,
            git_commit=self.context.git_commit,
            config_hash=compute_config_hash(self.config),
            lib_versions=self.context.lib_versions,
            data_provider_notes=DATA_PROVIDER_NOTES
        )

        content_dict = build_content_dict(
            strategy=strategy,
            parameters=parameters.model_dump(),
            universe=self.universe,
            series_lengths=series_lengths,
            pairs=[p.model_dump() for p in pairs],
            matrix_size=matrix_size,
            selected=selected
        )
        content_fingerprint = compute_fingerprint(content_dict)
        output_fingerprint = compute_fingerprint({"meta": meta, **content_dict})

        self.output = SelectionOutput(
            meta=meta,
            strategy=strategy,
            parameters=parameters,
            universe=self.universe,
            series_lengths=series_lengths,
            pairs=pairs,
            matrix_size=matrix_size,
            selected=selected,
            content_fingerprint=content_fingerprint,
            output_fingerprint=output_fingerprint
        )

        return self.output

    def emit(self) -> SelectionRun:
        """
        Hand the run to every sink. A failing sink does not stop the others.
        """
        if self.output is None:
            raise ValueError("Must call build_output() first")

        run = SelectionRun(
            output=self.output,
            history=dict(self.series_by_asset),
            matrix=to_frame(self.universe, self.pairs) if self.output.strategy == "top_k" else None,
            fetch_stats=self.fetcher.get_stats()
        )

        for sink in self.sinks:
            try:
                sink.emit(run)
            except Exception as e:
                logger.error(f"Sink {type(sink).__name__} failed: {e}")

        return run

    def run(
        self,
        strategy: str,
        k: Optional[int] = None,
        target_size: Optional[int] = None,
        threshold: Optional[float] = None
    ) -> SelectionOutput:
        """
        Run the full pipeline for one strategy.

        Returns:
            SelectionOutput object
        """
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy: {strategy} (expected one of {', '.join(STRATEGIES)})")

        self.fetch_universe()
        self.fetch_series()

        if strategy == "top_k":
            self.run_top_k(k)
        else:
            self.run_greedy(target_size, threshold)

        output = self.build_output(strategy, k=k, target_size=target_size, threshold=threshold)
        self.emit()

        return output


def run_selection(
    config: DiversifierConfig,
    strategy: str,
    output_dir: Optional[str | Path] = None,
    k: Optional[int] = None,
    target_size: Optional[int] = None,
    threshold: Optional[float] = None
) -> SelectionOutput:
    """
    Run the selection pipeline against CoinGecko.

    Args:
        config: Validated configuration
        strategy: "top_k" or "greedy"
        output_dir: Output directory for run artifacts
            (default: <artifact_base_dir>/runs)
        k, target_size, threshold: Optional overrides of config values

    Returns:
        SelectionOutput object
    """
    base_dir = Path(config.artifact_base_dir)
    output_dir = Path(output_dir) if output_dir is not None else base_dir / "runs"
    cache = None
    if config.fetcher.cache_enabled:
        cache = SeriesCache(base_dir / "raw" / "prices")
        if config.fetcher.cache_max_age_days is not None:
            cache.clear(older_than_days=config.fetcher.cache_max_age_days)

    with CoinGeckoClient(
        config.fetcher,
        universe_config=config.universe,
        vs_currency=config.vs_currency,
        settings=get_coingecko_settings()
    ) as client:
        pipeline = SelectionPipeline(
            config,
            universe_source=client,
            series_source=client,
            sinks=[ArtifactSink(output_dir), ConsoleSink()],
            cache=cache
        )
        return pipeline.run(strategy, k=k, target_size=target_size, threshold=threshold)


def run_pipeline(
    config_path: str | Path,
    strategy: str,
    output_dir: Optional[str | Path] = None,
    **overrides
) -> SelectionOutput:
    """Load config from YAML and run the selection pipeline."""
    config = load_config(config_path)
    return run_selection(config, strategy, output_dir=output_dir, **overrides)


def main(
    config_path: str,
    strategy: str,
    output_dir: Optional[str] = None,
    k: Optional[int] = None,
    target_size: Optional[int] = None,
    threshold: Optional[float] = None
):
    """
    CLI entry point for a selection run.

    Args:
        config_path: Path to YAML config
        strategy: "top_k" or "greedy"
        output_dir: Output directory
        k, target_size, threshold: Optional strategy overrides
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    try:
        config = load_config(config_path)
        logging.getLogger().setLevel(config.log_level)

        run_selection(
            config,
            strategy,
            output_dir=output_dir,
            k=k,
            target_size=target_size,
            threshold=threshold
        )
    except Exception as e:
        logger.error(f"Selection failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
