"""
Result sinks: artifact files on disk and a console report.

Sinks are fire-and-forget from the pipeline's point of view.
"""

import json
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pandas as pd

from diversifier.contracts.selection import SelectionOutput
from diversifier.core.fingerprint import compute_file_fingerprint

logger = logging.getLogger(__name__)


@dataclass
class SelectionRun:
    """Everything a sink may persist or report for one pipeline run."""

    output: SelectionOutput
    history: dict[str, list[float]] = field(default_factory=dict)
    matrix: Optional[pd.DataFrame] = None
    fetch_stats: dict[str, int] = field(default_factory=dict)


class ArtifactSink:
    """
    Writes run artifacts to disk.

    Directory layout:
        <output_dir>/
        ├── sel-20260119-xyz789/
        │   ├── selection_output.json
        │   ├── history.json
        │   ├── correlation_matrix.csv   (top_k runs only)
        │   └── run_manifest.json
        └── latest/ -> sel-20260119-xyz789
    """

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)
        self.last_run_dir: Optional[Path] = None

    def emit(self, run: SelectionRun) -> None:
        output = run.output
        run_dir = self.output_dir / output.meta.run_id
        run_dir.mkdir(parents=True, exist_ok=True)

        written = []

        output_path = run_dir / "selection_output.json"
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(output.model_dump(), f, indent=2, default=str)
        written.append(output_path)

        history_path = run_dir / "history.json"
        with open(history_path, "w", encoding="utf-8") as f:
            json.dump(run.history, f)
        written.append(history_path)
        logger.info(f"{history_path.name} written successfully")

        if run.matrix is not None:
            matrix_path = run_dir / "correlation_matrix.csv"
            run.matrix.to_csv(matrix_path, float_format="%.6f")
            written.append(matrix_path)

        manifest = {
            "run_id": output.meta.run_id,
            "generated_at": output.meta.generated_at,
            "strategy": output.strategy,
            "content_fingerprint": output.content_fingerprint,
            "artifacts": [
                {"name": path.name, "sha256": compute_file_fingerprint(path)}
                for path in written
            ],
            "fetch_stats": run.fetch_stats
        }

        with open(run_dir / "run_manifest.json", "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2)

        self._link_latest(run_dir)
        self.last_run_dir = run_dir

        logger.info(f"Saved results to {run_dir}")

    def _link_latest(self, run_dir: Path):
        latest_dir = self.output_dir / "latest"
        if latest_dir.is_symlink() or latest_dir.is_file():
            latest_dir.unlink()
        elif latest_dir.is_dir():
            shutil.rmtree(latest_dir)

        try:
            latest_dir.symlink_to(run_dir.name, target_is_directory=True)
        except OSError:
            shutil.copytree(run_dir, latest_dir)


class ConsoleSink:
    """Prints a human-readable summary of a selection run."""

    def __init__(self, top_n: Optional[int] = None):
        self.top_n = top_n

    def emit(self, run: SelectionRun) -> None:
        output = run.output
        width = 60

        print(f"\n{'=' * width}")
        print("Selection Complete")
        print(f"{'=' * width}")
        print(f"Run ID:       {output.meta.run_id}")
        print(f"Strategy:     {output.strategy}")
        print(f"Universe:     {len(output.universe)} assets")
        print(f"Fingerprint:  {output.content_fingerprint[:30]}...")
        print(f"{'=' * width}")

        if output.strategy == "top_k":
            pairs = output.pairs if self.top_n is None else output.get_top_pairs(self.top_n)
            print(f"\nTop {len(pairs)} pairs by absolute correlation "
                  f"(of {output.matrix_size or 0}):")
            print(f"{'-' * width}")
            print(f"{'Rank':<6} {'Pair':<40} {'Corr':>10}")
            print(f"{'-' * width}")
            for p in pairs:
                print(f"{p.rank:<6} {p.pair:<40} {p.correlation:>10.4f}")
        else:
            params = output.parameters
            print(f"\n{len(output.selected)}/{params.target_size} uncorrelated assets "
                  f"(|corr| < {params.threshold}):")
            print(f"{'-' * width}")
            for i, asset in enumerate(output.selected, start=1):
                print(f"{i:<6} {asset}")

        print(f"{'=' * width}")
