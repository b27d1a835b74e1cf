"""Pipeline submodule."""

from diversifier.pipeline.orchestrator import (
    SelectionPipeline,
    run_selection,
    run_pipeline,
    main,
)
from diversifier.pipeline.sinks import ArtifactSink, ConsoleSink, SelectionRun

__all__ = [
    "SelectionPipeline",
    "run_selection",
    "run_pipeline",
    "main",
    "ArtifactSink",
    "ConsoleSink",
    "SelectionRun",
]
