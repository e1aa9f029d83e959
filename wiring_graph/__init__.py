"""Automotive wiring graph normalizer and topology analyzer."""

from .pipeline import NormalizationPipeline, PipelineResult, run_pipeline
from .utils.serialization import serialize, write_ndjson

__version__ = "1.0.0"

__all__ = [
    "NormalizationPipeline",
    "PipelineResult",
    "run_pipeline",
    "serialize",
    "write_ndjson",
]
