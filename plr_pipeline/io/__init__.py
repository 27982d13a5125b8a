"""I/O and pipeline utilities."""

from .io import read_table, write_table, read_samples, samples_from_frame, SampleTable
from .pipeline import PLRPipeline, PipelineResult
from .observers import PipelineObserver, ConsoleReporter, ResultWriter, RunLogger

__all__ = [
    "read_table",
    "write_table",
    "read_samples",
    "samples_from_frame",
    "SampleTable",
    "PLRPipeline",
    "PipelineResult",
    "PipelineObserver",
    "ConsoleReporter",
    "ResultWriter",
    "RunLogger",
]
