"""Metric stage: scalar PLR metrics from the smoothed curve."""
from __future__ import annotations

from .base import IPipelineStage
from ..config import PipelineConfig
from ..domain import OccasionWorkItem, ProcessingIssue
from ..postprocessing import check_amplitude, extract_metrics


class MetricStage(IPipelineStage):
    """Compute the metric record; negative amplitudes are kept and flagged for review."""

    name = "metrics"

    def process(self, item: OccasionWorkItem, config: PipelineConfig) -> None:
        if item.trajectory is None:
            return
        record = extract_metrics(item.trajectory, config.metrics)
        warning = check_amplitude(record)
        if warning is not None:
            item.issues.append(
                ProcessingIssue.from_exception(item.key, record.key.attempt, self.name, warning)
            )
        item.metrics = record
