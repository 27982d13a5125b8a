"""High level per-occasion PLR orchestration."""
from __future__ import annotations

import logging
from typing import List, Protocol, Sequence

from .config import PipelineConfig
from .domain import OccasionKey, OccasionWorkItem, ProcessingIssue, Trial
from .errors import PLRProcessingError
from .stages import CleaningStage, IPipelineStage, MetricStage, SmoothingStage

logger = logging.getLogger(__name__)


class IPLREngine(Protocol):
    """Protocol for running the stage chain on one occasion."""

    def run(self, key: OccasionKey, trials: Sequence[Trial], config: PipelineConfig) -> OccasionWorkItem:
        ...


class PLREngine(IPLREngine):
    """Stage chain cleaning -> smoothing -> metrics for a single occasion.

    A ``PLRProcessingError`` raised by any stage ends processing of this
    occasion only; it is recorded in the work item's issues together with the
    stage name and the attempt involved.
    """

    def __init__(self, stages: List[IPipelineStage] | None = None) -> None:
        self.stages: List[IPipelineStage] = stages or [
            CleaningStage(),
            SmoothingStage(),
            MetricStage(),
        ]

    def run(self, key: OccasionKey, trials: Sequence[Trial], config: PipelineConfig) -> OccasionWorkItem:
        item = OccasionWorkItem(key=key, trials=tuple(sorted(trials, key=lambda t: t.attempt)))
        for stage in self.stages:
            try:
                stage.process(item, config)
            except PLRProcessingError as exc:
                logger.warning("Excluding %s at %s stage: %s", key, stage.name, exc)
                item.issues.append(ProcessingIssue.from_exception(key, item.best_attempt, stage.name, exc))
                break
        return item


def process_occasion(key: OccasionKey, trials: Sequence[Trial], config: PipelineConfig) -> OccasionWorkItem:
    """Module-level entry point, picklable for worker processes."""
    return PLREngine().run(key, trials, config)
