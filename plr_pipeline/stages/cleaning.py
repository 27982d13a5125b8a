"""Cleaning stage: best-attempt selection and trajectory repair."""
from __future__ import annotations

from .base import IPipelineStage
from ..config import PipelineConfig
from ..domain import OccasionWorkItem
from ..preprocessing import clean_occasion


class CleaningStage(IPipelineStage):
    """Assess every attempt, select the best one and clean it.

    When no attempt qualifies the occasion is recorded as a data gap
    (``AllAttemptsExcludedWarning``) and later stages have nothing to do.
    """

    name = "cleaning"

    def process(self, item: OccasionWorkItem, config: PipelineConfig) -> None:
        outcome = clean_occasion(item.key, item.trials, config)
        item.assessments = outcome.assessments
        item.cleaned = outcome.cleaned
        item.issues.extend(outcome.issues)
