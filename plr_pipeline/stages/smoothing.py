"""Smoothing stage: quantile-regression fit of the cleaned trial."""
from __future__ import annotations

from .base import IPipelineStage
from ..config import PipelineConfig
from ..domain import OccasionWorkItem
from ..processing import TrajectorySmoother


class SmoothingStage(IPipelineStage):
    """Fit the cleaned trial and evaluate the curve on its observed times."""

    name = "smoothing"

    def process(self, item: OccasionWorkItem, config: PipelineConfig) -> None:
        if item.cleaned is None:
            return
        item.trajectory = TrajectorySmoother(config.smoothing).smooth(item.cleaned)
