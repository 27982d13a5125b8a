"""Pipeline stages composing the PLR processing chain."""

from .base import IPipelineStage
from .cleaning import CleaningStage
from .smoothing import SmoothingStage
from .metrics import MetricStage

__all__ = [
    "IPipelineStage",
    "CleaningStage",
    "SmoothingStage",
    "MetricStage",
]
