"""Domain models for pupillometer recordings and derived PLR results."""

from .keys import Eye, OccasionKey, TrialKey
from .dataset import Sample, Trial
from .results import CleanedTrial, MetricRecord, SmoothedTrajectory, TrialAssessment
from .report import ProcessingIssue, RunReport
from .work import OccasionWorkItem

__all__ = [
    "Eye",
    "OccasionKey",
    "TrialKey",
    "Sample",
    "Trial",
    "CleanedTrial",
    "MetricRecord",
    "SmoothedTrajectory",
    "TrialAssessment",
    "ProcessingIssue",
    "RunReport",
    "OccasionWorkItem",
]
