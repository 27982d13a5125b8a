"""Per-occasion work unit passed through the pipeline stages."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .dataset import Trial
from .keys import OccasionKey
from .report import ProcessingIssue
from .results import CleanedTrial, MetricRecord, SmoothedTrajectory, TrialAssessment


@dataclass
class OccasionWorkItem:
    """All data of one (participant, eye, occasion).

    Each stage fills exactly one slot; a slot left at None means an earlier
    stage excluded the occasion (see ``issues``).
    """

    key: OccasionKey
    trials: Tuple[Trial, ...]
    assessments: Tuple[TrialAssessment, ...] = ()
    cleaned: Optional[CleanedTrial] = None
    trajectory: Optional[SmoothedTrajectory] = None
    metrics: Optional[MetricRecord] = None
    issues: List[ProcessingIssue] = field(default_factory=list)

    @property
    def best_attempt(self) -> Optional[int]:
        for assessment in self.assessments:
            if assessment.is_best:
                return assessment.key.attempt
        return None
