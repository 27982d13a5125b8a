"""Records produced by the cleaning, smoothing and metric stages.

Every record is created once per pipeline run and is read-only afterwards.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import numpy as np

from .dataset import Trial
from .keys import TrialKey


@dataclass(frozen=True)
class TrialAssessment:
    """Quality annotation of one attempt, as decided by the cleaner."""

    key: TrialKey
    n_samples: int
    obstruction_fraction: float
    has_baseline_jump: bool
    eligible: bool
    is_best: bool = False
    overridden: bool = False

    def as_row(self) -> Dict[str, Any]:
        row = self.key._asdict()
        row["eye"] = str(self.key.eye)
        row.update(
            n_samples=self.n_samples,
            obstruction_fraction=self.obstruction_fraction,
            has_baseline_jump=self.has_baseline_jump,
            eligible=self.eligible,
            is_best=self.is_best,
            overridden=self.overridden,
        )
        return row


@dataclass(frozen=True)
class CleanedTrial(Trial):
    """The selected attempt after jump handling and obstruction filtering."""

    baseline_diameter: float = float("nan")
    has_baseline_jump: bool = False
    # Samples before this time were cut off (jump_policy="remove")
    jump_time: Optional[float] = None


@dataclass(frozen=True)
class SmoothedTrajectory:
    """Fitted curve of one cleaned trial, evaluated on its observed times."""

    key: TrialKey
    baseline_diameter: float
    has_baseline_jump: bool
    times: np.ndarray
    raw_diameters: np.ndarray
    predicted: np.ndarray
    quantile: float

    def __post_init__(self) -> None:
        for name in ("times", "raw_diameters", "predicted"):
            values = np.array(getattr(self, name), dtype=float)
            values.setflags(write=False)
            object.__setattr__(self, name, values)
        if not (len(self.times) == len(self.raw_diameters) == len(self.predicted)):
            raise ValueError("times, raw_diameters and predicted must have equal length.")

    def __len__(self) -> int:
        return len(self.times)


@dataclass(frozen=True)
class MetricRecord:
    """Scalar PLR metrics of one occasion; NaN marks unreachable values."""

    key: TrialKey
    baseline: float
    min_diameter: float
    time_to_min: float
    constriction_amplitude: float
    relative_constriction: float
    constriction_latency: float
    constriction_velocity: float
    max_constriction_velocity: float
    recovery_target: float
    recovery_time: float
    recovery_duration: float
    redilation_velocity: float
    has_baseline_jump: bool
    n_samples: int

    def as_row(self) -> Dict[str, Any]:
        row = self.key._asdict()
        row["eye"] = str(self.key.eye)
        values = asdict(self)
        values.pop("key")
        row.update(values)
        return row
