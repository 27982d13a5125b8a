"""Data structures for raw pupillometer recordings.

The classes carry only data and small derived views; the preprocessing,
processing and postprocessing modules implement the behaviour.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .keys import Eye, TrialKey


@dataclass(frozen=True)
class Sample:
    """Single pupil-diameter measurement."""

    participant_id: str
    eye: Eye
    occasion: str
    attempt: int
    time: float
    diameter: float
    obstructed: bool
    obstruction_percent: Optional[float] = None

    @property
    def trial_key(self) -> TrialKey:
        return TrialKey(self.participant_id, self.eye, self.occasion, self.attempt)


def _readonly(values: np.ndarray) -> np.ndarray:
    values.setflags(write=False)
    return values


@dataclass(frozen=True)
class Trial:
    """All samples of one attempt, in acquisition order."""

    key: TrialKey
    samples: Tuple[Sample, ...]
    obstruction_fraction: float

    @property
    def times(self) -> np.ndarray:
        return _readonly(np.array([s.time for s in self.samples], dtype=float))

    @property
    def diameters(self) -> np.ndarray:
        return _readonly(np.array([s.diameter for s in self.samples], dtype=float))

    @property
    def obstructed(self) -> np.ndarray:
        return _readonly(np.array([s.obstructed for s in self.samples], dtype=bool))

    @property
    def attempt(self) -> int:
        return self.key.attempt

    def __len__(self) -> int:
        return len(self.samples)
