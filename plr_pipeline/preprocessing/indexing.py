# plr_pipeline/preprocessing/indexing.py
"""Trial indexing: group samples into trials and annotate obstruction.

No sample is dropped here. Obstruction filtering is a selection policy of the
cleaner; this module only validates and annotates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

import numpy as np

from ..config import SelectionConfig
from ..domain import OccasionKey, Sample, Trial, TrialKey
from ..errors import MalformedTrialError

logger = logging.getLogger(__name__)


def sample_durations(times: np.ndarray) -> np.ndarray:
    """
    Duration each sample stands for: interval to the next sample.

    The last sample gets the median interval, so irregular sampling rates are
    handled without assuming a nominal frequency.
    """
    if len(times) < 2:
        return np.zeros(len(times), dtype=float)
    diffs = np.diff(times)
    return np.append(diffs, float(np.median(diffs)))


def compute_obstruction_fraction(
    times: np.ndarray,
    obstructed: np.ndarray,
    method: str = "sample_count",
) -> float:
    """
    Obstruction fraction of one trial.

    - "sample_count":  obstructed samples / all samples
    - "time_weighted": obstructed duration / total duration
      (falls back to sample_count for single-sample trials)
    """
    n = len(obstructed)
    if n == 0:
        return 1.0

    if method == "sample_count":
        return float(np.count_nonzero(obstructed)) / n

    if method == "time_weighted":
        durations = sample_durations(times)
        total = float(durations.sum())
        if total <= 0:
            return float(np.count_nonzero(obstructed)) / n
        return float(durations[obstructed].sum()) / total

    raise ValueError(f"Unknown obstruction method: {method}")


def _precomputed_fraction(key: TrialKey, samples: List[Sample]) -> float | None:
    values = {s.obstruction_percent for s in samples if s.obstruction_percent is not None}
    values = {v for v in values if not np.isnan(v)}
    if not values:
        return None
    if len(values) > 1:
        raise MalformedTrialError(f"{key}: conflicting obstruction_percent values {sorted(values)}")
    percent = values.pop()
    if not 0.0 <= percent <= 100.0:
        raise MalformedTrialError(f"{key}: obstruction_percent {percent} outside [0, 100]")
    return percent / 100.0


def build_trial(key: TrialKey, samples: List[Sample], cfg: SelectionConfig) -> Trial:
    """
    Validate one group of samples and turn it into a :class:`Trial`.

    Raises:
        MalformedTrialError: on non-finite/negative times, non-positive
            diameters, a non-positive attempt number or time values that are
            not strictly increasing.
    """
    if key.attempt < 1:
        raise MalformedTrialError(f"{key}: attempt must be a positive integer")

    times = np.array([s.time for s in samples], dtype=float)
    diameters = np.array([s.diameter for s in samples], dtype=float)
    obstructed = np.array([s.obstructed for s in samples], dtype=bool)

    if not np.all(np.isfinite(times)) or np.any(times < 0):
        raise MalformedTrialError(f"{key}: time values must be finite and non-negative")
    if not np.all(np.isfinite(diameters)) or np.any(diameters <= 0):
        raise MalformedTrialError(f"{key}: diameter values must be finite and positive")

    backwards = np.flatnonzero(np.diff(times) <= 0)
    if len(backwards) > 0:
        i = int(backwards[0])
        raise MalformedTrialError(
            f"{key}: time not strictly increasing at sample {i + 1} "
            f"({times[i]:.4f} -> {times[i + 1]:.4f})"
        )

    fraction = None
    if cfg.use_precomputed_obstruction:
        fraction = _precomputed_fraction(key, samples)
    if fraction is None:
        fraction = compute_obstruction_fraction(times, obstructed, cfg.obstruction_method)

    return Trial(key=key, samples=tuple(samples), obstruction_fraction=fraction)


@dataclass
class TrialIndex:
    """Trials keyed by (participant, eye, occasion, attempt)."""

    trials: Dict[TrialKey, Trial] = field(default_factory=dict)
    malformed: Dict[TrialKey, MalformedTrialError] = field(default_factory=dict)

    def by_occasion(self) -> Dict[OccasionKey, List[Trial]]:
        """Group valid trials per occasion, attempts in ascending order."""
        grouped: Dict[OccasionKey, List[Trial]] = {}
        for key in sorted(self.trials, key=lambda k: (k.participant_id, k.eye.value, k.occasion, k.attempt)):
            grouped.setdefault(key.occasion_key, []).append(self.trials[key])
        return grouped

    def __len__(self) -> int:
        return len(self.trials)


def index_trials(samples: Iterable[Sample], cfg: SelectionConfig | None = None) -> TrialIndex:
    """
    Group samples into trials, preserving input order within each trial.

    Malformed trials are recorded in ``TrialIndex.malformed`` and skipped;
    all other trials are processed normally.
    """
    cfg = cfg or SelectionConfig()

    groups: Dict[TrialKey, List[Sample]] = {}
    for sample in samples:
        groups.setdefault(sample.trial_key, []).append(sample)

    index = TrialIndex()
    for key, group in groups.items():
        try:
            index.trials[key] = build_trial(key, group, cfg)
        except MalformedTrialError as exc:
            logger.warning("Skipping malformed trial %s: %s", key, exc)
            index.malformed[key] = exc

    logger.info(
        "Indexed %d trial(s) in %d occasion(s), %d malformed",
        len(index.trials),
        len({k.occasion_key for k in index.trials}),
        len(index.malformed),
    )
    return index
