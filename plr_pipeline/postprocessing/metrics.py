# plr_pipeline/postprocessing/metrics.py
"""Scalar PLR metrics computed on the smoothed curve.

All metrics use the predicted (smoothed) diameter, never raw samples, and all
times are seconds from trial start. Values that need a time point the curve
never reaches are NaN.

Metric set:
  - baseline:                   attached baseline diameter
  - min_diameter / time_to_min: first global minimum of the curve
  - constriction_amplitude:     baseline - min_diameter (not clamped)
  - relative_constriction:      amplitude / baseline
  - constriction_latency:       first drop by latency_amplitude_fraction * amplitude
  - constriction_velocity:      amplitude / time_to_min
  - max_constriction_velocity:  steepest descent of the curve up to the minimum
  - recovery_target:            recovery_fraction * baseline
  - recovery_time:              first time after the minimum at/above target
  - recovery_duration:          recovery_time - time_to_min
  - redilation_velocity:        (recovery_target - min_diameter) / recovery_duration
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from ..config import MetricConfig
from ..config.constants import Columns
from ..domain import MetricRecord, SmoothedTrajectory
from ..errors import InsufficientDataError, NegativeAmplitudeWarning

logger = logging.getLogger(__name__)

NAN = float("nan")


def _crossing_time(times: np.ndarray, values: np.ndarray, j: int, level: float) -> float:
    """Linear interpolation of the time where values cross ``level`` between j-1 and j."""
    if j == 0:
        return float(times[0])
    t0, t1 = float(times[j - 1]), float(times[j])
    v0, v1 = float(values[j - 1]), float(values[j])
    if v1 == v0:
        return t1
    return t0 + (level - v0) * (t1 - t0) / (v1 - v0)


def constriction_latency(
    times: np.ndarray,
    predicted: np.ndarray,
    i_min: int,
    baseline: float,
    amplitude: float,
    fraction: float,
) -> float:
    """First time the curve falls by ``fraction`` of the amplitude below baseline."""
    if amplitude <= 0:
        return NAN
    level = baseline - fraction * amplitude
    below = np.flatnonzero(predicted[: i_min + 1] <= level)
    if len(below) == 0:
        return NAN
    return _crossing_time(times, predicted, int(below[0]), level)


def max_constriction_velocity(times: np.ndarray, predicted: np.ndarray, i_min: int) -> float:
    """Steepest descent (mm/s, positive for constriction) before the minimum."""
    if i_min < 1:
        return NAN
    slopes = -np.diff(predicted[: i_min + 1]) / np.diff(times[: i_min + 1])
    return float(np.max(slopes))


def recovery_time(
    times: np.ndarray,
    predicted: np.ndarray,
    i_min: int,
    target: float,
) -> float:
    """First time at/after the minimum where the curve reaches ``target``."""
    if predicted[i_min] >= target:
        return float(times[i_min])
    reached = np.flatnonzero(predicted[i_min + 1:] >= target)
    if len(reached) == 0:
        return NAN
    return _crossing_time(times, predicted, i_min + 1 + int(reached[0]), target)


def extract_metrics(trajectory: SmoothedTrajectory, cfg: Optional[MetricConfig] = None) -> MetricRecord:
    """
    Compute the fixed metric set of one smoothed trajectory.

    Raises:
        InsufficientDataError: if the trajectory has no finite prediction.
    """
    cfg = cfg or MetricConfig()

    finite = np.isfinite(trajectory.predicted)
    times = trajectory.times[finite]
    predicted = trajectory.predicted[finite]
    if len(times) == 0:
        raise InsufficientDataError(f"{trajectory.key}: smoothed curve has no finite values")

    baseline = float(trajectory.baseline_diameter)
    i_min = int(np.argmin(predicted))
    min_diameter = float(predicted[i_min])
    time_to_min = float(times[i_min])
    amplitude = baseline - min_diameter

    target = cfg.recovery_fraction * baseline
    t_recovery = recovery_time(times, predicted, i_min, target)
    duration = t_recovery - time_to_min

    return MetricRecord(
        key=trajectory.key,
        baseline=baseline,
        min_diameter=min_diameter,
        time_to_min=time_to_min,
        constriction_amplitude=amplitude,
        relative_constriction=amplitude / baseline if baseline > 0 else NAN,
        constriction_latency=constriction_latency(
            times, predicted, i_min, baseline, amplitude, cfg.latency_amplitude_fraction
        ),
        constriction_velocity=amplitude / time_to_min if time_to_min > 0 else NAN,
        max_constriction_velocity=max_constriction_velocity(times, predicted, i_min),
        recovery_target=target,
        recovery_time=t_recovery,
        recovery_duration=duration,
        redilation_velocity=(target - min_diameter) / duration if duration > 0 else NAN,
        has_baseline_jump=trajectory.has_baseline_jump,
        n_samples=len(times),
    )


def check_amplitude(record: MetricRecord) -> Optional[NegativeAmplitudeWarning]:
    """Return a review warning when the minimum lies above the baseline."""
    if record.constriction_amplitude >= 0:
        return None
    logger.warning(
        "Negative constriction amplitude for %s: baseline=%.3f, min=%.3f",
        record.key, record.baseline, record.min_diameter,
    )
    return NegativeAmplitudeWarning(
        f"baseline {record.baseline:.3f} mm below smoothed minimum {record.min_diameter:.3f} mm"
    )


def build_metric_table(records: Iterable[MetricRecord]) -> pd.DataFrame:
    """One row per (participant, eye, occasion) with the fixed metric columns."""
    rows = [r.as_row() for r in records]
    return pd.DataFrame(rows, columns=list(Columns.METRIC_TABLE))
