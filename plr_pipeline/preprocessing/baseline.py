# plr_pipeline/preprocessing/baseline.py
"""Baseline window handling: jump detection, jump removal and baseline size.

A baseline jump is a level discontinuity at the very start of a recording
(the device locking onto the pupil). It is detected by comparing the first
samples (head window) against the rest of the pre-stimulus baseline window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..config import BaselineConfig
from ..config.constants import BaselineDefaults
from ..domain import Trial
from ..errors import InsufficientDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BaselineJump:
    """Result of :func:`detect_baseline_jump`."""

    detected: bool
    shift: float = float("nan")
    spread: float = float("nan")
    # First sample time after the discontinuity
    jump_time: Optional[float] = None


def robust_spread(values: np.ndarray) -> float:
    """Sigma estimate from the median absolute deviation."""
    if len(values) == 0:
        return float("nan")
    mad = float(np.median(np.abs(values - np.median(values))))
    return BaselineDefaults.MAD_TO_SIGMA * mad


def _baseline_mask(times: np.ndarray, usable: np.ndarray, cfg: BaselineConfig) -> np.ndarray:
    """Usable samples inside the baseline window."""
    if cfg.baseline_window_samples is not None:
        mask = np.zeros(len(times), dtype=bool)
        mask[np.flatnonzero(usable)[: cfg.baseline_window_samples]] = True
        return mask
    return usable & (times < cfg.baseline_window_s)


def _discontinuity_time(
    times: np.ndarray,
    diameters: np.ndarray,
    head: np.ndarray,
    reference: np.ndarray,
) -> Optional[float]:
    """
    Time of the first sample after the level change between head and reference.

    The split is searched among the head samples only (the cut never lies
    past the first reference sample). Each candidate split k is scored with
    the mean-shift statistic sqrt(k * (n - k) / n) * |mean(left) - mean(right)|
    over the pooled window.
    """
    idx = np.flatnonzero(head | reference)
    n_head = int(np.count_nonzero(head))
    n = len(idx)
    if n_head < 1 or n - n_head < 1:
        return None

    values = diameters[idx]
    best_k, best_score = n_head, -1.0
    for k in range(1, n_head + 1):
        score = np.sqrt(k * (n - k) / n) * abs(float(values[:k].mean()) - float(values[k:].mean()))
        # strict comparison keeps the earliest of equal splits
        if score > best_score:
            best_k, best_score = k, score
    return float(times[idx[best_k]])


def detect_baseline_jump(trial: Trial, cfg: BaselineConfig) -> BaselineJump:
    """
    Flag a level shift between the head window and the remaining baseline.

    shift  = |median(head) - median(reference)|
    spread = 1.4826 * MAD over head + reference
    jump   = shift > max(jump_sensitivity * spread, jump_min_shift_mm)

    Both windows need at least two unobstructed samples, otherwise no jump can
    be assessed and none is reported.
    """
    times = trial.times
    diameters = trial.diameters
    usable = ~trial.obstructed

    head = usable & (times < cfg.jump_head_window_s)
    reference = usable & (times >= cfg.jump_head_window_s) & (times < cfg.baseline_window_s)
    if np.count_nonzero(head) < 2 or np.count_nonzero(reference) < 2:
        return BaselineJump(detected=False)

    shift = abs(float(np.median(diameters[head])) - float(np.median(diameters[reference])))
    spread = robust_spread(diameters[head | reference])
    threshold = max(cfg.jump_sensitivity * spread, cfg.jump_min_shift_mm)

    if shift <= threshold:
        return BaselineJump(detected=False, shift=shift, spread=spread)

    jump_time = _discontinuity_time(times, diameters, head, reference)
    logger.debug(
        "Baseline jump in %s: shift=%.3f mm, spread=%.3f mm, at t=%.3f s",
        trial.key, shift, spread, jump_time,
    )
    return BaselineJump(detected=True, shift=shift, spread=spread, jump_time=jump_time)


def remove_baseline_jumps(
    trial: Trial,
    cfg: BaselineConfig,
    jump: Optional[BaselineJump] = None,
) -> Tuple[Trial, BaselineJump]:
    """
    Drop samples before a detected discontinuity (jump_policy="remove").

    For any other policy, or when no jump is found, the trial is returned
    unchanged. The obstruction fraction keeps describing the raw attempt.
    """
    if jump is None:
        jump = detect_baseline_jump(trial, cfg)
    if cfg.jump_policy != "remove" or not jump.detected or jump.jump_time is None:
        return trial, jump

    kept = tuple(s for s in trial.samples if s.time >= jump.jump_time)
    logger.info(
        "Removed %d sample(s) before baseline jump at t=%.3f s in %s",
        len(trial) - len(kept), jump.jump_time, trial.key,
    )
    return Trial(key=trial.key, samples=kept, obstruction_fraction=trial.obstruction_fraction), jump


def compute_baseline_diameter(trial: Trial, cfg: BaselineConfig) -> float:
    """
    Median diameter of the unobstructed samples inside the baseline window.

    Raises:
        InsufficientDataError: if the window holds no unobstructed sample.
    """
    mask = _baseline_mask(trial.times, ~trial.obstructed, cfg)
    if not np.any(mask):
        raise InsufficientDataError(f"{trial.key}: no unobstructed samples in baseline window")
    return float(np.median(trial.diameters[mask]))
