# plr_pipeline/preprocessing/selection.py
"""Best-trial selection among the repeat attempts of one occasion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import SelectionConfig
from ..domain import OccasionKey, Trial

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """Outcome of heuristic selection plus manual override."""

    best: Optional[Trial]
    overridden: bool = False


def is_eligible(trial: Trial, cfg: SelectionConfig) -> bool:
    """Attempts at or above the obstruction threshold are not eligible."""
    return trial.obstruction_fraction < cfg.obstruction_threshold


def _occasion_of(trials: Sequence[Trial]) -> Optional[OccasionKey]:
    keys = {t.key.occasion_key for t in trials}
    if len(keys) > 1:
        raise ValueError(f"Trials from different occasions passed to selection: {sorted(map(str, keys))}")
    return keys.pop() if keys else None


def select_best_trial(trials: Sequence[Trial], cfg: SelectionConfig) -> Optional[Trial]:
    """
    Heuristic best attempt of one occasion.

    Excludes attempts with obstruction_fraction >= threshold, then prefers the
    lowest obstruction fraction, ties broken by the lowest attempt number.
    Returns None when every attempt is excluded (a data gap, not an error).
    """
    _occasion_of(trials)
    eligible = [t for t in trials if is_eligible(t, cfg)]
    if not eligible:
        return None
    return min(eligible, key=lambda t: (t.obstruction_fraction, t.attempt))


def apply_override(
    trials: Sequence[Trial],
    heuristic_best: Optional[Trial],
    cfg: SelectionConfig,
) -> Selection:
    """
    Apply a configured manual override after heuristic selection.

    The override always wins, even over an attempt the heuristic excluded.
    An override naming an attempt that does not exist is logged and ignored.
    """
    key = _occasion_of(trials)
    if key is None:
        return Selection(best=heuristic_best)

    forced = cfg.override_for(key)
    if forced is None:
        return Selection(best=heuristic_best)

    for trial in trials:
        if trial.attempt == forced:
            if heuristic_best is None or heuristic_best.attempt != forced:
                logger.info(
                    "Override for %s: attempt %d replaces heuristic choice %s",
                    key, forced, heuristic_best.attempt if heuristic_best else None,
                )
            return Selection(best=trial, overridden=True)

    logger.warning(
        "Override for %s names attempt %d, which is not available; keeping heuristic choice",
        key, forced,
    )
    return Selection(best=heuristic_best)
