# plr_pipeline/preprocessing/cleaning.py
"""Trajectory cleaning: assess all attempts of an occasion, clean the best one.

:func:`clean_occasion` is used by :class:`~plr_pipeline.stages.CleaningStage`
and combines two steps:

1. :func:`assess_attempts` scores every attempt (obstruction, baseline jump),
   selects the best one and applies the manual override.
2. :func:`clean_trial` applies the jump policy and obstruction filtering to
   the selected attempt and attaches its baseline diameter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from ..config import PipelineConfig
from ..domain import CleanedTrial, OccasionKey, ProcessingIssue, Trial, TrialAssessment
from ..errors import AllAttemptsExcludedWarning, InsufficientDataError
from .baseline import BaselineJump, compute_baseline_diameter, detect_baseline_jump, remove_baseline_jumps
from .selection import Selection, apply_override, is_eligible, select_best_trial

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptAssessment:
    """Assessment of all attempts of one occasion."""

    assessments: Tuple[TrialAssessment, ...]
    selection: Selection
    jumps: Dict[int, BaselineJump]

    @property
    def best(self) -> Optional[Trial]:
        return self.selection.best

    def gap_warning(self) -> AllAttemptsExcludedWarning:
        """Warning describing why no attempt qualified."""
        details = ", ".join(
            f"attempt {a.key.attempt}: obstruction={a.obstruction_fraction:.0%}"
            + (", baseline jump" if a.has_baseline_jump else "")
            for a in self.assessments
        )
        return AllAttemptsExcludedWarning(f"no eligible attempt ({details})")


def assess_attempts(trials: Sequence[Trial], cfg: PipelineConfig) -> AttemptAssessment:
    """
    Score every attempt of one occasion and pick the best.

    With jump_policy="exclude" an attempt with a detected baseline jump is not
    eligible for the heuristic (an override can still force it).
    """
    jumps = {t.attempt: detect_baseline_jump(t, cfg.baseline) for t in trials}
    exclude_jumps = cfg.baseline.jump_policy == "exclude"

    candidates = [t for t in trials if not (exclude_jumps and jumps[t.attempt].detected)]
    heuristic = select_best_trial(candidates, cfg.selection)
    selection = apply_override(trials, heuristic, cfg.selection)

    best_attempt = selection.best.attempt if selection.best is not None else None
    assessments = tuple(
        TrialAssessment(
            key=t.key,
            n_samples=len(t),
            obstruction_fraction=t.obstruction_fraction,
            has_baseline_jump=jumps[t.attempt].detected,
            eligible=is_eligible(t, cfg.selection) and not (exclude_jumps and jumps[t.attempt].detected),
            is_best=t.attempt == best_attempt,
            overridden=selection.overridden and t.attempt == best_attempt,
        )
        for t in trials
    )
    return AttemptAssessment(assessments=assessments, selection=selection, jumps=jumps)


def clean_trial(trial: Trial, cfg: PipelineConfig, jump: Optional[BaselineJump] = None) -> CleanedTrial:
    """
    Produce the :class:`CleanedTrial` of a selected attempt.

    - jump_policy="remove": samples before the discontinuity are discarded
    - drop_obstructed: obstructed samples are removed
    - baseline_diameter is computed from the (repaired) baseline window

    Raises:
        InsufficientDataError: if no unobstructed sample remains, or none lies
            inside the baseline window.
    """
    repaired, jump = remove_baseline_jumps(trial, cfg.baseline, jump)

    usable = ~repaired.obstructed
    if not np.any(usable):
        raise InsufficientDataError(f"{trial.key}: no unobstructed samples left after cleaning")

    baseline = compute_baseline_diameter(repaired, cfg.baseline)

    samples = repaired.samples
    if cfg.baseline.drop_obstructed:
        samples = tuple(s for s in samples if not s.obstructed)

    return CleanedTrial(
        key=trial.key,
        samples=samples,
        obstruction_fraction=trial.obstruction_fraction,
        baseline_diameter=baseline,
        has_baseline_jump=jump.detected,
        jump_time=jump.jump_time if repaired is not trial else None,
    )


@dataclass(frozen=True)
class CleaningOutcome:
    """Result of cleaning one occasion; ``cleaned`` is None when it has no usable attempt."""

    cleaned: Optional[CleanedTrial]
    assessments: Tuple[TrialAssessment, ...]
    issues: Tuple[ProcessingIssue, ...] = ()


def clean_occasion(key: OccasionKey, trials: Sequence[Trial], cfg: PipelineConfig) -> CleaningOutcome:
    """
    Assess all attempts of one occasion and clean the selected one.

    A missing best attempt is a data gap (``AllAttemptsExcludedWarning``), a
    best attempt without usable samples is an exclusion
    (``InsufficientDataError``). Both end up in ``issues`` together with the
    attempt assessments, so the trial table stays complete.
    """
    assessment = assess_attempts(trials, cfg)

    best = assessment.best
    if best is None:
        warning = assessment.gap_warning()
        logger.warning("No usable attempt for %s: %s", key, warning)
        issue = ProcessingIssue.from_exception(key, None, "cleaning", warning)
        return CleaningOutcome(cleaned=None, assessments=assessment.assessments, issues=(issue,))

    try:
        cleaned = clean_trial(best, cfg, assessment.jumps[best.attempt])
    except InsufficientDataError as exc:
        logger.warning("Excluding %s at cleaning stage: %s", best.key, exc)
        issue = ProcessingIssue.from_exception(key, best.attempt, "cleaning", exc)
        return CleaningOutcome(cleaned=None, assessments=assessment.assessments, issues=(issue,))

    return CleaningOutcome(cleaned=cleaned, assessments=assessment.assessments)
