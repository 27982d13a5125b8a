"""Preprocessing stage: trial indexing, baseline handling and best-trial selection."""

from .indexing import TrialIndex, index_trials, build_trial, compute_obstruction_fraction
from .baseline import (
    BaselineJump,
    detect_baseline_jump,
    remove_baseline_jumps,
    compute_baseline_diameter,
)
from .selection import Selection, select_best_trial, apply_override, is_eligible
from .cleaning import AttemptAssessment, CleaningOutcome, assess_attempts, clean_trial, clean_occasion

__all__ = [
    'TrialIndex',
    'index_trials',
    'build_trial',
    'compute_obstruction_fraction',
    'BaselineJump',
    'detect_baseline_jump',
    'remove_baseline_jumps',
    'compute_baseline_diameter',
    'Selection',
    'select_best_trial',
    'apply_override',
    'is_eligible',
    'AttemptAssessment',
    'assess_attempts',
    'clean_trial',
    'CleaningOutcome',
    'clean_occasion',
]
