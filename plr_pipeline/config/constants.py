# plr_pipeline/config/constants.py
"""Default parameters and column names for PLR processing."""

from __future__ import annotations


class SelectionDefaults:
    """Defaults for obstruction scoring and best-trial selection."""

    # Attempts at or above this obstruction fraction are not eligible
    OBSTRUCTION_THRESHOLD: float = 0.60


class BaselineDefaults:
    """Defaults for the baseline window and jump detection (seconds, mm)."""

    BASELINE_WINDOW_S: float = 0.5
    JUMP_HEAD_WINDOW_S: float = 0.1
    JUMP_SENSITIVITY: float = 3.0
    JUMP_MIN_SHIFT_MM: float = 0.2

    # Scale factor turning a median absolute deviation into a sigma estimate
    MAD_TO_SIGMA: float = 1.4826


class SmoothingDefaults:
    """Defaults for the quantile-regression spline fit."""

    QUANTILE: float = 0.5
    N_KNOTS: int = 12
    MIN_KNOTS: int = 4
    DEGREE: int = 3
    PENALTY: float = 1e-4
    MIN_FIT_SAMPLES: int = 10
    MAX_ITER: int = 10_000
    TIME_LIMIT_S: float = 30.0


class MetricDefaults:
    """Defaults for scalar PLR metrics."""

    RECOVERY_FRACTION: float = 0.75
    LATENCY_AMPLITUDE_FRACTION: float = 0.1


class Columns:
    """Column names of the sample, curve, metric and trial tables."""

    PARTICIPANT = "participant_id"
    EYE = "eye"
    OCCASION = "occasion"
    ATTEMPT = "attempt"
    TIME = "time"
    DIAMETER = "diameter"
    OBSTRUCTED = "obstructed"
    OBSTRUCTION_PERCENT = "obstruction_percent"

    REQUIRED_INPUT = (PARTICIPANT, EYE, TIME, OCCASION, ATTEMPT, DIAMETER, OBSTRUCTED)

    # Alternative spellings found in pupillometer exports
    ALIASES = {
        "mtm": OCCASION,
        "trial": ATTEMPT,
        "participant": PARTICIPANT,
        "subject": PARTICIPANT,
        "obstruction": OBSTRUCTED,
    }

    CURVE_TABLE = (
        PARTICIPANT,
        EYE,
        OCCASION,
        ATTEMPT,
        TIME,
        "raw_diameter",
        "predicted_diameter",
        "baseline_diameter",
        "is_best",
        "has_baseline_jump",
    )

    METRIC_TABLE = (
        PARTICIPANT,
        EYE,
        OCCASION,
        ATTEMPT,
        "baseline",
        "min_diameter",
        "time_to_min",
        "constriction_amplitude",
        "relative_constriction",
        "constriction_latency",
        "constriction_velocity",
        "max_constriction_velocity",
        "recovery_target",
        "recovery_time",
        "recovery_duration",
        "redilation_velocity",
        "has_baseline_jump",
        "n_samples",
    )

    TRIAL_TABLE = (
        PARTICIPANT,
        EYE,
        OCCASION,
        ATTEMPT,
        "n_samples",
        "obstruction_fraction",
        "has_baseline_jump",
        "eligible",
        "is_best",
        "overridden",
    )

    REPORT_TABLE = (
        PARTICIPANT,
        EYE,
        OCCASION,
        ATTEMPT,
        "stage",
        "reason",
        "message",
    )
