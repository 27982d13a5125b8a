# plr_pipeline/config/config.py
"""
Configuration classes for the PLR pipeline.

This module defines all parameters for:
  - best-trial selection (obstruction scoring, manual overrides)
  - baseline handling (baseline window, jump detection, jump policy)
  - quantile-regression smoothing
  - scalar metric extraction

All classes are frozen: a configuration is read-only once the pipeline has
started and is passed explicitly into every stage.

Example:
    >>> from plr_pipeline.config import PipelineConfig, SelectionConfig
    >>>
    >>> # Defaults (60% obstruction threshold, median fit, 75% recovery)
    >>> cfg = PipelineConfig()
    >>>
    >>> # Stricter obstruction threshold and one manual override
    >>> cfg = PipelineConfig(
    ...     selection=SelectionConfig(
    ...         obstruction_threshold=0.4,
    ...         overrides=(BestTrialOverride("P01", "Left", "Pre", 2),),
    ...     ),
    ... )
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple

from ..domain.keys import Eye, OccasionKey
from .constants import (
    BaselineDefaults,
    MetricDefaults,
    SelectionDefaults,
    SmoothingDefaults,
)


@dataclass(frozen=True)
class BestTrialOverride:
    """Forces ``attempt`` to be the best trial of one occasion."""

    participant_id: str
    eye: Eye
    occasion: str
    attempt: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "participant_id", str(self.participant_id))
        object.__setattr__(self, "eye", Eye.parse(self.eye))
        object.__setattr__(self, "occasion", str(self.occasion))
        object.__setattr__(self, "attempt", int(self.attempt))

    @property
    def occasion_key(self) -> OccasionKey:
        return OccasionKey(self.participant_id, self.eye, self.occasion)


@dataclass(frozen=True)
class SelectionConfig:
    """
    Configuration for obstruction scoring and best-trial selection.
    """

    # Attempts with obstruction_fraction >= threshold are excluded
    obstruction_threshold: float = SelectionDefaults.OBSTRUCTION_THRESHOLD

    # How obstruction_fraction is computed
    # - "sample_count":  obstructed samples / all samples (default)
    # - "time_weighted": obstructed duration / trial duration
    obstruction_method: Literal["sample_count", "time_weighted"] = "sample_count"

    # Use the device's precomputed obstruction_percent column when present
    use_precomputed_obstruction: bool = False

    # Manual corrections, applied after the heuristic
    overrides: Tuple[BestTrialOverride, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 < self.obstruction_threshold <= 1.0:
            raise ValueError("obstruction_threshold must be in (0, 1].")
        object.__setattr__(self, "overrides", tuple(self.overrides))

    def override_for(self, key: OccasionKey) -> Optional[int]:
        """Return the forced attempt for ``key`` (last entry wins), if any."""
        attempt = None
        for override in self.overrides:
            if override.occasion_key == key:
                attempt = override.attempt
        return attempt


@dataclass(frozen=True)
class BaselineConfig:
    """
    Configuration for the baseline window and baseline-jump handling.
    """

    # Baseline window: all samples before this time (s) ...
    baseline_window_s: float = BaselineDefaults.BASELINE_WINDOW_S
    # ... or, when set, the first N unobstructed samples
    baseline_window_samples: Optional[int] = None

    # Jump detection: head window vs. remainder of the baseline window
    jump_head_window_s: float = BaselineDefaults.JUMP_HEAD_WINDOW_S
    jump_sensitivity: float = BaselineDefaults.JUMP_SENSITIVITY
    jump_min_shift_mm: float = BaselineDefaults.JUMP_MIN_SHIFT_MM

    # What happens to attempts with a detected jump
    # - "flag":    annotate only, samples untouched
    # - "remove":  drop samples before the discontinuity point
    # - "exclude": attempt is not eligible for best-trial selection
    jump_policy: Literal["flag", "remove", "exclude"] = "flag"

    # Remove obstructed samples from the cleaned trial (else keep, but
    # ignore them when fitting)
    drop_obstructed: bool = True

    def __post_init__(self) -> None:
        if self.baseline_window_s <= 0:
            raise ValueError("baseline_window_s must be > 0.")
        if self.baseline_window_samples is not None and self.baseline_window_samples < 1:
            raise ValueError("baseline_window_samples must be >= 1.")
        if not 0 < self.jump_head_window_s < self.baseline_window_s:
            raise ValueError("jump_head_window_s must lie inside the baseline window.")
        if self.jump_policy not in ("flag", "remove", "exclude"):
            raise ValueError(f"Unknown jump_policy: {self.jump_policy}")


@dataclass(frozen=True)
class SmoothingConfig:
    """
    Configuration for the quantile-regression spline smoother.

    The target quantile is a design parameter of the pipeline run, it is
    never changed per fit.
    """

    quantile: float = SmoothingDefaults.QUANTILE

    # Spline basis: n_knots is an upper bound, small trials get fewer knots
    n_knots: int = SmoothingDefaults.N_KNOTS
    degree: int = SmoothingDefaults.DEGREE

    # L1 penalty on spline coefficients (QuantileRegressor alpha)
    penalty: float = SmoothingDefaults.PENALTY

    min_fit_samples: int = SmoothingDefaults.MIN_FIT_SAMPLES

    # Solver budget, exceeding it raises FitDidNotConvergeError
    max_iter: int = SmoothingDefaults.MAX_ITER
    time_limit_s: float = SmoothingDefaults.TIME_LIMIT_S

    def __post_init__(self) -> None:
        if not 0.0 < self.quantile < 1.0:
            raise ValueError("quantile must be in (0, 1).")
        if self.n_knots < SmoothingDefaults.MIN_KNOTS:
            raise ValueError(f"n_knots must be >= {SmoothingDefaults.MIN_KNOTS}.")
        if self.min_fit_samples < SmoothingDefaults.MIN_KNOTS:
            raise ValueError(f"min_fit_samples must be >= {SmoothingDefaults.MIN_KNOTS}.")
        if self.max_iter < 1 or self.time_limit_s <= 0:
            raise ValueError("max_iter and time_limit_s must be positive.")


@dataclass(frozen=True)
class MetricConfig:
    """
    Configuration for scalar PLR metrics.
    """

    # Recovery target as a fraction of baseline
    recovery_fraction: float = MetricDefaults.RECOVERY_FRACTION

    # Constriction onset: first drop by this fraction of the amplitude
    latency_amplitude_fraction: float = MetricDefaults.LATENCY_AMPLITUDE_FRACTION

    def __post_init__(self) -> None:
        if not 0.0 < self.recovery_fraction <= 1.0:
            raise ValueError("recovery_fraction must be in (0, 1].")
        if not 0.0 < self.latency_amplitude_fraction < 1.0:
            raise ValueError("latency_amplitude_fraction must be in (0, 1).")


@dataclass(frozen=True)
class PipelineConfig:
    """
    Complete, read-only configuration of one pipeline run.
    """

    selection: SelectionConfig = field(default_factory=SelectionConfig)
    baseline: BaselineConfig = field(default_factory=BaselineConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    metrics: MetricConfig = field(default_factory=MetricConfig)

    # Worker pool (joblib): n_jobs=1 runs in-process
    n_jobs: int = 1
    backend: Literal["loky", "threading", "multiprocessing"] = "loky"
