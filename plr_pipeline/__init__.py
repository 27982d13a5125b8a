# plr_pipeline/__init__.py
"""
PLR Pipeline Package.

Contains:
- Trial indexing and best-trial selection
- Baseline-jump detection and trajectory cleaning
- Quantile-regression smoothing
- Curve table and scalar PLR metrics
"""

from .config import PipelineConfig, SelectionConfig, BaselineConfig, SmoothingConfig, MetricConfig, BestTrialOverride
from .errors import (
    MalformedTrialError,
    InsufficientDataError,
    FitDidNotConvergeError,
    AllAttemptsExcludedWarning,
    NegativeAmplitudeWarning,
)
from .preprocessing import index_trials, select_best_trial, detect_baseline_jump, compute_baseline_diameter
from .processing import TrajectorySmoother
from .postprocessing import build_curve_table, extract_metrics, build_metric_table
from .engine import PLREngine
from .io import PLRPipeline, PipelineResult, read_samples
