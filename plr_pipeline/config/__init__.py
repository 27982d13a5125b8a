"""Configuration and constants for the PLR pipeline."""

from .config import (
    BestTrialOverride,
    SelectionConfig,
    BaselineConfig,
    SmoothingConfig,
    MetricConfig,
    PipelineConfig,
)
from .constants import (
    Columns,
    SelectionDefaults,
    BaselineDefaults,
    SmoothingDefaults,
    MetricDefaults,
)
from .config_builder import ConfigBuilder

__all__ = [
    "BestTrialOverride",
    "SelectionConfig",
    "BaselineConfig",
    "SmoothingConfig",
    "MetricConfig",
    "PipelineConfig",
    "Columns",
    "SelectionDefaults",
    "BaselineDefaults",
    "SmoothingDefaults",
    "MetricDefaults",
    "ConfigBuilder",
]
