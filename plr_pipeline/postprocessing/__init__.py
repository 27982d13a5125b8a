"""Postprocessing stage: curve table and scalar PLR metrics."""

from .curves import build_curve_table, curve_frame
from .metrics import extract_metrics, check_amplitude, build_metric_table

__all__ = [
    'build_curve_table',
    'curve_frame',
    'extract_metrics',
    'check_amplitude',
    'build_metric_table',
]
