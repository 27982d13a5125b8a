"""Processing stage: quantile-regression smoothing of diameter trajectories."""

from .smoothing import FittedCurve, TrajectorySmoother, knots_for

__all__ = [
    'FittedCurve',
    'TrajectorySmoother',
    'knots_for',
]
