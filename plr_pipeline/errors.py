# plr_pipeline/errors.py
"""Exception and warning taxonomy for trial-scoped processing problems.

Errors (subclasses of :class:`PLRProcessingError`) end processing of a single
trial or occasion. Warnings (subclasses of :class:`PLRDataWarning`) mark data
gaps or values that need manual review; processing continues. Neither kind is
ever allowed to abort a whole pipeline run, the engine records them in the
run report instead.
"""
from __future__ import annotations


class PLRProcessingError(Exception):
    """Base class for errors that exclude one trial from further processing."""


class MalformedTrialError(PLRProcessingError):
    """Schema or ordering violation inside a single trial."""


class InsufficientDataError(PLRProcessingError):
    """Too few usable samples left to compute a baseline or fit a curve."""


class FitDidNotConvergeError(PLRProcessingError):
    """The regression fit exceeded its iteration or runtime budget."""


class PLRDataWarning(UserWarning):
    """Base class for data-quality findings that do not stop processing."""


class AllAttemptsExcludedWarning(PLRDataWarning):
    """No attempt of an occasion qualified for best-trial selection."""


class NegativeAmplitudeWarning(PLRDataWarning):
    """Smoothed minimum lies above the baseline (cleaning/baseline failure)."""


__all__ = [
    "PLRProcessingError",
    "MalformedTrialError",
    "InsufficientDataError",
    "FitDidNotConvergeError",
    "PLRDataWarning",
    "AllAttemptsExcludedWarning",
    "NegativeAmplitudeWarning",
]
