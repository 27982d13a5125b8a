# plr_pipeline/processing/smoothing.py
"""
Quantile-regression smoothing of pupil-diameter trajectories.

The curve is a cubic B-spline in time whose coefficients are fitted by
linear-programming quantile regression (scikit-learn ``QuantileRegressor``
with the HiGHS solver). Estimating the median rather than the mean keeps the
fit robust against residual blink/obstruction outliers, and the spline basis
avoids assuming a parametric constriction/redilation shape.

Knots are placed at quantiles of the observed times, so irregular sampling
and gaps left by removed samples do not produce unsupported basis functions.
"""

from __future__ import annotations

import logging
import threading
import warnings
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import QuantileRegressor
from sklearn.pipeline import Pipeline, make_pipeline
from sklearn.preprocessing import SplineTransformer

from ..config import SmoothingConfig
from ..config.constants import SmoothingDefaults
from ..domain import SmoothedTrajectory, Trial, TrialKey
from ..errors import FitDidNotConvergeError, InsufficientDataError

logger = logging.getLogger(__name__)

# The warnings filter is process-wide; fits on worker threads take turns
# while it is switched to "error".
_WARNINGS_LOCK = threading.Lock()


@dataclass(frozen=True)
class FittedCurve:
    """A fitted spline model and the time domain it is valid on."""

    key: TrialKey
    model: Pipeline
    t_min: float
    t_max: float
    n_knots: int
    n_samples: int

    def predict(self, times: Sequence[float]) -> np.ndarray:
        """Evaluate the curve; times outside [t_min, t_max] yield NaN."""
        times = np.asarray(times, dtype=float)
        out = np.full(len(times), np.nan, dtype=float)
        inside = (times >= self.t_min) & (times <= self.t_max)
        if np.any(inside):
            out[inside] = self.model.predict(times[inside].reshape(-1, 1))
        return out


def knots_for(n_samples: int, cfg: SmoothingConfig) -> int:
    """Number of spline knots: the configured count, thinned for short trials."""
    return min(cfg.n_knots, max(SmoothingDefaults.MIN_KNOTS, n_samples // 3))


class TrajectorySmoother:
    """
    Fits one smooth curve per cleaned trial.

    Every call works only on the trial it receives, so trials never influence
    each other's fit and the smoother can be shared across workers.

    Example:
        >>> smoother = TrajectorySmoother(SmoothingConfig())
        >>> trajectory = smoother.smooth(cleaned_trial)
    """

    def __init__(self, cfg: Optional[SmoothingConfig] = None) -> None:
        self.cfg = cfg or SmoothingConfig()

    def _build_model(self, n_knots: int) -> Pipeline:
        return make_pipeline(
            SplineTransformer(
                n_knots=n_knots,
                degree=self.cfg.degree,
                knots="quantile",
                extrapolation="constant",
                include_bias=False,
            ),
            QuantileRegressor(
                quantile=self.cfg.quantile,
                alpha=self.cfg.penalty,
                fit_intercept=True,
                solver="highs",
                solver_options={"maxiter": self.cfg.max_iter, "time_limit": self.cfg.time_limit_s},
            ),
        )

    def fit(self, trial: Trial) -> FittedCurve:
        """
        Fit the configured quantile curve to the trial's unobstructed samples.

        Raises:
            InsufficientDataError: fewer than ``min_fit_samples`` usable samples.
            FitDidNotConvergeError: the solver hit its iteration/time budget
                or produced a non-finite curve.
        """
        usable = ~trial.obstructed
        times = trial.times[usable]
        diameters = trial.diameters[usable]

        if len(times) < self.cfg.min_fit_samples:
            raise InsufficientDataError(
                f"{trial.key}: {len(times)} usable sample(s), "
                f"at least {self.cfg.min_fit_samples} required for fitting"
            )

        n_knots = knots_for(len(times), self.cfg)
        model = self._build_model(n_knots)
        with _WARNINGS_LOCK, warnings.catch_warnings():
            warnings.simplefilter("error", category=ConvergenceWarning)
            try:
                model.fit(times.reshape(-1, 1), diameters)
            except ConvergenceWarning as exc:
                raise FitDidNotConvergeError(f"{trial.key}: quantile regression did not converge ({exc})") from exc
            except (TypeError, ValueError) as exc:
                # An unsuccessful LP leaves no solution vector behind
                raise FitDidNotConvergeError(f"{trial.key}: quantile regression failed ({exc})") from exc

        fitted = FittedCurve(
            key=trial.key,
            model=model,
            t_min=float(times[0]),
            t_max=float(times[-1]),
            n_knots=n_knots,
            n_samples=len(times),
        )
        if not np.all(np.isfinite(fitted.predict(times))):
            raise FitDidNotConvergeError(f"{trial.key}: fitted curve is not finite")

        logger.debug("Fitted %s: %d samples, %d knots", trial.key, len(times), n_knots)
        return fitted

    def predict_grid(
        self,
        trial: Trial,
        grid: Optional[Sequence[float]] = None,
        fitted: Optional[FittedCurve] = None,
    ) -> SmoothedTrajectory:
        """
        Evaluate the fit on the trial's observed times (default) or on ``grid``.

        No extrapolation: grid points outside the fitted time range get NaN.
        Raw diameters are reported where a grid point coincides with an
        observed sample, NaN otherwise.
        """
        if fitted is None:
            fitted = self.fit(trial)

        observed = dict(zip(trial.times.tolist(), trial.diameters.tolist()))
        times = trial.times if grid is None else np.asarray(grid, dtype=float)
        raw = np.array([observed.get(t, np.nan) for t in times.tolist()], dtype=float)

        return SmoothedTrajectory(
            key=trial.key,
            baseline_diameter=float(getattr(trial, "baseline_diameter", np.nan)),
            has_baseline_jump=bool(getattr(trial, "has_baseline_jump", False)),
            times=times,
            raw_diameters=raw,
            predicted=fitted.predict(times),
            quantile=self.cfg.quantile,
        )

    def smooth(self, trial: Trial) -> SmoothedTrajectory:
        """Fit and evaluate on the observed times in one step."""
        return self.predict_grid(trial, fitted=self.fit(trial))
