# plr_pipeline/postprocessing/curves.py
"""Tidy per-sample curve table for visualisation and audit."""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from ..config.constants import Columns
from ..domain import SmoothedTrajectory


def curve_frame(trajectory: SmoothedTrajectory) -> pd.DataFrame:
    """
    Rows of one smoothed trajectory.

    Only best attempts are smoothed, so ``is_best`` is always true here; the
    per-attempt view (eligibility, jump flag, selection) is ``trials.csv``.
    """
    n = len(trajectory)
    key = trajectory.key
    return pd.DataFrame(
        {
            Columns.PARTICIPANT: [key.participant_id] * n,
            Columns.EYE: [str(key.eye)] * n,
            Columns.OCCASION: [key.occasion] * n,
            Columns.ATTEMPT: np.full(n, key.attempt, dtype=int),
            Columns.TIME: trajectory.times,
            "raw_diameter": trajectory.raw_diameters,
            "predicted_diameter": trajectory.predicted,
            "baseline_diameter": np.full(n, trajectory.baseline_diameter, dtype=float),
            "is_best": np.ones(n, dtype=bool),
            "has_baseline_jump": np.full(n, trajectory.has_baseline_jump, dtype=bool),
        },
        columns=list(Columns.CURVE_TABLE),
    )


def build_curve_table(trajectories: Iterable[SmoothedTrajectory]) -> pd.DataFrame:
    """Concatenate the curve rows of all trajectories."""
    frames = [curve_frame(t) for t in trajectories]
    if not frames:
        return pd.DataFrame(columns=list(Columns.CURVE_TABLE))
    return pd.concat(frames, ignore_index=True)
