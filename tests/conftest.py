from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
import pytest

from plr_pipeline.config import SelectionConfig
from plr_pipeline.domain import Eye, Sample, TrialKey
from plr_pipeline.preprocessing import build_trial


RATE_HZ = 30.0


def plr_diameters(
    times: np.ndarray,
    baseline: float = 6.0,
    minimum: float = 3.5,
    onset: float = 0.5,
    t_min: float = 1.0,
    t_end: float = 3.0,
    recovered: float = 5.8,
) -> np.ndarray:
    """Noise-free PLR: flat baseline, cosine constriction, cosine redilation.

    Diameter is `baseline` before `onset`, reaches `minimum` at `t_min` and
    `recovered` at `t_end`.
    """
    times = np.asarray(times, dtype=float)
    d = np.full(len(times), baseline, dtype=float)

    down = (times >= onset) & (times <= t_min)
    u = (times[down] - onset) / (t_min - onset)
    d[down] = baseline + (minimum - baseline) * (1 - np.cos(np.pi * u)) / 2

    up = times > t_min
    v = np.clip((times[up] - t_min) / (t_end - t_min), 0.0, 1.0)
    d[up] = minimum + (recovered - minimum) * (1 - np.cos(np.pi * v)) / 2
    return d


def sample_times(duration: float = 3.0, rate: float = RATE_HZ) -> np.ndarray:
    n = int(round(duration * rate)) + 1
    return np.arange(n) / rate


def obstruction_pattern(n: int, fraction: float) -> np.ndarray:
    """Deterministic mask with round(fraction * 10) of every 10 samples obstructed."""
    per_ten = int(round(fraction * 10))
    return np.array([(i % 10) < per_ten for i in range(n)], dtype=bool)


def build_samples(
    participant: str = "P01",
    eye: Eye = Eye.LEFT,
    occasion: str = "Pre",
    attempt: int = 1,
    times: Optional[Sequence[float]] = None,
    diameters: Optional[Sequence[float]] = None,
    obstructed: Optional[Sequence[bool]] = None,
    obstruction_fraction: float = 0.0,
    **curve,
) -> List[Sample]:
    times = sample_times() if times is None else np.asarray(times, dtype=float)
    if diameters is None:
        diameters = plr_diameters(times, **curve)
    if obstructed is None:
        obstructed = obstruction_pattern(len(times), obstruction_fraction)
    return [
        Sample(
            participant_id=participant,
            eye=eye,
            occasion=occasion,
            attempt=attempt,
            time=float(t),
            diameter=float(d),
            obstructed=bool(o),
        )
        for t, d, o in zip(times, diameters, obstructed)
    ]


def samples_to_frame(samples: Sequence[Sample]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "participant_id": [s.participant_id for s in samples],
            "eye": [str(s.eye) for s in samples],
            "occasion": [s.occasion for s in samples],
            "attempt": [s.attempt for s in samples],
            "time": [s.time for s in samples],
            "diameter": [s.diameter for s in samples],
            "obstructed": [int(s.obstructed) for s in samples],
        }
    )


@pytest.fixture
def make_samples():
    return build_samples


@pytest.fixture
def make_trial():
    def _make(config: Optional[SelectionConfig] = None, **kwargs):
        samples = build_samples(**kwargs)
        return build_trial(samples[0].trial_key, samples, config or SelectionConfig())

    return _make


@pytest.fixture
def to_frame():
    return samples_to_frame


@pytest.fixture
def plr_curve():
    return plr_diameters


@pytest.fixture
def trial_key() -> TrialKey:
    return TrialKey("P01", Eye.LEFT, "Pre", 1)
