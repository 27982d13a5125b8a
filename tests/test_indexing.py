from dataclasses import replace

import numpy as np
import pytest

from plr_pipeline.config import SelectionConfig
from plr_pipeline.domain import Eye, TrialKey
from plr_pipeline.errors import MalformedTrialError
from plr_pipeline.preprocessing import build_trial, compute_obstruction_fraction, index_trials


def test_index_groups_samples_per_attempt(make_samples):
    samples = make_samples(attempt=2) + make_samples(attempt=1) + make_samples(eye=Eye.RIGHT)

    index = index_trials(samples)

    assert len(index) == 3
    assert not index.malformed
    grouped = index.by_occasion()
    assert list(grouped) == [("P01", Eye.LEFT, "Pre"), ("P01", Eye.RIGHT, "Pre")]
    assert [t.attempt for t in grouped[("P01", Eye.LEFT, "Pre")]] == [1, 2]


def test_non_monotonic_trial_is_skipped_and_others_continue(make_samples):
    times = np.arange(20) / 30.0
    times[10] = times[8]
    bad = make_samples(attempt=2, times=times)
    good = make_samples(attempt=1)

    index = index_trials(good + bad)

    bad_key = TrialKey("P01", Eye.LEFT, "Pre", 2)
    assert bad_key in index.malformed
    assert "strictly increasing" in str(index.malformed[bad_key])
    assert list(index.trials) == [TrialKey("P01", Eye.LEFT, "Pre", 1)]


@pytest.mark.parametrize(
    "field, value",
    [("diameter", -1.0), ("diameter", float("nan")), ("time", -0.5)],
)
def test_invalid_sample_values_make_trial_malformed(make_samples, field, value):
    samples = make_samples()
    samples[0] = replace(samples[0], **{field: value})

    with pytest.raises(MalformedTrialError):
        build_trial(samples[1].trial_key, samples, SelectionConfig())


def test_attempt_numbers_start_at_one(make_samples):
    samples = make_samples(attempt=0)

    with pytest.raises(MalformedTrialError):
        build_trial(samples[0].trial_key, samples, SelectionConfig())


def test_indexing_keeps_all_samples(make_samples):
    samples = make_samples(obstruction_fraction=0.5)

    trial = index_trials(samples).trials[samples[0].trial_key]

    assert len(trial) == len(samples)
    assert trial.times[0] == 0.0
    assert np.count_nonzero(trial.obstructed) > 0


class TestObstructionFraction:
    def test_sample_count(self):
        obstructed = np.array([True, False, False, False])
        assert compute_obstruction_fraction(np.arange(4) / 10.0, obstructed) == pytest.approx(0.25)

    def test_time_weighted_uses_sample_durations(self):
        times = np.array([0.0, 0.1, 0.2, 1.0])
        obstructed = np.array([False, False, True, False])

        fraction = compute_obstruction_fraction(times, obstructed, method="time_weighted")

        # durations: 0.1, 0.1, 0.8 and the median interval 0.1 for the last sample
        assert fraction == pytest.approx(0.8 / 1.1)

    def test_empty_trial_counts_as_fully_obstructed(self):
        assert compute_obstruction_fraction(np.array([]), np.array([], dtype=bool)) == 1.0

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            compute_obstruction_fraction(np.arange(3.0), np.zeros(3, dtype=bool), method="area")

    def test_precomputed_percent_is_used_when_enabled(self, make_samples):
        samples = [replace(s, obstruction_percent=25.0) for s in make_samples()]
        key = samples[0].trial_key

        assert build_trial(key, samples, SelectionConfig()).obstruction_fraction == 0.0
        cfg = SelectionConfig(use_precomputed_obstruction=True)
        assert build_trial(key, samples, cfg).obstruction_fraction == pytest.approx(0.25)

    def test_precomputed_percent_falls_back_when_missing(self, make_samples):
        samples = make_samples(obstruction_fraction=0.2)
        cfg = SelectionConfig(use_precomputed_obstruction=True)

        trial = build_trial(samples[0].trial_key, samples, cfg)

        assert trial.obstruction_fraction == pytest.approx(np.mean(trial.obstructed))

    def test_conflicting_precomputed_percent(self, make_samples):
        samples = [replace(s, obstruction_percent=10.0) for s in make_samples()]
        samples[5] = replace(samples[5], obstruction_percent=40.0)
        cfg = SelectionConfig(use_precomputed_obstruction=True)

        with pytest.raises(MalformedTrialError):
            build_trial(samples[0].trial_key, samples, cfg)
