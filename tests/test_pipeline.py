import numpy as np
import pandas as pd
import pytest

from plr_pipeline.config import (
    BaselineConfig,
    BestTrialOverride,
    PipelineConfig,
    SelectionConfig,
    SmoothingConfig,
)
from plr_pipeline.domain import Eye, OccasionKey
from plr_pipeline.engine import PLREngine
from plr_pipeline.errors import FitDidNotConvergeError, InsufficientDataError
from plr_pipeline.io import PipelineObserver, PLRPipeline
from plr_pipeline.stages import CleaningStage, IPipelineStage

from conftest import build_samples, plr_diameters, sample_times, samples_to_frame


def _frame(*groups):
    return samples_to_frame([s for group in groups for s in group])


@pytest.fixture
def two_occasions():
    return _frame(
        build_samples(occasion="Pre", attempt=1, obstruction_fraction=0.7),
        build_samples(occasion="Pre", attempt=2, obstruction_fraction=0.1),
        build_samples(occasion="Post", attempt=1),
    )


class _RecordingObserver(PipelineObserver):
    def __init__(self):
        self.events = []

    def on_pipeline_start(self, config, n_occasions):
        self.events.append(("start", n_occasions))

    def on_pipeline_complete(self, config, result):
        self.events.append(("complete", len(result.metrics)))

    def on_pipeline_error(self, config, error):
        self.events.append(("error", type(error).__name__))


class TestPipelineRun:
    def test_one_metric_row_per_occasion(self, two_occasions):
        result = PLRPipeline().run_frame(two_occasions)

        assert len(result.metrics) == 2
        assert set(result.metrics["occasion"]) == {"Pre", "Post"}
        pre = result.metrics.set_index("occasion").loc["Pre"]
        assert pre["attempt"] == 2
        assert pre["min_diameter"] == pytest.approx(3.5, abs=0.15)
        assert len(result.report) == 0

    def test_trial_table_lists_every_attempt(self, two_occasions):
        result = PLRPipeline().run_frame(two_occasions)

        trials = result.trials
        assert len(trials) == 3
        assert trials["is_best"].sum() == 2
        pre = trials[trials["occasion"] == "Pre"].set_index("attempt")
        assert not pre.loc[1, "eligible"]
        assert pre.loc[2, "is_best"]

    def test_curve_table_holds_best_trials_only(self, two_occasions):
        result = PLRPipeline().run_frame(two_occasions)

        curves = result.curves
        assert curves["is_best"].all()
        assert set(zip(curves["occasion"], curves["attempt"])) == {("Pre", 2), ("Post", 1)}
        assert curves["predicted_diameter"].notna().all()

    def test_all_attempts_obstructed_is_reported(self):
        df = _frame(
            build_samples(occasion="Pre", attempt=1, obstruction_fraction=1.0),
            build_samples(occasion="Pre", attempt=2, obstruction_fraction=0.8),
            build_samples(occasion="Post", attempt=1),
        )

        result = PLRPipeline().run_frame(df)

        assert list(result.metrics["occasion"]) == ["Post"]
        issues = result.report.by_reason("AllAttemptsExcludedWarning")
        assert len(issues) == 1
        assert issues[0].key == OccasionKey("P01", Eye.LEFT, "Pre")
        assert issues[0].stage == "cleaning"

    def test_malformed_trial_does_not_stop_the_run(self):
        times = sample_times()
        times[20], times[21] = times[21], times[20]
        df = _frame(
            build_samples(occasion="Pre", attempt=1, times=times),
            build_samples(occasion="Post", attempt=1),
        )

        result = PLRPipeline().run_frame(df)

        assert list(result.metrics["occasion"]) == ["Post"]
        issue = result.report.by_reason("MalformedTrialError")[0]
        assert issue.stage == "indexing"
        assert issue.attempt == 1

    def test_unreadable_rows_drop_their_trial(self, two_occasions):
        df = two_occasions.copy()
        df["obstructed"] = df["obstructed"].astype(object)
        df.loc[df.index[-1], "obstructed"] = "maybe"

        result = PLRPipeline().run_frame(df)

        assert list(result.metrics["occasion"]) == ["Pre"]
        issue = result.report.by_reason("MalformedTrialError")[0]
        assert issue.stage == "ingest"

    def test_too_short_trial_is_excluded_at_smoothing(self):
        short = build_samples(occasion="Pre", times=np.arange(6) / 30.0)
        result = PLRPipeline().run_frame(_frame(short, build_samples(occasion="Post")))

        issue = result.report.by_reason(InsufficientDataError.__name__)[0]
        assert issue.stage == "smoothing"
        assert issue.attempt == 1
        assert list(result.metrics["occasion"]) == ["Post"]

    def test_override_selects_heavily_obstructed_attempt(self, two_occasions):
        cfg = PipelineConfig(
            selection=SelectionConfig(overrides=(BestTrialOverride("P01", "Left", "Pre", 1),))
        )

        result = PLRPipeline(cfg).run_frame(two_occasions)

        pre = result.metrics.set_index("occasion").loc["Pre"]
        assert pre["attempt"] == 1
        overridden = result.trials[result.trials["overridden"]]
        assert list(zip(overridden["occasion"], overridden["attempt"])) == [("Pre", 1)]

    def test_baseline_jump_is_flagged_in_metrics(self):
        diameters = plr_diameters(sample_times())
        diameters[:3] = 7.0
        df = _frame(build_samples(diameters=diameters))

        result = PLRPipeline(PipelineConfig(baseline=BaselineConfig(jump_policy="flag"))).run_frame(df)

        assert bool(result.metrics.loc[0, "has_baseline_jump"])
        assert result.curves["has_baseline_jump"].all()

    def test_empty_input(self):
        result = PLRPipeline().run_frame(_frame([]))

        assert result.metrics.empty
        assert result.curves.empty
        assert len(result.report) == 0

    def test_missing_columns(self, two_occasions):
        with pytest.raises(ValueError):
            PLRPipeline().run_frame(two_occasions.drop(columns=["diameter"]))

    def test_parallel_run_matches_serial(self, two_occasions):
        serial = PLRPipeline(PipelineConfig(n_jobs=1)).run_frame(two_occasions)
        parallel = PLRPipeline(PipelineConfig(n_jobs=2, backend="threading")).run_frame(two_occasions)

        pd.testing.assert_frame_equal(serial.metrics, parallel.metrics)
        pd.testing.assert_frame_equal(serial.trials, parallel.trials)

    @pytest.mark.parametrize(
        "n_jobs, backend",
        [(1, "loky"), (4, "threading")],
    )
    def test_solver_failure_is_reported_per_occasion(self, n_jobs, backend):
        occasions = [f"O{i}" for i in range(1, 7)]
        df = _frame(*(build_samples(occasion=occasion) for occasion in occasions))
        cfg = PipelineConfig(smoothing=SmoothingConfig(max_iter=1), n_jobs=n_jobs, backend=backend)

        result = PLRPipeline(cfg).run_frame(df)

        assert result.metrics.empty
        issues = result.report.by_reason(FitDidNotConvergeError.__name__)
        assert sorted(i.key.occasion for i in issues) == occasions
        assert {i.stage for i in issues} == {"smoothing"}
        assert len(result.report) == len(occasions)

    def test_observers_are_notified(self, two_occasions):
        observer = _RecordingObserver()
        pipeline = PLRPipeline()
        pipeline.register_observer(observer)
        pipeline.register_observer(observer)

        pipeline.run_frame(two_occasions)

        assert observer.events == [("start", 2), ("complete", 2)]

        pipeline.unregister_observer(observer)
        pipeline.run_frame(two_occasions)
        assert len(observer.events) == 2

    def test_write_creates_tables(self, two_occasions, tmp_path):
        result = PLRPipeline().run_frame(two_occasions)

        paths = result.write(tmp_path / "out")

        assert set(paths) == {"curves", "metrics", "trials", "exclusions"}
        metrics = pd.read_csv(paths["metrics"])
        assert len(metrics) == 2
        assert pd.read_csv(paths["exclusions"]).empty


class _FailingStage(IPipelineStage):
    name = "failing"

    def process(self, item, config):
        raise InsufficientDataError("nothing to do")


class _NeverReachedStage(IPipelineStage):
    name = "never"

    def process(self, item, config):
        raise AssertionError("stage after a failure must not run")


def test_engine_records_stage_failure(make_trial):
    key = OccasionKey("P01", Eye.LEFT, "Pre")
    engine = PLREngine([CleaningStage(), _FailingStage(), _NeverReachedStage()])

    item = engine.run(key, [make_trial(attempt=2), make_trial(attempt=1)], PipelineConfig())

    assert [t.attempt for t in item.trials] == [1, 2]
    assert item.cleaned is not None
    assert len(item.issues) == 1
    assert item.issues[0].stage == "failing"
    assert item.issues[0].attempt == 1
    assert item.issues[0].reason == "InsufficientDataError"
