import pandas as pd
import pytest

from plr_pipeline.cli import main

from conftest import build_samples, samples_to_frame


@pytest.fixture
def input_file(tmp_path):
    samples = (
        build_samples(occasion="Pre", attempt=1, obstruction_fraction=0.7)
        + build_samples(occasion="Pre", attempt=2)
        + build_samples(occasion="Post", attempt=1, obstruction_fraction=1.0)
    )
    df = samples_to_frame(samples).rename(columns={"occasion": "mtm", "attempt": "trial"})
    path = tmp_path / "samples.csv"
    df.to_csv(path, index=False)
    return path


def test_cli_writes_all_tables(input_file, tmp_path):
    out = tmp_path / "out"

    code = main(["--input", str(input_file), "--output-dir", str(out), "--log-level", "WARNING"])

    assert code == 0
    metrics = pd.read_csv(out / "metrics.csv")
    assert list(metrics["occasion"]) == ["Pre"]
    assert list(metrics["attempt"]) == [2]
    assert len(pd.read_csv(out / "trials.csv")) == 3
    exclusions = pd.read_csv(out / "exclusions.csv")
    assert list(exclusions["reason"]) == ["AllAttemptsExcludedWarning"]
    assert (out / "curves.csv").exists()


def test_cli_override_table_and_run_log(input_file, tmp_path):
    overrides = tmp_path / "overrides.csv"
    overrides.write_text("participant_id,eye,occasion,attempt\nP01,Left,Pre,1\n", encoding="utf-8")
    run_log = tmp_path / "logs" / "runs.csv"
    out = tmp_path / "out"

    args = ["--input", str(input_file), "--output-dir", str(out), "--overrides", str(overrides),
            "--run-log", str(run_log)]
    main(args)
    main(args)

    assert list(pd.read_csv(out / "metrics.csv")["attempt"]) == [1]
    log = pd.read_csv(run_log)
    assert len(log) == 2
    assert list(log["status"]) == ["ok", "ok"]


def test_cli_rejects_invalid_configuration(input_file, tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["--input", str(input_file), "--output-dir", str(tmp_path), "--obstruction-threshold", "1.5"])

    assert excinfo.value.code == 2
