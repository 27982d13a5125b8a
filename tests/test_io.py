import numpy as np
import pandas as pd
import pytest

from plr_pipeline.domain import Eye
from plr_pipeline.io import read_samples, read_table, samples_from_frame, write_table
from plr_pipeline.io.io import normalize_columns, parse_obstructed


@pytest.mark.parametrize(
    "value, expected",
    [(True, True), (np.bool_(False), False), (1, True), (0.0, False), ("Yes", True), (" false ", False)],
)
def test_parse_obstructed(value, expected):
    assert parse_obstructed(value) is expected


@pytest.mark.parametrize("value", ["maybe", 2, float("nan"), None])
def test_parse_obstructed_rejects_unknown_values(value):
    with pytest.raises(ValueError):
        parse_obstructed(value)


def test_aliases_are_mapped():
    df = pd.DataFrame(columns=["Participant_ID", "Eye", "MTM", "Trial", "Time", "Diameter", "Obstructed"])

    assert list(normalize_columns(df).columns) == [
        "participant_id", "eye", "occasion", "attempt", "time", "diameter", "obstructed",
    ]


def test_samples_from_frame_parses_types(make_samples, to_frame):
    df = to_frame(make_samples(eye=Eye.RIGHT, attempt=3))
    df["eye"] = "R"
    df["obstruction_percent"] = 12.5

    table = samples_from_frame(df)

    sample = table.samples[0]
    assert sample.eye is Eye.RIGHT
    assert sample.attempt == 3
    assert sample.obstructed is False
    assert sample.obstruction_percent == 12.5
    assert not table.rejected


def test_missing_required_column(make_samples, to_frame):
    df = to_frame(make_samples()).drop(columns=["obstructed"])

    with pytest.raises(ValueError, match="obstructed"):
        samples_from_frame(df)


def test_unknown_eye_row_is_rejected(make_samples, to_frame):
    df = to_frame(make_samples(attempt=1) + make_samples(attempt=2))
    df.loc[0, "eye"] = "Centre"

    table = samples_from_frame(df)

    assert {s.attempt for s in table.samples} == {1, 2}
    assert sum(s.attempt == 1 for s in table.samples) == 90
    assert len(table.rejected) == 1
    assert table.rejected[0].stage == "ingest"


def test_tsv_round_trip_with_decimal_comma(make_samples, to_frame, tmp_path):
    path = tmp_path / "samples.tsv"
    to_frame(make_samples()).to_csv(path, sep="\t", index=False, decimal=",")

    table = read_samples(path, decimal=",")

    assert len(table.samples) == 91
    assert table.samples[1].time == pytest.approx(1 / 30.0)


def test_write_table_creates_directories(tmp_path):
    path = tmp_path / "nested" / "table.csv"

    write_table(pd.DataFrame({"a": [1, 2]}), path)

    assert read_table(path)["a"].tolist() == [1, 2]
