# plr_pipeline/io/io.py
"""Reading sample tables and writing result tables (CSV/TSV)."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd

from ..config.constants import Columns
from ..domain import Eye, OccasionKey, ProcessingIssue, Sample, TrialKey
from ..errors import MalformedTrialError

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "y", "t"}
_FALSE = {"0", "false", "no", "n", "f"}


def _separator(path: Path) -> str:
    return "\t" if path.suffix.lower() in (".tsv", ".txt") else ","


def read_table(path: str | Path, decimal: str = ".") -> pd.DataFrame:
    """
    Read a CSV or TSV file (separator chosen by file suffix).
    """
    path = Path(path)
    return pd.read_csv(path, sep=_separator(path), decimal=decimal, low_memory=False)


def write_table(df: pd.DataFrame, path: str | Path) -> None:
    """
    Write a DataFrame as CSV or TSV (separator chosen by file suffix).
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, sep=_separator(path), index=False)


def parse_obstructed(value) -> bool:
    """
    Parse an obstruction flag robustly.

    - bool / numpy bool -> as is
    - 0 / 1 (int, float) -> False / True
    - "true"/"false", "yes"/"no", "1"/"0" (any case) -> bool
    - anything else -> ValueError
    """
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, float, np.integer, np.floating)) and not pd.isna(value):
        if value in (0, 1):
            return bool(value)
    if isinstance(value, str):
        v = value.strip().lower()
        if v in _TRUE:
            return True
        if v in _FALSE:
            return False
    raise ValueError(f"Invalid obstruction flag: {value!r}")


def _parse_attempt(value) -> int:
    if pd.isna(value):
        raise ValueError("missing attempt")
    number = float(value)
    if not number.is_integer():
        raise ValueError(f"attempt {value!r} is not an integer")
    return int(number)


def _identity(value) -> str:
    if pd.isna(value):
        raise ValueError("missing identifier")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Lower-case column names and map known aliases (mtm, trial, ...)."""
    df = df.rename(columns=lambda c: str(c).strip().lower())
    aliases = {k: v for k, v in Columns.ALIASES.items() if k in df.columns and v not in df.columns}
    return df.rename(columns=aliases)


@dataclass
class SampleTable:
    """Samples parsed from one input table plus rows that could not be used."""

    samples: List[Sample] = field(default_factory=list)
    rejected: List[ProcessingIssue] = field(default_factory=list)


def samples_from_frame(df: pd.DataFrame) -> SampleTable:
    """
    Convert a raw sample table into typed :class:`Sample` records.

    Missing required columns make the whole input unusable (ValueError).
    Rows with unusable identity fields or obstruction flags are reported as
    ``MalformedTrialError`` issues. A row whose identity cannot be parsed
    belongs to no trial and is dropped on its own; an unreadable obstruction
    flag drops every sample of its trial.
    Non-numeric times/diameters become NaN and are rejected per trial by the
    indexer.
    """
    df = normalize_columns(df)
    missing = [c for c in Columns.REQUIRED_INPUT if c not in df.columns]
    if missing:
        raise ValueError(f"Input is missing required columns: {', '.join(missing)}")

    times = pd.to_numeric(df[Columns.TIME], errors="coerce").to_numpy(dtype=float)
    diameters = pd.to_numeric(df[Columns.DIAMETER], errors="coerce").to_numpy(dtype=float)
    if Columns.OBSTRUCTION_PERCENT in df.columns:
        percents = pd.to_numeric(df[Columns.OBSTRUCTION_PERCENT], errors="coerce").to_numpy(dtype=float)
    else:
        percents = np.full(len(df), np.nan)

    table = SampleTable()
    bad: Dict[Tuple, str] = {}
    columns = [Columns.PARTICIPANT, Columns.EYE, Columns.OCCASION, Columns.ATTEMPT, Columns.OBSTRUCTED]
    for i, (pid, eye, occasion, attempt, obstructed) in enumerate(df[columns].itertuples(index=False, name=None)):
        try:
            key = TrialKey(_identity(pid), Eye.parse(eye), _identity(occasion), _parse_attempt(attempt))
        except ValueError as exc:
            raw_key = (str(pid), str(eye), str(occasion), str(attempt))
            bad.setdefault(raw_key, f"row {i}: {exc}")
            continue
        try:
            flag = parse_obstructed(obstructed)
        except ValueError as exc:
            bad.setdefault(tuple(key), f"row {i}: {exc}")
            continue

        table.samples.append(
            Sample(
                participant_id=key.participant_id,
                eye=key.eye,
                occasion=key.occasion,
                attempt=key.attempt,
                time=float(times[i]),
                diameter=float(diameters[i]),
                obstructed=flag,
                obstruction_percent=None if np.isnan(percents[i]) else float(percents[i]),
            )
        )

    if bad:
        table.samples = [s for s in table.samples if tuple(s.trial_key) not in bad]
        for (pid, eye, occasion, attempt), message in bad.items():
            logger.warning("Rejected input rows for %s/%s/%s#%s: %s", pid, eye, occasion, attempt, message)
            table.rejected.append(
                ProcessingIssue(
                    key=OccasionKey(pid, eye, occasion),
                    attempt=attempt if isinstance(attempt, int) else None,
                    stage="ingest",
                    reason=MalformedTrialError.__name__,
                    message=message,
                )
            )
    return table


def read_samples(path: str | Path, decimal: str = ".") -> SampleTable:
    """Read and parse a sample table file."""
    df = read_table(path, decimal=decimal)
    logger.info("Read %d sample row(s) from %s", len(df), path)
    return samples_from_frame(df)
