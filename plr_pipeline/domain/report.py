"""Run report listing every excluded or flagged trial together with the reason."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import pandas as pd

from ..config.constants import Columns
from .keys import OccasionKey


@dataclass(frozen=True)
class ProcessingIssue:
    """One exclusion or review finding.

    ``reason`` is the name of the error/warning class that caused it, so the
    report can be filtered by taxonomy (e.g. ``InsufficientDataError``).
    """

    key: OccasionKey
    attempt: Optional[int]
    stage: str
    reason: str
    message: str

    @classmethod
    def from_exception(
        cls,
        key: OccasionKey,
        attempt: Optional[int],
        stage: str,
        exc: BaseException,
    ) -> "ProcessingIssue":
        return cls(key=key, attempt=attempt, stage=stage, reason=type(exc).__name__, message=str(exc))


@dataclass
class RunReport:
    """Collects issues from all work units of one run."""

    issues: List[ProcessingIssue] = field(default_factory=list)

    def add(self, issue: ProcessingIssue) -> None:
        self.issues.append(issue)

    def extend(self, issues: Iterable[ProcessingIssue]) -> None:
        self.issues.extend(issues)

    def by_reason(self, reason: str) -> List[ProcessingIssue]:
        return [i for i in self.issues if i.reason == reason]

    def __len__(self) -> int:
        return len(self.issues)

    def __iter__(self):
        return iter(self.issues)

    def to_frame(self) -> pd.DataFrame:
        rows = [
            {
                Columns.PARTICIPANT: i.key.participant_id,
                Columns.EYE: str(i.key.eye),
                Columns.OCCASION: i.key.occasion,
                Columns.ATTEMPT: i.attempt,
                "stage": i.stage,
                "reason": i.reason,
                "message": i.message,
            }
            for i in self.issues
        ]
        return pd.DataFrame(rows, columns=list(Columns.REPORT_TABLE))
