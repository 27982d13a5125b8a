# plr_pipeline/io/pipeline.py
"""PLR processing pipeline orchestration.

Separates pipeline orchestration from CLI and configuration (SRP).
Implements the Observer Pattern for run reporting.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
from joblib import Parallel, delayed

from ..config import PipelineConfig
from ..config.constants import Columns
from ..domain import MetricRecord, OccasionWorkItem, ProcessingIssue, RunReport, Sample, SmoothedTrajectory
from ..engine import process_occasion
from ..postprocessing import build_curve_table, build_metric_table
from ..preprocessing import index_trials
from .io import read_samples, samples_from_frame, write_table

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Tables and report of one pipeline run."""

    curves: pd.DataFrame
    metrics: pd.DataFrame
    trials: pd.DataFrame
    report: RunReport
    trajectories: List[SmoothedTrajectory] = field(default_factory=list)
    records: List[MetricRecord] = field(default_factory=list)

    def exclusions(self) -> pd.DataFrame:
        return self.report.to_frame()

    def write(self, output_dir: str | Path) -> Dict[str, Path]:
        """Write curves/metrics/trials/exclusions CSVs into ``output_dir``."""
        output_dir = Path(output_dir)
        paths = {
            "curves": output_dir / "curves.csv",
            "metrics": output_dir / "metrics.csv",
            "trials": output_dir / "trials.csv",
            "exclusions": output_dir / "exclusions.csv",
        }
        write_table(self.curves, paths["curves"])
        write_table(self.metrics, paths["metrics"])
        write_table(self.trials, paths["trials"])
        write_table(self.exclusions(), paths["exclusions"])
        return paths


class PLRPipeline:
    """Runs indexing, then cleaning/smoothing/metrics per occasion on a worker pool.

    Responsibilities:
        - Index samples into trials (malformed trials are reported)
        - Fan occasions out to a bounded joblib worker pool
        - Collect curve, metric and trial tables plus the run report
        - Notify observers of pipeline events (Observer Pattern)

    Example:
        >>> pipeline = PLRPipeline(PipelineConfig(n_jobs=4))
        >>> pipeline.register_observer(ConsoleReporter())
        >>> result = pipeline.run_file("samples.csv")
        >>> result.write("out/")
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()
        self._observers: List[Any] = []  # List of PipelineObserver instances

    def register_observer(self, observer: Any) -> None:
        """Register an observer to receive pipeline notifications."""
        if observer not in self._observers:
            self._observers.append(observer)

    def unregister_observer(self, observer: Any) -> None:
        """Unregister an observer."""
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify_start(self, n_occasions: int) -> None:
        for observer in self._observers:
            observer.on_pipeline_start(self.config, n_occasions)

    def _notify_complete(self, result: PipelineResult) -> None:
        for observer in self._observers:
            observer.on_pipeline_complete(self.config, result)

    def _notify_error(self, error: Exception) -> None:
        for observer in self._observers:
            observer.on_pipeline_error(self.config, error)

    def run_file(self, input_path: str | Path, decimal: str = ".") -> PipelineResult:
        """Read a sample table file and run the pipeline on it."""
        table = read_samples(input_path, decimal=decimal)
        return self.run(table.samples, rejected=table.rejected)

    def run_frame(self, df: pd.DataFrame) -> PipelineResult:
        """Run the pipeline on an in-memory sample table."""
        table = samples_from_frame(df)
        return self.run(table.samples, rejected=table.rejected)

    def run(
        self,
        samples: Iterable[Sample],
        rejected: Iterable[ProcessingIssue] = (),
    ) -> PipelineResult:
        """Run the complete pipeline.

        Args:
            samples: Typed samples in acquisition order
            rejected: Issues from ingestion to carry into the run report

        Returns:
            PipelineResult with curve, metric and trial tables and the report
        """
        report = RunReport()
        report.extend(rejected)

        try:
            # Step 1: group samples into trials
            index = index_trials(samples, self.config.selection)
            for key, error in index.malformed.items():
                report.add(ProcessingIssue.from_exception(key.occasion_key, key.attempt, "indexing", error))

            occasions = index.by_occasion()
            self._notify_start(len(occasions))

            # Step 2: per-occasion stage chain on the worker pool
            items = self._process_occasions(occasions)

            # Step 3: collect
            result = self._collect(items, report)
        except Exception as e:
            self._notify_error(e)
            raise

        self._notify_complete(result)
        return result

    def _process_occasions(self, occasions) -> List[OccasionWorkItem]:
        if not occasions:
            return []
        if self.config.n_jobs == 1:
            return [process_occasion(key, trials, self.config) for key, trials in occasions.items()]

        logger.info(
            "Processing %d occasion(s) with n_jobs=%s (%s)",
            len(occasions), self.config.n_jobs, self.config.backend,
        )
        return Parallel(n_jobs=self.config.n_jobs, backend=self.config.backend)(
            delayed(process_occasion)(key, trials, self.config) for key, trials in occasions.items()
        )

    @staticmethod
    def _collect(items: List[OccasionWorkItem], report: RunReport) -> PipelineResult:
        trajectories = [i.trajectory for i in items if i.trajectory is not None]
        records = [i.metrics for i in items if i.metrics is not None]
        assessments = [a for i in items for a in i.assessments]
        for item in items:
            report.extend(item.issues)

        trials = pd.DataFrame([a.as_row() for a in assessments], columns=list(Columns.TRIAL_TABLE))
        return PipelineResult(
            curves=build_curve_table(trajectories),
            metrics=build_metric_table(records),
            trials=trials,
            report=report,
            trajectories=trajectories,
            records=records,
        )
