# plr_pipeline/io/observers.py
"""
Observer Pattern implementation for run reporting.

Decouples pipeline execution from console reporting, result writing and the
run log.

Example:
    >>> pipeline = PLRPipeline(config)
    >>> pipeline.register_observer(ConsoleReporter())
    >>> pipeline.register_observer(ResultWriter("out/"))
    >>> pipeline.register_observer(RunLogger("logs/runs.csv"))
    >>> result = pipeline.run_file("samples.csv")
"""
from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from ..config import PipelineConfig

if TYPE_CHECKING:
    from .pipeline import PipelineResult

logger = logging.getLogger(__name__)


class PipelineObserver(ABC):
    """
    Abstract base class for pipeline observers (Observer Pattern).
    """

    @abstractmethod
    def on_pipeline_start(self, config: PipelineConfig, n_occasions: int):
        """
        Called after indexing, before occasions are processed.

        Args:
            config: Run configuration
            n_occasions: Number of occasions about to be processed
        """
        pass

    @abstractmethod
    def on_pipeline_complete(self, config: PipelineConfig, result: "PipelineResult"):
        """
        Called when the pipeline completes.

        Args:
            config: Run configuration
            result: Tables and report of the run
        """
        pass

    @abstractmethod
    def on_pipeline_error(self, config: PipelineConfig, error: Exception):
        """
        Called when the pipeline aborts with an error.

        Args:
            config: Run configuration
            error: Exception that occurred
        """
        pass


class ConsoleReporter(PipelineObserver):
    """
    Reports run progress and the exclusion summary through logging.
    """

    def __init__(self, verbose: bool = True):
        self.verbose = verbose

    def on_pipeline_start(self, config: PipelineConfig, n_occasions: int):
        logger.info("Starting PLR pipeline: %d occasion(s)", n_occasions)
        if self.verbose:
            logger.info("  Obstruction threshold: %.0f%%", config.selection.obstruction_threshold * 100)
            logger.info("  Baseline window: %.3f s, jump policy: %s", config.baseline.baseline_window_s, config.baseline.jump_policy)
            logger.info("  Quantile: %.2f, knots: %d", config.smoothing.quantile, config.smoothing.n_knots)
            logger.info("  Recovery fraction: %.2f", config.metrics.recovery_fraction)
            logger.info("  Manual overrides: %d", len(config.selection.overrides))

    def on_pipeline_complete(self, config: PipelineConfig, result: "PipelineResult"):
        logger.info(
            "PLR pipeline completed: %d metric record(s), %d curve row(s), %d issue(s)",
            len(result.metrics), len(result.curves), len(result.report),
        )
        if self.verbose and len(result.report):
            for reason, count in sorted(Counter(i.reason for i in result.report).items()):
                logger.info("  %s: %d", reason, count)

    def on_pipeline_error(self, config: PipelineConfig, error: Exception):
        logger.error("PLR pipeline failed: %s", error)


class ResultWriter(PipelineObserver):
    """
    Writes curves, metrics, trials and exclusions CSVs into a directory.
    """

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)

    def on_pipeline_start(self, config: PipelineConfig, n_occasions: int):
        """No action on start."""
        pass

    def on_pipeline_complete(self, config: PipelineConfig, result: "PipelineResult"):
        paths = result.write(self.output_dir)
        for name, path in paths.items():
            logger.info("Wrote %s table to %s", name, path)

    def on_pipeline_error(self, config: PipelineConfig, error: Exception):
        """Nothing is written for failed runs."""
        pass


class RunLogger(PipelineObserver):
    """
    Appends one summary row per run to a CSV log for later comparison.
    """

    HEADER = [
        "timestamp",
        "status",
        "obstruction_threshold",
        "jump_policy",
        "quantile",
        "recovery_fraction",
        "n_occasions",
        "n_metrics",
        "n_issues",
        "error",
    ]

    def __init__(self, log_file: str | Path):
        self.log_file = Path(log_file)
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        self._n_occasions = 0

        if not self.log_file.exists():
            self._write_row(self.HEADER)

    def _write_row(self, row) -> None:
        with open(self.log_file, "a", encoding="utf-8", newline="") as f:
            csv.writer(f).writerow(row)

    def _config_columns(self, config: PipelineConfig) -> list:
        return [
            config.selection.obstruction_threshold,
            config.baseline.jump_policy,
            config.smoothing.quantile,
            config.metrics.recovery_fraction,
        ]

    def on_pipeline_start(self, config: PipelineConfig, n_occasions: int):
        self._n_occasions = n_occasions

    def on_pipeline_complete(self, config: PipelineConfig, result: "PipelineResult"):
        self._write_row(
            [datetime.now().isoformat(), "ok", *self._config_columns(config),
             self._n_occasions, len(result.metrics), len(result.report), ""]
        )

    def on_pipeline_error(self, config: PipelineConfig, error: Exception):
        self._write_row(
            [datetime.now().isoformat(), "error", *self._config_columns(config),
             self._n_occasions, "", "", str(error)]
        )
