# plr_pipeline/cli.py
from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from .config import ConfigBuilder
from .io import ConsoleReporter, PLRPipeline, ResultWriter, RunLogger


def build_arg_parser() -> argparse.ArgumentParser:
    """
    CLI parser for the PLR pipeline.

    Responsibility:
      - Parsing and describing options only.
      - No business logic (SRP); configuration is built by ConfigBuilder.

    Options left at None fall back to the JSON config file (--config) or to
    the built-in defaults.
    """
    parser = argparse.ArgumentParser(
        description=(
            "Clean pupillary light reflex trials, select the best attempt per "
            "occasion, smooth the diameter trajectory by quantile regression "
            "and extract PLR metrics."
        ),
    )
    parser.add_argument(
        "--input",
        required=True,
        help=(
            "Input CSV/TSV with participant_id, eye, time, occasion (or mtm), "
            "attempt (or trial), diameter, obstructed. obstruction_percent optional."
        ),
    )
    parser.add_argument(
        "--output-dir",
        required=True,
        help="Directory for curves.csv, metrics.csv, trials.csv and exclusions.csv.",
    )
    parser.add_argument("--config", help="JSON configuration file (sections: selection, baseline, smoothing, metrics).")
    parser.add_argument(
        "--overrides",
        help="CSV/TSV table of manual best-trial overrides (participant_id, eye, occasion, attempt).",
    )
    parser.add_argument("--decimal", default=".", help="Decimal separator of the input file (default: '.').")

    # Selection
    parser.add_argument(
        "--obstruction-threshold",
        type=float,
        default=None,
        help="Exclude attempts with obstruction fraction >= this value (default: 0.6).",
    )
    parser.add_argument(
        "--obstruction-method",
        choices=["sample_count", "time_weighted"],
        default=None,
        help="How the obstruction fraction is computed (default: sample_count).",
    )
    parser.add_argument(
        "--use-precomputed-obstruction",
        action="store_true",
        help="Use the obstruction_percent column when present.",
    )

    # Baseline
    parser.add_argument("--baseline-window", type=float, default=None, help="Baseline window length in s (default: 0.5).")
    parser.add_argument(
        "--baseline-samples",
        type=int,
        default=None,
        help="Use the first N unobstructed samples as baseline window instead of a time window.",
    )
    parser.add_argument(
        "--jump-sensitivity",
        type=float,
        default=None,
        help="Baseline jump threshold in robust standard deviations (default: 3.0).",
    )
    parser.add_argument(
        "--jump-policy",
        choices=["flag", "remove", "exclude"],
        default=None,
        help="Handling of attempts with a baseline jump (default: flag).",
    )
    parser.add_argument(
        "--keep-obstructed",
        action="store_true",
        help="Keep obstructed samples in the cleaned trial (they are still ignored by the fit).",
    )

    # Smoothing
    parser.add_argument("--quantile", type=float, default=None, help="Target quantile of the fit (default: 0.5).")
    parser.add_argument("--knots", type=int, default=None, help="Maximum number of spline knots (default: 12).")
    parser.add_argument("--max-iter", type=int, default=None, help="Solver iteration budget per fit.")

    # Metrics
    parser.add_argument(
        "--recovery-fraction",
        type=float,
        default=None,
        help="Recovery target as fraction of baseline (default: 0.75).",
    )

    # Execution
    parser.add_argument("--jobs", type=int, default=None, help="Worker processes (default: 1, -1 = all cores).")
    parser.add_argument("--run-log", help="Append a run summary row to this CSV file.")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO).",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ConfigBuilder.build_all_configs(args)
    except (OSError, ValueError) as exc:
        parser.error(str(exc))

    pipeline = PLRPipeline(config)
    pipeline.register_observer(ConsoleReporter())
    pipeline.register_observer(ResultWriter(args.output_dir))
    if args.run_log:
        pipeline.register_observer(RunLogger(args.run_log))

    pipeline.run_file(args.input, decimal=args.decimal)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
