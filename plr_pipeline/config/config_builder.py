# plr_pipeline/config/config_builder.py
"""Build configuration objects from CLI arguments, JSON files and override tables.

Separates configuration construction from argument parsing (SRP).
"""
from __future__ import annotations

import argparse
import json
import logging
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple, Type, TypeVar

import pandas as pd

from .config import (
    BaselineConfig,
    BestTrialOverride,
    MetricConfig,
    PipelineConfig,
    SelectionConfig,
    SmoothingConfig,
)
from .constants import Columns

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SECTIONS: Dict[str, Type[Any]] = {
    "selection": SelectionConfig,
    "baseline": BaselineConfig,
    "smoothing": SmoothingConfig,
    "metrics": MetricConfig,
}


def _build_section(cls: Type[T], values: Mapping[str, Any]) -> T:
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} option(s): {', '.join(sorted(unknown))}")
    return cls(**values)


class ConfigBuilder:
    """Builds a :class:`PipelineConfig` from the supported configuration sources.

    Responsibilities:
        - Map CLI arguments and JSON sections to configuration dataclasses
        - Read the manual best-trial override table
        - Provide single source of truth for config construction
    """

    @staticmethod
    def load_overrides(path: str | Path) -> Tuple[BestTrialOverride, ...]:
        """Read an override table (CSV/TSV) with participant, eye, occasion, attempt."""
        path = Path(path)
        sep = "\t" if path.suffix.lower() in (".tsv", ".txt") else ","
        df = pd.read_csv(path, sep=sep, dtype=str)
        df = df.rename(columns={k: v for k, v in Columns.ALIASES.items() if k in df.columns})
        required = [Columns.PARTICIPANT, Columns.EYE, Columns.OCCASION, Columns.ATTEMPT]
        missing = [c for c in required if c not in df.columns]
        if missing:
            raise ValueError(f"Override table is missing columns: {', '.join(missing)}")

        overrides = tuple(
            BestTrialOverride(
                participant_id=row[Columns.PARTICIPANT],
                eye=row[Columns.EYE],
                occasion=row[Columns.OCCASION],
                attempt=int(row[Columns.ATTEMPT]),
            )
            for _, row in df.iterrows()
        )
        logger.info("Loaded %d best-trial override(s) from %s", len(overrides), path)
        return overrides

    @staticmethod
    def from_dict(values: Mapping[str, Any]) -> PipelineConfig:
        """Build a config from a nested mapping (e.g. a parsed JSON file)."""
        values = dict(values)
        sections: Dict[str, Any] = {}
        for name, cls in _SECTIONS.items():
            section = dict(values.pop(name, {}) or {})
            if cls is SelectionConfig and "overrides" in section:
                section["overrides"] = tuple(
                    BestTrialOverride(**entry) for entry in section["overrides"]
                )
            sections[name] = _build_section(cls, section)

        top_level = {k: values.pop(k) for k in ("n_jobs", "backend") if k in values}
        if values:
            raise ValueError(f"Unknown configuration section(s): {', '.join(sorted(values))}")
        return PipelineConfig(**sections, **top_level)

    @classmethod
    def from_json(cls, path: str | Path) -> PipelineConfig:
        """Build a config from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    @staticmethod
    def build_selection_config(args: argparse.Namespace, base: SelectionConfig) -> SelectionConfig:
        """Apply selection-related CLI arguments on top of ``base``."""
        updates: Dict[str, Any] = {}
        if args.obstruction_threshold is not None:
            updates["obstruction_threshold"] = args.obstruction_threshold
        if args.obstruction_method is not None:
            updates["obstruction_method"] = args.obstruction_method
        if args.use_precomputed_obstruction:
            updates["use_precomputed_obstruction"] = True
        if args.overrides is not None:
            updates["overrides"] = base.overrides + ConfigBuilder.load_overrides(args.overrides)
        return replace(base, **updates)

    @staticmethod
    def build_baseline_config(args: argparse.Namespace, base: BaselineConfig) -> BaselineConfig:
        """Apply baseline-related CLI arguments on top of ``base``."""
        updates: Dict[str, Any] = {}
        if args.baseline_window is not None:
            updates["baseline_window_s"] = args.baseline_window
        if args.baseline_samples is not None:
            updates["baseline_window_samples"] = args.baseline_samples
        if args.jump_sensitivity is not None:
            updates["jump_sensitivity"] = args.jump_sensitivity
        if args.jump_policy is not None:
            updates["jump_policy"] = args.jump_policy
        if args.keep_obstructed:
            updates["drop_obstructed"] = False
        return replace(base, **updates)

    @staticmethod
    def build_smoothing_config(args: argparse.Namespace, base: SmoothingConfig) -> SmoothingConfig:
        """Apply smoothing-related CLI arguments on top of ``base``."""
        updates: Dict[str, Any] = {}
        if args.quantile is not None:
            updates["quantile"] = args.quantile
        if args.knots is not None:
            updates["n_knots"] = args.knots
        if args.max_iter is not None:
            updates["max_iter"] = args.max_iter
        return replace(base, **updates)

    @staticmethod
    def build_metric_config(args: argparse.Namespace, base: MetricConfig) -> MetricConfig:
        """Apply metric-related CLI arguments on top of ``base``."""
        if args.recovery_fraction is None:
            return base
        return replace(base, recovery_fraction=args.recovery_fraction)

    @classmethod
    def build_all_configs(cls, args: argparse.Namespace) -> PipelineConfig:
        """Build the run configuration: JSON file (optional) refined by CLI flags."""
        base = cls.from_json(args.config) if args.config else PipelineConfig()
        return replace(
            base,
            selection=cls.build_selection_config(args, base.selection),
            baseline=cls.build_baseline_config(args, base.baseline),
            smoothing=cls.build_smoothing_config(args, base.smoothing),
            metrics=cls.build_metric_config(args, base.metrics),
            n_jobs=args.jobs if args.jobs is not None else base.n_jobs,
        )
