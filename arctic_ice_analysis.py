#!/usr/bin/env python
# ---------------------------------------------------------------------------
# arctic_ice_analysis.py — Thin runner for the arctic_ice package
# ---------------------------------------------------------------------------
"""Hierarchical Bayesian analysis of Arctic sea-ice extent: does an AR(1)
residual term improve out-of-sample prediction?

Usage:
    python arctic_ice_analysis.py --data data/combined_sea_ice_area_extent.csv
    python arctic_ice_analysis.py --light --variants noar ar1
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Allow running from repo root without installing the package
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from arctic_ice.config import DATA_DIR, DATA_FILE, OUTPUT_DIR, VARIANTS, get_variant
from arctic_ice.data import DataError
from arctic_ice.pipeline import run_analysis
from arctic_ice.sampling import DEFAULT_SAMPLER_KWARGS, LIGHT_SAMPLER_KWARGS


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compare hierarchical models of Arctic sea-ice extent via LOO-CV.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--data", type=Path, default=DATA_DIR / DATA_FILE,
                        help="Raw CSV with Date, Metric, Region, Value columns")
    parser.add_argument("--output", type=Path, default=OUTPUT_DIR,
                        help="Directory for plots, tables and posterior archives")
    parser.add_argument("--variants", nargs="+", default=[v.name for v in VARIANTS],
                        help="Model variants to fit")
    parser.add_argument("--light", action="store_true",
                        help="Use the lighter sampler configuration")
    parser.add_argument("--no-prior-checks", action="store_true",
                        help="Skip prior predictive checks")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        variants = [get_variant(name) for name in args.variants]
    except KeyError as e:
        logging.getLogger(__name__).error(e.args[0])
        return 2

    sampler_kwargs = LIGHT_SAMPLER_KWARGS if args.light else DEFAULT_SAMPLER_KWARGS
    try:
        run_analysis(
            data_path=args.data,
            output_dir=args.output,
            sampler_kwargs=sampler_kwargs,
            variants=variants,
            prior_checks=not args.no_prior_checks,
        )
    except DataError as e:
        logging.getLogger(__name__).error(f"Input error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
