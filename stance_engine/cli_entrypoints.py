#!/usr/bin/env python3
"""Console-script wrappers around the stance pipeline.

After an install (``pip install -e .``) the following commands become
available:

* ``stance-run``   – run the pipeline over a catalog + content file, write JSON
* ``stance-demo``  – run the pipeline over the synthetic demo dataset

The pipeline itself owns no files; these wrappers only read inputs and write
the :meth:`PipelineResult.to_json` export.
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from .catalog import load_catalog_file
from .config import ConfigurationError, load_config
from .demo import demo_catalog, generate_demo_content
from .ingest import load_content_file
from .pipeline import PipelineResult, run_pipeline

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )


def _add_config_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--bin-width-hours", type=float, help="Aggregation bin width in hours")
    parser.add_argument("--flip-threshold", type=float, help="Minimum stance change for a flip")
    parser.add_argument("--output", type=Path, help="Write JSON here instead of stdout")
    parser.add_argument("-v", "--verbose", action="store_true")


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.bin_width_hours is not None:
        overrides["bin_width"] = timedelta(hours=args.bin_width_hours)
    if args.flip_threshold is not None:
        overrides["flip_threshold"] = args.flip_threshold
    return overrides


def _emit(result: PipelineResult, output: Optional[Path]) -> None:
    payload = result.to_json()
    if output is None:
        print(payload)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(payload, encoding="utf-8")
    LOGGER.info(f"💾 Wrote {len(result.stance_bins)} stance bins and {len(result.flips)} flips to {output}")


# ---------------------------------------------------------------------------
# Entry-points
# ---------------------------------------------------------------------------

def run(argv: Optional[List[str]] = None) -> None:
    """Run the pipeline over ``--catalog`` and ``--content`` files."""
    parser = argparse.ArgumentParser(description="Run the Stance × Mindshare pipeline")
    parser.add_argument("--catalog", type=Path, required=True, help="JSON catalog with voices and topics")
    parser.add_argument("--content", type=Path, required=True, help="CSV or JSON content rows")
    _add_config_flags(parser)
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = load_config(**_overrides(args))
        catalog = load_catalog_file(args.catalog)
    except ConfigurationError as exc:
        LOGGER.error(f"Configuration error: {exc}")
        sys.exit(2)

    rows = load_content_file(args.content)
    LOGGER.info(f"🚀 Running pipeline on {len(rows)} rows from {args.content}")
    result = run_pipeline(rows, catalog, config)
    _emit(result, args.output)


def demo(argv: Optional[List[str]] = None) -> None:
    """Run the pipeline over the synthetic demo dataset (daily bins by default)."""
    parser = argparse.ArgumentParser(description="Run the pipeline on synthetic demo data")
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument("--days", type=int, default=14)
    _add_config_flags(parser)
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    overrides = {"bin_width": timedelta(days=1)}
    overrides.update(_overrides(args))
    try:
        config = load_config(**overrides)
    except ConfigurationError as exc:
        LOGGER.error(f"Configuration error: {exc}")
        sys.exit(2)

    items = generate_demo_content(seed=args.seed, days=args.days)
    result = run_pipeline(items, demo_catalog(), config)

    for explanation in result.explanations:
        LOGGER.info(f"🔄 {explanation.narrative_summary}")
    _emit(result, args.output)


if __name__ == "__main__":
    run()
