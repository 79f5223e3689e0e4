"""
Build the season report.

Usage:
    clueboard --data-dir data/season40 --output-dir report
    python -m clueboard_core --sample --interactive
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from . import params
from .data_loader import load_season
from .log_utils import new_run_label, setup_logging
from .pipeline import run_pipeline
from .report import write_report
from .validation import clear_validation_state, finalise_data_quality_report

logger = logging.getLogger(__name__)


def _game_id(value: str):
    """Game ids are numeric in the usual exports; keep anything else as text."""
    try:
        return int(value)
    except ValueError:
        return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build the trivia season report.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding the four season CSV files (default: CLUEBOARD_DATA_DIR).",
    )
    source.add_argument(
        "--base-url",
        default=None,
        help="URL prefix serving the season CSV files (default: CLUEBOARD_BASE_URL).",
    )
    source.add_argument(
        "--sample",
        action="store_true",
        help="Use the small season bundled with the package.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=params.output_dir,
        help="Where charts and report.md are written (default: %(default)s).",
    )
    parser.add_argument(
        "--featured-game",
        type=_game_id,
        default=None,
        help="Game to chart in detail (default: the game with the most lead changes).",
    )
    parser.add_argument(
        "--top-n",
        type=int,
        default=params.top_n,
        help="Rows in the leaderboard and streak chart (default: %(default)s).",
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Also write an interactive plotly score progression page.",
    )
    parser.add_argument(
        "--force-refresh",
        action="store_true",
        help="Re-download remote files even when cached.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def build_report(argv=None) -> Path:
    """Parse ``argv``, run the whole report and return the path of report.md."""
    args = build_parser().parse_args(argv)
    run_label = new_run_label()
    setup_logging(getattr(logging, args.log_level), run_label=run_label)
    clear_validation_state()

    if args.sample:
        data_dir, base_url = params.SAMPLE_DATA_DIR, None
    else:
        data_dir = args.data_dir
        base_url = args.base_url or (None if data_dir else params.base_url)

    logger.info(
        "Building report (env=%s, source=%s)",
        params.environment,
        base_url or data_dir or params.data_dir,
    )
    try:
        season = load_season(data_dir, base_url, force_refresh=args.force_refresh)
        tables = run_pipeline(season)
        outputs = write_report(
            tables,
            args.output_dir,
            game_id=args.featured_game,
            top_n=args.top_n,
            interactive=args.interactive,
        )
    finally:
        finalise_data_quality_report(run_label=run_label)

    logger.info("Report complete: %s", outputs["report"])
    return outputs["report"]


def main() -> None:
    build_report()
