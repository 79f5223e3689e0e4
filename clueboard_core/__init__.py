"""Clueboard: wrangling and report helpers for one trivia game show season."""

from .clue_scores import complete_clue_scores  # noqa: F401
from .data_loader import (  # noqa: F401
    SeasonTables as SeasonTables,
    load_sample_season as load_sample_season,
    load_season as load_season,
)
from .enrich import enrich_game_summary  # noqa: F401
from .pipeline import ReportTables, run_pipeline  # noqa: F401
from .streaks import attach_streaks, compute_win_streaks  # noqa: F401

__all__ = [
    "SeasonTables",
    "ReportTables",
    "load_season",
    "load_sample_season",
    "run_pipeline",
    "enrich_game_summary",
    "complete_clue_scores",
    "compute_win_streaks",
    "attach_streaks",
]
