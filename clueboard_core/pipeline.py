"""Run the wrangling steps over one loaded season."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from .clue_scores import complete_clue_scores
from .data_loader import SeasonTables
from .enrich import enrich_game_summary
from .episodes import game_order
from .identity import assign_contestant_ids
from .streaks import attach_streaks, compute_win_streaks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportTables:
    """Enriched tables handed to the aggregation and chart layers."""

    game_summary: pd.DataFrame
    clue_scores: pd.DataFrame
    players: pd.DataFrame
    streaks: pd.DataFrame
    game_order: pd.DataFrame


def run_pipeline(season: SeasonTables) -> ReportTables:
    """Enrich summaries, complete clue scores and compute win streaks.

    The game order and contestant ids are resolved first because both the
    summary join and the streak key depend on them.
    """
    game_ids = pd.concat(
        [
            season.game_summary["game_id"],
            season.clue_scores["game_id"],
            season.players["game_id"],
        ]
    ).unique()
    order = game_order(season.episodes, game_ids)
    players = assign_contestant_ids(season.players, order)

    summary = enrich_game_summary(season.game_summary, players)
    completed = complete_clue_scores(season.clue_scores)
    streaks = compute_win_streaks(completed, order, players)
    players = attach_streaks(players, streaks)

    logger.info(
        "Pipeline complete: %d summary rows, %d clue rows, %d player rows, %d games",
        len(summary),
        len(completed),
        len(players),
        len(order),
    )
    return ReportTables(
        game_summary=summary,
        clue_scores=completed,
        players=players,
        streaks=streaks,
        game_order=order,
    )
