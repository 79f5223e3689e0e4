"""Canonical chronological ordering of the season's games."""

from __future__ import annotations

import logging
from typing import Iterable

import pandas as pd

from .validation import register_data_issue

logger = logging.getLogger(__name__)


def game_order(episodes: pd.DataFrame, game_ids: Iterable) -> pd.DataFrame:
    """Return ``game_id`` → ``game_seq`` (1-based) in broadcast order.

    Games are ordered by air date, then episode number, then game id. Games in
    ``game_ids`` with no episode row follow every scheduled game, ordered by
    game id.
    """
    scheduled = (
        episodes.sort_values(
            ["air_date", "episode_number", "game_id"],
            na_position="last",
            kind="mergesort",
        )["game_id"]
        .drop_duplicates()
        .tolist()
    )
    known = set(scheduled)
    unscheduled = sorted({game_id for game_id in game_ids if game_id not in known})
    if unscheduled:
        register_data_issue(
            "episodes",
            "missing_episode",
            {"count": len(unscheduled), "games": unscheduled},
        )

    ordered = scheduled + unscheduled
    return pd.DataFrame(
        {"game_id": ordered, "game_seq": range(1, len(ordered) + 1)}
    )
