"""Derived columns for the per-game summary table."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd

from .validation import register_data_issue

logger = logging.getLogger(__name__)

PLAYER_METADATA_COLUMNS = (
    "first_name",
    "last_name",
    "hometown",
    "occupation",
    "contestant_id",
)


def correct_rate(right: pd.Series, wrong: pd.Series) -> pd.Series:
    """Share of answered clues that were right; NaN when nothing was answered."""
    answered = right + wrong
    return (right / answered.where(answered != 0)).astype(float)


def mark_winners(summary: pd.DataFrame) -> pd.Series:
    """Flag the highest ``final_score`` per game.

    Ties at the top go to the contestant whose name sorts first, so each game
    has exactly one winner.
    """
    top_score = summary.groupby("game_id")["final_score"].transform("max")
    leaders = summary.loc[summary["final_score"] == top_score, ["game_id", "contestant"]]
    winner_idx = (
        leaders.sort_values(["game_id", "contestant"], kind="mergesort")
        .drop_duplicates("game_id")
        .index
    )
    return pd.Series(summary.index.isin(winner_idx), index=summary.index)


def _join_player_metadata(summary: pd.DataFrame, players: pd.DataFrame) -> pd.DataFrame:
    meta = players.copy()
    for column in PLAYER_METADATA_COLUMNS:
        if column not in meta.columns:
            meta[column] = pd.NA
    meta = meta[["game_id", *PLAYER_METADATA_COLUMNS]]

    joined = summary.merge(
        meta,
        left_on=["game_id", "contestant"],
        right_on=["game_id", "first_name"],
        how="left",
        validate="many_to_one",
        indicator=True,
    )

    unmatched = joined["_merge"] == "left_only"
    if unmatched.any():
        register_data_issue(
            "game_summary",
            "unmatched_player_metadata",
            {
                "count": int(unmatched.sum()),
                "rows": joined.loc[unmatched, ["game_id", "contestant"]].to_dict("records"),
            },
        )

    summary_keys = summary[["game_id", "contestant"]].rename(columns={"contestant": "first_name"})
    orphans = meta.merge(summary_keys, on=["game_id", "first_name"], how="left", indicator=True)
    orphans = orphans[orphans["_merge"] == "left_only"]
    if not orphans.empty:
        register_data_issue(
            "players",
            "unmatched_summary_rows",
            {
                "count": int(len(orphans)),
                "rows": orphans[["game_id", "first_name"]].to_dict("records"),
            },
        )

    return joined.drop(columns="_merge")


def enrich_game_summary(
    summary: pd.DataFrame, players: Optional[pd.DataFrame] = None
) -> pd.DataFrame:
    """Add ``correct_rate``, ``unique_id``, ``winner`` and player metadata.

    The result is sorted by ``final_score`` descending, with ties kept in
    game and contestant order. Input frames are not modified.
    """
    enriched = summary.reset_index(drop=True).copy()
    enriched["correct_rate"] = correct_rate(enriched["right"], enriched["wrong"])

    undefined = enriched["correct_rate"].isna()
    if undefined.any():
        register_data_issue(
            "game_summary",
            "undefined_correct_rate",
            {
                "count": int(undefined.sum()),
                "rows": enriched.loc[undefined, ["game_id", "contestant"]].to_dict("records"),
            },
        )

    enriched["unique_id"] = np.arange(1, len(enriched) + 1)
    enriched["winner"] = mark_winners(enriched)

    if players is not None:
        enriched = _join_player_metadata(enriched, players)

    return enriched.sort_values(
        ["final_score", "game_id", "contestant"],
        ascending=[False, True, True],
        kind="mergesort",
    ).reset_index(drop=True)
