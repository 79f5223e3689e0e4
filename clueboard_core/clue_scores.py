"""Densify the per-clue score table and derive running totals and ranks."""

from __future__ import annotations

import logging

import pandas as pd

from .validation import register_data_issue

logger = logging.getLogger(__name__)

CLUE_KEY = ["game_id", "clue_index"]
ROW_KEY = ["game_id", "clue_index", "contestant"]
CLUE_ATTRIBUTES = ["round", "daily_double"]

COMPLETED_COLUMNS = [
    "game_id",
    "clue_index",
    "contestant",
    "round",
    "daily_double",
    "score_delta",
    "cumulative_score",
    "final_score",
    "rank",
]


def dense_index(scores: pd.DataFrame) -> pd.DataFrame:
    """Every (game, clue_index) paired with every contestant seen in that game."""
    clues = scores[CLUE_KEY].drop_duplicates()
    contestants = scores.loc[scores["contestant"].notna(), ["game_id", "contestant"]]
    return clues.merge(contestants.drop_duplicates(), on="game_id", how="inner")


def clue_attributes(scores: pd.DataFrame) -> pd.DataFrame:
    """First non-missing ``round`` and ``daily_double`` for each clue.

    Rows without a contestant still count here, since they only record the
    clue itself.
    """
    return scores.groupby(CLUE_KEY, sort=False)[CLUE_ATTRIBUTES].first().reset_index()


def _report_degenerate_clues(completed: pd.DataFrame) -> None:
    degenerate = completed.loc[
        completed[CLUE_ATTRIBUTES].isna().any(axis=1), CLUE_KEY
    ].drop_duplicates()
    if degenerate.empty:
        return
    register_data_issue(
        "clue_scores",
        "degenerate_clue",
        {"count": int(len(degenerate)), "clues": degenerate.to_dict("records")},
    )


def add_running_totals(completed: pd.DataFrame) -> pd.DataFrame:
    """Compute ``cumulative_score``, ``final_score`` and dense ``rank``.

    The running sum is taken over clue_index order within each
    (game, contestant), whatever order the rows arrive in.
    """
    out = completed.copy()
    ordered = out.sort_values(["game_id", "contestant", "clue_index"], kind="mergesort")
    out["cumulative_score"] = ordered.groupby(["game_id", "contestant"])["score_delta"].cumsum()

    ordered = out.loc[ordered.index]
    out["final_score"] = ordered.groupby(["game_id", "contestant"])[
        "cumulative_score"
    ].transform("last")
    out["rank"] = (
        out.groupby("game_id")["final_score"]
        .rank(method="dense", ascending=False)
        .astype(int)
    )
    return out


def complete_clue_scores(scores: pd.DataFrame) -> pd.DataFrame:
    """Turn sparse clue rows into one row per contestant per clue.

    Contestants who did not answer a clue get a ``score_delta`` of 0, and clue
    attributes are back-filled from whichever row carries them. Output is
    sorted by (game, clue_index, contestant).
    """
    answered = scores.loc[scores["contestant"].notna(), ROW_KEY + ["score_delta"]]

    completed = (
        dense_index(scores)
        .merge(answered, on=ROW_KEY, how="left", validate="one_to_one")
        .merge(clue_attributes(scores), on=CLUE_KEY, how="left", validate="many_to_one")
    )
    completed["score_delta"] = completed["score_delta"].fillna(0)
    completed["round"] = completed["round"].astype("Int64")
    completed["daily_double"] = completed["daily_double"].astype("boolean")
    _report_degenerate_clues(completed)

    completed = completed.sort_values(ROW_KEY, kind="mergesort").reset_index(drop=True)
    completed = add_running_totals(completed)

    games = completed["game_id"].nunique()
    logger.info(
        "Completed clue scores: %d sparse rows -> %d dense rows across %d games",
        len(scores),
        len(completed),
        games,
    )
    return completed[COMPLETED_COLUMNS]
