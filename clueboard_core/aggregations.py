"""Season-level aggregates consumed by the charts and the narrative."""

from __future__ import annotations

import logging
from typing import Dict, Optional

import duckdb
import pandas as pd

from . import params
from .pipeline import ReportTables

logger = logging.getLogger(__name__)

LEADERBOARD_SQL = """
WITH games AS (
    SELECT
        COALESCE(contestant_id, 'name:' || contestant) AS contestant_key,
        contestant,
        last_name,
        game_id,
        final_score,
        correct_rate,
        winner
    FROM summary
),
streaks AS (
    SELECT
        contestant_id AS contestant_key,
        MAX(streak) AS longest_streak
    FROM players
    GROUP BY 1
)
SELECT
    g.contestant_key,
    MIN(g.contestant) AS contestant,
    MIN(g.last_name) AS last_name,
    COUNT(*) AS games_played,
    SUM(CASE WHEN g.winner THEN 1 ELSE 0 END) AS wins,
    SUM(CASE WHEN g.winner THEN g.final_score ELSE 0 END) AS total_winnings,
    AVG(CASE WHEN isnan(g.correct_rate) THEN NULL ELSE g.correct_rate END) AS mean_correct_rate,
    COALESCE(MAX(s.longest_streak), 0) AS longest_streak
FROM games AS g
LEFT JOIN streaks AS s
    ON g.contestant_key = s.contestant_key
GROUP BY g.contestant_key
ORDER BY wins DESC, total_winnings DESC, g.contestant_key
"""


def _duckdb_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Text columns as plain objects with None for missing values."""
    out = df.copy()
    for column in out.columns:
        series = out[column]
        if pd.api.types.is_string_dtype(series) or series.dtype == object:
            out[column] = series.astype(object).where(series.notna(), None)
    return out


def duckdb_query(sql: str, frames: Dict[str, pd.DataFrame]) -> pd.DataFrame:
    """Run ``sql`` against in-memory frames registered under the given names."""
    con = duckdb.connect()
    try:
        for name, frame in frames.items():
            con.register(name, _duckdb_frame(frame))
        return con.execute(sql).fetch_df()
    finally:
        con.close()


def season_leaderboard(tables: ReportTables, top_n: Optional[int] = None) -> pd.DataFrame:
    """Games, wins, winnings, mean correct rate and longest streak per contestant."""
    summary = tables.game_summary[
        ["game_id", "contestant", "last_name", "contestant_id", "final_score", "correct_rate", "winner"]
    ]
    winners = tables.players["streak"].notna()
    players = tables.players.loc[winners, ["contestant_id", "streak"]].astype({"streak": int})
    board = duckdb_query(LEADERBOARD_SQL, {"summary": summary, "players": players})
    for column in ("games_played", "wins", "longest_streak"):
        board[column] = board[column].astype(int)
    board["total_winnings"] = board["total_winnings"].astype(float)
    if top_n is not None:
        board = board.head(top_n)
    return board.reset_index(drop=True)


def daily_double_summary(clue_scores: pd.DataFrame) -> pd.DataFrame:
    """Daily double attempts per round.

    Only the contestant who found the daily double has a non-zero delta, so
    zero rows are the other contestants and are left out.
    """
    attempts = clue_scores[
        clue_scores["daily_double"].fillna(False).astype(bool) & (clue_scores["score_delta"] != 0)
    ]
    if attempts.empty:
        return pd.DataFrame(
            columns=["round", "round_label", "attempts", "correct", "mean_delta"]
        )

    summary = (
        attempts.assign(correct=attempts["score_delta"] > 0)
        .groupby("round")
        .agg(
            attempts=("score_delta", "size"),
            correct=("correct", "sum"),
            mean_delta=("score_delta", "mean"),
        )
        .reset_index()
    )
    summary["round"] = summary["round"].astype(int)
    summary["round_label"] = summary["round"].map(
        lambda r: params.round_labels.get(r, f"Round {r}")
    )
    summary["correct"] = summary["correct"].astype(int)
    return summary[["round", "round_label", "attempts", "correct", "mean_delta"]]


def lead_changes(clue_scores: pd.DataFrame) -> pd.DataFrame:
    """Count how often the outright leader changed hands in each game.

    Clues after which two or more contestants share the lead are skipped, so
    a tie does not count as a change.
    """
    rows = []
    for game_id, game in clue_scores.groupby("game_id", sort=True):
        board = game.pivot(
            index="clue_index", columns="contestant", values="cumulative_score"
        ).sort_index()
        top = board.max(axis=1)
        sole_leader = board.eq(top, axis=0).sum(axis=1) == 1
        leaders = board[sole_leader].idxmax(axis=1).to_numpy(dtype=object)
        changes = int((leaders[1:] != leaders[:-1]).sum())
        rows.append(
            {
                "game_id": game_id,
                "lead_changes": changes,
                "final_margin": _final_margin(board.iloc[-1]),
            }
        )
    return pd.DataFrame(rows, columns=["game_id", "lead_changes", "final_margin"])


def _final_margin(final_row: pd.Series) -> float:
    scores = final_row.sort_values(ascending=False)
    if len(scores) < 2:
        return float(scores.iloc[0]) if len(scores) else 0.0
    return float(scores.iloc[0] - scores.iloc[1])


def featured_game(tables: ReportTables, preferred=None):
    """The game to chart in detail.

    Uses ``preferred`` when it is part of the season. Otherwise picks the game
    with the most lead changes, and the earliest such game on a tie.
    """
    games = set(tables.clue_scores["game_id"].unique())
    if preferred is not None:
        if preferred in games:
            return preferred
        logger.warning("Featured game %s not in season; choosing one instead", preferred)

    leads = lead_changes(tables.clue_scores).merge(tables.game_order, on="game_id")
    if leads.empty:
        raise ValueError("No games with clue scores to feature")
    ranked = leads.sort_values(
        ["lead_changes", "game_seq"], ascending=[False, True], kind="mergesort"
    )
    return ranked["game_id"].iloc[0]
