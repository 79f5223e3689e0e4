"""Per-game winners and consecutive-win streaks."""

from __future__ import annotations

import logging

import pandas as pd

from .validation import register_data_issue

logger = logging.getLogger(__name__)

STREAK_COLUMNS = ["game_id", "contestant", "contestant_key", "game_seq", "final_score", "streak"]


def game_winners(completed: pd.DataFrame) -> pd.DataFrame:
    """One row per game: the rank-1 contestant.

    When several contestants share rank 1 the one whose name sorts first wins.
    """
    finals = completed.drop_duplicates(["game_id", "contestant"])
    leaders = finals.loc[finals["rank"] == 1, ["game_id", "contestant", "final_score"]]
    return (
        leaders.sort_values(["game_id", "contestant"], kind="mergesort")
        .drop_duplicates("game_id")
        .reset_index(drop=True)
    )


def streak_lengths(wins: pd.DataFrame, key: str = "contestant_key") -> pd.Series:
    """Consecutive-win count at each win, indexed like ``wins``.

    A win extends the streak only when it comes in the game right after the
    contestant's previous win (by ``game_seq``). Anything else starts a new
    run at 1.
    """
    ordered = wins.sort_values([key, "game_seq"], kind="mergesort")
    new_run = ordered.groupby(key)["game_seq"].diff().ne(1)
    run_id = new_run.cumsum()
    return ordered.groupby(run_id).cumcount().add(1).reindex(wins.index)


def _streak_keys(winners: pd.DataFrame, players: pd.DataFrame) -> pd.Series:
    if "contestant_id" not in players.columns:
        ids = pd.Series(pd.NA, index=winners.index, dtype="object")
    else:
        lookup = players[["game_id", "first_name", "contestant_id"]].rename(
            columns={"first_name": "contestant"}
        )
        ids = winners[["game_id", "contestant"]].merge(
            lookup, on=["game_id", "contestant"], how="left", validate="one_to_one"
        )["contestant_id"]
        ids.index = winners.index
    ids = ids.astype("object")

    unmatched = ids.isna()
    if unmatched.any():
        # A win without a players row takes the id the same first name carries
        # in its nearest earlier won game, else its nearest later one.
        ordered = winners.sort_values("game_seq", kind="mergesort").index
        names = winners.loc[ordered, "contestant"].astype(str)
        by_game = ids.loc[ordered]
        borrowed = by_game.groupby(names).ffill().fillna(by_game.groupby(names).bfill())
        ids = ids.fillna(borrowed.reindex(winners.index))
        register_data_issue(
            "clue_scores",
            "streak_key_fallback",
            {
                "count": int(unmatched.sum()),
                "borrowed": int((unmatched & ids.notna()).sum()),
                "rows": winners.loc[unmatched, ["game_id", "contestant"]].to_dict("records"),
            },
        )

    fallback = ids.isna()
    by_name = "name:" + winners["contestant"].astype(str)
    return ids.astype("object").where(~fallback, by_name)


def compute_win_streaks(
    completed: pd.DataFrame, order: pd.DataFrame, players: pd.DataFrame
) -> pd.DataFrame:
    """Return one row per game winner with the streak ending at that game.

    ``order`` maps ``game_id`` to ``game_seq`` (see ``episodes.game_order``).
    Winners are keyed by ``contestant_id`` when the player table knows them,
    and by first name only when no won game of that first name has an id.
    """
    winners = game_winners(completed).merge(order, on="game_id", how="left")
    unordered = winners["game_seq"].isna()
    if unordered.any():
        raise ValueError(
            f"Games missing from the game order: {winners.loc[unordered, 'game_id'].tolist()}"
        )

    winners["contestant_key"] = _streak_keys(winners, players)
    winners["streak"] = streak_lengths(winners).astype(int)
    logger.info(
        "Computed streaks for %d winners (longest %d)",
        winners["contestant_key"].nunique(),
        int(winners["streak"].max()) if not winners.empty else 0,
    )
    return winners.sort_values("game_seq", kind="mergesort").reset_index(drop=True)[
        STREAK_COLUMNS
    ]


def attach_streaks(players: pd.DataFrame, streaks: pd.DataFrame) -> pd.DataFrame:
    """Join ``winner`` and ``streak`` onto the player table.

    Players who did not win a game get ``winner=False`` and a missing streak,
    not 0.
    """
    won = streaks[["game_id", "contestant", "streak"]].rename(
        columns={"contestant": "first_name"}
    )
    out = players.merge(won, on=["game_id", "first_name"], how="left", validate="one_to_one")
    out.index = players.index
    out["winner"] = out["streak"].notna()
    out["streak"] = out["streak"].astype("Int64")
    return out[[*players.columns, "winner", "streak"]]
