"""Synthetic contestant identifiers.

First names alone collide across games, so every player row gets a
``contestant_id`` hashed from first name, last name and debut game. A returning
champion keeps the same id for every game they play.
"""

from __future__ import annotations

import hashlib

import pandas as pd


def contestant_hash(first_name: str, last_name: str, debut_game) -> str:
    raw = f"{first_name}|{last_name}|{debut_game}".lower()
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:12]


def assign_contestant_ids(players: pd.DataFrame, order: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of ``players`` with a ``contestant_id`` column."""
    out = players.copy()
    seq = out["game_id"].map(order.set_index("game_id")["game_seq"])
    names = pd.DataFrame(
        {
            "first_name": out["first_name"].fillna("").astype(str),
            "last_name": out["last_name"].fillna("").astype(str),
            "game_id": out["game_id"],
            "game_seq": seq,
        },
        index=out.index,
    )

    debut_rows = (
        names.sort_values(["game_seq", "game_id"], kind="mergesort")
        .drop_duplicates(["first_name", "last_name"])
        .set_index(["first_name", "last_name"])["game_id"]
    )
    debut = pd.Series(
        [debut_rows[(first, last)] for first, last in zip(names["first_name"], names["last_name"])],
        index=out.index,
    )

    out["contestant_id"] = [
        contestant_hash(first, last, game)
        for first, last, game in zip(names["first_name"], names["last_name"], debut)
    ]
    return out
