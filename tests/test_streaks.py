"""Tests for game winners and win streaks."""

import pandas as pd

from clueboard_core import validation
from clueboard_core.clue_scores import complete_clue_scores
from clueboard_core.episodes import game_order
from clueboard_core.identity import assign_contestant_ids
from clueboard_core.streaks import (
    attach_streaks,
    compute_win_streaks,
    game_winners,
    streak_lengths,
)


def _final_jeopardy(results):
    """One clue per game; ``results`` maps game_id -> {contestant: score}."""
    rows = []
    for game_id, scores in results.items():
        for contestant, score in scores.items():
            rows.append(
                {
                    "game_id": game_id,
                    "round": 3,
                    "clue_index": 1,
                    "contestant": contestant,
                    "score_delta": score,
                    "daily_double": False,
                }
            )
    return complete_clue_scores(pd.DataFrame(rows))


def _players(results, last_names=None):
    last_names = last_names or {}
    rows = [
        {"game_id": game_id, "first_name": name, "last_name": last_names.get(name, "Smith")}
        for game_id, scores in results.items()
        for name in scores
    ]
    return pd.DataFrame(rows)


def _episodes(game_ids):
    return pd.DataFrame(
        {
            "game_id": game_ids,
            "episode_number": range(1, len(game_ids) + 1),
            "air_date": pd.date_range("2024-01-01", periods=len(game_ids)),
        }
    )


def _run(results, episodes=None, last_names=None):
    completed = _final_jeopardy(results)
    order = game_order(
        episodes if episodes is not None else _episodes(list(results)), list(results)
    )
    players = assign_contestant_ids(_players(results, last_names), order)
    streaks = compute_win_streaks(completed, order, players)
    return streaks, attach_streaks(players, streaks)


def test_three_wins_then_a_loss():
    results = {
        5: {"A": 3000, "B": 100},
        6: {"A": 2000, "C": 500},
        7: {"A": 4000, "D": 0},
        8: {"A": 100, "E": 9000},
    }
    streaks, players = _run(results)

    a_rows = players[players["first_name"] == "A"].set_index("game_id")
    assert a_rows.loc[[5, 6, 7], "streak"].tolist() == [1, 2, 3]
    assert pd.isna(a_rows.loc[8, "streak"])
    assert not a_rows.loc[8, "winner"]
    assert streaks.set_index("game_id").loc[8, "contestant"] == "E"


def test_losers_have_missing_streak_not_zero():
    results = {1: {"A": 500, "B": 100}}
    _, players = _run(results)

    b_row = players[players["first_name"] == "B"].iloc[0]
    assert pd.isna(b_row["streak"])
    assert str(players["streak"].dtype) == "Int64"


def test_gap_restarts_the_count():
    # A wins 1 and 2, sits out 3, wins 4
    results = {
        1: {"A": 500, "B": 100},
        2: {"A": 500, "C": 100},
        3: {"D": 500, "E": 100},
        4: {"A": 500, "F": 100},
    }
    streaks, _ = _run(results)
    a_streaks = streaks[streaks["contestant"] == "A"]["streak"].tolist()
    assert a_streaks == [1, 2, 1]


def test_chronological_order_comes_from_episodes():
    # game ids run backwards relative to broadcast order
    results = {
        30: {"A": 500, "B": 100},
        20: {"A": 500, "C": 100},
        10: {"A": 500, "D": 100},
    }
    episodes = _episodes([30, 20, 10])
    streaks, _ = _run(results, episodes=episodes)
    assert streaks[["game_id", "streak"]].values.tolist() == [[30, 1], [20, 2], [10, 3]]


def test_same_first_name_different_people_do_not_share_a_streak():
    results = {
        1: {"Sam": 500, "B": 100},
        2: {"Sam": 700, "C": 100},
    }
    players = pd.DataFrame(
        {
            "game_id": [1, 1, 2, 2],
            "first_name": ["Sam", "B", "Sam", "C"],
            "last_name": ["Reyes", "Ng", "Okafor", "Lu"],
        }
    )
    completed = _final_jeopardy(results)
    order = game_order(_episodes([1, 2]), [1, 2])
    players = assign_contestant_ids(players, order)

    streaks = compute_win_streaks(completed, order, players)
    assert streaks["streak"].tolist() == [1, 1]
    assert streaks["contestant_key"].nunique() == 2


def test_tie_for_first_goes_to_first_name_in_order():
    completed = _final_jeopardy({1: {"Zed": 800, "Amy": 800, "Bo": 100}})
    winners = game_winners(completed)
    assert winners["contestant"].tolist() == ["Amy"]


def test_unknown_player_falls_back_to_first_name():
    results = {1: {"A": 500, "B": 100}, 2: {"A": 500, "C": 100}}
    completed = _final_jeopardy(results)
    order = game_order(_episodes([1, 2]), [1, 2])
    players = assign_contestant_ids(
        pd.DataFrame({"game_id": [1, 2], "first_name": ["B", "C"], "last_name": ["X", "Y"]}),
        order,
    )

    streaks = compute_win_streaks(completed, order, players)
    assert streaks["contestant_key"].tolist() == ["name:A", "name:A"]
    assert streaks["streak"].tolist() == [1, 2]
    issue_types = [issue["issue_type"] for issue in validation.issues_for("clue_scores")]
    assert issue_types == ["streak_key_fallback"]


def test_streak_lengths_fold():
    wins = pd.DataFrame(
        {
            "contestant_key": ["a", "a", "a", "b", "a"],
            "game_seq": [1, 2, 3, 4, 6],
        }
    )
    assert streak_lengths(wins).tolist() == [1, 2, 3, 1, 1]


def test_game_without_episode_goes_last_and_is_reported():
    episodes = _episodes([2, 1])
    order = game_order(episodes, [1, 2, 3])
    assert order["game_id"].tolist() == [2, 1, 3]
    assert order["game_seq"].tolist() == [1, 2, 3]
    issues = validation.issues_for("episodes")
    assert issues[0]["issue_type"] == "missing_episode"
    assert issues[0]["details"]["games"] == [3]


def test_missing_player_row_does_not_split_a_streak():
    results = {
        1: {"A": 500, "B": 100},
        2: {"A": 500, "C": 100},
        3: {"A": 500, "D": 100},
    }
    completed = _final_jeopardy(results)
    order = game_order(_episodes([1, 2, 3]), [1, 2, 3])
    roster = _players(results, {"A": "Archer"})
    roster = roster[~((roster["game_id"] == 2) & (roster["first_name"] == "A"))]
    players = assign_contestant_ids(roster, order)

    streaks = compute_win_streaks(completed, order, players)

    assert streaks["streak"].tolist() == [1, 2, 3]
    assert streaks["contestant_key"].nunique() == 1
    assert not streaks["contestant_key"].str.startswith("name:").any()
    issue = validation.issues_for("clue_scores")[0]
    assert issue["issue_type"] == "streak_key_fallback"
    assert issue["details"]["borrowed"] == 1
