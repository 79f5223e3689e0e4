"""Tests for the game summary enrichment."""

import numpy as np
import pandas as pd
import pytest

from clueboard_core import validation
from clueboard_core.enrich import correct_rate, enrich_game_summary, mark_winners


def test_correct_rate_is_nan_when_nothing_answered():
    rates = correct_rate(pd.Series([3, 0, 0]), pd.Series([1, 2, 0]))
    assert rates.iloc[0] == pytest.approx(0.75)
    assert rates.iloc[1] == 0
    assert np.isnan(rates.iloc[2])


def test_undefined_correct_rate_is_registered(summary_rows):
    enriched = enrich_game_summary(summary_rows)

    d_row = enriched[enriched["contestant"] == "D"].iloc[0]
    assert np.isnan(d_row["correct_rate"])
    issues = validation.issues_for("game_summary")
    assert [issue["issue_type"] for issue in issues] == ["undefined_correct_rate"]
    assert issues[0]["details"]["count"] == 1


def test_one_winner_per_game_with_name_tie_break(summary_rows):
    enriched = enrich_game_summary(summary_rows)
    winners = enriched[enriched["winner"]].set_index("game_id")["contestant"]
    assert winners.to_dict() == {101: "C", 102: "A"}


def test_mark_winners_ignores_row_order(summary_rows):
    shuffled = summary_rows.iloc[::-1]
    flags = mark_winners(shuffled)
    assert shuffled.loc[flags, "contestant"].tolist() == ["A", "C"]


def test_unique_id_follows_input_order(summary_rows):
    enriched = enrich_game_summary(summary_rows)
    by_id = enriched.sort_values("unique_id")
    assert by_id["unique_id"].tolist() == [1, 2, 3, 4, 5]
    assert by_id["contestant"].tolist() == summary_rows["contestant"].tolist()


def test_sorted_by_final_score_descending(summary_rows):
    enriched = enrich_game_summary(summary_rows)
    assert enriched["final_score"].is_monotonic_decreasing
    # ties stay in game then contestant order
    assert enriched["contestant"].tolist()[:3] == ["C", "A", "D"]


def test_player_metadata_left_join(summary_rows, player_rows):
    players = player_rows[player_rows["first_name"] != "B"]
    enriched = enrich_game_summary(summary_rows, players)

    assert len(enriched) == len(summary_rows)
    b_row = enriched[enriched["contestant"] == "B"].iloc[0]
    assert pd.isna(b_row["last_name"])
    assert pd.isna(b_row["hometown"])
    c_row = enriched[enriched["contestant"] == "C"].iloc[0]
    assert c_row["last_name"] == "Cole"

    issue_types = [issue["issue_type"] for issue in validation.issues_for("game_summary")]
    assert "unmatched_player_metadata" in issue_types


def test_player_rows_without_summary_are_reported(summary_rows, player_rows):
    extra = pd.DataFrame(
        [{"game_id": 103, "first_name": "E", "last_name": "Eng", "hometown": "Troy", "occupation": "Poet"}]
    )
    enrich_game_summary(summary_rows, pd.concat([player_rows, extra], ignore_index=True))

    issues = validation.issues_for("players")
    assert [issue["issue_type"] for issue in issues] == ["unmatched_summary_rows"]
    assert issues[0]["details"]["rows"] == [{"game_id": 103, "first_name": "E"}]


def test_metadata_columns_always_present(summary_rows):
    players = pd.DataFrame(
        {"game_id": [101], "first_name": ["A"], "last_name": ["Anders"]}
    )
    enriched = enrich_game_summary(summary_rows, players)
    for column in ("first_name", "last_name", "hometown", "occupation", "contestant_id"):
        assert column in enriched.columns


def test_negative_final_scores_can_win():
    summary = pd.DataFrame(
        {
            "game_id": [9, 9],
            "contestant": ["A", "B"],
            "final_score": [-200, -1000],
            "right": [2, 1],
            "wrong": [3, 4],
        }
    )
    enriched = enrich_game_summary(summary)
    assert enriched.loc[enriched["winner"], "contestant"].tolist() == ["A"]


def test_input_is_not_modified(summary_rows, player_rows):
    before = summary_rows.copy()
    enrich_game_summary(summary_rows, player_rows)
    pd.testing.assert_frame_equal(summary_rows, before)
