import pandas as pd
import pytest

from clueboard_core import validation


@pytest.fixture(autouse=True)
def isolated_run_logs(tmp_path, monkeypatch):
    """Keep validation output out of the repo and start each test with no issues."""
    monkeypatch.setenv("CLUEBOARD_RUN_LOG_DIR", str(tmp_path / "run_logs"))
    validation.clear_validation_state()
    yield
    validation.clear_validation_state()


@pytest.fixture
def sparse_scores():
    return pd.DataFrame(
        [
            {"game_id": 101, "round": 1, "clue_index": 1, "contestant": "A", "score_delta": 200, "daily_double": False},
            {"game_id": 101, "round": 1, "clue_index": 2, "contestant": "B", "score_delta": 400, "daily_double": False},
            {"game_id": 101, "round": None, "clue_index": 2, "contestant": "C", "score_delta": -400, "daily_double": None},
            {"game_id": 101, "round": 2, "clue_index": 3, "contestant": "C", "score_delta": 1000, "daily_double": True},
            {"game_id": 102, "round": 1, "clue_index": 1, "contestant": "A", "score_delta": 600, "daily_double": False},
            {"game_id": 102, "round": 1, "clue_index": 2, "contestant": "D", "score_delta": 600, "daily_double": False},
        ]
    )


@pytest.fixture
def summary_rows():
    return pd.DataFrame(
        {
            "game_id": [101, 101, 101, 102, 102],
            "contestant": ["A", "B", "C", "A", "D"],
            "final_score": [200, 400, 600, 600, 600],
            "right": [1, 1, 2, 1, 0],
            "wrong": [0, 0, 1, 0, 0],
        }
    )


@pytest.fixture
def player_rows():
    return pd.DataFrame(
        {
            "game_id": [101, 101, 101, 102, 102],
            "first_name": ["A", "B", "C", "A", "D"],
            "last_name": ["Anders", "Baker", "Cole", "Anders", "Diaz"],
            "hometown": ["Reno", "Provo", "Ames", "Reno", "Waco"],
            "occupation": ["Chef", "Pilot", "Nurse", "Chef", "Actor"],
        }
    )
