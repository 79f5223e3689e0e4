"""Tests for charts, the Markdown report and the command line entry point."""

import json
import logging
import sys
from datetime import datetime

import pytest

from clueboard_core import load_sample_season, run_pipeline
from clueboard_core.charts import CHART_FILES
from clueboard_core.cli import build_report
from clueboard_core.log_utils import new_run_label, run_log_filename, setup_logging
from clueboard_core.report import build_sections, format_money, format_rate, write_report


@pytest.fixture
def tables():
    return run_pipeline(load_sample_season())


def test_format_helpers():
    assert format_money(12400) == "$12,400"
    assert format_money(-1200.0) == "-$1,200"
    assert format_money(float("nan")) == "n/a"
    assert format_rate(0.75) == "75%"


def test_sections_follow_chart_order(tables):
    sections = build_sections(tables, 101)
    assert [section.chart for section in sections[:5]] == list(CHART_FILES.values())
    assert "Amy Schneider" in sections[3].body
    assert "3 consecutive win(s)" in sections[3].body
    assert sections[-1].title == "Leaderboard"
    assert sections[-1].body.startswith("| Contestant |")


def test_write_report(tmp_path, tables):
    outputs = write_report(tables, tmp_path / "out")

    for name, file_name in CHART_FILES.items():
        assert outputs[name].name == file_name
        assert outputs[name].stat().st_size > 0

    text = outputs["report"].read_text(encoding="utf-8")
    for file_name in CHART_FILES.values():
        assert f"({file_name})" in text
    assert "Game 101 in detail" in text
    assert "score_progression.html" not in text


def test_interactive_page(tmp_path, tables):
    outputs = write_report(tables, tmp_path / "out", game_id=103, interactive=True)

    assert outputs["score_progression_html"].exists()
    text = outputs["report"].read_text(encoding="utf-8")
    assert "Game 103 in detail" in text
    assert "score_progression.html" in text


def test_cli_builds_sample_report(tmp_path, monkeypatch):
    # setup_logging swaps the excepthook and root handlers; put them back afterwards
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", list(root.handlers))
    monkeypatch.setattr(root, "level", root.level)

    report_path = build_report(
        ["--sample", "--output-dir", str(tmp_path / "out"), "--top-n", "5"]
    )

    assert report_path.exists()
    assert report_path.parent == tmp_path / "out"

    quality = tmp_path / "run_logs" / "validation" / "data_quality_report.json"
    report = json.loads(quality.read_text())
    assert set(report["datasets"]) == {"game_summary", "clue_scores", "players", "episodes"}
    assert "undefined_correct_rate" in report["data_issues"]
    assert (tmp_path / "run_logs" / f"clueboard_{report['run_label']}.log").exists()


def test_leaderboard_section_respects_top_n(tables):
    sections = build_sections(tables, 101, top_n=2)
    rows = sections[-1].body.splitlines()[2:]
    assert len(rows) == 2
    assert rows[0].startswith("| Amy Schneider |")


def test_run_log_file_is_named_after_the_run(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", list(root.handlers))
    monkeypatch.setattr(root, "level", root.level)

    label = new_run_label(datetime(2024, 9, 9, 18, 30))
    log_path = setup_logging(logging.INFO, run_label=label)
    logging.getLogger("clueboard_core.test").info("hello")
    for handler in root.handlers:
        handler.flush()

    assert label == "20240909T183000"
    assert log_path == tmp_path / "run_logs" / "clueboard_20240909T183000.log"
    assert "run=20240909T183000 - clueboard_core.test - INFO - hello" in log_path.read_text()
    assert run_log_filename("out/../x y") == "clueboard_out_.._x_y.log"
    assert run_log_filename(None) == "clueboard.log"
