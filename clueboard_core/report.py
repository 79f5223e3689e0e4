"""Narrative commentary and the Markdown season report."""

from __future__ import annotations

import logging
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from . import params
from .aggregations import daily_double_summary, featured_game, lead_changes, season_leaderboard
from .charts import CHART_FILES, render_charts
from .pipeline import ReportTables

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportSection:
    title: str
    body: str
    chart: Optional[str] = None


def format_money(value) -> str:
    if pd.isna(value):
        return "n/a"
    amount = int(round(float(value)))
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,}"


def format_rate(value) -> str:
    if pd.isna(value):
        return "n/a"
    return f"{float(value):.0%}"


def _full_name(row) -> str:
    last = row.get("last_name")
    if pd.isna(last) or not str(last).strip():
        return str(row["contestant"])
    return f"{row['contestant']} {last}"


def _final_scores_text(summary: pd.DataFrame) -> str:
    winners = summary[summary["winner"]]
    negative = int((summary["final_score"] < 0).sum())
    top = summary.iloc[0]
    return textwrap.dedent(
        f"""\
        The season covers {summary['game_id'].nunique()} games and {len(summary)} contestant
        appearances. Winners finished with a median of {format_money(winners['final_score'].median())},
        against {format_money(summary.loc[~summary['winner'], 'final_score'].median())} for everyone
        else. The single best total was {format_money(top['final_score'])} by {_full_name(top)}
        in game {top['game_id']}. {negative} appearance(s) ended below zero."""
    )


def _correct_rate_text(summary: pd.DataFrame) -> str:
    rated = summary.dropna(subset=["correct_rate"])
    undefined = len(summary) - len(rated)
    if rated.empty:
        return "No contestant answered a clue, so no correct-answer rate can be shown."
    winner_rate = rated.loc[rated["winner"], "correct_rate"].mean()
    other_rate = rated.loc[~rated["winner"], "correct_rate"].mean()
    corr = rated["correct_rate"].corr(rated["final_score"]) if len(rated) > 2 else float("nan")
    text = (
        f"Winners answered {format_rate(winner_rate)} of their attempts correctly on average, "
        f"compared with {format_rate(other_rate)} for the rest of the field"
    )
    if pd.notna(corr):
        text += f" (correlation with final score: {corr:.2f})"
    text += "."
    if undefined:
        text += (
            f" {undefined} appearance(s) with no attempted clues have no rate and are "
            "left off the chart."
        )
    return text


def _progression_text(tables: ReportTables, game_id, leads: pd.DataFrame) -> str:
    game = tables.clue_scores[tables.clue_scores["game_id"] == game_id]
    finals = game.drop_duplicates("contestant").sort_values(
        ["rank", "contestant"], kind="mergesort"
    )
    leader = finals.iloc[0]
    row = leads[leads["game_id"] == game_id]
    changes = int(row["lead_changes"].iloc[0]) if not row.empty else 0
    margin = float(row["final_margin"].iloc[0]) if not row.empty else 0.0
    standings = ", ".join(
        f"{r.contestant} {format_money(r.final_score)}" for r in finals.itertuples()
    )
    return (
        f"Game {game_id} saw the lead change hands {changes} time(s) over "
        f"{game['clue_index'].nunique()} clues. {leader['contestant']} won by "
        f"{format_money(margin)}. Final standings: {standings}."
    )


def _streak_text(leaderboard: pd.DataFrame, streaks: pd.DataFrame) -> str:
    if streaks.empty:
        return "No game produced a winner."
    best = leaderboard.sort_values(
        ["longest_streak", "wins", "total_winnings"], ascending=False, kind="mergesort"
    ).iloc[0]
    repeat = int((leaderboard["wins"] > 1).sum())
    return (
        f"The longest run belonged to {_full_name(best)} with {best['longest_streak']} "
        f"consecutive win(s) and {format_money(best['total_winnings'])} in winnings. "
        f"{repeat} contestant(s) won more than one game this season."
    )


def _daily_double_text(summary: pd.DataFrame) -> str:
    if summary.empty:
        return "No daily doubles were found in the clue data."
    parts = [
        f"{row.round_label}: {row.correct} of {row.attempts} correct, "
        f"average swing {format_money(row.mean_delta)}"
        for row in summary.itertuples()
    ]
    return "Daily doubles by round. " + "; ".join(parts) + "."


def build_sections(
    tables: ReportTables,
    game_id,
    *,
    top_n: Optional[int] = None,
) -> List[ReportSection]:
    """Commentary for each chart, in report order."""
    leaderboard = season_leaderboard(tables, top_n=top_n or params.top_n)
    leads = lead_changes(tables.clue_scores)
    sections = [
        ReportSection(
            "Final scores", _final_scores_text(tables.game_summary), CHART_FILES["final_scores"]
        ),
        ReportSection(
            "Accuracy and scoring",
            _correct_rate_text(tables.game_summary),
            CHART_FILES["correct_rate"],
        ),
        ReportSection(
            f"Game {game_id} in detail",
            _progression_text(tables, game_id, leads),
            CHART_FILES["score_progression"],
        ),
        ReportSection(
            "Win streaks",
            _streak_text(leaderboard, tables.streaks),
            CHART_FILES["win_streaks"],
        ),
        ReportSection(
            "Daily doubles",
            _daily_double_text(daily_double_summary(tables.clue_scores)),
            CHART_FILES["daily_doubles"],
        ),
    ]
    sections.append(
        ReportSection("Leaderboard", leaderboard_markdown(leaderboard))
    )
    return sections


def leaderboard_markdown(leaderboard: pd.DataFrame) -> str:
    lines = [
        "| Contestant | Games | Wins | Winnings | Correct rate | Longest streak |",
        "|---|---:|---:|---:|---:|---:|",
    ]
    for _, row in leaderboard.iterrows():
        lines.append(
            f"| {_full_name(row)} | {row['games_played']} | {row['wins']} | "
            f"{format_money(row['total_winnings'])} | {format_rate(row['mean_correct_rate'])} | "
            f"{row['longest_streak']} |"
        )
    return "\n".join(lines)


def render_markdown(sections: List[ReportSection], title: str) -> str:
    blocks = [f"# {title}"]
    for section in sections:
        blocks.append(f"## {section.title}")
        if section.chart:
            blocks.append(f"![{section.title}]({section.chart})")
        blocks.append(section.body)
    return "\n\n".join(blocks) + "\n"


def write_report(
    tables: ReportTables,
    output_dir: Path,
    *,
    game_id=None,
    top_n: Optional[int] = None,
    interactive: bool = False,
    title: str = "Season report",
) -> Dict[str, Path]:
    """Render charts and ``report.md`` into ``output_dir``.

    Returns the written files keyed by name, with the report under ``"report"``.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    game_id = featured_game(tables, game_id if game_id is not None else params.featured_game)

    outputs = render_charts(tables, output_dir, game_id, top_n=top_n, interactive=interactive)
    sections = build_sections(tables, game_id, top_n=top_n)
    if interactive:
        sections[2] = ReportSection(
            sections[2].title,
            sections[2].body + " An interactive version is in "
            "[score_progression.html](score_progression.html).",
            sections[2].chart,
        )

    report_path = output_dir / "report.md"
    report_path.write_text(render_markdown(sections, title), encoding="utf-8")
    logger.info("Report written to %s", report_path)
    outputs["report"] = report_path
    return outputs
