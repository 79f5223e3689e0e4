"""The five static report charts plus an optional interactive progression page."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.ticker import MaxNLocator, PercentFormatter  # noqa: E402
import pandas as pd  # noqa: E402
import plotly.express as px  # noqa: E402
import seaborn as sns  # noqa: E402

from . import params  # noqa: E402
from .aggregations import daily_double_summary, season_leaderboard  # noqa: E402
from .pipeline import ReportTables  # noqa: E402

logger = logging.getLogger(__name__)

CHART_FILES = {
    "final_scores": "final_scores.png",
    "correct_rate": "correct_rate_vs_score.png",
    "score_progression": "score_progression.png",
    "win_streaks": "win_streaks.png",
    "daily_doubles": "daily_doubles.png",
}


def _new_axes():
    sns.set_theme(style=params.chart_style)
    fig, ax = plt.subplots(figsize=params.chart_figsize)
    return fig, ax


def _save(fig, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=params.chart_dpi)
    plt.close(fig)
    logger.info("Saved chart %s", path)
    return path


def _empty_note(ax, message: str) -> None:
    ax.text(0.5, 0.5, message, ha="center", va="center", transform=ax.transAxes)
    ax.set_xticks([])
    ax.set_yticks([])


def plot_final_scores(summary: pd.DataFrame, path: Path) -> Path:
    fig, ax = _new_axes()
    data = summary.assign(outcome=summary["winner"].map({True: "Winner", False: "Other"}))
    sns.histplot(
        data=data,
        x="final_score",
        hue="outcome",
        hue_order=["Winner", "Other"],
        multiple="stack",
        bins=15,
        ax=ax,
    )
    ax.axvline(0, color="grey", linewidth=1, linestyle="--")
    ax.set_title("Final scores across the season")
    ax.set_xlabel("Final score ($)")
    ax.set_ylabel("Contestant-games")
    return _save(fig, path)


def plot_correct_rate(summary: pd.DataFrame, path: Path) -> Path:
    fig, ax = _new_axes()
    data = summary.dropna(subset=["correct_rate"]).assign(
        outcome=lambda df: df["winner"].map({True: "Winner", False: "Other"})
    )
    if data.empty:
        _empty_note(ax, "No contestants answered any clues")
    else:
        sns.scatterplot(
            data=data,
            x="correct_rate",
            y="final_score",
            hue="outcome",
            hue_order=["Winner", "Other"],
            ax=ax,
        )
        ax.xaxis.set_major_formatter(PercentFormatter(1.0))
    ax.set_title("Correct-answer rate against final score")
    ax.set_xlabel("Correct-answer rate")
    ax.set_ylabel("Final score ($)")
    return _save(fig, path)


def plot_score_progression(clue_scores: pd.DataFrame, game_id, path: Path) -> Path:
    game = clue_scores[clue_scores["game_id"] == game_id]
    fig, ax = _new_axes()
    sns.lineplot(
        data=game, x="clue_index", y="cumulative_score", hue="contestant", marker="o", ax=ax
    )

    round_starts = game.groupby("round")["clue_index"].min().sort_index()
    for round_number, start in round_starts.items():
        if start == game["clue_index"].min():
            continue
        ax.axvline(start - 0.5, color="grey", linewidth=1, linestyle=":")
        ax.text(
            start - 0.4,
            ax.get_ylim()[1],
            params.round_labels.get(int(round_number), f"Round {round_number}"),
            va="top",
            fontsize=8,
        )

    doubles = game[game["daily_double"].fillna(False).astype(bool) & (game["score_delta"] != 0)]
    if not doubles.empty:
        ax.scatter(
            doubles["clue_index"],
            doubles["cumulative_score"],
            marker="*",
            s=200,
            color="gold",
            edgecolor="black",
            zorder=5,
            label="Daily Double",
        )
        ax.legend()

    ax.axhline(0, color="grey", linewidth=1)
    ax.set_title(f"Score progression, game {game_id}")
    ax.set_xlabel("Clue")
    ax.set_ylabel("Cumulative score ($)")
    return _save(fig, path)


def plot_win_streaks(leaderboard: pd.DataFrame, path: Path) -> Path:
    fig, ax = _new_axes()
    streakers = leaderboard[leaderboard["longest_streak"] > 0].sort_values(
        ["longest_streak", "wins"], ascending=False, kind="mergesort"
    )
    if streakers.empty:
        _empty_note(ax, "No winners recorded")
    else:
        labels = (
            streakers["contestant"].astype(str)
            + " "
            + streakers["last_name"].fillna("").astype(str)
        ).str.strip()
        sns.barplot(x=streakers["longest_streak"], y=labels, orient="h", color="steelblue", ax=ax)
        ax.xaxis.set_major_locator(MaxNLocator(integer=True))
    ax.set_title("Longest win streaks")
    ax.set_xlabel("Consecutive wins")
    ax.set_ylabel("")
    return _save(fig, path)


def plot_daily_doubles(clue_scores: pd.DataFrame, path: Path) -> Path:
    fig, ax = _new_axes()
    summary = daily_double_summary(clue_scores)
    if summary.empty:
        _empty_note(ax, "No daily doubles found")
    else:
        sns.barplot(data=summary, x="round_label", y="mean_delta", color="darkorange", ax=ax)
        for patch, (_, row) in zip(ax.patches, summary.iterrows()):
            ax.annotate(
                f"{row['correct']}/{row['attempts']} correct",
                (patch.get_x() + patch.get_width() / 2, patch.get_height()),
                ha="center",
                va="bottom",
                fontsize=8,
            )
    ax.axhline(0, color="grey", linewidth=1)
    ax.set_title("Average daily double result by round")
    ax.set_xlabel("")
    ax.set_ylabel("Mean score change ($)")
    return _save(fig, path)


def write_interactive_progression(clue_scores: pd.DataFrame, game_id, path: Path) -> Path:
    """Plotly version of the score progression chart as a standalone HTML page."""
    game = clue_scores[clue_scores["game_id"] == game_id]
    # plotly wants plain dtypes for hover values
    game = game.assign(
        round=game["round"].astype("float"),
        daily_double=game["daily_double"].astype(object),
    )
    fig = px.line(
        game,
        x="clue_index",
        y="cumulative_score",
        color="contestant",
        markers=True,
        hover_data=["round", "score_delta", "daily_double"],
        title=f"Score progression, game {game_id}",
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(str(path), include_plotlyjs="cdn")
    logger.info("Saved interactive chart %s", path)
    return path


def render_charts(
    tables: ReportTables,
    output_dir: Path,
    game_id,
    *,
    top_n: Optional[int] = None,
    interactive: bool = False,
) -> Dict[str, Path]:
    """Render every chart into ``output_dir``; returns chart name → file path."""
    output_dir = Path(output_dir)
    leaderboard = season_leaderboard(tables, top_n=top_n or params.top_n)

    charts = {
        "final_scores": plot_final_scores(
            tables.game_summary, output_dir / CHART_FILES["final_scores"]
        ),
        "correct_rate": plot_correct_rate(
            tables.game_summary, output_dir / CHART_FILES["correct_rate"]
        ),
        "score_progression": plot_score_progression(
            tables.clue_scores, game_id, output_dir / CHART_FILES["score_progression"]
        ),
        "win_streaks": plot_win_streaks(leaderboard, output_dir / CHART_FILES["win_streaks"]),
        "daily_doubles": plot_daily_doubles(
            tables.clue_scores, output_dir / CHART_FILES["daily_doubles"]
        ),
    }
    if interactive:
        charts["score_progression_html"] = write_interactive_progression(
            tables.clue_scores, game_id, output_dir / "score_progression.html"
        )
    return charts
