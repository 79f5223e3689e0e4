"""Load the four season tables from a local directory or a remote base URL."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd
import requests

from . import params
from .validation import register_data_issue, validate_dataset

logger = logging.getLogger(__name__)

NUMERIC_COLUMNS: Dict[str, Iterable[str]] = {
    "game_summary": ("final_score", "right", "wrong"),
    "clue_scores": ("round", "clue_index", "score_delta"),
    "players": (),
    "episodes": ("episode_number",),
}

TEXT_COLUMNS: Dict[str, Iterable[str]] = {
    "game_summary": ("contestant",),
    "clue_scores": ("contestant",),
    "players": ("first_name", "last_name", "hometown", "occupation"),
    "episodes": ("title",),
}

_TRUE_VALUES = {"true", "t", "yes", "y", "1", "1.0"}
_FALSE_VALUES = {"false", "f", "no", "n", "0", "0.0"}


class SchemaMismatchError(RuntimeError):
    """Raised when a loaded table lacks columns the pipeline relies on."""


class EmptyDatasetError(ValueError):
    """Raised when a loaded table has no rows."""


@dataclass(frozen=True)
class SeasonTables:
    """The four raw tables of one season."""

    game_summary: pd.DataFrame
    clue_scores: pd.DataFrame
    players: pd.DataFrame
    episodes: pd.DataFrame


def _download_csv(
    file_name: str, base_url: str, cache_dir: Path, force_refresh: bool = False
) -> Path:
    """Download a season CSV, caching the result on disk."""
    local_path = cache_dir / file_name
    if local_path.exists() and not force_refresh:
        logger.debug("Using cached %s", local_path)
        return local_path

    url = f"{base_url.rstrip('/')}/{file_name}"
    logger.info("Downloading %s from %s", file_name, url)

    response = requests.get(url, timeout=60)
    if response.status_code != requests.codes.ok:
        raise RuntimeError(
            f"Failed to download '{file_name}' from {url}. "
            f"HTTP status: {response.status_code}"
        )

    content_type = response.headers.get("Content-Type", "").lower()
    if "html" in content_type:
        raise RuntimeError(
            f"Expected CSV content for '{file_name}', "
            f"but received Content-Type '{content_type}'"
        )

    cache_dir.mkdir(parents=True, exist_ok=True)
    local_path.write_bytes(response.content)
    logger.info("Saved %s to %s", file_name, local_path)
    return local_path


def _to_boolean(value):
    if pd.isna(value):
        return pd.NA
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    if not text:
        return pd.NA
    raise ValueError(f"Cannot interpret {value!r} as a daily double flag")


def _coerce_numeric(dataset_name: str, df: pd.DataFrame, column: str) -> None:
    before = df[column].isna()
    df[column] = pd.to_numeric(df[column], errors="coerce")
    introduced = df[column].isna() & ~before
    if introduced.any():
        register_data_issue(
            dataset_name,
            "value_coercion",
            {"column": column, "count": int(introduced.sum())},
        )


def _coerce_columns(dataset_name: str, df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    for column in NUMERIC_COLUMNS.get(dataset_name, ()):
        _coerce_numeric(dataset_name, df, column)

    for column in TEXT_COLUMNS.get(dataset_name, ()):
        if column in df.columns:
            df[column] = df[column].astype("string").str.strip().replace("", pd.NA)

    if dataset_name == "clue_scores":
        df["daily_double"] = df["daily_double"].map(_to_boolean).astype("boolean")
    if dataset_name == "episodes":
        df["air_date"] = pd.to_datetime(df["air_date"], errors="coerce")
    return df


def _check_schema(dataset_name: str, df: pd.DataFrame, source: str) -> None:
    config = params.dataset_config[dataset_name]
    missing = [col for col in config["required_columns"] if col not in df.columns]
    if missing:
        raise SchemaMismatchError(
            f"Dataset '{dataset_name}' from {source} is missing columns {missing}"
        )
    if df.empty:
        raise EmptyDatasetError(f"Dataset '{dataset_name}' from {source} has no rows")


def load_dataset(
    dataset_name: str,
    data_dir: Optional[Path] = None,
    base_url: Optional[str] = None,
    *,
    force_refresh: bool = False,
) -> pd.DataFrame:
    """
    Load one season table into a DataFrame with the expected dtypes.

    Parameters
    ----------
    dataset_name:
        One of ``game_summary``, ``clue_scores``, ``players``, ``episodes``.
    data_dir:
        Directory holding the CSV files. Ignored when ``base_url`` is given.
    base_url:
        Optional URL prefix serving the same files; downloads are cached in
        ``params.cache_dir``.
    force_refresh:
        When True, bypass the local cache and re-download the file.
    """
    if dataset_name not in params.dataset_config:
        raise ValueError(
            f"Unknown dataset '{dataset_name}'. "
            f"Expected one of {sorted(params.dataset_config)}."
        )
    file_name = params.dataset_config[dataset_name]["file_name"]

    if base_url:
        path = _download_csv(file_name, base_url, params.cache_dir, force_refresh)
    else:
        path = Path(data_dir or params.data_dir) / file_name
        if not path.exists():
            raise FileNotFoundError(f"Dataset file {path} not found.")

    df = pd.read_csv(path)
    _check_schema(dataset_name, df, str(path))
    df = _coerce_columns(dataset_name, df)
    logger.info("Loaded %s: %d rows from %s", dataset_name, len(df), path)
    return df


def load_season(
    data_dir: Optional[Path] = None,
    base_url: Optional[str] = None,
    *,
    force_refresh: bool = False,
) -> SeasonTables:
    """Load and validate all four tables, failing fast on the first bad one."""
    frames = {}
    for entry in params.dataset_order:
        dataset_name = entry["dataset"]
        df = load_dataset(
            dataset_name, data_dir, base_url, force_refresh=force_refresh
        )
        validate_dataset(dataset_name, df, entry.get("checks", []))
        frames[dataset_name] = df
    return SeasonTables(**frames)


def load_sample_season() -> SeasonTables:
    """Load the small season bundled with the package."""
    return load_season(params.SAMPLE_DATA_DIR)
