"""Rule checks for the raw season tables and the run's data issue registry."""

from __future__ import annotations

import json
import logging
import re
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from . import params
from .log_utils import get_run_log_dir

logger = logging.getLogger(__name__)

CHECK_PATTERN = re.compile(
    r"^(?P<metric>missing_count|duplicate_count)\((?P<columns>[^)]+)\)\s*=\s*(?P<expected>-?\d+)$"
)

ISSUE_LABELS: Dict[str, str] = {
    "undefined_correct_rate": "Contestants with no answered clues (correct rate left undefined)",
    "unmatched_player_metadata": "Summary rows without a matching player row",
    "unmatched_summary_rows": "Player rows without a matching summary row",
    "degenerate_clue": "Clues with no row carrying round or daily double",
    "missing_episode": "Games without episode metadata",
    "streak_key_fallback": "Winners keyed by first name only",
    "value_coercion": "Values coerced to match schema types",
}

# Detail lists in the report are truncated past this many entries.
ISSUE_DETAIL_LIMIT = 50

VALIDATION_SUMMARIES: Dict[str, Dict[str, Any]] = {}
DATA_ISSUES: List[Dict[str, Any]] = []


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def validation_dir() -> Path:
    return get_run_log_dir() / "validation"


def register_data_issue(dataset: str, issue_type: str, details: Dict[str, Any]) -> None:
    """Record a recoverable anomaly found while wrangling a dataset."""
    DATA_ISSUES.append(
        {
            "dataset": dataset,
            "issue_type": issue_type,
            "details": details,
            "timestamp": _timestamp(),
        }
    )
    logger.warning(
        "%s: %s (%s)",
        dataset,
        ISSUE_LABELS.get(issue_type, issue_type),
        details.get("count", "n/a"),
    )


def issues_for(dataset: Optional[str] = None) -> List[Dict[str, Any]]:
    if dataset is None:
        return list(DATA_ISSUES)
    return [issue for issue in DATA_ISSUES if issue["dataset"] == dataset]


def clear_validation_state() -> None:
    """Forget summaries and issues collected by a previous run."""
    VALIDATION_SUMMARIES.clear()
    DATA_ISSUES.clear()


def _parse_check(check: str) -> Tuple[str, List[str], int]:
    match = CHECK_PATTERN.match(check.strip())
    if not match:
        raise ValueError(f"Unsupported validation rule syntax: '{check}'")
    columns = [col.strip() for col in match.group("columns").split(",") if col.strip()]
    return match.group("metric"), columns, int(match.group("expected"))


def _evaluate_check(df: pd.DataFrame, check: str) -> Tuple[bool, Dict[str, Any]]:
    """Evaluate a single validation rule against the dataframe."""
    metric, columns, expected = _parse_check(check)

    missing = [col for col in columns if col not in df.columns]
    if missing:
        return False, {
            "check": check,
            "status": "failed",
            "reason": "column_missing",
            "detail": f"Columns {missing} not present in dataframe.",
        }

    if metric == "missing_count":
        observed = int(df[columns].isna().any(axis=1).sum())
    else:
        observed = int(df.duplicated(subset=columns).sum())

    passed = observed == expected
    return passed, {
        "check": check,
        "status": "passed" if passed else "failed",
        "observed": observed,
        "expected": expected,
    }


def _null_count_summary(df: pd.DataFrame) -> Dict[str, int]:
    """Return a mapping of columns to null counts (excluding zeroes)."""
    return {
        column: int(count)
        for column, count in df.isna().sum().items()
        if int(count) > 0
    }


def _write_result(dataset_name: str, result: Dict[str, Any]) -> Path:
    output_dir = validation_dir()
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"validation_{dataset_name}.json"
    output_path.write_text(json.dumps(result, indent=2, default=str))
    return output_path


def validate_dataset(
    dataset_name: str,
    df: pd.DataFrame,
    checks: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Run the configured rule checks for a raw dataset.

    Results are written to ``run_logs/validation/validation_<dataset>.json``.
    Raises ``ValueError`` when any check fails so a malformed table never
    reaches the wrangling steps.
    """
    if checks is None:
        checks = params.dataset_config.get(dataset_name, {}).get("checks", [])

    check_results = []
    for check in checks:
        _, result = _evaluate_check(df, check)
        check_results.append(result)

    null_summary = _null_count_summary(df)
    if null_summary:
        logger.info("Null counts for %s: %s", dataset_name, null_summary)

    failed = sum(1 for r in check_results if r["status"] == "failed")
    summary: Dict[str, Any] = {
        "dataset": dataset_name,
        "status": "passed" if failed == 0 else "failed",
        "total_checks": len(check_results),
        "failed_checks": failed,
        "checks": check_results,
        "missing_values": null_summary,
        "row_count": int(len(df)),
        "pandas_dtypes": {column: str(dtype) for column, dtype in df.dtypes.items()},
        "timestamp": _timestamp(),
    }

    result_path = _write_result(dataset_name, summary)
    summary["result_path"] = str(result_path)
    VALIDATION_SUMMARIES[dataset_name] = summary

    if failed:
        logger.error("Validation failed for %s. See %s", dataset_name, result_path)
        raise ValueError(
            f"Validation failed for dataset '{dataset_name}' (details in {result_path})"
        )

    logger.info(
        "Validation succeeded for %s (%d checks, results written to %s)",
        dataset_name,
        len(check_results),
        result_path,
    )
    return summary


def _issue_section() -> Dict[str, Any]:
    grouped: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for issue in DATA_ISSUES:
        grouped[issue["issue_type"]].append(issue)

    section: Dict[str, Any] = {}
    for issue_type, entries in sorted(grouped.items()):
        section[issue_type] = {
            "label": ISSUE_LABELS.get(issue_type, issue_type),
            "occurrences": len(entries),
            "entries": entries[:ISSUE_DETAIL_LIMIT],
        }
    return section


def finalise_data_quality_report(run_label: Optional[str] = None) -> Optional[Path]:
    """Write the run-level data quality report and return its path.

    Returns None when nothing was validated or registered during the run.
    """
    if not VALIDATION_SUMMARIES and not DATA_ISSUES:
        return None

    report = {
        "run_label": run_label,
        "generated_at": _timestamp(),
        "datasets": {
            name: {
                "status": summary["status"],
                "row_count": summary["row_count"],
                "failed_checks": summary["failed_checks"],
                "missing_values": summary["missing_values"],
            }
            for name, summary in sorted(VALIDATION_SUMMARIES.items())
        },
        "data_issues": _issue_section(),
    }

    output_dir = validation_dir()
    output_dir.mkdir(parents=True, exist_ok=True)
    report_path = output_dir / "data_quality_report.json"
    report_path.write_text(json.dumps(report, indent=2, default=str))
    logger.info("Data quality report saved to %s", report_path)
    return report_path
