import logging
import os
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

NOISY_LOGGERS = ["matplotlib", "PIL", "urllib3", "fontTools"]


def new_run_label(now: Optional[datetime] = None) -> str:
    """Label that ties one report run's log file to its data quality report."""
    return (now or datetime.now()).strftime("%Y%m%dT%H%M%S")


def run_log_filename(run_label: Optional[str] = None) -> str:
    if not run_label:
        return "clueboard.log"
    safe = re.sub(r"[^A-Za-z0-9_.-]+", "_", run_label).strip("_")
    return f"clueboard_{safe or 'run'}.log"


def setup_logging(log_level=logging.INFO, run_label=None, log_filename=None):
    """Configure root logging for a Clueboard run.

    Records go to stdout and to a file inside the run log directory
    (``run_logs/`` or ``$CLUEBOARD_RUN_LOG_DIR``). The file is named after
    ``run_label`` unless ``log_filename`` is given, and every record carries
    the label. Returns the log file path, or None when only stdout is used.
    """
    label = f"run={run_label} - " if run_label else ""
    formatter = logging.Formatter(
        f"%(asctime)s - {label}%(name)s - %(levelname)s - %(message)s"
    )

    logger = logging.getLogger()
    logger.setLevel(log_level)

    if logger.hasHandlers():
        logger.handlers.clear()

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    log_filename = log_filename or run_log_filename(run_label)
    log_path = None
    try:
        log_path = get_run_log_dir() / log_filename
        file_handler = logging.FileHandler(log_path, mode="w")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except PermissionError as e:
        log_path = None
        logger.warning(
            "Could not create log file %s: %s. Logging to stdout only.", log_filename, e
        )

    for lib in NOISY_LOGGERS:
        logging.getLogger(lib).setLevel(logging.WARNING)

    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical(
            "Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback)
        )
        for handler in logger.handlers:
            handler.flush()

    sys.excepthook = handle_exception
    return log_path


def get_run_log_dir() -> Path:
    """
    Return the directory for run artefacts (logs, validation results, data
    quality reports). Defaults to `run_logs/` in the working directory and can
    be overridden with CLUEBOARD_RUN_LOG_DIR. Falls back to the temp directory
    when the configured location is not writable.
    """
    run_log_dir = Path(os.getenv("CLUEBOARD_RUN_LOG_DIR", "run_logs"))
    try:
        run_log_dir.mkdir(parents=True, exist_ok=True)
        return run_log_dir
    except PermissionError:
        import tempfile

        temp_dir = Path(tempfile.gettempdir()) / "clueboard_logs"
        temp_dir.mkdir(parents=True, exist_ok=True)
        return temp_dir
