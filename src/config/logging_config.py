# src/config/logging_config.py

"""Per-run timestamped logging configuration for retail_radar.

Every launch (CLI, TUI or API server) gets its own log file inside
``logs/`` named after the launch time, e.g. ``logs/run_20260214_153045.log``.
All ``retail_radar.*`` loggers propagate into it, so breaker transitions,
source fallbacks and catalog reconciliation for one run read top to
bottom in a single file.

Only warnings and errors reach the console; stdout stays clean for the
CLI's JSON output.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers that would otherwise flood the run file
_QUIET_LOGGERS: tuple[str, ...] = ("curl_cffi", "urllib3", "asyncio")


def setup_logging(console_level: int = logging.WARNING) -> Path:
    """Initialise the ``retail_radar`` logger tree for the current run.

    Args:
        console_level: Minimum level echoed to stderr.

    Returns:
        The :class:`~pathlib.Path` of the log file for this run.
    """
    logs_dir: Path = Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"run_{timestamp}.log"

    root_logger = logging.getLogger("retail_radar")
    root_logger.setLevel(logging.DEBUG)

    # Repeated calls (tests, TUI relaunch) must not stack handlers
    if root_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info("Logging initialised, log file: %s", log_file)
    return log_file
