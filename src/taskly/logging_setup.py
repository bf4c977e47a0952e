# src/taskly/logging_setup.py

"""
Logging for the console app.

The console shares stderr with command replies and reminder notices, so it
only gets the lines a user acts on. `taskly.log` in the data directory keeps
everything at DEBUG, including every gateway decision and store write.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "taskly.log"

# Background components: every request and timer would flood the prompt.
_QUIET_UNTIL_WARNING = ("taskly.remote.", "taskly.tasks.reminder_scheduler")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console rules, by logger name:
    - taskly.*: shown, except the HTTP client and reminder timers (WARNING+)
    - py.warnings and every third-party logger (httpx, httpcore, ...): ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("taskly."):
            if name.startswith(_QUIET_UNTIL_WARNING):
                return record.levelno >= logging.WARNING
            return True
        return record.levelno >= logging.ERROR


def _formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskly",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install the console and file handlers on the root logger and return the
    log file path. Existing root handlers are replaced, so calling it twice
    does not duplicate output. Call before the store and gateway are built
    so their startup lines reach the file.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = _formatter()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)

    # The client logs its own request lines; httpx's INFO line per request is a duplicate.
    for lib in ("httpx", "httpcore"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return log_file
