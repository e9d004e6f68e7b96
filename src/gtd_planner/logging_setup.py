# src/gtd_planner/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "gtd.log"

# Loggers that report every commit; the REPL already echoes each change.
_PER_COMMIT_LOGGERS = ("gtd_planner.core.engine", "gtd_planner.storage.")


def parse_level(value: str | int | None, default: int = logging.INFO) -> int:
    """Level from a name ("debug", "WARNING") or number; unknown -> default."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        name = value.strip().upper()
        if name.isdigit():
            return int(name)
        level = logging.getLevelNamesMapping().get(name)
        if level is not None:
            return level
    return default


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the interactive console readable:
    - store/persistence logs only at WARNING+ (the prompt echoes each change)
    - other gtd_planner logs pass
    - captured Python warnings and third-party logs only at ERROR+
    """

    def __init__(self, console_level: int) -> None:
        super().__init__()
        self._verbose = console_level <= logging.DEBUG

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith(_PER_COMMIT_LOGGERS):
            return self._verbose or record.levelno >= logging.WARNING

        if name.startswith("gtd_planner."):
            return True

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/gtd",
    console_level: str | int = logging.INFO,
    file_level: str | int = logging.DEBUG,
) -> Path:
    """
    Configure the root logger once, early in main():
    - stderr console handler, filtered for the REPL
    - file handler at <log_dir>/gtd.log with the full mutation trail

    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME
    console = parse_level(console_level)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter(console))
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(parse_level(file_level, logging.DEBUG))
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # warnings.warn(...) arrives as 'py.warnings' and is filtered like third-party logs
    logging.captureWarnings(True)
    return log_file
