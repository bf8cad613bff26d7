"""Logging setup for the calendar store.

The store logs one line per persistence step under ``calendar_planner.*``:
``store.load`` (counts plus one warning per skipped row), ``store.save``,
``store.backup`` and ``store.restore``, and ``startup.ready`` from
``bootstrap``. Everything goes to stderr. When a log file is configured it
gets a rotating handler that only keeps ``calendar_planner`` records, so a
front end's own chatter does not crowd out the data history.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from calendar_planner.infra.config import get_log_level

PACKAGE_LOGGER = "calendar_planner"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_MAX_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 3


def configure_logging(*, level: int | None = None, log_file: str | Path | None = None) -> None:
    """Replace the root handlers with stderr and an optional store log file.

    ``level`` falls back to ``LOG_LEVEL`` and ``log_file`` to ``LOG_FILE``.
    Safe to call more than once; old handlers are closed first.
    """
    if level is None:
        level = get_log_level()
    if log_file is None:
        log_file = os.environ.get("LOG_FILE", "").strip() or None

    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    root.addHandler(_stderr_handler(level, formatter))
    if log_file:
        store_handler = _store_file_handler(Path(log_file), level, formatter)
        if store_handler is not None:
            root.addHandler(store_handler)


def _stderr_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _store_file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler | None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8")
    except OSError as exc:
        logging.getLogger(__name__).warning("Could not open log file %s: %s; logging to stderr only", path, exc)
        return None
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(logging.Filter(PACKAGE_LOGGER))
    return handler
