from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path("data")
DEFAULT_EVENTS_FILENAME = "event.csv"
DEFAULT_RECURRENCES_FILENAME = "recurrent.csv"
DEFAULT_BACKUP_PATH = Path("data/backup.txt")
DEFAULT_LOG_LEVEL = logging.INFO


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    events_filename: str
    recurrences_filename: str
    backup_path: Path
    log_level: int
    log_file: Path | None


def get_log_level(raw_env: dict[str, str] | None = None) -> int:
    source = raw_env if raw_env is not None else os.environ
    raw = (source.get("LOG_LEVEL") or "").strip().upper()
    if not raw:
        return DEFAULT_LOG_LEVEL
    level = logging.getLevelName(raw)
    if not isinstance(level, int):
        return DEFAULT_LOG_LEVEL
    return level


def load_settings(raw_env: dict[str, str] | None = None) -> Settings:
    if raw_env is None:
        load_dotenv()
    env = raw_env if raw_env is not None else os.environ

    data_dir = _parse_path(env.get("CALENDAR_DATA_DIR"), DEFAULT_DATA_DIR)
    events_filename = _parse_filename(env.get("CALENDAR_EVENTS_FILE"), DEFAULT_EVENTS_FILENAME)
    recurrences_filename = _parse_filename(
        env.get("CALENDAR_RECURRENCES_FILE"),
        DEFAULT_RECURRENCES_FILENAME,
    )
    if events_filename == recurrences_filename:
        raise RuntimeError("CALENDAR_EVENTS_FILE and CALENDAR_RECURRENCES_FILE must differ")
    backup_path = _parse_path(env.get("CALENDAR_BACKUP_PATH"), DEFAULT_BACKUP_PATH)
    log_file_raw = (env.get("LOG_FILE") or "").strip()
    return Settings(
        data_dir=data_dir,
        events_filename=events_filename,
        recurrences_filename=recurrences_filename,
        backup_path=backup_path,
        log_level=get_log_level(env),
        log_file=Path(log_file_raw) if log_file_raw else None,
    )


def _parse_path(value: str | None, default: Path) -> Path:
    if value is None:
        return default
    trimmed = value.strip()
    if not trimmed:
        return default
    return Path(trimmed)


def _parse_filename(value: str | None, default: str) -> str:
    if value is None:
        return default
    trimmed = value.strip()
    if not trimmed:
        return default
    if "/" in trimmed or "\\" in trimmed:
        raise RuntimeError(f"Data file name must not contain a path separator: {trimmed}")
    return trimmed
