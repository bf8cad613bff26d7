"""Tests for logging configuration (LOG_LEVEL, LOG_FILE)."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

import pytest

from calendar_planner.infra.logging_config import configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for h in root.handlers[:]:
        root.removeHandler(h)
        if h not in handlers:
            h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def test_log_level_defaults_to_info(monkeypatch) -> None:
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_FILE", raising=False)

    configure_logging()

    assert logging.getLogger().level == logging.INFO


def test_log_level_from_env_is_case_insensitive(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "  debug  ")
    monkeypatch.delenv("LOG_FILE", raising=False)

    configure_logging()

    assert logging.getLogger().level == logging.DEBUG


def test_explicit_level_wins_over_env(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("LOG_FILE", raising=False)

    configure_logging(level=logging.WARNING)

    assert logging.getLogger().level == logging.WARNING


def test_repeated_configuration_does_not_duplicate_handlers(monkeypatch) -> None:
    monkeypatch.delenv("LOG_FILE", raising=False)

    configure_logging(level=logging.INFO)
    configure_logging(level=logging.INFO)

    assert len(logging.getLogger().handlers) == 1


def test_log_file_gets_rotating_handler(tmp_path) -> None:
    log_path = tmp_path / "logs" / "planner.log"

    configure_logging(level=logging.INFO, log_file=log_path)
    logging.getLogger("calendar_planner.test").info("store.save events=%s", 3)
    for h in logging.getLogger().handlers:
        h.flush()

    assert any(isinstance(h, RotatingFileHandler) for h in logging.getLogger().handlers)
    assert "store.save events=3" in log_path.read_text(encoding="utf-8")


def test_log_file_keeps_only_calendar_records(tmp_path) -> None:
    log_path = tmp_path / "planner.log"

    configure_logging(level=logging.INFO, log_file=log_path)
    logging.getLogger("calendar_planner.core.event_store").info("store.backup path=%s", "a.bak")
    logging.getLogger("frontend.http").info("GET /calendar 200")
    for h in logging.getLogger().handlers:
        h.flush()

    text = log_path.read_text(encoding="utf-8")
    assert "store.backup path=a.bak" in text
    assert "GET /calendar" not in text


def test_unusable_log_file_falls_back_to_stderr(tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")

    configure_logging(level=logging.INFO, log_file=blocker / "planner.log")

    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert not any(isinstance(h, RotatingFileHandler) for h in handlers)
