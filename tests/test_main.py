from __future__ import annotations

import logging
from datetime import datetime

import pytest

from calendar_planner.core.event_store import EventStore
from calendar_planner.infra.config import load_settings
from calendar_planner.main import bootstrap


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for h in root.handlers[:]:
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def test_bootstrap_loads_existing_data(tmp_path) -> None:
    data_dir = tmp_path / "data"
    seeded = EventStore(data_dir)
    seeded.create_event("Standup", "", datetime(2024, 1, 1, 8), datetime(2024, 1, 1, 9))
    seeded.save()
    settings = load_settings(raw_env={"CALENDAR_DATA_DIR": str(data_dir), "LOG_LEVEL": "WARNING"})

    store = bootstrap(settings)

    assert [event.title for event in store.list_events()] == ["Standup"]
    assert store.next_id == 2
    assert logging.getLogger().level == logging.WARNING


def test_bootstrap_exits_on_bad_environment(monkeypatch, caplog) -> None:
    monkeypatch.setattr("calendar_planner.infra.config.load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.setenv("CALENDAR_EVENTS_FILE", "nested/event.csv")

    with pytest.raises(SystemExit):
        bootstrap()

    assert [record.name for record in caplog.records] == ["calendar_planner.main"]
    assert caplog.records[0].exc_info is not None


def test_bootstrap_from_environment_keeps_backup_path(tmp_path, monkeypatch) -> None:
    calls = []
    monkeypatch.setattr("calendar_planner.infra.config.load_dotenv", lambda *args, **kwargs: calls.append(args))
    monkeypatch.setenv("CALENDAR_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("CALENDAR_BACKUP_PATH", str(tmp_path / "calendar.bak"))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.delenv("LOG_FILE", raising=False)
    monkeypatch.delenv("CALENDAR_EVENTS_FILE", raising=False)
    monkeypatch.delenv("CALENDAR_RECURRENCES_FILE", raising=False)

    store = bootstrap()

    assert calls == [()]
    assert store.list_events() == []
    assert store.backup_path == tmp_path / "calendar.bak"
