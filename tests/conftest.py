import sys
from datetime import datetime
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from calendar_planner.core.event_store import EventStore  # noqa: E402


@pytest.fixture
def store(tmp_path) -> EventStore:
    return EventStore(tmp_path / "data")


@pytest.fixture
def standup(store: EventStore):
    """A one-hour event on Monday 2024-01-01 08:00."""
    return store.create_event(
        "Standup",
        "Daily sync",
        datetime(2024, 1, 1, 8, 0),
        datetime(2024, 1, 1, 9, 0),
    )
