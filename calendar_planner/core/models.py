from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any

EVENT_PATCH_FIELDS = frozenset({"title", "description", "start", "end"})


@dataclass(frozen=True)
class Event:
    """A stored calendar event. Start/end ordering is left to the caller."""

    id: int
    title: str
    description: str
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def apply_patch(self, patch: dict[str, Any]) -> Event:
        unknown = set(patch) - EVENT_PATCH_FIELDS
        if unknown:
            raise ValueError(f"unknown event fields: {', '.join(sorted(unknown))}")
        return replace(self, **patch)


@dataclass(frozen=True)
class Occurrence:
    """One concrete instance of an event inside a queried range."""

    title: str
    start: datetime
    end: datetime
    event_id: int
    index: int = 0
