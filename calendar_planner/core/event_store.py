"""Event store backed by two comma-separated files.

``event.csv`` holds one row per event and ``recurrent.csv`` one row per
recurrence rule. Saves go through a temporary sibling file that is renamed
over the target, so a failed save never leaves a half-written file behind.
"""

from __future__ import annotations

import calendar
import logging
import os
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Sequence

from calendar_planner.core import field_codec
from calendar_planner.core.errors import FileInUseError, PersistenceError
from calendar_planner.core.models import Event, Occurrence
from calendar_planner.core.recurrence import RecurrenceRule
from calendar_planner.core.timeline import iter_occurrences
from calendar_planner.infra.config import (
    DEFAULT_EVENTS_FILENAME,
    DEFAULT_RECURRENCES_FILENAME,
    Settings,
)

LOGGER = logging.getLogger(__name__)

EVENTS_HEADER = ("eventId", "title", "description", "startDateTime", "endDateTime")
RECURRENCES_HEADER = ("eventId", "recurrentInterval", "recurrentTimes", "recurrentEndDate")

EVENTS_MARKER = "#EVENTS"
RECURRENCES_MARKER = "#RECURRENCES"


@dataclass(frozen=True)
class LoadSummary:
    events: int
    recurrences: int
    skipped: int


class EventStore:
    def __init__(
        self,
        data_dir: Path,
        *,
        events_filename: str = DEFAULT_EVENTS_FILENAME,
        recurrences_filename: str = DEFAULT_RECURRENCES_FILENAME,
        backup_path: Path | None = None,
    ) -> None:
        self._data_dir = Path(data_dir)
        self._events_path = self._data_dir / events_filename
        self._recurrences_path = self._data_dir / recurrences_filename
        self._backup_path = Path(backup_path) if backup_path is not None else None
        self._events: dict[int, Event] = {}
        self._recurrences: dict[int, RecurrenceRule] = {}
        self._next_id = 1

    @classmethod
    def from_settings(cls, settings: Settings) -> EventStore:
        return cls(
            settings.data_dir,
            events_filename=settings.events_filename,
            recurrences_filename=settings.recurrences_filename,
            backup_path=settings.backup_path,
        )

    @property
    def events_path(self) -> Path:
        return self._events_path

    @property
    def recurrences_path(self) -> Path:
        return self._recurrences_path

    @property
    def backup_path(self) -> Path | None:
        return self._backup_path

    @property
    def next_id(self) -> int:
        return self._next_id

    # Events

    def create_event(self, title: str, description: str, start: datetime, end: datetime) -> Event:
        event = Event(id=self._next_id, title=title, description=description, start=start, end=end)
        self._next_id += 1
        self._events[event.id] = event
        return event

    def get_event(self, event_id: int) -> Event | None:
        return self._events.get(event_id)

    find_event = get_event

    def update_event(self, event_id: int, patch: dict[str, Any]) -> Event | None:
        current = self._events.get(event_id)
        if current is None:
            return None
        updated = current.apply_patch(patch)
        self._events[event_id] = updated
        return updated

    def list_events(self) -> list[Event]:
        return sorted(self._events.values(), key=lambda event: (event.start, event.id))

    def delete_event(self, event_id: int) -> None:
        self._events.pop(event_id, None)
        self._recurrences.pop(event_id, None)

    # Recurrences

    def set_recurrence(self, rule: RecurrenceRule) -> None:
        self._recurrences[rule.event_id] = rule

    def clear_recurrence(self, event_id: int) -> None:
        self._recurrences.pop(event_id, None)

    def find_recurrence(self, event_id: int) -> RecurrenceRule | None:
        return self._recurrences.get(event_id)

    def list_recurrences(self) -> list[RecurrenceRule]:
        return [self._recurrences[event_id] for event_id in sorted(self._recurrences)]

    # Queries

    def occurrences_between(self, range_start: date, range_end: date) -> dict[date, list[Occurrence]]:
        grouped: dict[date, list[Occurrence]] = defaultdict(list)
        for event in self._events.values():
            rule = self._recurrences.get(event.id)
            for occurrence in iter_occurrences(event, rule, range_start, range_end):
                grouped[occurrence.start.date()].append(occurrence)
        result: dict[date, list[Occurrence]] = {}
        for day in sorted(grouped):
            result[day] = sorted(grouped[day], key=lambda item: (item.start, item.event_id))
        return result

    def occurrences_in_month(self, year: int, month: int) -> dict[date, list[Occurrence]]:
        last_day = calendar.monthrange(year, month)[1]
        return self.occurrences_between(date(year, month, 1), date(year, month, last_day))

    # Persistence

    def load(self) -> LoadSummary:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._events.clear()
        self._recurrences.clear()
        self._next_id = 1
        skipped = 0

        for line_number, fields in self._read_data_rows(self._events_path):
            event = _event_from_row(fields)
            if event is None:
                skipped += 1
                LOGGER.warning(
                    "store.load skipped malformed row file=%s line=%s",
                    self._events_path.name,
                    line_number,
                )
                continue
            self._events[event.id] = event
            self._next_id = max(self._next_id, event.id + 1)

        for line_number, fields in self._read_data_rows(self._recurrences_path):
            rule = _rule_from_row(fields)
            if rule is None:
                skipped += 1
                LOGGER.warning(
                    "store.load skipped malformed row file=%s line=%s",
                    self._recurrences_path.name,
                    line_number,
                )
                continue
            self._recurrences[rule.event_id] = rule

        summary = LoadSummary(events=len(self._events), recurrences=len(self._recurrences), skipped=skipped)
        LOGGER.info(
            "store.load events=%s recurrences=%s skipped=%s dir=%s",
            summary.events,
            summary.recurrences,
            summary.skipped,
            self._data_dir,
        )
        return summary

    def save(self) -> None:
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(
                f"Unable to create data directory {self._data_dir}: {exc}",
                self._data_dir,
            ) from exc
        event_rows = [_event_to_row(event) for event in self.list_events()]
        rule_rows = [_rule_to_row(rule) for rule in self.list_recurrences()]
        self._write_atomic(self._events_path, EVENTS_HEADER, event_rows)
        self._write_atomic(self._recurrences_path, RECURRENCES_HEADER, rule_rows)
        LOGGER.info("store.save events=%s recurrences=%s", len(event_rows), len(rule_rows))

    def backup(self, path: Path | None = None) -> None:
        path = self._resolve_backup_path(path)
        lines = [EVENTS_MARKER, *_read_lines(self._events_path), RECURRENCES_MARKER]
        lines.extend(_read_lines(self._recurrences_path))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            _write_lines(path, lines)
        except OSError as exc:
            raise PersistenceError(f"Unable to write backup {path}: {exc}", path) from exc
        LOGGER.info("store.backup path=%s lines=%s", path, len(lines))

    def restore(self, path: Path | None = None, replace: bool = False) -> LoadSummary:
        path = self._resolve_backup_path(path)
        event_lines, recurrence_lines = _split_backup(_read_lines(path, required=True))
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            if replace:
                _write_lines(self._events_path, event_lines)
                _write_lines(self._recurrences_path, recurrence_lines)
            else:
                _append_lines(self._events_path, event_lines)
                _append_lines(self._recurrences_path, recurrence_lines)
        except OSError as exc:
            raise PersistenceError(f"Unable to restore from {path}: {exc}", path) from exc
        LOGGER.info(
            "store.restore path=%s mode=%s event_lines=%s recurrence_lines=%s",
            path,
            "replace" if replace else "merge",
            len(event_lines),
            len(recurrence_lines),
        )
        return self.load()

    def _resolve_backup_path(self, path: Path | None) -> Path:
        if path is not None:
            return Path(path)
        if self._backup_path is None:
            raise PersistenceError("No backup path given and no default backup path configured")
        return self._backup_path

    def _read_data_rows(self, path: Path) -> Iterable[tuple[int, list[str]]]:
        if not path.exists():
            return
        try:
            rows = list(field_codec.read_rows(path))
        except OSError as exc:
            raise PersistenceError(f"Unable to read {path}: {exc}", path) from exc
        for line_number, fields in rows[1:]:
            if fields == [""]:
                continue
            yield line_number, fields

    def _write_atomic(self, path: Path, header: Sequence[str], rows: list[list[str]]) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8", newline="") as handle:
                field_codec.write_rows(handle, [header, *rows])
        except OSError as exc:
            _discard(tmp_path)
            raise PersistenceError(f"Unable to write {tmp_path.name}: {exc}", tmp_path) from exc
        try:
            os.replace(tmp_path, path)
        except PermissionError as exc:
            _discard(tmp_path)
            LOGGER.error("store.save target in use path=%s", path)
            raise FileInUseError(path) from exc
        except OSError as exc:
            _discard(tmp_path)
            raise PersistenceError(f"Unable to save {path.name}: {exc}", path) from exc


def _event_to_row(event: Event) -> list[str]:
    return [
        str(event.id),
        event.title,
        event.description,
        event.start.isoformat(),
        event.end.isoformat(),
    ]


def _rule_to_row(rule: RecurrenceRule) -> list[str]:
    return [
        str(rule.event_id),
        rule.to_interval_string(),
        str(rule.times),
        rule.end_date_string(),
    ]


def _event_from_row(fields: list[str]) -> Event | None:
    if len(fields) < len(EVENTS_HEADER):
        return None
    try:
        event_id = int(fields[0])
        start = datetime.fromisoformat(fields[3].strip())
        end = datetime.fromisoformat(fields[4].strip())
    except ValueError:
        return None
    # Stored times are naive local values.
    if start.tzinfo is not None or end.tzinfo is not None:
        return None
    return Event(id=event_id, title=fields[1], description=fields[2], start=start, end=end)


def _rule_from_row(fields: list[str]) -> RecurrenceRule | None:
    if len(fields) < len(RECURRENCES_HEADER):
        return None
    try:
        return RecurrenceRule.parse(int(fields[0]), fields[1], int(fields[2]), fields[3])
    except ValueError:
        # InvalidRecurrenceError is a ValueError too.
        return None


def _split_backup(lines: list[str]) -> tuple[list[str], list[str]]:
    sections: dict[str, list[str]] = {EVENTS_MARKER: [], RECURRENCES_MARKER: []}
    current: list[str] | None = None
    for line in lines:
        if line in sections:
            current = sections[line]
            continue
        if current is not None:
            current.append(line)
    return sections[EVENTS_MARKER], sections[RECURRENCES_MARKER]


def _read_lines(path: Path, *, required: bool = False) -> list[str]:
    if not required and not path.exists():
        return []
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            text = handle.read()
    except OSError as exc:
        raise PersistenceError(f"Unable to read {path}: {exc}", path) from exc
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return lines


def _write_lines(path: Path, lines: list[str]) -> None:
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.writelines(line + "\n" for line in lines)


def _append_lines(path: Path, lines: list[str]) -> None:
    """Append backup ``lines`` to ``path``.

    The first backup line is dropped when it equals the file's first line,
    which keeps a matching header from being duplicated. A backup without a
    header whose first data row happens to equal the file's first line loses
    that row.
    """
    if not lines:
        return
    existing = _read_lines(path)
    if not existing:
        _write_lines(path, lines)
        return
    to_append = lines[1:] if existing[0] == lines[0] else lines
    needs_newline = not path.read_bytes().endswith(b"\n")
    with path.open("a", encoding="utf-8", newline="") as handle:
        if needs_newline:
            handle.write("\n")
        handle.writelines(line + "\n" for line in to_append)


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError:
        LOGGER.exception("Failed to remove temporary file %s", path)
