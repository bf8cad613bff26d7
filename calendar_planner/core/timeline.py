from __future__ import annotations

from datetime import date
from typing import Iterator

from calendar_planner.core.models import Event, Occurrence
from calendar_planner.core.recurrence import RecurrenceRule


def expand_occurrences(
    event: Event,
    rule: RecurrenceRule | None,
    range_start: date,
    range_end: date,
) -> list[Occurrence]:
    return list(iter_occurrences(event, rule, range_start, range_end))


def iter_occurrences(
    event: Event,
    rule: RecurrenceRule | None,
    range_start: date,
    range_end: date,
) -> Iterator[Occurrence]:
    """Yield the occurrences of ``event`` that touch ``range_start..range_end``.

    Overlap is decided per calendar day: an occurrence counts when it starts
    on or before ``range_end`` and ends on or after ``range_start``. Every
    occurrence keeps the event's duration.
    """
    if range_start > range_end:
        return
    if rule is None:
        if _overlaps(event.start.date(), event.end.date(), range_start, range_end):
            yield Occurrence(title=event.title, start=event.start, end=event.end, event_id=event.id)
        return

    duration = event.duration
    index = 0
    while rule.times == 0 or index < rule.times:
        try:
            start = rule.advance(event.start, index)
        except OverflowError:
            # Past the last representable date.
            return
        start_day = start.date()
        if rule.times == 0 and start_day > rule.end_date:
            break
        if start_day > range_end:
            break
        try:
            end = start + duration
        except OverflowError:
            return
        if _overlaps(start_day, end.date(), range_start, range_end):
            yield Occurrence(title=event.title, start=start, end=end, event_id=event.id, index=index)
        index += 1


def _overlaps(first_day: date, last_day: date, range_start: date, range_end: date) -> bool:
    return first_day <= range_end and last_day >= range_start
