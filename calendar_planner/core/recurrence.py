"""Fixed-interval recurrence rules.

A rule repeats its event every ``interval_amount`` units, either a fixed
number of ``times`` or, when ``times`` is 0, until ``end_date``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from dateutil.relativedelta import relativedelta

from calendar_planner.core.errors import InvalidRecurrenceError

NO_END_DATE = "0"

_INTERVAL_RE = re.compile(r"^(\d+)([a-z])$")


class IntervalUnit(Enum):
    DAY = "d"
    WEEK = "w"
    MONTH = "m"
    YEAR = "y"


@dataclass(frozen=True)
class RecurrenceRule:
    event_id: int
    interval_amount: int
    interval_unit: IntervalUnit
    times: int
    end_date: date | None = None

    def __post_init__(self) -> None:
        if self.interval_amount <= 0:
            raise InvalidRecurrenceError(f"Interval amount must be positive: {self.interval_amount}")
        if self.times < 0:
            raise InvalidRecurrenceError(f"Repeat times must not be negative: {self.times}")
        if self.times == 0 and self.end_date is None:
            raise InvalidRecurrenceError("Recurrence end date is required when repeat times is 0.")
        if self.times > 0 and self.end_date is not None:
            # A counted series has no end date.
            object.__setattr__(self, "end_date", None)

    @classmethod
    def parse(
        cls,
        event_id: int,
        interval_spec: str,
        times: int,
        end_date_spec: str | date | None = None,
    ) -> RecurrenceRule:
        amount, unit = parse_interval(interval_spec)
        if times < 0:
            raise InvalidRecurrenceError(f"Repeat times must not be negative: {times}")
        end_date: date | None = None
        if times == 0:
            end_date = _parse_end_date(end_date_spec)
        return cls(
            event_id=event_id,
            interval_amount=amount,
            interval_unit=unit,
            times=times,
            end_date=end_date,
        )

    def to_interval_string(self) -> str:
        return f"{self.interval_amount}{self.interval_unit.value}"

    def end_date_string(self) -> str:
        if self.end_date is None:
            return NO_END_DATE
        return self.end_date.isoformat()

    def advance(self, value: datetime, steps: int) -> datetime:
        """Move ``value`` forward by ``steps`` whole intervals.

        Months and years are added to ``value`` in one go, so a series
        anchored on the 31st clamps to shorter months without drifting.
        Raises OverflowError when the result is past year 9999.
        """
        amount = self.interval_amount * steps
        if self.interval_unit is IntervalUnit.DAY:
            return value + timedelta(days=amount)
        if self.interval_unit is IntervalUnit.WEEK:
            return value + timedelta(weeks=amount)
        if self.interval_unit is IntervalUnit.MONTH:
            delta = relativedelta(months=amount)
        else:
            delta = relativedelta(years=amount)
        try:
            return value + delta
        except ValueError as exc:
            # relativedelta reports an out-of-range year as ValueError.
            raise OverflowError(str(exc)) from exc


def parse_interval(spec: str) -> tuple[int, IntervalUnit]:
    match = _INTERVAL_RE.match((spec or "").strip())
    if not match:
        raise InvalidRecurrenceError(f"Interval must look like 1d, 2w, 1m or 1y: {spec!r}")
    amount = int(match.group(1))
    if amount <= 0:
        raise InvalidRecurrenceError(f"Interval amount must be positive: {spec!r}")
    try:
        unit = IntervalUnit(match.group(2))
    except ValueError as exc:
        raise InvalidRecurrenceError(f"Unknown interval unit: {match.group(2)!r}") from exc
    return amount, unit


def _parse_end_date(value: str | date | None) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = (value or "").strip()
    if not raw or raw == NO_END_DATE:
        raise InvalidRecurrenceError("Recurrence end date is required when repeat times is 0.")
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise InvalidRecurrenceError(f"Recurrence end date is invalid: {raw!r}") from exc
