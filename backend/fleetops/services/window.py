from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta


EPOCH = date(1970, 1, 1)


def day_start(day: date) -> datetime:
    return datetime.combine(day, datetime.min.time())


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Half-open datetime range covering ``start`` through the whole of ``end``."""
    return day_start(start), day_start(end) + timedelta(days=1)


def add_months(day: date, months: int) -> date:
    """Move ``day`` by whole months, clamping to the last day of a shorter month."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar-date window used by the reporting queries."""

    start: date
    end: date

    @classmethod
    def of(cls, start: date | None = None, end: date | None = None, *, today: date | None = None) -> "DateWindow":
        return cls(start=start or EPOCH, end=end or today or date.today())

    def bounds(self) -> tuple[datetime, datetime]:
        return day_bounds(self.start, self.end)
