from __future__ import annotations

import enum
import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from fleetops.core.config import get_settings
from fleetops.core.errors import ErrorCode, ErrorDetail, ServiceError
from fleetops.db.session import transaction
from fleetops.models.driver import Driver
from fleetops.models.enums import City, ShiftStatus
from fleetops.models.shift_assignment import ShiftAssignment
from fleetops.services.window import add_months, day_bounds


logger = logging.getLogger(__name__)


class Schedule(str, enum.Enum):
    daily_for_6_days_skip_1_day = "daily_for_6_days_skip_1_day"
    daily_for_6_days = "daily_for_6_days"


class Duration(str, enum.Enum):
    one_month = "one_month"
    two_months = "two_months"
    three_months = "three_months"


_DURATION_MONTHS = {
    Duration.one_month: 1,
    Duration.two_months: 2,
    Duration.three_months: 3,
}

# (days on, days off); zero days off means a single run of days.
_PATTERNS = {
    Schedule.daily_for_6_days_skip_1_day: (6, 1),
    Schedule.daily_for_6_days: (6, 0),
}


class SchedulingError(ServiceError):
    def __init__(self, message: str, field: str | None = None):
        super().__init__([ErrorDetail(message=message, field=field, code=ErrorCode.VALIDATION_ERROR)])


def resolve_dates(
    start_date: date | None,
    end_date: date | None,
    duration: Duration | None,
    today: date,
) -> tuple[date, date]:
    if end_date is not None and start_date is None:
        raise SchedulingError("start_date must be provided when end_date is provided", field="start_date")

    if duration is not None:
        return start_date or today, add_months(today, _DURATION_MONTHS[duration])
    if start_date is None:
        raise SchedulingError(
            "Either start_date and end_date must be provided, or duration must be provided",
            field="duration",
        )
    if end_date is None:
        raise SchedulingError("end_date must be provided when no duration is given", field="end_date")
    if end_date < start_date:
        raise SchedulingError("end_date must be on or after start_date", field="end_date")
    return start_date, end_date


def occurrences(schedule: Schedule, start: date, end: date) -> list[date]:
    days_on, days_off = _PATTERNS[schedule]
    days = []
    current = start

    if days_off == 0:
        while len(days) < days_on and current <= end:
            days.append(current)
            current += timedelta(days=1)
        return days

    while current <= end:
        for _ in range(days_on):
            if current > end:
                break
            days.append(current)
            current += timedelta(days=1)
        current += timedelta(days=days_off)
    return days


def _has_assignment_on(db: Session, driver_id: int, day: date) -> bool:
    lower, upper = day_bounds(day, day)
    return (
        db.query(ShiftAssignment.id)
        .filter(ShiftAssignment.driver_id == driver_id)
        .filter(ShiftAssignment.start_time >= lower)
        .filter(ShiftAssignment.start_time < upper)
        .first()
        is not None
    )


def assign_shifts(
    db: Session,
    driver: Driver | None,
    schedule: Schedule,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    duration: Duration | None = None,
    city: City = City.accra,
    today: date | None = None,
) -> list[ShiftAssignment]:
    """Create scheduled assignments for ``driver`` following ``schedule``.

    Days that already hold an assignment for the driver are skipped, so the
    call can be repeated over overlapping ranges.
    """
    if driver is None:
        raise SchedulingError("Driver is not active", field="driver_id")
    if not driver.verified:
        raise SchedulingError("Driver is not verified", field="driver_id")

    settings = get_settings()
    start, end = resolve_dates(start_date, end_date, duration, today or date.today())
    shift_start = time(hour=settings.shift_start_hour)
    shift_length = timedelta(hours=settings.shift_end_hour - settings.shift_start_hour)

    created = []
    with transaction(db):
        for day in occurrences(schedule, start, end):
            if _has_assignment_on(db, driver.id, day):
                continue
            starts = datetime.combine(day, shift_start)
            assignment = ShiftAssignment(
                driver_id=driver.id,
                vehicle_id=None,
                city=city,
                start_time=starts,
                end_time=starts + shift_length,
                status=ShiftStatus.scheduled,
                recurrence_rule=schedule.value,
            )
            db.add(assignment)
            created.append(assignment)
        db.flush()

    logger.info(
        "Scheduled %s shifts for driver %s (%s, %s..%s)",
        len(created),
        driver.id,
        schedule.value,
        start.isoformat(),
        end.isoformat(),
    )
    return created
