from __future__ import annotations

from datetime import date, time

import pytest

from conftest import make_driver
from fleetops.models import City, ShiftStatus
from fleetops.services.scheduling import (
    Duration,
    Schedule,
    SchedulingError,
    assign_shifts,
    occurrences,
    resolve_dates,
)
from fleetops.services.window import add_months, month_end


def test_skip_pattern_over_two_weeks(db):
    driver = make_driver(db)

    created = assign_shifts(
        db,
        driver,
        Schedule.daily_for_6_days_skip_1_day,
        start_date=date(2025, 3, 3),
        end_date=date(2025, 3, 16),
    )

    days = [a.start_time.date() for a in created]
    assert len(days) == 12
    assert date(2025, 3, 9) not in days
    assert date(2025, 3, 16) not in days
    assert all(a.status == ShiftStatus.scheduled for a in created)
    assert all(a.start_time.time() == time(8) and a.end_time.time() == time(21) for a in created)
    assert all(a.recurrence_rule == "daily_for_6_days_skip_1_day" for a in created)
    assert all(a.city == City.accra for a in created)


def test_six_day_run_and_idempotent_rerun(db):
    driver = make_driver(db)
    kwargs = dict(start_date=date(2025, 3, 3), end_date=date(2025, 3, 31), city=City.kumasi)

    first = assign_shifts(db, driver, Schedule.daily_for_6_days, **kwargs)
    again = assign_shifts(db, driver, Schedule.daily_for_6_days, **kwargs)

    assert len(first) == 6
    assert again == []


def test_rejects_inactive_or_unverified_driver(db):
    with pytest.raises(SchedulingError) as excinfo:
        assign_shifts(db, None, Schedule.daily_for_6_days, start_date=date(2025, 3, 3), end_date=date(2025, 3, 9))
    assert "not active" in excinfo.value.errors[0].message

    unverified = make_driver(db, verified=False)
    with pytest.raises(SchedulingError) as excinfo:
        assign_shifts(
            db, unverified, Schedule.daily_for_6_days, start_date=date(2025, 3, 3), end_date=date(2025, 3, 9)
        )
    assert "not verified" in excinfo.value.errors[0].message


def test_resolve_dates():
    today = date(2025, 1, 31)
    assert resolve_dates(None, None, Duration.one_month, today) == (today, date(2025, 2, 28))
    assert resolve_dates(date(2025, 2, 3), None, Duration.three_months, today) == (date(2025, 2, 3), date(2025, 4, 30))

    with pytest.raises(SchedulingError):
        resolve_dates(None, date(2025, 2, 1), None, today)
    with pytest.raises(SchedulingError):
        resolve_dates(None, None, None, today)
    with pytest.raises(SchedulingError):
        resolve_dates(date(2025, 2, 3), date(2025, 2, 1), None, today)


def test_add_months_clamps_day():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2025, 11, 30), 3) == date(2026, 2, 28)
    assert add_months(date(2025, 1, 1), -2) == date(2024, 11, 1)


def test_month_end():
    assert month_end(date(2024, 2, 10)) == date(2024, 2, 29)
    assert month_end(date(2025, 12, 1)) == date(2025, 12, 31)


def test_occurrences_stop_at_end():
    days = occurrences(Schedule.daily_for_6_days_skip_1_day, date(2025, 3, 3), date(2025, 3, 5))
    assert days == [date(2025, 3, 3), date(2025, 3, 4), date(2025, 3, 5)]
