from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from conftest import make_assignment, make_driver, make_vehicle
from fleetops.core.errors import ErrorCode, ImmutableRecordError, ServiceError
from fleetops.models import City, RevenueRecord, RevenueSource, ShiftEventType, ShiftStatus
from fleetops.services import event_log
from fleetops.services.shift_state_machine import (
    clock_in,
    clock_out,
    current_shift,
    next_status,
    pause_shift,
    record_telemetry,
    resume_shift,
)


def _codes(excinfo) -> list[str]:
    return excinfo.value.codes


def test_transition_table_is_closed():
    assert next_status(ShiftStatus.scheduled, ShiftEventType.clock_in) == ShiftStatus.active
    assert next_status(ShiftStatus.paused, ShiftEventType.clock_out) == ShiftStatus.completed
    assert next_status(ShiftStatus.completed, ShiftEventType.clock_in) is None
    assert next_status(ShiftStatus.missed, ShiftEventType.clock_in) is None
    assert next_status(ShiftStatus.paused, ShiftEventType.pause) is None


def test_clock_in_then_clock_out_completes_shift(db):
    driver = make_driver(db)
    vehicle = make_vehicle(db)
    assignment = make_assignment(db, driver)

    started = clock_in(db, driver, vehicle_id=vehicle.id, odometer=50000)
    assert started.sequence == 1
    assert started.event_type == ShiftEventType.clock_in

    db.refresh(assignment)
    assert assignment.status == ShiftStatus.active
    assert assignment.vehicle_id == vehicle.id
    assert assignment.actual_start_time == started.created_at

    ended = clock_out(db, driver, odometer=51000, vehicle_range=250)
    assert ended.sequence == 2

    db.refresh(assignment)
    assert assignment.status == ShiftStatus.completed
    assert assignment.actual_end_time == ended.created_at
    assert len(event_log.events_for(db, assignment.id)) == 2

    stored = db.execute(text("SELECT event_type FROM shift_events WHERE id = :id"), {"id": ended.id}).scalar()
    assert stored == 1

    db.refresh(vehicle)
    assert vehicle.latest_odometer == 51000
    assert vehicle.latest_range == 250


def test_clock_out_creates_platform_revenue(db):
    driver = make_driver(db)
    vehicle = make_vehicle(db)
    assignment = make_assignment(db, driver)

    clock_in(db, driver, vehicle_id=vehicle.id)
    clock_out(db, driver, bolt_earnings=Decimal("320.50"), uber_earnings=Decimal("180"))

    records = db.query(RevenueRecord).order_by(RevenueRecord.source.asc()).all()
    assert [r.source for r in records] == [RevenueSource.bolt, RevenueSource.uber]
    assert [r.total_revenue for r in records] == [Decimal("320.50"), Decimal("180.00")]
    assert all(r.shift_assignment_id == assignment.id for r in records)
    assert all(r.vehicle_id == vehicle.id for r in records)
    assert all(r.realized_at == assignment.start_time for r in records)


def test_out_of_range_gps_reports_every_field_and_writes_nothing(db):
    driver = make_driver(db)
    assignment = make_assignment(db, driver)
    clock_in(db, driver)

    with pytest.raises(ServiceError) as excinfo:
        clock_out(db, driver, gps_lat=Decimal("95"), gps_lon=Decimal("185"))

    errors = excinfo.value.errors
    assert len(errors) == 2
    assert {e.field for e in errors} == {"gps_lat", "gps_lon"}
    assert {e.code for e in errors} == {ErrorCode.LESS_THAN_OR_EQUAL_TO}

    assert len(event_log.events_for(db, assignment.id)) == 1
    db.refresh(assignment)
    assert assignment.status == ShiftStatus.active


def test_negative_readings_are_rejected(db):
    driver = make_driver(db)
    make_assignment(db, driver)

    with pytest.raises(ServiceError) as excinfo:
        clock_in(db, driver, odometer=-1, vehicle_range=-5, gps_lat=Decimal("-91"))

    assert {e.field for e in excinfo.value.errors} == {"odometer", "vehicle_range", "gps_lat"}
    assert set(_codes(excinfo)) == {ErrorCode.GREATER_THAN_OR_EQUAL_TO}


def test_clock_out_before_clock_in(db):
    driver = make_driver(db)
    assignment = make_assignment(db, driver)

    with pytest.raises(ServiceError) as excinfo:
        clock_out(db, driver, shift_assignment_id=assignment.id)
    assert _codes(excinfo) == [ErrorCode.NOT_CLOCKED_IN]


def test_clock_out_twice(db):
    driver = make_driver(db)
    assignment = make_assignment(db, driver)
    clock_in(db, driver)
    clock_out(db, driver)

    with pytest.raises(ServiceError) as excinfo:
        clock_out(db, driver, shift_assignment_id=assignment.id)
    assert _codes(excinfo) == [ErrorCode.ALREADY_CLOCKED_OUT]


def test_clock_out_without_open_shift(db):
    driver = make_driver(db)
    make_assignment(db, driver)

    with pytest.raises(ServiceError) as excinfo:
        clock_out(db, driver)
    assert _codes(excinfo) == [ErrorCode.SHIFT_ASSIGNMENT_NOT_FOUND]


def test_clock_in_requires_driver_profile(db):
    with pytest.raises(ServiceError) as excinfo:
        clock_in(db, None)
    assert _codes(excinfo) == [ErrorCode.NO_DRIVER_PROFILE]


def test_clock_in_unknown_vehicle(db):
    driver = make_driver(db)
    make_assignment(db, driver)

    with pytest.raises(ServiceError) as excinfo:
        clock_in(db, driver, vehicle_id=9999)
    assert _codes(excinfo) == [ErrorCode.VEHICLE_NOT_FOUND]
    assert excinfo.value.errors[0].field == "vehicle_id"


def test_clock_in_reports_vehicle_and_reading_errors_together(db):
    driver = make_driver(db)
    make_assignment(db, driver)

    with pytest.raises(ServiceError) as excinfo:
        clock_in(db, driver, vehicle_id=9999, gps_lat=Decimal("95"))
    assert {(e.field, e.code) for e in excinfo.value.errors} == {
        ("gps_lat", ErrorCode.LESS_THAN_OR_EQUAL_TO),
        ("vehicle_id", ErrorCode.VEHICLE_NOT_FOUND),
    }


def test_clock_in_other_drivers_shift(db):
    owner = make_driver(db, full_name="Ama Owusu")
    intruder = make_driver(db, full_name="Kofi Boateng")
    assignment = make_assignment(db, owner)

    with pytest.raises(ServiceError) as excinfo:
        clock_in(db, intruder, shift_assignment_id=assignment.id)
    assert _codes(excinfo) == [ErrorCode.PERMISSION_DENIED]


def test_clock_in_twice(db):
    driver = make_driver(db)
    assignment = make_assignment(db, driver)
    clock_in(db, driver)

    with pytest.raises(ServiceError) as excinfo:
        clock_in(db, driver, shift_assignment_id=assignment.id)
    assert _codes(excinfo) == [ErrorCode.ALREADY_CLOCKED_IN]


def test_only_one_open_shift_per_driver(db):
    driver = make_driver(db)
    today = date.today()
    make_assignment(db, driver, day=today)
    tomorrow = make_assignment(db, driver, day=today + timedelta(days=1))
    clock_in(db, driver)

    with pytest.raises(ServiceError) as excinfo:
        clock_in(db, driver, shift_assignment_id=tomorrow.id)
    assert _codes(excinfo) == [ErrorCode.ALREADY_CLOCKED_IN]

    assert current_shift(db, driver).start_time.date() == today


def test_database_rejects_a_second_open_shift(db):
    driver = make_driver(db)
    today = date.today()
    make_assignment(db, driver, day=today, status=ShiftStatus.active)

    with pytest.raises(IntegrityError):
        make_assignment(db, driver, day=today + timedelta(days=1), status=ShiftStatus.paused)
    db.rollback()

    # Closed shifts are not constrained.
    make_assignment(db, driver, day=today + timedelta(days=2), status=ShiftStatus.completed)
    make_assignment(db, driver, day=today + timedelta(days=3), status=ShiftStatus.completed)


def test_multiple_open_shifts_is_an_error(db):
    # Rows written before the one-open-shift index existed.
    db.execute(text("DROP INDEX uq_shift_assignments_one_open_per_driver"))
    db.commit()
    driver = make_driver(db)
    today = date.today()
    make_assignment(db, driver, day=today, status=ShiftStatus.active)
    make_assignment(db, driver, day=today + timedelta(days=1), status=ShiftStatus.paused)

    with pytest.raises(ServiceError) as excinfo:
        pause_shift(db, driver)
    assert _codes(excinfo) == [ErrorCode.MULTIPLE_ACTIVE_SHIFTS]

    with pytest.raises(ServiceError):
        current_shift(db, driver)


def test_pause_resume_pause(db):
    driver = make_driver(db)
    assignment = make_assignment(db, driver)
    clock_in(db, driver)

    pause_shift(db, driver)
    db.refresh(assignment)
    assert assignment.status == ShiftStatus.paused

    resume_shift(db, driver)
    db.refresh(assignment)
    assert assignment.status == ShiftStatus.active

    pause_shift(db, driver)
    db.refresh(assignment)
    assert assignment.status == ShiftStatus.paused

    types = [e.event_type for e in event_log.events_for(db, assignment.id)]
    assert types == [
        ShiftEventType.clock_in,
        ShiftEventType.pause,
        ShiftEventType.resume,
        ShiftEventType.pause,
    ]

    clock_out(db, driver)
    db.refresh(assignment)
    assert assignment.status == ShiftStatus.completed


def test_pause_and_resume_guards(db):
    driver = make_driver(db)
    make_assignment(db, driver)

    with pytest.raises(ServiceError) as excinfo:
        pause_shift(db, driver)
    assert _codes(excinfo) == [ErrorCode.NO_ACTIVE_SHIFT]

    with pytest.raises(ServiceError) as excinfo:
        resume_shift(db, driver)
    assert _codes(excinfo) == [ErrorCode.NO_PAUSED_SHIFT]

    clock_in(db, driver)
    with pytest.raises(ServiceError) as excinfo:
        resume_shift(db, driver)
    assert _codes(excinfo) == [ErrorCode.NOT_PAUSED]

    pause_shift(db, driver)
    with pytest.raises(ServiceError) as excinfo:
        pause_shift(db, driver)
    assert _codes(excinfo) == [ErrorCode.ALREADY_PAUSED]


def test_telemetry_keeps_status(db):
    driver = make_driver(db)
    assignment = make_assignment(db, driver)
    clock_in(db, driver)
    pause_shift(db, driver)

    event = record_telemetry(db, driver, odometer=50120, gps_lat=Decimal("5.6037"), gps_lon=Decimal("-0.1870"))
    assert event.event_type == ShiftEventType.telemetry_snapshot
    db.refresh(assignment)
    assert assignment.status == ShiftStatus.paused


def test_event_created_at_never_goes_backwards(db):
    driver = make_driver(db)
    assignment = make_assignment(db, driver)
    later = datetime(2025, 3, 10, 12, 0)
    earlier = later - timedelta(minutes=5)

    clock_in(db, driver, now=later)
    paused = pause_shift(db, driver, now=earlier)

    assert paused.sequence == 2
    assert paused.created_at == later


def test_events_are_append_only(db):
    driver = make_driver(db)
    make_assignment(db, driver)
    event = clock_in(db, driver, notes="morning")

    event.notes = "edited"
    with pytest.raises(ImmutableRecordError):
        db.flush()
    db.rollback()

    db.delete(event)
    with pytest.raises(ImmutableRecordError):
        db.flush()
    db.rollback()


def test_completed_assignment_is_frozen(db):
    driver = make_driver(db)
    assignment = make_assignment(db, driver)
    clock_in(db, driver)
    clock_out(db, driver)

    assignment.city = City.kumasi
    with pytest.raises(ImmutableRecordError):
        db.flush()
    db.rollback()
