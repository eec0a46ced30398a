"""Driver shift lifecycle.

    scheduled --clock_in--> active --pause--> paused --resume--> active
    active|paused --clock_out--> completed

``missed`` is set from outside this module. Every transition locks the
driver and assignment rows, appends exactly one event and moves the status in
the same transaction. Where row locks are unavailable (SQLite),
``ShiftAssignment.version_id`` and the one-open-shift unique index catch the
concurrent writer instead.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from fleetops.core.errors import ErrorCode, ServiceError, ValidationCollector
from fleetops.db.session import transaction
from fleetops.models.driver import Driver
from fleetops.models.enums import RevenueSource, ShiftEventType, ShiftStatus
from fleetops.models.shift_assignment import ShiftAssignment
from fleetops.models.shift_event import ShiftEvent
from fleetops.models.vehicle import Vehicle
from fleetops.services import event_log, ledgers


logger = logging.getLogger(__name__)


TRANSITIONS: dict[tuple[ShiftStatus, ShiftEventType], ShiftStatus] = {
    (ShiftStatus.scheduled, ShiftEventType.clock_in): ShiftStatus.active,
    (ShiftStatus.active, ShiftEventType.pause): ShiftStatus.paused,
    (ShiftStatus.paused, ShiftEventType.resume): ShiftStatus.active,
    (ShiftStatus.active, ShiftEventType.clock_out): ShiftStatus.completed,
    (ShiftStatus.paused, ShiftEventType.clock_out): ShiftStatus.completed,
    (ShiftStatus.active, ShiftEventType.telemetry_snapshot): ShiftStatus.active,
    (ShiftStatus.paused, ShiftEventType.telemetry_snapshot): ShiftStatus.paused,
}

OPEN_STATUSES = (ShiftStatus.active, ShiftStatus.paused)


def next_status(status: ShiftStatus, event_type: ShiftEventType) -> ShiftStatus | None:
    return TRANSITIONS.get((status, event_type))


def _reading_errors(
    *,
    odometer: int | None,
    vehicle_range: int | None,
    gps_lat: Decimal | None,
    gps_lon: Decimal | None,
) -> ValidationCollector:
    errors = ValidationCollector()
    errors.at_least("odometer", odometer, 0, "Odometer")
    errors.at_least("vehicle_range", vehicle_range, 0, "Vehicle range")
    errors.within("gps_lat", gps_lat, -90, 90, "Latitude")
    errors.within("gps_lon", gps_lon, -180, 180, "Longitude")
    return errors


def _require_driver(driver: Driver | None) -> Driver:
    if driver is None:
        raise ServiceError.single("You do not have a driver profile", code=ErrorCode.NO_DRIVER_PROFILE)
    return driver


def _lock_driver(db: Session, driver: Driver) -> Driver:
    # Serializes every shift transition of one driver.
    return db.query(Driver).filter(Driver.id == driver.id).with_for_update().one()


def _open_assignments(db: Session, driver_id: int, *, lock: bool = False) -> list[ShiftAssignment]:
    q = (
        db.query(ShiftAssignment)
        .filter(ShiftAssignment.driver_id == driver_id)
        .filter(ShiftAssignment.status.in_(OPEN_STATUSES))
        .order_by(ShiftAssignment.start_time.asc(), ShiftAssignment.id.asc())
    )
    if lock:
        q = q.with_for_update()
    return q.all()


def _single_open_assignment(db: Session, driver: Driver, *, lock: bool = False) -> ShiftAssignment | None:
    assignments = _open_assignments(db, driver.id, lock=lock)
    if len(assignments) > 1:
        logger.error(
            "Driver %s holds %s open shifts: %s",
            driver.id,
            len(assignments),
            [a.id for a in assignments],
        )
        raise ServiceError.single(
            "More than one active shift found for this driver",
            code=ErrorCode.MULTIPLE_ACTIVE_SHIFTS,
        )
    return assignments[0] if assignments else None


def _locked_assignment(db: Session, assignment_id: int) -> ShiftAssignment | None:
    return (
        db.query(ShiftAssignment)
        .filter(ShiftAssignment.id == assignment_id)
        .with_for_update()
        .first()
    )


def _ensure_owner(driver: Driver, assignment: ShiftAssignment, action: str) -> None:
    if assignment.driver_id != driver.id:
        raise ServiceError.single(
            f"You don't have permission to {action} this shift",
            code=ErrorCode.PERMISSION_DENIED,
        )


def _apply(
    db: Session,
    assignment: ShiftAssignment,
    event_type: ShiftEventType,
    *,
    now: datetime | None,
    **readings,
) -> ShiftEvent:
    target = next_status(assignment.status, event_type)
    if target is None:
        raise ServiceError.single(
            f"Cannot {event_type.name} a {assignment.status.name} shift",
            code=ErrorCode.CONFLICT,
        )

    event = event_log.append_event(db, assignment, event_type, now=now, **readings)

    previous = assignment.status
    if target != previous:
        assignment.status = target
    if event_type == ShiftEventType.clock_in:
        assignment.actual_start_time = event.created_at
    elif event_type == ShiftEventType.clock_out:
        assignment.actual_end_time = event.created_at
    db.add(assignment)
    db.flush()

    if previous != target:
        logger.info(
            "Shift assignment %s: %s -> %s (event #%s)",
            assignment.id,
            previous.name,
            target.name,
            event.sequence,
        )
    return event


def clock_in(
    db: Session,
    driver: Driver | None,
    *,
    shift_assignment_id: int | None = None,
    vehicle_id: int | None = None,
    odometer: int | None = None,
    vehicle_range: int | None = None,
    gps_lat: Decimal | None = None,
    gps_lon: Decimal | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> ShiftEvent:
    driver = _require_driver(driver)
    errors = _reading_errors(odometer=odometer, vehicle_range=vehicle_range, gps_lat=gps_lat, gps_lon=gps_lon)
    if vehicle_id is not None and db.get(Vehicle, vehicle_id) is None:
        errors.add("Vehicle not found", field="vehicle_id", code=ErrorCode.VEHICLE_NOT_FOUND)
    errors.raise_if_any()

    try:
        with transaction(db):
            _lock_driver(db, driver)
            if shift_assignment_id is not None:
                assignment = _locked_assignment(db, shift_assignment_id)
            else:
                assignment = (
                    db.query(ShiftAssignment)
                    .filter(ShiftAssignment.driver_id == driver.id)
                    .filter(ShiftAssignment.status == ShiftStatus.scheduled)
                    .order_by(ShiftAssignment.start_time.asc(), ShiftAssignment.id.asc())
                    .with_for_update()
                    .first()
                )

            if assignment is None:
                raise ServiceError.single(
                    "Shift assignment not found",
                    code=ErrorCode.SHIFT_ASSIGNMENT_NOT_FOUND,
                    field="shift_assignment_id",
                )
            _ensure_owner(driver, assignment, "clock into")

            if assignment.status != ShiftStatus.scheduled or event_log.has_event(
                db, assignment.id, ShiftEventType.clock_in
            ):
                raise ServiceError.single("Already clocked in to this shift", code=ErrorCode.ALREADY_CLOCKED_IN)

            if _open_assignments(db, driver.id, lock=True):
                raise ServiceError.single(
                    "You are already clocked in to another shift",
                    code=ErrorCode.ALREADY_CLOCKED_IN,
                )

            if vehicle_id is not None:
                assignment.vehicle_id = vehicle_id

            event = _apply(
                db,
                assignment,
                ShiftEventType.clock_in,
                now=now,
                odometer=odometer,
                vehicle_range=vehicle_range,
                gps_lat=gps_lat,
                gps_lon=gps_lon,
                notes=notes,
            )
    except IntegrityError as exc:
        # The one-open-shift index rejected a concurrent clock-in.
        raise ServiceError.single(
            "You are already clocked in to another shift",
            code=ErrorCode.ALREADY_CLOCKED_IN,
        ) from exc
    except StaleDataError as exc:
        raise ServiceError.single(
            "Shift was changed by another request, try again",
            code=ErrorCode.CONFLICT,
        ) from exc
    return event


def clock_out(
    db: Session,
    driver: Driver | None,
    *,
    shift_assignment_id: int | None = None,
    odometer: int | None = None,
    vehicle_range: int | None = None,
    gps_lat: Decimal | None = None,
    gps_lon: Decimal | None = None,
    notes: str | None = None,
    bolt_earnings: Decimal | None = None,
    uber_earnings: Decimal | None = None,
    now: datetime | None = None,
) -> ShiftEvent:
    driver = _require_driver(driver)
    _reading_errors(odometer=odometer, vehicle_range=vehicle_range, gps_lat=gps_lat, gps_lon=gps_lon).raise_if_any()

    try:
        with transaction(db):
            _lock_driver(db, driver)
            if shift_assignment_id is not None:
                assignment = _locked_assignment(db, shift_assignment_id)
            else:
                assignment = _single_open_assignment(db, driver, lock=True)

            if assignment is None:
                raise ServiceError.single(
                    "Shift assignment not found",
                    code=ErrorCode.SHIFT_ASSIGNMENT_NOT_FOUND,
                    field="shift_assignment_id",
                )
            _ensure_owner(driver, assignment, "clock out of")

            if assignment.status == ShiftStatus.completed or event_log.has_event(
                db, assignment.id, ShiftEventType.clock_out
            ):
                raise ServiceError.single("Already clocked out of this shift", code=ErrorCode.ALREADY_CLOCKED_OUT)

            if assignment.status not in OPEN_STATUSES or not event_log.has_event(
                db, assignment.id, ShiftEventType.clock_in
            ):
                raise ServiceError.single("Must clock in before clocking out", code=ErrorCode.NOT_CLOCKED_IN)

            event = _apply(
                db,
                assignment,
                ShiftEventType.clock_out,
                now=now,
                odometer=odometer,
                vehicle_range=vehicle_range,
                gps_lat=gps_lat,
                gps_lon=gps_lon,
                notes=notes,
            )

            for source, amount in ((RevenueSource.bolt, bolt_earnings), (RevenueSource.uber, uber_earnings)):
                if amount is not None:
                    ledgers.record_shift_revenue(db, assignment=assignment, source=source, total_revenue=amount)

            if assignment.vehicle_id is not None and (odometer is not None or vehicle_range is not None):
                vehicle = db.get(Vehicle, assignment.vehicle_id)
                if vehicle is not None:
                    if odometer is not None:
                        vehicle.latest_odometer = odometer
                    if vehicle_range is not None:
                        vehicle.latest_range = vehicle_range
                    db.add(vehicle)
    except (IntegrityError, StaleDataError) as exc:
        raise ServiceError.single(
            "Already clocked out of this shift",
            code=ErrorCode.ALREADY_CLOCKED_OUT,
        ) from exc
    return event


def pause_shift(db: Session, driver: Driver | None, *, now: datetime | None = None) -> ShiftEvent:
    driver = _require_driver(driver)
    try:
        with transaction(db):
            _lock_driver(db, driver)
            assignment = _single_open_assignment(db, driver, lock=True)
            if assignment is None:
                raise ServiceError.single(
                    "No active shift found",
                    code=ErrorCode.NO_ACTIVE_SHIFT,
                    field="shift_assignment_id",
                )
            _ensure_owner(driver, assignment, "pause")
            if assignment.status == ShiftStatus.paused:
                raise ServiceError.single("Shift is already paused", code=ErrorCode.ALREADY_PAUSED)

            event = _apply(db, assignment, ShiftEventType.pause, now=now)
    except StaleDataError as exc:
        raise ServiceError.single("Shift was changed by another request, try again", code=ErrorCode.CONFLICT) from exc
    return event


def resume_shift(db: Session, driver: Driver | None, *, now: datetime | None = None) -> ShiftEvent:
    driver = _require_driver(driver)
    try:
        with transaction(db):
            _lock_driver(db, driver)
            assignment = _single_open_assignment(db, driver, lock=True)
            if assignment is None:
                raise ServiceError.single(
                    "No paused shift found",
                    code=ErrorCode.NO_PAUSED_SHIFT,
                    field="shift_assignment_id",
                )
            _ensure_owner(driver, assignment, "resume")
            if assignment.status != ShiftStatus.paused:
                raise ServiceError.single("Shift is not paused", code=ErrorCode.NOT_PAUSED)

            event = _apply(db, assignment, ShiftEventType.resume, now=now)
    except StaleDataError as exc:
        raise ServiceError.single("Shift was changed by another request, try again", code=ErrorCode.CONFLICT) from exc
    return event


def record_telemetry(
    db: Session,
    driver: Driver | None,
    *,
    odometer: int | None = None,
    vehicle_range: int | None = None,
    gps_lat: Decimal | None = None,
    gps_lon: Decimal | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> ShiftEvent:
    driver = _require_driver(driver)
    _reading_errors(odometer=odometer, vehicle_range=vehicle_range, gps_lat=gps_lat, gps_lon=gps_lon).raise_if_any()

    with transaction(db):
        _lock_driver(db, driver)
        assignment = _single_open_assignment(db, driver, lock=True)
        if assignment is None:
            raise ServiceError.single("No active shift found", code=ErrorCode.NO_ACTIVE_SHIFT)

        event = _apply(
            db,
            assignment,
            ShiftEventType.telemetry_snapshot,
            now=now,
            odometer=odometer,
            vehicle_range=vehicle_range,
            gps_lat=gps_lat,
            gps_lon=gps_lon,
            notes=notes,
        )
    return event


def current_shift(db: Session, driver: Driver | None) -> ShiftAssignment | None:
    if driver is None:
        return None
    return _single_open_assignment(db, driver)
