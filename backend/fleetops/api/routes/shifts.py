from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fleetops.api.deps import get_current_driver, get_current_user, require_admin
from fleetops.api.envelope import run_service
from fleetops.core.errors import ServiceError
from fleetops.db.session import get_db
from fleetops.models.driver import Driver
from fleetops.models.shift_assignment import ShiftAssignment
from fleetops.models.user import User, UserRole
from fleetops.schemas.shifts import (
    ClockInIn,
    ClockOutIn,
    CurrentShiftOut,
    ScheduleEnvelope,
    ScheduleIn,
    ShiftAssignmentOut,
    ShiftEventEnvelope,
    ShiftEventOut,
    TelemetryIn,
)
from fleetops.services import event_log, scheduling, shift_state_machine


router = APIRouter(prefix="/shifts")


@router.post("/clock-in", response_model=ShiftEventEnvelope)
def clock_in(
    payload: ClockInIn,
    driver: Driver | None = Depends(get_current_driver),
    db: Session = Depends(get_db),
):
    return run_service(
        db,
        "shift_event",
        ShiftEventOut,
        shift_state_machine.clock_in,
        db,
        driver,
        **payload.model_dump(),
    )


@router.post("/clock-out", response_model=ShiftEventEnvelope)
def clock_out(
    payload: ClockOutIn,
    driver: Driver | None = Depends(get_current_driver),
    db: Session = Depends(get_db),
):
    return run_service(
        db,
        "shift_event",
        ShiftEventOut,
        shift_state_machine.clock_out,
        db,
        driver,
        **payload.model_dump(),
    )


@router.post("/pause", response_model=ShiftEventEnvelope)
def pause(driver: Driver | None = Depends(get_current_driver), db: Session = Depends(get_db)):
    return run_service(db, "shift_event", ShiftEventOut, shift_state_machine.pause_shift, db, driver)


@router.post("/resume", response_model=ShiftEventEnvelope)
def resume(driver: Driver | None = Depends(get_current_driver), db: Session = Depends(get_db)):
    return run_service(db, "shift_event", ShiftEventOut, shift_state_machine.resume_shift, db, driver)


@router.post("/telemetry", response_model=ShiftEventEnvelope)
def telemetry(
    payload: TelemetryIn,
    driver: Driver | None = Depends(get_current_driver),
    db: Session = Depends(get_db),
):
    return run_service(
        db,
        "shift_event",
        ShiftEventOut,
        shift_state_machine.record_telemetry,
        db,
        driver,
        **payload.model_dump(),
    )


@router.get("/current", response_model=CurrentShiftOut)
def current(driver: Driver | None = Depends(get_current_driver), db: Session = Depends(get_db)):
    try:
        assignment = shift_state_machine.current_shift(db, driver)
    except ServiceError as exc:
        return CurrentShiftOut(errors=[e.as_dict() for e in exc.errors])

    if assignment is None:
        return CurrentShiftOut()
    return CurrentShiftOut(
        shift_assignment=ShiftAssignmentOut.model_validate(assignment),
        events=[ShiftEventOut.model_validate(e) for e in event_log.events_for(db, assignment.id)],
    )


@router.get("/mine", response_model=list[ShiftAssignmentOut])
def my_shifts(
    limit: int = Query(31, ge=1, le=200),
    driver: Driver | None = Depends(get_current_driver),
    db: Session = Depends(get_db),
):
    if driver is None:
        return []
    assignments = (
        db.query(ShiftAssignment)
        .filter(ShiftAssignment.driver_id == driver.id)
        .order_by(ShiftAssignment.start_time.desc())
        .limit(limit)
        .all()
    )
    return [ShiftAssignmentOut.model_validate(a) for a in assignments]


@router.get("/events/recent", response_model=list[ShiftEventOut])
def recent_events(
    limit: int = Query(20, ge=1, le=200),
    current: User = Depends(get_current_user),
    driver: Driver | None = Depends(get_current_driver),
    db: Session = Depends(get_db),
):
    if current.role == UserRole.admin:
        events = event_log.recent_events(db, limit=limit)
    elif driver is None:
        events = []
    else:
        events = event_log.recent_events(db, driver_id=driver.id, limit=limit)
    return [ShiftEventOut.model_validate(e) for e in events]


@router.get("/events", response_model=list[ShiftEventOut])
def events_on_day(
    day: date = Query(...),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [ShiftEventOut.model_validate(e) for e in event_log.events_on(db, day)]


@router.post("/schedule", response_model=ScheduleEnvelope)
def schedule_shifts(payload: ScheduleIn, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    driver = db.get(Driver, payload.driver_id)
    return run_service(
        db,
        "shift_assignments",
        ShiftAssignmentOut,
        scheduling.assign_shifts,
        db,
        driver,
        payload.schedule,
        start_date=payload.start_date,
        end_date=payload.end_date,
        duration=payload.duration,
        city=payload.city,
    )
