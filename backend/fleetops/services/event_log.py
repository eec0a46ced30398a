from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from fleetops.models.enums import ShiftEventType
from fleetops.models.shift_assignment import ShiftAssignment
from fleetops.models.shift_event import ShiftEvent


logger = logging.getLogger(__name__)


def _last_event(db: Session, assignment_id: int) -> ShiftEvent | None:
    return (
        db.query(ShiftEvent)
        .filter(ShiftEvent.shift_assignment_id == assignment_id)
        .order_by(ShiftEvent.sequence.desc())
        .first()
    )


def append_event(
    db: Session,
    assignment: ShiftAssignment,
    event_type: ShiftEventType,
    *,
    odometer: int | None = None,
    vehicle_range: int | None = None,
    gps_lat: Decimal | None = None,
    gps_lon: Decimal | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> ShiftEvent:
    """Append the next event to an assignment's log and flush it.

    ``sequence`` continues from the last stored event and ``created_at`` never
    goes backwards relative to it, so ordering by either column agrees.
    """
    now = now or datetime.utcnow()
    last = _last_event(db, assignment.id)

    sequence = 1
    created_at = now
    if last is not None:
        sequence = last.sequence + 1
        if last.created_at > created_at:
            created_at = last.created_at

    event = ShiftEvent(
        shift_assignment_id=assignment.id,
        sequence=sequence,
        event_type=event_type,
        odometer=odometer,
        vehicle_range=vehicle_range,
        gps_lat=gps_lat,
        gps_lon=gps_lon,
        notes=notes,
        created_at=created_at,
    )
    db.add(event)
    db.flush()

    logger.debug(
        "Appended %s #%s to shift assignment %s",
        event_type.name,
        sequence,
        assignment.id,
    )
    return event


def events_for(db: Session, assignment_id: int) -> list[ShiftEvent]:
    return (
        db.query(ShiftEvent)
        .filter(ShiftEvent.shift_assignment_id == assignment_id)
        .order_by(ShiftEvent.sequence.asc())
        .all()
    )


def has_event(db: Session, assignment_id: int, event_type: ShiftEventType) -> bool:
    return (
        db.query(ShiftEvent.id)
        .filter(ShiftEvent.shift_assignment_id == assignment_id)
        .filter(ShiftEvent.event_type == event_type)
        .first()
        is not None
    )


def first_event(db: Session, assignment_id: int, event_type: ShiftEventType) -> ShiftEvent | None:
    return (
        db.query(ShiftEvent)
        .filter(ShiftEvent.shift_assignment_id == assignment_id)
        .filter(ShiftEvent.event_type == event_type)
        .order_by(ShiftEvent.sequence.asc())
        .first()
    )


def recent_events(db: Session, *, driver_id: int | None = None, limit: int = 20) -> list[ShiftEvent]:
    q = db.query(ShiftEvent)
    if driver_id is not None:
        q = q.join(ShiftAssignment, ShiftAssignment.id == ShiftEvent.shift_assignment_id).filter(
            ShiftAssignment.driver_id == driver_id
        )
    return q.order_by(ShiftEvent.created_at.desc(), ShiftEvent.id.desc()).limit(limit).all()


def events_on(db: Session, day: date) -> list[ShiftEvent]:
    start = datetime.combine(day, datetime.min.time())
    return (
        db.query(ShiftEvent)
        .filter(ShiftEvent.created_at >= start)
        .filter(ShiftEvent.created_at < start + timedelta(days=1))
        .order_by(ShiftEvent.created_at.asc(), ShiftEvent.id.asc())
        .all()
    )
