"""Scheduled trip requests.

    pending --confirm--> confirmed --accept--> accepted
    pending|confirmed --decline--> declined
    confirmed --auto_decline--> auto_declined

Staff confirm a request by reviewing it (setting the price). The client then
accepts or declines through the tokens issued at creation. A confirmed trip
that is still unanswered when pickup is inside the response cutoff is
auto-declined. Every change, including driver assignment, writes one
``ScheduledTripAuditLog`` row in the same transaction.
"""

from __future__ import annotations

import enum
import logging
import re
import secrets
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from fleetops.core.config import get_settings
from fleetops.core.errors import ErrorCode, ServiceError, ValidationCollector
from fleetops.core.money import to_money
from fleetops.db.session import transaction
from fleetops.models.driver import Driver
from fleetops.models.enums import TripState
from fleetops.models.scheduled_trip import ScheduledTrip, ScheduledTripAuditLog
from fleetops.models.user import User
from fleetops.services.aggregation import PageRequest, Pagination, paginate
from fleetops.services.window import day_bounds


logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

CREATED_REASON = "Trip request created"
CONFIRMED_REASON = "Reviewed and confirmed by staff"
ACCEPTED_REASON = "Accepted by client via secure link"
DECLINED_REASON = "Declined by client via secure link"
CANCELLED_REASON = "Cancelled by staff"
AUTO_DECLINED_REASON = "Auto-declined: No response received within {hours} hours of pickup time"
DRIVER_ASSIGNED_REASON = "Driver assigned"

CLOSED_STATES = (TripState.declined, TripState.auto_declined)


class TripAction(str, enum.Enum):
    confirm = "confirm"
    accept = "accept"
    decline = "decline"
    auto_decline = "auto_decline"


TRANSITIONS: dict[tuple[TripState, TripAction], TripState] = {
    (TripState.pending, TripAction.confirm): TripState.confirmed,
    (TripState.confirmed, TripAction.accept): TripState.accepted,
    (TripState.pending, TripAction.decline): TripState.declined,
    (TripState.confirmed, TripAction.decline): TripState.declined,
    (TripState.confirmed, TripAction.auto_decline): TripState.auto_declined,
}


def next_state(state: TripState, action: TripAction) -> TripState | None:
    return TRANSITIONS.get((state, action))


def response_cutoff() -> timedelta:
    return timedelta(hours=get_settings().trip_response_cutoff_hours)


def can_be_accepted(trip: ScheduledTrip, now: datetime) -> bool:
    return trip.state == TripState.confirmed and trip.pickup_datetime > now + response_cutoff()


def can_be_declined(trip: ScheduledTrip) -> bool:
    return next_state(trip.state, TripAction.decline) is not None


def _new_token() -> str:
    return secrets.token_urlsafe(32)


def _audit(
    db: Session,
    trip: ScheduledTrip,
    previous: TripState | None,
    *,
    reason: str,
    user: User | None = None,
    metadata: dict | None = None,
    now: datetime,
) -> ScheduledTripAuditLog:
    entry = ScheduledTripAuditLog(
        scheduled_trip_id=trip.id,
        previous_state=previous,
        new_state=trip.state,
        changed_by_id=user.id if user is not None else None,
        change_reason=reason,
        meta=metadata or {},
        created_at=now,
    )
    db.add(entry)
    db.flush()
    return entry


def _transition(
    db: Session,
    trip: ScheduledTrip,
    action: TripAction,
    *,
    reason: str,
    user: User | None = None,
    metadata: dict | None = None,
    now: datetime,
) -> ScheduledTrip:
    target = next_state(trip.state, action)
    if target is None:
        raise ServiceError.single(
            f"Cannot {action.value} a {trip.state.value} trip",
            code=ErrorCode.INVALID_STATE,
            field="state",
        )

    previous = trip.state
    trip.state = target
    db.add(trip)
    db.flush()
    _audit(db, trip, previous, reason=reason, user=user, metadata=metadata, now=now)

    logger.info("Scheduled trip %s: %s -> %s (%s)", trip.id, previous.value, target.value, reason)
    return trip


def _get_trip(db: Session, trip_id: int) -> ScheduledTrip:
    trip = db.query(ScheduledTrip).filter(ScheduledTrip.id == trip_id).with_for_update().first()
    if trip is None:
        raise ServiceError.single("Scheduled trip not found", code=ErrorCode.NOT_FOUND, field="scheduled_trip_id")
    return trip


def _trip_by_token(db: Session, column, token: str) -> ScheduledTrip:
    trip = None
    if token:
        trip = db.query(ScheduledTrip).filter(column == token).with_for_update().first()
    if trip is None:
        raise ServiceError.single("Invalid or expired token", code=ErrorCode.INVALID_TOKEN, field="token")
    return trip


def create_trip_request(
    db: Session,
    *,
    client_name: str,
    client_email: str,
    client_phone: str,
    pickup_location: str,
    dropoff_location: str,
    pickup_datetime: datetime,
    recurrence_config: dict | None = None,
    now: datetime | None = None,
) -> ScheduledTrip:
    now = now or datetime.utcnow()
    if pickup_datetime.tzinfo is not None:
        # Stored as naive UTC like every other timestamp.
        pickup_datetime = pickup_datetime.astimezone(timezone.utc).replace(tzinfo=None)
    client_name = (client_name or "").strip()
    client_email = (client_email or "").strip().lower()
    client_phone = (client_phone or "").strip()
    pickup_location = (pickup_location or "").strip()
    dropoff_location = (dropoff_location or "").strip()

    errors = ValidationCollector()
    for field, value in (
        ("client_name", client_name),
        ("client_email", client_email),
        ("client_phone", client_phone),
        ("pickup_location", pickup_location),
        ("dropoff_location", dropoff_location),
    ):
        if not value:
            errors.add(f"{field.replace('_', ' ').capitalize()} can't be blank", field=field, code=ErrorCode.BLANK)
    if client_email and not EMAIL_RE.match(client_email):
        errors.add("Client email is invalid", field="client_email", code=ErrorCode.INVALID)
    if pickup_datetime <= now:
        errors.add("Pickup datetime must be in the future", field="pickup_datetime", code=ErrorCode.VALIDATION_ERROR)
    errors.raise_if_any()

    with transaction(db):
        trip = ScheduledTrip(
            client_name=client_name,
            client_email=client_email,
            client_phone=client_phone,
            pickup_location=pickup_location,
            dropoff_location=dropoff_location,
            pickup_datetime=pickup_datetime,
            recurrence_config=recurrence_config or {},
            acceptance_token=_new_token(),
            decline_token=_new_token(),
            state=TripState.pending,
            created_at=now,
            updated_at=now,
        )
        db.add(trip)
        db.flush()
        _audit(db, trip, None, reason=CREATED_REASON, now=now)

    logger.info("Scheduled trip %s requested for %s", trip.id, pickup_datetime.isoformat())
    return trip


def review_trip(
    db: Session,
    trip_id: int,
    *,
    price: Decimal,
    reviewer: User,
    notes: str | None = None,
    now: datetime | None = None,
) -> ScheduledTrip:
    now = now or datetime.utcnow()
    errors = ValidationCollector()
    errors.at_least("price", price, 0, "Price")
    errors.raise_if_any()

    with transaction(db):
        trip = _get_trip(db, trip_id)
        if trip.state != TripState.pending:
            raise ServiceError.single("Only pending trips can be reviewed", code=ErrorCode.INVALID_STATE, field="state")

        trip.price = to_money(price)
        trip.notes = notes
        trip.reviewed_by_id = reviewer.id
        trip.reviewed_at = now
        _transition(
            db,
            trip,
            TripAction.confirm,
            reason=CONFIRMED_REASON,
            user=reviewer,
            metadata={"price": str(trip.price), "notes": notes},
            now=now,
        )
    return trip


def accept_trip(db: Session, token: str, *, now: datetime | None = None) -> ScheduledTrip:
    now = now or datetime.utcnow()
    with transaction(db):
        trip = _trip_by_token(db, ScheduledTrip.acceptance_token, token)
        if not can_be_accepted(trip, now):
            raise ServiceError.single(
                "Trip cannot be accepted in current state or is too close to pickup time",
                code=ErrorCode.INVALID_STATE,
                field="state",
            )
        _transition(db, trip, TripAction.accept, reason=ACCEPTED_REASON, now=now)
    return trip


def decline_trip(db: Session, token: str, *, now: datetime | None = None) -> ScheduledTrip:
    now = now or datetime.utcnow()
    with transaction(db):
        trip = _trip_by_token(db, ScheduledTrip.decline_token, token)
        if not can_be_declined(trip):
            raise ServiceError.single(
                "Trip cannot be declined in current state",
                code=ErrorCode.INVALID_STATE,
                field="state",
            )
        _transition(db, trip, TripAction.decline, reason=DECLINED_REASON, now=now)
    return trip


def cancel_trip(
    db: Session,
    trip_id: int,
    *,
    user: User,
    reason: str | None = None,
    now: datetime | None = None,
) -> ScheduledTrip:
    now = now or datetime.utcnow()
    with transaction(db):
        trip = _get_trip(db, trip_id)
        if not can_be_declined(trip):
            raise ServiceError.single(
                "Trip cannot be cancelled in current state",
                code=ErrorCode.INVALID_STATE,
                field="state",
            )
        _transition(
            db,
            trip,
            TripAction.decline,
            reason=(reason or "").strip() or CANCELLED_REASON,
            user=user,
            metadata={"cancelled_by": user.id, "cancelled_at": now.isoformat()},
            now=now,
        )
    return trip


def assign_driver(
    db: Session,
    trip_id: int,
    *,
    driver_id: int,
    user: User,
    now: datetime | None = None,
) -> ScheduledTrip:
    now = now or datetime.utcnow()
    with transaction(db):
        trip = _get_trip(db, trip_id)
        if trip.state != TripState.pending:
            raise ServiceError.single(
                "Only pending trips can have drivers assigned",
                code=ErrorCode.INVALID_STATE,
                field="state",
            )
        driver = db.get(Driver, driver_id)
        if driver is None:
            raise ServiceError.single("Driver not found", code=ErrorCode.NOT_FOUND, field="driver_id")

        trip.driver_id = driver.id
        db.add(trip)
        db.flush()
        _audit(
            db,
            trip,
            trip.state,
            reason=DRIVER_ASSIGNED_REASON,
            user=user,
            metadata={"driver_id": driver.id, "driver_name": driver.full_name},
            now=now,
        )

    logger.info("Driver %s assigned to scheduled trip %s by user %s", driver.id, trip.id, user.id)
    return trip


def auto_decline_due_trips(db: Session, *, now: datetime | None = None) -> list[ScheduledTrip]:
    """Auto-decline every confirmed trip whose pickup is inside the response cutoff."""
    now = now or datetime.utcnow()
    with transaction(db):
        due = (
            db.query(ScheduledTrip)
            .filter(ScheduledTrip.state == TripState.confirmed)
            .filter(ScheduledTrip.pickup_datetime <= now + response_cutoff())
            .order_by(ScheduledTrip.pickup_datetime.asc(), ScheduledTrip.id.asc())
            .with_for_update()
            .all()
        )
        for trip in due:
            _transition(
                db,
                trip,
                TripAction.auto_decline,
                reason=AUTO_DECLINED_REASON.format(hours=get_settings().trip_response_cutoff_hours),
                metadata={"auto_declined_at": now.isoformat()},
                now=now,
            )

    logger.info("Auto-declined %s scheduled trips", len(due))
    return due


@dataclass
class TripFilters:
    state: TripState | None = None
    start_date: date | None = None
    end_date: date | None = None
    recurring: bool | None = None
    client_email: str | None = None


@dataclass
class TripPage:
    items: list[ScheduledTrip]
    pagination: Pagination


def list_trips(db: Session, filters: TripFilters | None = None, page: PageRequest | None = None) -> TripPage:
    """Open trips (declined ones excluded) in pickup order."""
    filters = filters or TripFilters()
    page = page or PageRequest()

    q = db.query(ScheduledTrip).filter(ScheduledTrip.state.notin_(CLOSED_STATES))
    if filters.state is not None:
        q = q.filter(ScheduledTrip.state == filters.state)
    if filters.start_date is not None:
        q = q.filter(ScheduledTrip.pickup_datetime >= day_bounds(filters.start_date, filters.start_date)[0])
    if filters.end_date is not None:
        q = q.filter(ScheduledTrip.pickup_datetime < day_bounds(filters.end_date, filters.end_date)[1])
    if filters.client_email:
        q = q.filter(ScheduledTrip.client_email == filters.client_email.strip().lower())

    trips = q.order_by(ScheduledTrip.pickup_datetime.asc(), ScheduledTrip.id.asc()).all()
    # Recurrence lives in a JSON column, matched here.
    if filters.recurring is not None:
        trips = [t for t in trips if t.is_recurring == filters.recurring]

    items, pagination = paginate(trips, page)
    return TripPage(items=items, pagination=pagination)


def audit_trail(db: Session, trip_id: int) -> list[ScheduledTripAuditLog]:
    return (
        db.query(ScheduledTripAuditLog)
        .filter(ScheduledTripAuditLog.scheduled_trip_id == trip_id)
        .order_by(ScheduledTripAuditLog.id.asc())
        .all()
    )
