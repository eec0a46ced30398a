from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from fleetops.api.deps import require_admin
from fleetops.api.envelope import run_service
from fleetops.db.session import get_db
from fleetops.models.enums import TripState
from fleetops.models.scheduled_trip import ScheduledTrip
from fleetops.models.user import User
from fleetops.schemas.scheduled_trips import (
    AutoDeclineOut,
    ScheduledTripDetailOut,
    ScheduledTripEnvelope,
    ScheduledTripOut,
    ScheduledTripPageOut,
    TripAssignDriverIn,
    TripAuditLogOut,
    TripCancelIn,
    TripRequestIn,
    TripReviewIn,
    TripTokenIn,
)
from fleetops.services import scheduled_trips
from fleetops.services.aggregation import PageRequest


router = APIRouter(prefix="/scheduled-trips")


# Client-facing: no account needed, the tokens are the credential.


@router.post("", response_model=ScheduledTripEnvelope)
def request_trip(payload: TripRequestIn, db: Session = Depends(get_db)):
    return run_service(
        db,
        "scheduled_trip",
        ScheduledTripOut,
        scheduled_trips.create_trip_request,
        db,
        client_name=payload.client_name,
        client_email=payload.client_email,
        client_phone=payload.client_phone,
        pickup_location=payload.pickup_location,
        dropoff_location=payload.dropoff_location,
        pickup_datetime=payload.pickup_datetime,
        recurrence_config=payload.recurrence_config.as_config() if payload.recurrence_config else None,
    )


@router.post("/accept", response_model=ScheduledTripEnvelope)
def accept_trip(payload: TripTokenIn, db: Session = Depends(get_db)):
    return run_service(db, "scheduled_trip", ScheduledTripOut, scheduled_trips.accept_trip, db, payload.token)


@router.post("/decline", response_model=ScheduledTripEnvelope)
def decline_trip(payload: TripTokenIn, db: Session = Depends(get_db)):
    return run_service(db, "scheduled_trip", ScheduledTripOut, scheduled_trips.decline_trip, db, payload.token)


# Staff


@router.get("", response_model=ScheduledTripPageOut)
def list_trips(
    state: TripState | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    recurring: bool | None = Query(None),
    client_email: str | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    result = scheduled_trips.list_trips(
        db,
        scheduled_trips.TripFilters(
            state=state,
            start_date=start_date,
            end_date=end_date,
            recurring=recurring,
            client_email=client_email,
        ),
        PageRequest(page=page, per_page=per_page),
    )
    return ScheduledTripPageOut.model_validate(result)


@router.post("/auto-decline", response_model=AutoDeclineOut)
def auto_decline(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    declined = scheduled_trips.auto_decline_due_trips(db)
    return AutoDeclineOut(declined=len(declined), scheduled_trip_ids=[t.id for t in declined])


@router.get("/{trip_id}", response_model=ScheduledTripDetailOut)
def get_trip(trip_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    trip = db.get(ScheduledTrip, trip_id)
    if trip is None:
        raise HTTPException(status_code=404, detail="Scheduled trip not found")
    detail = ScheduledTripDetailOut.model_validate(trip)
    detail.audit_logs = [TripAuditLogOut.model_validate(e) for e in scheduled_trips.audit_trail(db, trip.id)]
    return detail


@router.post("/{trip_id}/review", response_model=ScheduledTripEnvelope)
def review_trip(
    trip_id: int,
    payload: TripReviewIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return run_service(
        db,
        "scheduled_trip",
        ScheduledTripOut,
        scheduled_trips.review_trip,
        db,
        trip_id,
        price=payload.price,
        notes=payload.notes,
        reviewer=admin,
    )


@router.post("/{trip_id}/cancel", response_model=ScheduledTripEnvelope)
def cancel_trip(
    trip_id: int,
    payload: TripCancelIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return run_service(
        db,
        "scheduled_trip",
        ScheduledTripOut,
        scheduled_trips.cancel_trip,
        db,
        trip_id,
        user=admin,
        reason=payload.reason,
    )


@router.post("/{trip_id}/assign-driver", response_model=ScheduledTripEnvelope)
def assign_driver(
    trip_id: int,
    payload: TripAssignDriverIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return run_service(
        db,
        "scheduled_trip",
        ScheduledTripOut,
        scheduled_trips.assign_driver,
        db,
        trip_id,
        driver_id=payload.driver_id,
        user=admin,
    )
