from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fleetops.models.base import Base
from fleetops.models.enums import TripState


class ScheduledTrip(Base):
    """A client's request for a future pickup, reviewed by staff before the client accepts it."""

    __tablename__ = "scheduled_trips"

    id: Mapped[int] = mapped_column(primary_key=True)

    client_name: Mapped[str] = mapped_column(String(200))
    client_email: Mapped[str] = mapped_column(String(255), index=True)
    client_phone: Mapped[str] = mapped_column(String(32))
    pickup_location: Mapped[str] = mapped_column(String(255))
    dropoff_location: Mapped[str] = mapped_column(String(255))
    pickup_datetime: Mapped[datetime] = mapped_column(DateTime, index=True)
    # Empty for one-off trips.
    recurrence_config: Mapped[dict] = mapped_column(JSON, default=dict)

    price: Mapped[Decimal | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Secrets handed to the client for the accept / decline links.
    acceptance_token: Mapped[str] = mapped_column(String(64), unique=True)
    decline_token: Mapped[str] = mapped_column(String(64), unique=True)

    state: Mapped[TripState] = mapped_column(Enum(TripState), default=TripState.pending, index=True)
    reviewed_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    driver_id: Mapped[int | None] = mapped_column(ForeignKey("drivers.id"), index=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence_config)


class ScheduledTripAuditLog(Base):
    __tablename__ = "scheduled_trip_audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    scheduled_trip_id: Mapped[int] = mapped_column(ForeignKey("scheduled_trips.id"), index=True)
    previous_state: Mapped[TripState | None] = mapped_column(Enum(TripState), nullable=True)
    new_state: Mapped[TripState] = mapped_column(Enum(TripState))
    changed_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True, nullable=True)
    change_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    meta: Mapped[dict] = mapped_column("metadata", JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
