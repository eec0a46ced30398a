from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fleetops.models.base import Base
from fleetops.models.enums import ShiftEventType
from fleetops.models.types import IntEnumType


class ShiftEvent(Base):
    """One entry of a shift's append-only audit trail."""

    __tablename__ = "shift_events"
    __table_args__ = (
        UniqueConstraint("shift_assignment_id", "sequence", name="uq_shift_events_assignment_sequence"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    shift_assignment_id: Mapped[int] = mapped_column(ForeignKey("shift_assignments.id"), index=True)
    sequence: Mapped[int] = mapped_column(Integer)
    event_type: Mapped[ShiftEventType] = mapped_column(IntEnumType(ShiftEventType), index=True)

    odometer: Mapped[int | None] = mapped_column(Integer, nullable=True)
    vehicle_range: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gps_lat: Mapped[Decimal | None] = mapped_column(Numeric(10, 6), nullable=True)
    gps_lon: Mapped[Decimal | None] = mapped_column(Numeric(10, 6), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
