from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from fleetops.models.base import Base
from fleetops.models.enums import City, ShiftStatus
from fleetops.models.types import IntEnumType


class ShiftAssignment(Base):
    __tablename__ = "shift_assignments"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_shift_assignments_end_after_start"),
        Index("ix_shift_assignments_driver_start", "driver_id", "start_time"),
        Index("ix_shift_assignments_vehicle_start", "vehicle_id", "start_time"),
        # At most one active (1) or paused (4) shift per driver.
        Index(
            "uq_shift_assignments_one_open_per_driver",
            "driver_id",
            unique=True,
            sqlite_where=text("status IN (1, 4)"),
            postgresql_where=text("status IN (1, 4)"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    driver_id: Mapped[int] = mapped_column(ForeignKey("drivers.id"), index=True)
    vehicle_id: Mapped[int | None] = mapped_column(ForeignKey("vehicles.id"), index=True, nullable=True)
    city: Mapped[City] = mapped_column(Enum(City), default=City.accra)

    # Scheduled window
    start_time: Mapped[datetime] = mapped_column(DateTime, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime)

    # Set from the clock_in / clock_out events
    actual_start_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    actual_end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    status: Mapped[ShiftStatus] = mapped_column(IntEnumType(ShiftStatus), default=ShiftStatus.scheduled, index=True)
    recurrence_rule: Mapped[str | None] = mapped_column(String(64), nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version_id}
