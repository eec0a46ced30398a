from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from fleetops.models.base import Base
from fleetops.models.enums import RevenueSource
from fleetops.models.types import IntEnumType


class RevenueRecord(Base):
    __tablename__ = "revenue_records"
    __table_args__ = (
        CheckConstraint("total_revenue >= 0", name="ck_revenue_records_total_revenue"),
        Index("ix_revenue_records_driver_realized", "driver_id", "realized_at"),
        Index("ix_revenue_records_shift_source", "driver_id", "shift_assignment_id", "source"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    driver_id: Mapped[int] = mapped_column(ForeignKey("drivers.id"), index=True)
    shift_assignment_id: Mapped[int | None] = mapped_column(ForeignKey("shift_assignments.id"), index=True, nullable=True)
    vehicle_id: Mapped[int | None] = mapped_column(ForeignKey("vehicles.id"), index=True, nullable=True)

    source: Mapped[RevenueSource] = mapped_column(IntEnumType(RevenueSource), default=RevenueSource.bolt, index=True)
    total_revenue: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_profit: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    reconciled: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    earnings_screenshot: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # The day the money was earned; grouping and payroll key off this.
    realized_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
