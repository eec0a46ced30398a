from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fleetops.models.base import Base


class PayrollRecord(Base):
    __tablename__ = "payroll_records"
    __table_args__ = (
        CheckConstraint("amount_paid > 0", name="ck_payroll_records_amount_paid"),
        CheckConstraint("period_end_date >= period_start_date", name="ck_payroll_records_period"),
        UniqueConstraint(
            "driver_id",
            "period_start_date",
            "period_end_date",
            name="uq_payroll_records_driver_period",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    driver_id: Mapped[int] = mapped_column(ForeignKey("drivers.id"), index=True)
    paid_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    amount_paid: Mapped[Decimal] = mapped_column()
    period_start_date: Mapped[date] = mapped_column(Date)
    period_end_date: Mapped[date] = mapped_column(Date)
    paid_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
