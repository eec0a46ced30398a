from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from fleetops.models.base import Base
from fleetops.models.enums import DriverTier


class Driver(Base):
    __tablename__ = "drivers"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, index=True)

    full_name: Mapped[str] = mapped_column(String(200))
    phone_number: Mapped[str] = mapped_column(String(32), unique=True)
    dob: Mapped[date | None] = mapped_column(Date, nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    # Selects the payroll split; see services.payroll.
    tier: Mapped[DriverTier] = mapped_column(Enum(DriverTier), default=DriverTier.tier_1)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
