from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fleetops.models.base import Base


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (
        CheckConstraint("latest_odometer >= 0", name="ck_vehicles_latest_odometer"),
        CheckConstraint("latest_range >= 0", name="ck_vehicles_latest_range"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    license_plate: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    make: Mapped[str] = mapped_column(String(64))
    model: Mapped[str] = mapped_column(String(64))
    year_of_manufacture: Mapped[int] = mapped_column(Integer)

    latest_odometer: Mapped[int] = mapped_column(Integer, default=0)
    latest_range: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    @property
    def display_name(self) -> str:
        return f"{self.make} {self.model} {self.license_plate}"
