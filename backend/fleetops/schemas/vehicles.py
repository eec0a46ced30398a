from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fleetops.schemas.common import ErrorOut


class VehicleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    license_plate: str
    make: str
    model: str
    year_of_manufacture: int
    latest_odometer: int
    latest_range: int
    display_name: str
    created_at: datetime


class VehicleCreateIn(BaseModel):
    license_plate: str = Field(min_length=1, max_length=32)
    make: str = Field(min_length=1, max_length=64)
    model: str = Field(min_length=1, max_length=64)
    year_of_manufacture: int = Field(ge=1950, le=2100)
    latest_odometer: int = Field(default=0, ge=0)
    latest_range: int = Field(default=0, ge=0)


class VehicleEnvelope(BaseModel):
    vehicle: VehicleOut | None = None
    errors: list[ErrorOut] = Field(default_factory=list)
