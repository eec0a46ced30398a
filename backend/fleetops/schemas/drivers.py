from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from fleetops.models.enums import DriverTier
from fleetops.schemas.common import ErrorOut


class DriverOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    full_name: str
    phone_number: str
    dob: date | None
    verified: bool
    tier: DriverTier
    created_at: datetime


class DriverCreateIn(BaseModel):
    full_name: str = Field(min_length=1, max_length=200)
    phone_number: str = Field(min_length=3, max_length=32)
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=8, max_length=128)
    dob: date | None = None
    verified: bool = False
    tier: DriverTier = DriverTier.tier_1


class DriverEnvelope(BaseModel):
    driver: DriverOut | None = None
    errors: list[ErrorOut] = Field(default_factory=list)
