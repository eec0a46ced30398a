from __future__ import annotations

from datetime import date, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from fleetops.models.enums import TripState
from fleetops.schemas.common import ErrorOut, Money, PaginationOut


class RecurrenceConfigIn(BaseModel):
    frequency: str = Field(pattern="^(daily|weekly|monthly)$")
    interval: int = Field(default=1, ge=1)
    end_date: date | None = None
    occurrence_count: int | None = Field(default=None, ge=1)
    # 0-6, Sunday first
    days_of_week: list[int] | None = None

    def as_config(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class TripRequestIn(BaseModel):
    client_name: str = Field(min_length=1, max_length=200)
    client_email: str = Field(min_length=1, max_length=255)
    client_phone: str = Field(min_length=1, max_length=32)
    pickup_location: str = Field(min_length=1, max_length=255)
    dropoff_location: str = Field(min_length=1, max_length=255)
    pickup_datetime: datetime
    recurrence_config: RecurrenceConfigIn | None = None


class TripReviewIn(BaseModel):
    price: Money
    notes: str | None = Field(default=None, max_length=2000)


class TripTokenIn(BaseModel):
    token: str = Field(min_length=1, max_length=128)


class TripCancelIn(BaseModel):
    reason: str | None = Field(default=None, max_length=255)


class TripAssignDriverIn(BaseModel):
    driver_id: int


class ScheduledTripOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_name: str
    client_email: str
    client_phone: str
    pickup_location: str
    dropoff_location: str
    pickup_datetime: datetime
    recurrence_config: dict
    is_recurring: bool
    price: Money | None
    notes: str | None
    state: TripState
    driver_id: int | None
    reviewed_by_id: int | None
    reviewed_at: datetime | None
    created_at: datetime


class TripAuditLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    previous_state: TripState | None
    new_state: TripState
    changed_by_id: int | None
    change_reason: str | None
    meta: dict = Field(validation_alias=AliasChoices("meta", "metadata"), serialization_alias="metadata")
    created_at: datetime


class ScheduledTripDetailOut(ScheduledTripOut):
    # Staff only: the links sent to the client are built from these.
    acceptance_token: str
    decline_token: str
    audit_logs: list[TripAuditLogOut] = Field(default_factory=list)


class ScheduledTripPageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    items: list[ScheduledTripOut]
    pagination: PaginationOut


class ScheduledTripEnvelope(BaseModel):
    scheduled_trip: ScheduledTripOut | None = None
    errors: list[ErrorOut] = Field(default_factory=list)


class AutoDeclineOut(BaseModel):
    declined: int
    scheduled_trip_ids: list[int]
