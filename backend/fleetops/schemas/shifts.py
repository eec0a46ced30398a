from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from fleetops.models.enums import City
from fleetops.schemas.common import ErrorOut, Money, ShiftEventTypeName, ShiftStatusName
from fleetops.services.scheduling import Duration, Schedule


# Readings are range-checked by the state machine so every violation comes
# back as a field error in the envelope.
class ReadingsIn(BaseModel):
    odometer: int | None = None
    vehicle_range: int | None = None
    gps_lat: Decimal | None = None
    gps_lon: Decimal | None = None
    notes: str | None = Field(default=None, max_length=2000)


class ClockInIn(ReadingsIn):
    shift_assignment_id: int | None = None
    vehicle_id: int | None = None


class ClockOutIn(ReadingsIn):
    shift_assignment_id: int | None = None
    bolt_earnings: Money | None = None
    uber_earnings: Money | None = None


class TelemetryIn(ReadingsIn):
    pass


class ShiftEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    shift_assignment_id: int
    sequence: int
    event_type: ShiftEventTypeName
    odometer: int | None
    vehicle_range: int | None
    gps_lat: Decimal | None
    gps_lon: Decimal | None
    notes: str | None
    created_at: datetime


class ShiftEventEnvelope(BaseModel):
    shift_event: ShiftEventOut | None = None
    errors: list[ErrorOut] = Field(default_factory=list)


class ShiftAssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    driver_id: int
    vehicle_id: int | None
    city: City
    start_time: datetime
    end_time: datetime
    actual_start_time: datetime | None
    actual_end_time: datetime | None
    status: ShiftStatusName
    recurrence_rule: str | None


class CurrentShiftOut(BaseModel):
    shift_assignment: ShiftAssignmentOut | None = None
    events: list[ShiftEventOut] = Field(default_factory=list)
    errors: list[ErrorOut] = Field(default_factory=list)


class ScheduleIn(BaseModel):
    driver_id: int
    schedule: Schedule = Schedule.daily_for_6_days_skip_1_day
    start_date: date | None = None
    end_date: date | None = None
    duration: Duration | None = None
    city: City = City.accra


class ScheduleEnvelope(BaseModel):
    shift_assignments: list[ShiftAssignmentOut] | None = None
    errors: list[ErrorOut] = Field(default_factory=list)
