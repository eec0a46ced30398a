from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from fleetops.schemas.common import ErrorOut, Money
from fleetops.schemas.drivers import DriverOut


class DailyPayrollOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    revenue: Money
    amount_due: Money


class DriverPayrollOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    driver: DriverOut
    amount_due: Money
    start_date: date
    daily_breakdown: list[DailyPayrollOut]


class PayrollOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_amount_due: Money
    driver_payrolls: list[DriverPayrollOut]


class PayrollRecordCreateIn(BaseModel):
    driver_id: int
    amount_paid: Money
    period_start_date: date
    period_end_date: date
    paid_at: datetime | None = None
    notes: str | None = Field(default=None, max_length=2000)


class PayrollRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    driver_id: int
    paid_by_user_id: int
    amount_paid: Money
    period_start_date: date
    period_end_date: date
    paid_at: datetime
    notes: str | None
    created_at: datetime


class PayrollRecordEnvelope(BaseModel):
    payroll_record: PayrollRecordOut | None = None
    errors: list[ErrorOut] = Field(default_factory=list)
