from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from fleetops.schemas.common import ErrorOut, Money, PaginationOut, RevenueSourceName


class RevenueRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    driver_id: int
    shift_assignment_id: int | None
    vehicle_id: int | None
    source: RevenueSourceName
    total_revenue: Money
    total_profit: Money
    reconciled: bool
    earnings_screenshot: str | None
    realized_at: datetime
    created_at: datetime


class RevenueCreateIn(BaseModel):
    driver_id: int
    vehicle_id: int | None = None
    date: date
    source: RevenueSourceName
    total_revenue: Money
    reconciled: bool = False
    earnings_screenshot: str | None = Field(default=None, max_length=512)


class ReconciledIn(BaseModel):
    reconciled: bool


class RevenueEnvelope(BaseModel):
    revenue_record: RevenueRecordOut | None = None
    errors: list[ErrorOut] = Field(default_factory=list)


class SourceBreakdownOut(BaseModel):
    revenue: Money
    profit: Money
    reconciled: bool


class SourceTotalsOut(BaseModel):
    revenue: Money
    profit: Money


class RevenueGroupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    name: str
    date: date
    total_revenue: Money
    total_profit: Money
    all_reconciled: bool
    count: int
    vehicle_name: str | None
    source_breakdown: dict[str, SourceBreakdownOut]
    records: list[RevenueRecordOut]


class GroupedRevenueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    items: list[RevenueGroupOut]
    pagination: PaginationOut
    total_revenue: Money
    total_profit: Money
    source_totals: dict[str, SourceTotalsOut]


class RevenueStatsOut(BaseModel):
    total_revenue: Money
    total_profit: Money
    count: int
    source_totals: dict[str, SourceTotalsOut]
