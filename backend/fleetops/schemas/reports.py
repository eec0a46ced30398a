from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict

from fleetops.schemas.common import Money


class VehicleExpensesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    display_name: str
    total_expenses: Money


class DailyReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    total_revenue: Money
    revenue_by_source: dict[str, Money]
    revenue_growth_percentage: Money
    total_expenses: Money
    vehicle_with_most_expenses: VehicleExpensesOut | None
    drivers_clocked_in: int
    total_distance_km: int
    total_shift_seconds: int
    human_readable_text: str
