from __future__ import annotations

from datetime import date

from pydantic import BaseModel

from fleetops.schemas.common import Money


class EarningsOut(BaseModel):
    total_revenue: Money
    total_payroll_due: Money
    total_expenses: Money
    earnings: Money


class FinanceDetailsOut(EarningsOut):
    total_revenue_all_time: Money
    average_revenue_per_month: Money
    average_revenue_per_car: Money


class FinanceTrendItemOut(BaseModel):
    month: str
    start_date: date
    end_date: date
    is_projection: bool
    finance_details: EarningsOut
