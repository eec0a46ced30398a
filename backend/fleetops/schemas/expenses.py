from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from fleetops.models.enums import ExpenseCategory
from fleetops.schemas.common import ErrorOut, Money, PaginationOut


class ExpenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    vehicle_id: int | None
    amount: Money
    category: ExpenseCategory
    description: str | None
    date: date
    receipt_key: str | None
    created_at: datetime


class ExpenseCreateIn(BaseModel):
    vehicle_id: int | None = None
    amount: Money
    category: ExpenseCategory
    date: date
    description: str | None = Field(default=None, max_length=2000)
    receipt_key: str | None = Field(default=None, max_length=512)
    override_warnings: bool = False


class ExpenseEnvelope(BaseModel):
    expense: ExpenseOut | None = None
    errors: list[ErrorOut] = Field(default_factory=list)


class ExpenseGroupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    name: str
    date: date
    total_amount: Money
    count: int
    category_breakdown: dict[str, Money]
    expenses: list[ExpenseOut]


class GroupedExpensesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    items: list[ExpenseGroupOut]
    pagination: PaginationOut
    total_amount: Money
    category_totals: dict[str, Money]


class ExpenseStatsOut(BaseModel):
    total_amount: Money
    count: int
    category_totals: dict[str, Money]
