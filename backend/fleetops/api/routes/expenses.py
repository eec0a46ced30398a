from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fleetops.api.deps import get_current_user, require_admin
from fleetops.api.envelope import run_service
from fleetops.db.session import get_db
from fleetops.models.enums import ExpenseCategory
from fleetops.models.user import User
from fleetops.schemas.expenses import (
    ExpenseCreateIn,
    ExpenseEnvelope,
    ExpenseOut,
    ExpenseStatsOut,
    GroupedExpensesOut,
)
from fleetops.services import aggregation, ledgers
from fleetops.services.window import DateWindow


router = APIRouter(prefix="/expenses")


@router.post("", response_model=ExpenseEnvelope)
def create_expense(payload: ExpenseCreateIn, current: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return run_service(
        db,
        "expense",
        ExpenseOut,
        ledgers.create_expense,
        db,
        user=current,
        vehicle_id=payload.vehicle_id,
        amount=payload.amount,
        category=payload.category,
        day=payload.date,
        description=payload.description,
        receipt_key=payload.receipt_key,
        override_warnings=payload.override_warnings,
    )


@router.get("/grouped", response_model=GroupedExpensesOut)
def grouped_expenses(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    driver_id: int | None = Query(None),
    vehicle_id: int | None = Query(None),
    category: ExpenseCategory | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    result = aggregation.group_expenses(
        db,
        DateWindow.of(start_date, end_date),
        aggregation.ExpenseFilters(driver_id=driver_id, vehicle_id=vehicle_id, category=category),
        aggregation.PageRequest(page=page, per_page=per_page),
    )
    return GroupedExpensesOut.model_validate(result)


@router.get("/stats", response_model=ExpenseStatsOut)
def expense_stats(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ExpenseStatsOut.model_validate(aggregation.expense_stats(db, start_date, end_date))
