from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from fleetops.api.deps import get_current_driver, require_admin
from fleetops.api.envelope import run_service
from fleetops.db.session import get_db
from fleetops.models.driver import Driver
from fleetops.models.user import User
from fleetops.schemas.payroll import (
    DriverPayrollOut,
    PayrollOut,
    PayrollRecordCreateIn,
    PayrollRecordEnvelope,
    PayrollRecordOut,
)
from fleetops.services import payroll


router = APIRouter(prefix="/payroll")


def _check_period(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise HTTPException(status_code=422, detail="end_date must be on or after start_date")


@router.get("", response_model=PayrollOut)
def get_payroll(
    start_date: date = Query(...),
    end_date: date = Query(...),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    _check_period(start_date, end_date)
    return PayrollOut.model_validate(payroll.calculate_payroll(db, start_date, end_date))


@router.get("/me", response_model=DriverPayrollOut)
def my_payroll(
    start_date: date = Query(...),
    end_date: date = Query(...),
    driver: Driver | None = Depends(get_current_driver),
    db: Session = Depends(get_db),
):
    if driver is None:
        raise HTTPException(status_code=403, detail="Driver profile required")
    _check_period(start_date, end_date)
    return DriverPayrollOut.model_validate(payroll.calculate_driver_payroll(db, driver, start_date, end_date))


@router.post("/records", response_model=PayrollRecordEnvelope)
def create_payroll_record(
    payload: PayrollRecordCreateIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return run_service(
        db,
        "payroll_record",
        PayrollRecordOut,
        payroll.create_payroll_record,
        db,
        driver_id=payload.driver_id,
        amount_paid=payload.amount_paid,
        period_start_date=payload.period_start_date,
        period_end_date=payload.period_end_date,
        paid_by=admin,
        notes=payload.notes,
        paid_at=payload.paid_at,
    )
