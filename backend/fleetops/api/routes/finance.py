from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from fleetops.api.deps import require_admin
from fleetops.db.session import get_db
from fleetops.models.user import User
from fleetops.schemas.finance import FinanceDetailsOut, FinanceTrendItemOut
from fleetops.services import finance


router = APIRouter(prefix="/finance")


@router.get("/details", response_model=FinanceDetailsOut)
def finance_details(
    start_date: date = Query(...),
    end_date: date = Query(...),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if end_date < start_date:
        raise HTTPException(status_code=422, detail="end_date must be on or after start_date")
    return FinanceDetailsOut.model_validate(finance.finance_details(db, start_date, end_date))


@router.get("/trend", response_model=list[FinanceTrendItemOut])
def finance_trend(
    months_back: int = Query(6, ge=2, le=24),
    include_projection: bool = Query(True),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    items = finance.finance_details_trend(db, months_back=months_back, include_projection=include_projection)
    return [FinanceTrendItemOut.model_validate(item) for item in items]
