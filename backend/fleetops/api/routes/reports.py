from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fleetops.api.deps import require_admin
from fleetops.db.session import get_db
from fleetops.models.user import User
from fleetops.schemas.reports import DailyReportOut
from fleetops.services.daily_report import generate_daily_report


router = APIRouter(prefix="/reports")


@router.get("/daily", response_model=DailyReportOut)
def daily_report(
    day: date | None = Query(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return DailyReportOut.model_validate(generate_daily_report(db, day))
