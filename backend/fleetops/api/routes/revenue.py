from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fleetops.api.deps import require_admin
from fleetops.api.envelope import run_service
from fleetops.db.session import get_db
from fleetops.models.enums import RevenueSource
from fleetops.models.user import User
from fleetops.schemas.revenue import (
    GroupedRevenueOut,
    ReconciledIn,
    RevenueCreateIn,
    RevenueEnvelope,
    RevenueRecordOut,
    RevenueStatsOut,
)
from fleetops.services import aggregation, ledgers
from fleetops.services.window import DateWindow


router = APIRouter(prefix="/revenue")


@router.post("", response_model=RevenueEnvelope)
def create_revenue_record(payload: RevenueCreateIn, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return run_service(
        db,
        "revenue_record",
        RevenueRecordOut,
        ledgers.create_revenue_record,
        db,
        driver_id=payload.driver_id,
        vehicle_id=payload.vehicle_id,
        day=payload.date,
        source=payload.source,
        total_revenue=payload.total_revenue,
        reconciled=payload.reconciled,
        earnings_screenshot=payload.earnings_screenshot,
    )


@router.patch("/{record_id}/reconciled", response_model=RevenueEnvelope)
def update_reconciled(
    record_id: int,
    payload: ReconciledIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return run_service(db, "revenue_record", RevenueRecordOut, ledgers.set_reconciled, db, record_id, payload.reconciled)


@router.get("/grouped", response_model=GroupedRevenueOut)
def grouped_revenue(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    driver_id: int | None = Query(None),
    vehicle_id: int | None = Query(None),
    source: str | None = Query(None, pattern="^(bolt|uber|off_trip)$"),
    group_by: str = Query("driver", pattern="^(driver|vehicle)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    result = aggregation.group_revenue(
        db,
        DateWindow.of(start_date, end_date),
        aggregation.RevenueFilters(
            driver_id=driver_id,
            vehicle_id=vehicle_id,
            source=RevenueSource[source] if source else None,
        ),
        aggregation.PageRequest(page=page, per_page=per_page),
        group_by=group_by,
    )
    return GroupedRevenueOut.model_validate(result)


@router.get("/stats", response_model=RevenueStatsOut)
def revenue_stats(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return RevenueStatsOut.model_validate(aggregation.revenue_stats(db, start_date, end_date))
