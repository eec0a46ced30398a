from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from fleetops.core.config import get_settings
from fleetops.core.money import ZERO, to_money
from fleetops.models.revenue_record import RevenueRecord
from fleetops.models.vehicle import Vehicle
from fleetops.services import ledgers, payroll
from fleetops.services.window import add_months, month_end


logger = logging.getLogger(__name__)

# Average Gregorian month.
MONTH = timedelta(days=30.436875)


@dataclass(frozen=True)
class MonthTotals:
    revenue: Decimal
    payroll: Decimal
    expenses: Decimal

    @property
    def earnings(self) -> Decimal:
        return self.revenue - self.payroll - self.expenses

    def as_dict(self) -> dict:
        return {
            "total_revenue": to_money(self.revenue),
            "total_payroll_due": to_money(self.payroll),
            "total_expenses": to_money(self.expenses),
            "earnings": to_money(self.earnings),
        }


def month_totals(db: Session, start: date, end: date) -> MonthTotals:
    return MonthTotals(
        revenue=ledgers.aggregate_revenue(db, start, end),
        payroll=payroll.calculate_payroll(db, start, end).total_amount_due,
        expenses=ledgers.aggregate_expenses(db, start, end),
    )


def revenue_statistics(db: Session, *, now: datetime | None = None) -> dict:
    now = now or datetime.utcnow()
    total_all_time = to_money(db.query(func.coalesce(func.sum(RevenueRecord.total_revenue), 0)).scalar())

    first_realized = db.query(func.min(RevenueRecord.realized_at)).scalar()
    if first_realized is not None:
        months = max(1, math.ceil((now - first_realized) / MONTH))
        per_month = to_money(total_all_time / months)
    else:
        per_month = to_money(ZERO)

    vehicle_count = db.query(func.count(Vehicle.id)).scalar() or 0
    per_car = to_money(total_all_time / vehicle_count) if vehicle_count else to_money(ZERO)

    return {
        "total_revenue_all_time": total_all_time,
        "average_revenue_per_month": per_month,
        "average_revenue_per_car": per_car,
    }


def finance_details(db: Session, start: date, end: date, *, now: datetime | None = None) -> dict:
    details = month_totals(db, start, end).as_dict()
    details.update(revenue_statistics(db, now=now))
    return details


def project_next_month(history: Sequence[MonthTotals], uplift: Decimal | None = None) -> MonthTotals:
    """Mean of the given months, with revenue scaled by ``uplift``."""
    if uplift is None:
        uplift = get_settings().projection_uplift
    if not history:
        return MonthTotals(revenue=ZERO, payroll=ZERO, expenses=ZERO)

    count = len(history)
    return MonthTotals(
        revenue=sum((m.revenue for m in history), ZERO) / count * Decimal(uplift),
        payroll=sum((m.payroll for m in history), ZERO) / count,
        expenses=sum((m.expenses for m in history), ZERO) / count,
    )


def finance_details_trend(
    db: Session,
    months_back: int = 6,
    include_projection: bool = True,
    today: date | None = None,
) -> list[dict]:
    """Full calendar months before the current one, oldest dropped, plus a projection.

    The projection averages every computed month, including the dropped one.
    """
    today = today or date.today()
    current_month = today.replace(day=1)

    months = []
    for offset in range(months_back, 0, -1):
        start = add_months(current_month, -offset)
        end = month_end(start)
        months.append((start, end, month_totals(db, start, end)))

    items = [
        {
            "month": start.strftime("%b %y"),
            "start_date": start,
            "end_date": end,
            "is_projection": False,
            "finance_details": totals.as_dict(),
        }
        for start, end, totals in months[1:]
    ]

    if include_projection:
        projected = project_next_month([totals for _, _, totals in months])
        start = add_months(current_month, 1)
        items.append(
            {
                "month": start.strftime("%b %y") + " (Next)",
                "start_date": start,
                "end_date": month_end(start),
                "is_projection": True,
                "finance_details": projected.as_dict(),
            }
        )

    logger.debug("Built finance trend over %s months (projection=%s)", months_back, include_projection)
    return items
