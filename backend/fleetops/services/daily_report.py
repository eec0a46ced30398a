"""Operational summary of a single day, rendered as numbers and prose."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from fleetops.core.config import get_settings
from fleetops.core.money import ZERO, to_money
from fleetops.models.enums import ShiftEventType
from fleetops.models.expense import Expense
from fleetops.models.revenue_record import RevenueRecord
from fleetops.models.shift_assignment import ShiftAssignment
from fleetops.models.shift_event import ShiftEvent
from fleetops.models.vehicle import Vehicle
from fleetops.services import event_log
from fleetops.services.window import day_bounds


logger = logging.getLogger(__name__)


@dataclass
class VehicleExpenses:
    id: int
    display_name: str
    total_expenses: Decimal


@dataclass
class DailyReport:
    date: date
    total_revenue: Decimal
    revenue_by_source: dict[str, Decimal]
    revenue_growth_percentage: Decimal
    total_expenses: Decimal
    vehicle_with_most_expenses: VehicleExpenses | None
    drivers_clocked_in: int
    total_distance_km: int
    total_shift_seconds: int
    human_readable_text: str = field(default="")


def _revenue_on(db: Session, day: date) -> tuple[Decimal, dict[str, Decimal]]:
    lower, upper = day_bounds(day, day)
    rows = (
        db.query(RevenueRecord.source, func.coalesce(func.sum(RevenueRecord.total_revenue), 0))
        .filter(RevenueRecord.realized_at >= lower)
        .filter(RevenueRecord.realized_at < upper)
        .group_by(RevenueRecord.source)
        .all()
    )
    by_source = {source.name: to_money(total) for source, total in rows}
    return to_money(sum(by_source.values(), ZERO)), by_source


def growth_percentage(current: Decimal, previous: Decimal) -> Decimal:
    if not previous:
        return Decimal("0.00")
    return ((current - previous) / previous * 100).quantize(Decimal("0.01"))


def _vehicle_with_most_expenses(db: Session, day: date) -> VehicleExpenses | None:
    row = (
        db.query(Expense.vehicle_id, func.sum(Expense.amount).label("total"))
        .filter(Expense.date == day)
        .filter(Expense.vehicle_id.is_not(None))
        .group_by(Expense.vehicle_id)
        .order_by(func.sum(Expense.amount).desc(), Expense.vehicle_id.asc())
        .first()
    )
    if row is None:
        return None
    vehicle = db.get(Vehicle, row.vehicle_id)
    if vehicle is None:
        return None
    return VehicleExpenses(id=vehicle.id, display_name=vehicle.display_name, total_expenses=to_money(row.total))


def _drivers_clocked_in(db: Session, day: date) -> int:
    lower, upper = day_bounds(day, day)
    return (
        db.query(func.count(func.distinct(ShiftAssignment.driver_id)))
        .join(ShiftEvent, ShiftEvent.shift_assignment_id == ShiftAssignment.id)
        .filter(ShiftEvent.event_type == ShiftEventType.clock_in)
        .filter(ShiftEvent.created_at >= lower)
        .filter(ShiftEvent.created_at < upper)
        .scalar()
        or 0
    )


def _distance_and_time(db: Session, day: date) -> tuple[int, int]:
    lower, upper = day_bounds(day, day)
    assignments = (
        db.query(ShiftAssignment.id)
        .filter(ShiftAssignment.start_time >= lower)
        .filter(ShiftAssignment.start_time < upper)
        .all()
    )

    distance = 0
    seconds = 0
    for (assignment_id,) in assignments:
        started = event_log.first_event(db, assignment_id, ShiftEventType.clock_in)
        ended = event_log.first_event(db, assignment_id, ShiftEventType.clock_out)
        if started is None or ended is None:
            continue
        if started.odometer is not None and ended.odometer is not None:
            driven = ended.odometer - started.odometer
            if driven > 0:
                distance += driven
        elapsed = (ended.created_at - started.created_at).total_seconds()
        if elapsed > 0:
            seconds += int(elapsed)
    return distance, seconds


def _plural(count: int, word: str) -> str:
    return f"{count} {word if count == 1 else word + 's'}"


def _revenue_text(currency: str, total: Decimal, by_source: dict[str, Decimal], growth: Decimal) -> str:
    if growth > 0:
        growth_text = f"an increase of {growth}%"
    elif growth < 0:
        growth_text = f"a decrease of {abs(growth)}%"
    else:
        growth_text = "no change"

    text = f"Total revenue was {currency} {total:.2f} with {growth_text} compared to the previous day"
    if not by_source or not total:
        return text + "."

    shares = ", ".join(
        f"{source.replace('_', ' ').capitalize()} ({(amount / total * 100).quantize(Decimal('0.01'))}%)"
        for source, amount in by_source.items()
    )
    return f"{text}, with revenue breakdown: {shares}."


def _expenses_text(currency: str, total: Decimal, top: VehicleExpenses | None) -> str:
    if top is None:
        return f"Total expenses were {currency} {total:.2f}."
    return (
        f"Total expenses were {currency} {total:.2f}, with {top.display_name} having the highest "
        f"expenses at {currency} {top.total_expenses:.2f}."
    )


def _drivers_text(count: int) -> str:
    if count == 0:
        return "No drivers clocked in."
    return f"{_plural(count, 'driver')} clocked in."


def _shift_time_text(total_seconds: int) -> str:
    if total_seconds == 0:
        return "No shift time was recorded."
    hours, remainder = divmod(total_seconds, 3600)
    minutes = remainder // 60
    if hours and minutes:
        worked = f"{_plural(hours, 'hour')} and {_plural(minutes, 'minute')}"
    elif hours:
        worked = _plural(hours, "hour")
    else:
        worked = _plural(minutes, "minute")
    return f"A combined total of {worked} was worked across all shifts."


def generate_daily_report(db: Session, day: date | None = None) -> DailyReport:
    day = day or date.today() - timedelta(days=1)
    currency = get_settings().currency

    total_revenue, by_source = _revenue_on(db, day)
    previous_revenue, _ = _revenue_on(db, day - timedelta(days=1))
    growth = growth_percentage(total_revenue, previous_revenue)

    total_expenses = to_money(
        db.query(func.coalesce(func.sum(Expense.amount), 0)).filter(Expense.date == day).scalar()
    )
    top_vehicle = _vehicle_with_most_expenses(db, day)
    drivers = _drivers_clocked_in(db, day)
    distance, seconds = _distance_and_time(db, day)

    report = DailyReport(
        date=day,
        total_revenue=total_revenue,
        revenue_by_source=by_source,
        revenue_growth_percentage=growth,
        total_expenses=total_expenses,
        vehicle_with_most_expenses=top_vehicle,
        drivers_clocked_in=drivers,
        total_distance_km=distance,
        total_shift_seconds=seconds,
    )
    report.human_readable_text = " ".join(
        [
            _revenue_text(currency, total_revenue, by_source, growth),
            _expenses_text(currency, total_expenses, top_vehicle),
            _drivers_text(drivers),
            f"A total of {distance} km was driven across all vehicles.",
            _shift_time_text(seconds),
        ]
    )

    logger.debug("Daily report for %s: revenue=%s expenses=%s", day.isoformat(), total_revenue, total_expenses)
    return report
