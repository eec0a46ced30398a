"""Grouped revenue and expense reports, computed on read.

Rows inside the window are grouped by (driver or vehicle, calendar date),
groups are sorted newest day first and pagination runs over groups, while the
top-level totals always cover the whole filtered window.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from fleetops.core.money import ZERO, to_money
from fleetops.models.driver import Driver
from fleetops.models.enums import ExpenseCategory, RevenueSource
from fleetops.models.expense import Expense
from fleetops.models.revenue_record import RevenueRecord
from fleetops.models.shift_assignment import ShiftAssignment
from fleetops.models.vehicle import Vehicle
from fleetops.services.window import DateWindow, day_bounds


logger = logging.getLogger(__name__)

NO_VEHICLE = "no-vehicle"
NO_VEHICLE_NAME = "No Vehicle"
NO_DRIVER_NAME = "No Driver"


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    per_page: int = 20


@dataclass
class Pagination:
    current_page: int
    page_size: int
    total_size: int
    page_count: int
    first_page: bool
    last_page: bool
    next_page: int | None
    prev_page: int | None

    @classmethod
    def build(cls, total_size: int, request: PageRequest) -> "Pagination":
        page_count = math.ceil(total_size / request.per_page) if request.per_page else 0
        current = request.page
        return cls(
            current_page=current,
            page_size=request.per_page,
            total_size=total_size,
            page_count=page_count,
            first_page=current == 1,
            last_page=current == page_count,
            next_page=current + 1 if current < page_count else None,
            prev_page=current - 1 if current > 1 else None,
        )


def paginate(items: list, request: PageRequest) -> tuple[list, Pagination]:
    offset = (request.page - 1) * request.per_page
    return items[offset : offset + request.per_page], Pagination.build(len(items), request)


@dataclass
class RevenueFilters:
    driver_id: int | None = None
    vehicle_id: int | None = None
    source: RevenueSource | None = None


@dataclass
class ExpenseFilters:
    driver_id: int | None = None
    vehicle_id: int | None = None
    category: ExpenseCategory | None = None


@dataclass
class RevenueGroup:
    key: str
    name: str
    date: date
    total_revenue: Decimal
    total_profit: Decimal
    all_reconciled: bool
    count: int
    vehicle_name: str | None
    source_breakdown: dict[str, dict]
    records: list[RevenueRecord] = field(default_factory=list)


@dataclass
class GroupedRevenue:
    items: list[RevenueGroup]
    pagination: Pagination
    total_revenue: Decimal
    total_profit: Decimal
    source_totals: dict[str, dict]


@dataclass
class ExpenseGroup:
    key: str
    name: str
    date: date
    total_amount: Decimal
    count: int
    category_breakdown: dict[str, Decimal]
    expenses: list[Expense] = field(default_factory=list)


@dataclass
class GroupedExpenses:
    items: list[ExpenseGroup]
    pagination: Pagination
    total_amount: Decimal
    category_totals: dict[str, Decimal]


def _sort_key(name: str, day: date, total: Decimal):
    return (-day.toordinal(), name, -total)


def _filtered_revenue(db: Session, window: DateWindow, filters: RevenueFilters) -> list[RevenueRecord]:
    lower, upper = window.bounds()
    q = (
        db.query(RevenueRecord)
        .filter(RevenueRecord.realized_at >= lower)
        .filter(RevenueRecord.realized_at < upper)
    )

    # An id that resolves to nothing empties the result instead of being ignored.
    if filters.driver_id is not None:
        if db.get(Driver, filters.driver_id) is None:
            return []
        q = q.filter(RevenueRecord.driver_id == filters.driver_id)
    if filters.vehicle_id is not None:
        if db.get(Vehicle, filters.vehicle_id) is None:
            return []
        q = q.filter(RevenueRecord.vehicle_id == filters.vehicle_id)
    if filters.source is not None:
        q = q.filter(RevenueRecord.source == filters.source)

    return q.order_by(RevenueRecord.realized_at.desc(), RevenueRecord.id.desc()).all()


def _vehicle_for_records(db: Session, records: list[RevenueRecord]) -> dict[int, int | None]:
    """Record id -> vehicle id, falling back to the shift's vehicle."""
    shift_ids = {r.shift_assignment_id for r in records if r.vehicle_id is None and r.shift_assignment_id}
    shift_vehicle = {}
    if shift_ids:
        rows = (
            db.query(ShiftAssignment.id, ShiftAssignment.vehicle_id)
            .filter(ShiftAssignment.id.in_(shift_ids))
            .all()
        )
        shift_vehicle = {row.id: row.vehicle_id for row in rows}
    return {
        r.id: r.vehicle_id if r.vehicle_id is not None else shift_vehicle.get(r.shift_assignment_id)
        for r in records
    }


def _by_id(db: Session, model, ids) -> dict:
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    return {row.id: row for row in db.query(model).filter(model.id.in_(ids)).all()}


def group_revenue(
    db: Session,
    window: DateWindow,
    filters: RevenueFilters | None = None,
    page: PageRequest | None = None,
    group_by: str = "driver",
) -> GroupedRevenue:
    if group_by not in ("driver", "vehicle"):
        raise ValueError(f"Unsupported group_by: {group_by}")
    filters = filters or RevenueFilters()
    page = page or PageRequest()

    records = _filtered_revenue(db, window, filters)
    record_vehicle = _vehicle_for_records(db, records)
    drivers = _by_id(db, Driver, (r.driver_id for r in records))
    vehicles = _by_id(db, Vehicle, record_vehicle.values())

    total_revenue = ZERO
    total_profit = ZERO
    source_totals: dict[str, dict] = {}
    buckets: dict[tuple, list[RevenueRecord]] = {}

    for record in records:
        total_revenue += record.total_revenue
        total_profit += record.total_profit
        totals = source_totals.setdefault(record.source.name, {"revenue": ZERO, "profit": ZERO})
        totals["revenue"] += record.total_revenue
        totals["profit"] += record.total_profit

        if group_by == "driver":
            key = str(record.driver_id)
        else:
            vehicle_id = record_vehicle.get(record.id)
            key = str(vehicle_id) if vehicle_id is not None else NO_VEHICLE
        buckets.setdefault((key, record.realized_at.date()), []).append(record)

    groups = []
    for (key, day), bucket in buckets.items():
        first = bucket[0]
        vehicle = vehicles.get(record_vehicle.get(first.id))
        vehicle_name = vehicle.display_name if vehicle is not None else None
        if group_by == "driver":
            driver = drivers.get(first.driver_id)
            name = driver.full_name if driver is not None else NO_DRIVER_NAME
        else:
            name = vehicle_name or NO_VEHICLE_NAME

        breakdown: dict[str, dict] = {}
        for record in bucket:
            entry = breakdown.setdefault(
                record.source.name,
                {"revenue": ZERO, "profit": ZERO, "reconciled": True},
            )
            entry["revenue"] += record.total_revenue
            entry["profit"] += record.total_profit
            entry["reconciled"] = entry["reconciled"] and record.reconciled

        groups.append(
            RevenueGroup(
                key=key,
                name=name,
                date=day,
                total_revenue=to_money(sum((r.total_revenue for r in bucket), ZERO)),
                total_profit=to_money(sum((r.total_profit for r in bucket), ZERO)),
                all_reconciled=all(r.reconciled for r in bucket),
                count=len(bucket),
                vehicle_name=vehicle_name,
                source_breakdown=breakdown,
                records=bucket,
            )
        )

    groups.sort(key=lambda g: _sort_key(g.name, g.date, g.total_revenue))
    items, pagination = paginate(groups, page)

    logger.debug("Grouped %s revenue records into %s groups", len(records), len(groups))
    return GroupedRevenue(
        items=items,
        pagination=pagination,
        total_revenue=to_money(total_revenue),
        total_profit=to_money(total_profit),
        source_totals=source_totals,
    )


def _filtered_expenses(db: Session, window: DateWindow, filters: ExpenseFilters) -> list[Expense]:
    q = db.query(Expense).filter(Expense.date >= window.start).filter(Expense.date <= window.end)

    if filters.driver_id is not None:
        driver = db.get(Driver, filters.driver_id)
        if driver is None:
            return []
        q = q.filter(Expense.user_id == driver.user_id)
    if filters.vehicle_id is not None:
        if db.get(Vehicle, filters.vehicle_id) is None:
            return []
        q = q.filter(Expense.vehicle_id == filters.vehicle_id)
    if filters.category is not None:
        q = q.filter(Expense.category == filters.category)

    return q.order_by(Expense.date.desc(), Expense.created_at.asc(), Expense.id.asc()).all()


def group_expenses(
    db: Session,
    window: DateWindow,
    filters: ExpenseFilters | None = None,
    page: PageRequest | None = None,
) -> GroupedExpenses:
    filters = filters or ExpenseFilters()
    page = page or PageRequest()

    expenses = _filtered_expenses(db, window, filters)
    vehicles = _by_id(db, Vehicle, (e.vehicle_id for e in expenses))

    total_amount = ZERO
    category_totals: dict[str, Decimal] = {}
    buckets: dict[tuple, list[Expense]] = {}
    for expense in expenses:
        total_amount += expense.amount
        category_totals[expense.category.value] = category_totals.get(expense.category.value, ZERO) + expense.amount
        key = str(expense.vehicle_id) if expense.vehicle_id is not None else NO_VEHICLE
        buckets.setdefault((key, expense.date), []).append(expense)

    groups = []
    for (key, day), bucket in buckets.items():
        vehicle = vehicles.get(bucket[0].vehicle_id)
        breakdown: dict[str, Decimal] = {}
        for expense in bucket:
            breakdown[expense.category.value] = breakdown.get(expense.category.value, ZERO) + expense.amount
        groups.append(
            ExpenseGroup(
                key=key,
                name=vehicle.display_name if vehicle is not None else NO_VEHICLE_NAME,
                date=day,
                total_amount=to_money(sum((e.amount for e in bucket), ZERO)),
                count=len(bucket),
                category_breakdown=breakdown,
                expenses=bucket,
            )
        )

    groups.sort(key=lambda g: _sort_key(g.name, g.date, g.total_amount))
    items, pagination = paginate(groups, page)

    return GroupedExpenses(
        items=items,
        pagination=pagination,
        total_amount=to_money(total_amount),
        category_totals=category_totals,
    )


def revenue_stats(db: Session, start: date | None = None, end: date | None = None) -> dict:
    q = db.query(
        RevenueRecord.source,
        func.coalesce(func.sum(RevenueRecord.total_revenue), 0).label("revenue"),
        func.coalesce(func.sum(RevenueRecord.total_profit), 0).label("profit"),
        func.count(RevenueRecord.id).label("count"),
    )
    if start is not None:
        q = q.filter(RevenueRecord.realized_at >= day_bounds(start, start)[0])
    if end is not None:
        q = q.filter(RevenueRecord.realized_at < day_bounds(end, end)[1])

    rows = q.group_by(RevenueRecord.source).all()

    source_totals = {
        row.source.name: {"revenue": to_money(row.revenue), "profit": to_money(row.profit)}
        for row in rows
    }
    return {
        "total_revenue": to_money(sum((v["revenue"] for v in source_totals.values()), ZERO)),
        "total_profit": to_money(sum((v["profit"] for v in source_totals.values()), ZERO)),
        "count": sum(int(row.count) for row in rows),
        "source_totals": source_totals,
    }


def expense_stats(db: Session, start: date | None = None, end: date | None = None) -> dict:
    q = db.query(
        Expense.category,
        func.coalesce(func.sum(Expense.amount), 0).label("amount"),
        func.count(Expense.id).label("count"),
    )
    if start is not None:
        q = q.filter(Expense.date >= start)
    if end is not None:
        q = q.filter(Expense.date <= end)

    rows = q.group_by(Expense.category).all()

    category_totals = {row.category.value: to_money(row.amount) for row in rows}
    return {
        "total_amount": to_money(sum(category_totals.values(), ZERO)),
        "count": sum(int(row.count) for row in rows),
        "category_totals": category_totals,
    }
