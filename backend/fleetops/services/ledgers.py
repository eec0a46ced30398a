"""Revenue and expense ledgers.

Both ledgers only ever insert. Revenue rows may later flip ``reconciled``;
expenses are frozen once written (see ``fleetops.db.immutability``).
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from fleetops.core.errors import ErrorCode, ServiceError, ValidationCollector
from fleetops.core.money import ZERO, to_money
from fleetops.db.session import transaction
from fleetops.models.driver import Driver
from fleetops.models.enums import ExpenseCategory, RevenueSource
from fleetops.models.expense import Expense
from fleetops.models.revenue_record import RevenueRecord
from fleetops.models.shift_assignment import ShiftAssignment
from fleetops.models.user import User
from fleetops.models.vehicle import Vehicle
from fleetops.services.window import day_bounds


logger = logging.getLogger(__name__)


def _source_taken(db: Session, *, driver_id: int, shift_assignment_id: int, source: RevenueSource) -> bool:
    return (
        db.query(RevenueRecord.id)
        .filter(RevenueRecord.driver_id == driver_id)
        .filter(RevenueRecord.shift_assignment_id == shift_assignment_id)
        .filter(RevenueRecord.source == source)
        .first()
        is not None
    )


def record_shift_revenue(
    db: Session,
    *,
    assignment: ShiftAssignment,
    source: RevenueSource,
    total_revenue: Decimal,
    vehicle_id: int | None = None,
    reconciled: bool = False,
    earnings_screenshot: str | None = None,
) -> RevenueRecord:
    """Insert a revenue row for a known shift; the caller owns the transaction."""
    errors = ValidationCollector()
    errors.at_least("total_revenue", total_revenue, 0, "Total revenue")
    if source.is_platform and _source_taken(
        db,
        driver_id=assignment.driver_id,
        shift_assignment_id=assignment.id,
        source=source,
    ):
        errors.add(
            f"A {source.name} revenue record already exists for this shift",
            field="source",
            code=ErrorCode.TAKEN,
        )
    errors.raise_if_any()

    record = RevenueRecord(
        driver_id=assignment.driver_id,
        shift_assignment_id=assignment.id,
        vehicle_id=vehicle_id if vehicle_id is not None else assignment.vehicle_id,
        source=source,
        total_revenue=to_money(total_revenue),
        total_profit=ZERO,
        reconciled=reconciled,
        earnings_screenshot=earnings_screenshot,
        realized_at=assignment.start_time,
    )
    db.add(record)
    db.flush()
    return record


def create_revenue_record(
    db: Session,
    *,
    driver_id: int,
    vehicle_id: int | None,
    day: date,
    source: RevenueSource,
    total_revenue: Decimal,
    reconciled: bool = False,
    earnings_screenshot: str | None = None,
) -> RevenueRecord:
    driver = db.get(Driver, driver_id)
    if driver is None:
        raise ServiceError.single("Driver not found", code=ErrorCode.NOT_FOUND, field="driver_id")

    start, end = day_bounds(day, day)
    assignment = (
        db.query(ShiftAssignment)
        .filter(ShiftAssignment.driver_id == driver.id)
        .filter(ShiftAssignment.start_time >= start)
        .filter(ShiftAssignment.start_time < end)
        .order_by(ShiftAssignment.start_time.asc(), ShiftAssignment.id.asc())
        .first()
    )
    if assignment is None:
        raise ServiceError.single(
            "No shift assignment found for this driver on the given date, ensure the driver worked on that day",
            code=ErrorCode.NOT_FOUND,
            field="date",
        )

    if vehicle_id is not None and db.get(Vehicle, vehicle_id) is None:
        raise ServiceError.single("Vehicle not found", code=ErrorCode.NOT_FOUND, field="vehicle_id")

    with transaction(db):
        record = record_shift_revenue(
            db,
            assignment=assignment,
            source=source,
            total_revenue=total_revenue,
            vehicle_id=vehicle_id,
            reconciled=reconciled,
            earnings_screenshot=earnings_screenshot,
        )

    logger.info(
        "Recorded %s revenue %s for driver %s on %s",
        source.name,
        record.total_revenue,
        driver.id,
        day.isoformat(),
    )
    return record


def set_reconciled(db: Session, record_id: int, reconciled: bool) -> RevenueRecord:
    record = db.get(RevenueRecord, record_id)
    if record is None:
        raise ServiceError.single("Revenue record not found", code=ErrorCode.NOT_FOUND, field="id")

    with transaction(db):
        record.reconciled = reconciled
        db.add(record)

    logger.info("Revenue record %s reconciled=%s", record.id, reconciled)
    return record


def create_expense(
    db: Session,
    *,
    user: User,
    vehicle_id: int | None,
    amount: Decimal,
    category: ExpenseCategory,
    day: date,
    description: str | None = None,
    receipt_key: str | None = None,
    override_warnings: bool = False,
) -> Expense:
    errors = ValidationCollector()
    errors.greater_than("amount", amount, 0, "Amount")
    if category == ExpenseCategory.other and not (description or "").strip():
        errors.add("Description can't be blank", field="description", code=ErrorCode.BLANK)
    errors.raise_if_any()

    if vehicle_id is not None and db.get(Vehicle, vehicle_id) is None:
        raise ServiceError.single("Vehicle not found", code=ErrorCode.VEHICLE_NOT_FOUND, field="vehicle_id")

    if category != ExpenseCategory.other and vehicle_id is not None and not override_warnings:
        duplicate = (
            db.query(Expense.id)
            .filter(Expense.category == category)
            .filter(Expense.date == day)
            .filter(Expense.vehicle_id == vehicle_id)
            .first()
        )
        if duplicate is not None:
            raise ServiceError.single(
                "An expense with this category and date already exists for this vehicle, "
                "choose Confirm to add this expense anyway",
                code=ErrorCode.DUPLICATE_EXPENSE_WARNING,
                field="base",
            )

    with transaction(db):
        expense = Expense(
            user_id=user.id,
            vehicle_id=vehicle_id,
            amount=to_money(amount),
            category=category,
            description=description,
            date=day,
            receipt_key=receipt_key,
        )
        db.add(expense)
        db.flush()

    logger.info("Recorded %s expense %s on %s", category.value, expense.amount, day.isoformat())
    return expense


def aggregate_revenue(
    db: Session,
    start: date,
    end: date,
    *,
    driver_id: int | None = None,
    vehicle_id: int | None = None,
) -> Decimal:
    lower, upper = day_bounds(start, end)
    q = (
        db.query(func.coalesce(func.sum(RevenueRecord.total_revenue), 0))
        .filter(RevenueRecord.realized_at >= lower)
        .filter(RevenueRecord.realized_at < upper)
    )
    if driver_id is not None:
        q = q.filter(RevenueRecord.driver_id == driver_id)
    if vehicle_id is not None:
        q = q.filter(RevenueRecord.vehicle_id == vehicle_id)
    return to_money(q.scalar())


def aggregate_expenses(db: Session, start: date, end: date) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(Expense.amount), 0))
        .filter(Expense.date >= start)
        .filter(Expense.date <= end)
        .scalar()
    )
    return to_money(total)
