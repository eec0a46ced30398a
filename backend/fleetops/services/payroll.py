"""Driver payroll.

A driver earns, per calendar day of revenue, ``base_rate`` of the revenue up to
the daily target plus ``surplus_rate`` of anything above it. The base rate
depends on the driver's tier; rates and target come from ``Settings``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fleetops.core.config import Settings, get_settings
from fleetops.core.errors import ErrorCode, ServiceError, ValidationCollector
from fleetops.core.money import ZERO, to_money
from fleetops.db.session import transaction
from fleetops.models.driver import Driver
from fleetops.models.enums import DriverTier
from fleetops.models.payroll_record import PayrollRecord
from fleetops.models.revenue_record import RevenueRecord
from fleetops.models.shift_assignment import ShiftAssignment
from fleetops.models.user import User
from fleetops.services.window import day_bounds


logger = logging.getLogger(__name__)

OVERPAYMENT_MESSAGE = "The amount paid cannot exceed the amount due to the driver, ensure this is not a mistake."


@dataclass(frozen=True)
class TierSplit:
    base_rate: Decimal
    surplus_rate: Decimal
    target: Decimal


def split_for_tier(tier: DriverTier, settings: Settings | None = None) -> TierSplit:
    settings = settings or get_settings()
    base_rates = {
        DriverTier.tier_1: settings.payroll_tier_1_base_rate,
        DriverTier.tier_2: settings.payroll_tier_2_base_rate,
    }
    return TierSplit(
        base_rate=base_rates[tier],
        surplus_rate=settings.payroll_surplus_rate,
        target=settings.payroll_daily_revenue_target,
    )


def amount_due_for_revenue(revenue: Decimal, split: TierSplit) -> Decimal:
    revenue = Decimal(revenue)
    base = min(revenue, split.target)
    surplus = max(revenue - split.target, ZERO)
    return to_money(split.base_rate * base + split.surplus_rate * surplus)


@dataclass
class DailyPayroll:
    date: date
    revenue: Decimal
    amount_due: Decimal


@dataclass
class DriverPayroll:
    driver: Driver
    amount_due: Decimal
    start_date: date
    daily_breakdown: list[DailyPayroll] = field(default_factory=list)


@dataclass
class PayrollSummary:
    total_amount_due: Decimal
    driver_payrolls: list[DriverPayroll] = field(default_factory=list)


def _daily_revenue(db: Session, driver_id: int, start: date, end: date) -> dict[date, Decimal]:
    lower, upper = day_bounds(start, end)
    rows = (
        db.query(RevenueRecord.realized_at, RevenueRecord.total_revenue)
        .filter(RevenueRecord.driver_id == driver_id)
        .filter(RevenueRecord.realized_at >= lower)
        .filter(RevenueRecord.realized_at < upper)
        .all()
    )
    per_day: dict[date, Decimal] = {}
    for realized_at, total_revenue in rows:
        day = realized_at.date()
        per_day[day] = per_day.get(day, ZERO) + total_revenue
    return per_day


def _first_shift_day(db: Session, driver_id: int, start: date, end: date) -> date | None:
    lower, upper = day_bounds(start, end)
    first_start = (
        db.query(func.min(ShiftAssignment.start_time))
        .filter(ShiftAssignment.driver_id == driver_id)
        .filter(ShiftAssignment.start_time >= lower)
        .filter(ShiftAssignment.start_time < upper)
        .scalar()
    )
    return first_start.date() if first_start is not None else None


def calculate_driver_payroll(db: Session, driver: Driver, start: date, end: date) -> DriverPayroll:
    split = split_for_tier(driver.tier)
    breakdown = [
        DailyPayroll(date=day, revenue=to_money(revenue), amount_due=amount_due_for_revenue(revenue, split))
        for day, revenue in sorted(_daily_revenue(db, driver.id, start, end).items())
    ]
    return DriverPayroll(
        driver=driver,
        amount_due=to_money(sum((d.amount_due for d in breakdown), ZERO)),
        start_date=_first_shift_day(db, driver.id, start, end) or start,
        daily_breakdown=breakdown,
    )


def calculate_payroll(db: Session, start: date, end: date) -> PayrollSummary:
    lower, upper = day_bounds(start, end)
    driver_ids = (
        db.query(RevenueRecord.driver_id)
        .filter(RevenueRecord.realized_at >= lower)
        .filter(RevenueRecord.realized_at < upper)
        .distinct()
    )
    drivers = (
        db.query(Driver)
        .filter(Driver.id.in_(driver_ids))
        .order_by(Driver.full_name.asc(), Driver.id.asc())
        .all()
    )

    payrolls = [calculate_driver_payroll(db, driver, start, end) for driver in drivers]
    return PayrollSummary(
        total_amount_due=to_money(sum((p.amount_due for p in payrolls), ZERO)),
        driver_payrolls=payrolls,
    )


def _paid_within(db: Session, driver_id: int, start: date, end: date) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(PayrollRecord.amount_paid), 0))
        .filter(PayrollRecord.driver_id == driver_id)
        .filter(PayrollRecord.period_start_date >= start)
        .filter(PayrollRecord.period_end_date <= end)
        .scalar()
    )
    return to_money(total)


def _overlap_hull(db: Session, driver_id: int, start: date, end: date) -> tuple[date, date]:
    """Widen ``start..end`` until no existing record straddles its edges."""
    periods = (
        db.query(PayrollRecord.period_start_date, PayrollRecord.period_end_date)
        .filter(PayrollRecord.driver_id == driver_id)
        .all()
    )
    changed = True
    while changed:
        changed = False
        for period_start, period_end in periods:
            if period_start <= end and period_end >= start and (period_start < start or period_end > end):
                start, end = min(start, period_start), max(end, period_end)
                changed = True
    return start, end


def _overpaid(db: Session, driver: Driver, amount_paid: Decimal, start: date, end: date) -> bool:
    due = calculate_driver_payroll(db, driver, start, end).amount_due
    if amount_paid > due:
        return True

    # Earlier partial payments for sub-periods count against this period's due.
    if _paid_within(db, driver.id, start, end) + amount_paid > due:
        return True

    enclosing = (
        db.query(PayrollRecord)
        .filter(PayrollRecord.driver_id == driver.id)
        .filter(PayrollRecord.period_start_date <= start)
        .filter(PayrollRecord.period_end_date >= end)
        .all()
    )
    for record in enclosing:
        record_due = calculate_driver_payroll(db, driver, record.period_start_date, record.period_end_date).amount_due
        already = _paid_within(db, driver.id, record.period_start_date, record.period_end_date)
        if already + amount_paid > record_due:
            return True

    # Partly overlapping periods are checked as one combined period.
    hull_start, hull_end = _overlap_hull(db, driver.id, start, end)
    if (hull_start, hull_end) != (start, end):
        hull_due = calculate_driver_payroll(db, driver, hull_start, hull_end).amount_due
        if _paid_within(db, driver.id, hull_start, hull_end) + amount_paid > hull_due:
            return True
    return False


def create_payroll_record(
    db: Session,
    *,
    driver_id: int,
    amount_paid: Decimal,
    period_start_date: date,
    period_end_date: date,
    paid_by: User,
    notes: str | None = None,
    paid_at: datetime | None = None,
) -> PayrollRecord:
    errors = ValidationCollector()
    errors.greater_than("amount_paid", amount_paid, 0, "Amount paid")
    if period_end_date < period_start_date:
        errors.add(
            "Period end date must be after or equal to period start date",
            field="period_end_date",
            code=ErrorCode.VALIDATION_ERROR,
        )
    errors.raise_if_any()

    if db.get(Driver, driver_id) is None:
        raise ServiceError.single("Driver not found", code=ErrorCode.NOT_FOUND, field="driver_id")

    amount_paid = to_money(amount_paid)
    try:
        with transaction(db):
            # Serializes concurrent payments for the same driver.
            driver = db.query(Driver).filter(Driver.id == driver_id).with_for_update().one()

            duplicate = (
                db.query(PayrollRecord.id)
                .filter(PayrollRecord.driver_id == driver.id)
                .filter(PayrollRecord.period_start_date == period_start_date)
                .filter(PayrollRecord.period_end_date == period_end_date)
                .first()
            )
            if duplicate is not None:
                raise ServiceError.single(
                    "A payroll record already exists for this driver and period",
                    code=ErrorCode.DUPLICATE_RECORD,
                    field="driverId",
                )

            if _overpaid(db, driver, amount_paid, period_start_date, period_end_date):
                raise ServiceError.single(
                    OVERPAYMENT_MESSAGE,
                    code=ErrorCode.VALIDATION_ERROR,
                    field="amountPaid",
                )

            record = PayrollRecord(
                driver_id=driver.id,
                paid_by_user_id=paid_by.id,
                amount_paid=amount_paid,
                period_start_date=period_start_date,
                period_end_date=period_end_date,
                paid_at=paid_at or datetime.utcnow(),
                notes=notes,
            )
            db.add(record)
            db.flush()
    except IntegrityError as exc:
        raise ServiceError.single(
            "A payroll record already exists for this driver and period",
            code=ErrorCode.DUPLICATE_RECORD,
            field="driverId",
        ) from exc
    except ServiceError as exc:
        logger.warning("Payroll record for driver %s rejected: %s", driver_id, exc.codes)
        raise

    logger.info(
        "Recorded payroll of %s for driver %s (%s..%s) by user %s",
        record.amount_paid,
        record.driver_id,
        period_start_date.isoformat(),
        period_end_date.isoformat(),
        paid_by.id,
    )
    return record
