from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from conftest import make_assignment, make_driver, make_vehicle
from fleetops.core.errors import ErrorCode, ImmutableRecordError, ServiceError
from fleetops.models import ExpenseCategory, RevenueSource, User
from fleetops.services.ledgers import (
    aggregate_expenses,
    aggregate_revenue,
    create_expense,
    create_revenue_record,
    set_reconciled,
)


DAY = date(2025, 3, 10)


def test_revenue_record_attaches_to_the_days_shift(db):
    driver = make_driver(db)
    vehicle = make_vehicle(db)
    assignment = make_assignment(db, driver, day=DAY, vehicle=vehicle)

    record = create_revenue_record(
        db,
        driver_id=driver.id,
        vehicle_id=None,
        day=DAY,
        source=RevenueSource.bolt,
        total_revenue=Decimal("450.25"),
    )

    assert record.shift_assignment_id == assignment.id
    assert record.vehicle_id == vehicle.id
    assert record.realized_at == assignment.start_time
    assert record.total_revenue == Decimal("450.25")
    assert record.total_profit == Decimal("0")
    assert record.reconciled is False


def test_revenue_record_lookup_failures(db):
    driver = make_driver(db)
    make_assignment(db, driver, day=DAY)

    with pytest.raises(ServiceError) as excinfo:
        create_revenue_record(
            db, driver_id=9999, vehicle_id=None, day=DAY, source=RevenueSource.bolt, total_revenue=Decimal("1")
        )
    assert (excinfo.value.codes, excinfo.value.errors[0].field) == ([ErrorCode.NOT_FOUND], "driver_id")

    with pytest.raises(ServiceError) as excinfo:
        create_revenue_record(
            db,
            driver_id=driver.id,
            vehicle_id=None,
            day=DAY + timedelta(days=1),
            source=RevenueSource.bolt,
            total_revenue=Decimal("1"),
        )
    assert (excinfo.value.codes, excinfo.value.errors[0].field) == ([ErrorCode.NOT_FOUND], "date")

    with pytest.raises(ServiceError) as excinfo:
        create_revenue_record(
            db, driver_id=driver.id, vehicle_id=9999, day=DAY, source=RevenueSource.bolt, total_revenue=Decimal("1")
        )
    assert (excinfo.value.codes, excinfo.value.errors[0].field) == ([ErrorCode.NOT_FOUND], "vehicle_id")


def test_platform_revenue_is_unique_per_shift(db):
    driver = make_driver(db)
    make_assignment(db, driver, day=DAY)
    kwargs = dict(driver_id=driver.id, vehicle_id=None, day=DAY, total_revenue=Decimal("100"))

    create_revenue_record(db, source=RevenueSource.uber, **kwargs)
    with pytest.raises(ServiceError) as excinfo:
        create_revenue_record(db, source=RevenueSource.uber, **kwargs)
    assert excinfo.value.errors[0].code == ErrorCode.TAKEN
    assert excinfo.value.errors[0].field == "source"

    create_revenue_record(db, source=RevenueSource.off_trip, **kwargs)
    create_revenue_record(db, source=RevenueSource.off_trip, **kwargs)
    assert aggregate_revenue(db, DAY, DAY, driver_id=driver.id) == Decimal("300.00")


def test_set_reconciled(db):
    driver = make_driver(db)
    make_assignment(db, driver, day=DAY)
    record = create_revenue_record(
        db, driver_id=driver.id, vehicle_id=None, day=DAY, source=RevenueSource.bolt, total_revenue=Decimal("10")
    )

    assert set_reconciled(db, record.id, True).reconciled is True
    assert set_reconciled(db, record.id, False).reconciled is False

    with pytest.raises(ServiceError) as excinfo:
        set_reconciled(db, 9999, True)
    assert excinfo.value.codes == [ErrorCode.NOT_FOUND]


def test_revenue_amount_cannot_change(db):
    driver = make_driver(db)
    make_assignment(db, driver, day=DAY)
    record = create_revenue_record(
        db, driver_id=driver.id, vehicle_id=None, day=DAY, source=RevenueSource.bolt, total_revenue=Decimal("10")
    )

    record.total_revenue = Decimal("99")
    with pytest.raises(ImmutableRecordError):
        db.flush()
    db.rollback()


def test_expense_validation_collects_errors(db):
    driver = make_driver(db)
    user = db.get(User, driver.user_id)
    with pytest.raises(ServiceError) as excinfo:
        create_expense(
            db,
            user=user,
            vehicle_id=None,
            amount=Decimal("0"),
            category=ExpenseCategory.other,
            day=DAY,
        )

    by_field = {e.field: e.code for e in excinfo.value.errors}
    assert by_field == {"amount": ErrorCode.GREATER_THAN, "description": ErrorCode.BLANK}


def test_duplicate_expense_warning_and_override(db):
    driver = make_driver(db)
    user = db.get(User, driver.user_id)
    vehicle = make_vehicle(db)
    kwargs = dict(user=user, vehicle_id=vehicle.id, amount=Decimal("80"), category=ExpenseCategory.charging, day=DAY)

    create_expense(db, **kwargs)
    with pytest.raises(ServiceError) as excinfo:
        create_expense(db, **kwargs)
    assert excinfo.value.codes == [ErrorCode.DUPLICATE_EXPENSE_WARNING]

    create_expense(db, override_warnings=True, **kwargs)
    assert aggregate_expenses(db, DAY, DAY) == Decimal("160.00")

    with pytest.raises(ServiceError) as excinfo:
        create_expense(db, **{**kwargs, "vehicle_id": 9999})
    assert excinfo.value.codes == [ErrorCode.VEHICLE_NOT_FOUND]


def test_expenses_are_immutable(db):
    driver = make_driver(db)
    user = db.get(User, driver.user_id)
    expense = create_expense(
        db,
        user=user,
        vehicle_id=None,
        amount=Decimal("15"),
        category=ExpenseCategory.toll,
        day=DAY,
    )

    expense.amount = Decimal("20")
    with pytest.raises(ImmutableRecordError):
        db.flush()
    db.rollback()


def test_aggregates_are_end_inclusive(db):
    driver = make_driver(db)
    user = db.get(User, driver.user_id)
    make_assignment(db, driver, day=DAY)
    make_assignment(db, driver, day=DAY + timedelta(days=1))
    for offset, amount in ((0, "100"), (1, "250")):
        create_revenue_record(
            db,
            driver_id=driver.id,
            vehicle_id=None,
            day=DAY + timedelta(days=offset),
            source=RevenueSource.bolt,
            total_revenue=Decimal(amount),
        )
        create_expense(
            db,
            user=user,
            vehicle_id=None,
            amount=Decimal(amount),
            category=ExpenseCategory.maintenance,
            day=DAY + timedelta(days=offset),
        )

    assert aggregate_revenue(db, DAY, DAY) == Decimal("100.00")
    assert aggregate_revenue(db, DAY, DAY + timedelta(days=1)) == Decimal("350.00")
    assert aggregate_expenses(db, DAY + timedelta(days=1), DAY + timedelta(days=1)) == Decimal("250.00")
