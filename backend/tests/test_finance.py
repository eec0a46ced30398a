from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from conftest import make_driver, make_revenue, make_vehicle
from fleetops.models import ExpenseCategory, User
from fleetops.services.finance import MonthTotals, finance_details, finance_details_trend, project_next_month
from fleetops.services.ledgers import create_expense


def test_projection_averages_history_with_uplift():
    history = [
        MonthTotals(revenue=Decimal("3000"), payroll=Decimal("600"), expenses=Decimal("100")),
        MonthTotals(revenue=Decimal("4000"), payroll=Decimal("800"), expenses=Decimal("300")),
    ]

    projected = project_next_month(history, uplift=Decimal("1.10"))

    assert projected.as_dict() == {
        "total_revenue": Decimal("3850.00"),
        "total_payroll_due": Decimal("700.00"),
        "total_expenses": Decimal("200.00"),
        "earnings": Decimal("2950.00"),
    }


def test_projection_of_nothing_is_zero():
    assert project_next_month([]).as_dict()["total_revenue"] == Decimal("0.00")


def test_finance_details(db):
    driver = make_driver(db)
    vehicle = make_vehicle(db)
    for month in (1, 2, 3):
        make_revenue(db, driver, "1000", realized_at=datetime(2025, month, 10, 8))
    create_expense(
        db,
        user=db.get(User, driver.user_id),
        vehicle_id=vehicle.id,
        amount=Decimal("100"),
        category=ExpenseCategory.maintenance,
        day=date(2025, 3, 12),
    )

    details = finance_details(db, date(2025, 3, 1), date(2025, 3, 31), now=datetime(2025, 3, 20))

    assert details == {
        "total_revenue": Decimal("1000.00"),
        "total_payroll_due": Decimal("225.00"),
        "total_expenses": Decimal("100.00"),
        "earnings": Decimal("675.00"),
        "total_revenue_all_time": Decimal("3000.00"),
        "average_revenue_per_month": Decimal("1000.00"),
        "average_revenue_per_car": Decimal("3000.00"),
    }


def test_trend_months_and_projection(db):
    driver = make_driver(db)
    for month in range(1, 7):
        make_revenue(db, driver, month * 1000, realized_at=datetime(2025, month, 10, 9))

    trend = finance_details_trend(db, months_back=6, today=date(2025, 7, 15))

    assert [item["month"] for item in trend] == ["Feb 25", "Mar 25", "Apr 25", "May 25", "Jun 25", "Aug 25 (Next)"]
    assert trend[0]["start_date"] == date(2025, 2, 1)
    assert trend[0]["end_date"] == date(2025, 2, 28)
    assert [item["finance_details"]["total_revenue"] for item in trend[:-1]] == [
        Decimal("2000.00"),
        Decimal("3000.00"),
        Decimal("4000.00"),
        Decimal("5000.00"),
        Decimal("6000.00"),
    ]

    projection = trend[-1]
    assert projection["is_projection"] is True
    # January is not displayed but still counts towards the average.
    assert projection["finance_details"]["total_revenue"] == Decimal("3850.00")
    assert projection["finance_details"]["total_payroll_due"] == Decimal("975.00")


def test_trend_without_projection(db):
    trend = finance_details_trend(db, months_back=3, include_projection=False, today=date(2025, 1, 20))

    assert [item["month"] for item in trend] == ["Nov 24", "Dec 24"]
    assert not any(item["is_projection"] for item in trend)
