from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from conftest import make_driver, make_revenue, make_vehicle
from fleetops.models import ExpenseCategory, RevenueSource, User
from fleetops.services.aggregation import (
    NO_VEHICLE,
    ExpenseFilters,
    PageRequest,
    RevenueFilters,
    expense_stats,
    group_expenses,
    group_revenue,
    revenue_stats,
)
from fleetops.services.ledgers import aggregate_revenue, create_expense
from fleetops.services.window import DateWindow


WINDOW = DateWindow(date(2025, 3, 1), date(2025, 3, 31))


def _at(day: int, hour: int = 9) -> datetime:
    return datetime(2025, 3, day, hour)


def _seed_two_drivers(db):
    ama = make_driver(db, full_name="Ama Owusu")
    kofi = make_driver(db, full_name="Kofi Boateng")
    make_revenue(db, ama, "100", realized_at=_at(10))
    make_revenue(db, ama, "150", realized_at=_at(11))
    make_revenue(db, kofi, "200", realized_at=_at(10))
    make_revenue(db, kofi, "300", realized_at=_at(11), source=RevenueSource.bolt)
    make_revenue(db, kofi, "75.50", realized_at=_at(11, 14))
    return ama, kofi


def test_groups_sorted_newest_day_then_name(db):
    _seed_two_drivers(db)

    result = group_revenue(db, WINDOW)

    assert [(g.name, g.date.day) for g in result.items] == [
        ("Ama Owusu", 11),
        ("Kofi Boateng", 11),
        ("Ama Owusu", 10),
        ("Kofi Boateng", 10),
    ]
    kofi_11 = result.items[1]
    assert kofi_11.count == 2
    assert kofi_11.total_revenue == Decimal("375.50")
    assert set(kofi_11.source_breakdown) == {"bolt", "off_trip"}


def test_totals_cover_every_page(db):
    _seed_two_drivers(db)

    first = group_revenue(db, WINDOW, page=PageRequest(page=1, per_page=3))
    second = group_revenue(db, WINDOW, page=PageRequest(page=2, per_page=3))

    assert len(first.items) == 3
    assert len(second.items) == 1
    assert first.pagination.page_count == 2
    assert first.pagination.next_page == 2
    assert second.pagination.last_page is True

    page_sum = sum(g.total_revenue for g in first.items + second.items)
    expected = aggregate_revenue(db, WINDOW.start, WINDOW.end)
    assert page_sum == expected == Decimal("825.50")
    assert first.total_revenue == second.total_revenue == expected
    assert first.source_totals["bolt"]["revenue"] == Decimal("300")


def test_breakdown_reconciled_only_when_every_record_is(db):
    driver = make_driver(db)
    make_revenue(db, driver, "40", realized_at=_at(5), source=RevenueSource.bolt, reconciled=True)
    make_revenue(db, driver, "60", realized_at=_at(5, 18), source=RevenueSource.bolt, reconciled=False)
    make_revenue(db, driver, "20", realized_at=_at(5), source=RevenueSource.uber, reconciled=True)

    group = group_revenue(db, WINDOW).items[0]

    assert group.source_breakdown["bolt"]["reconciled"] is False
    assert group.source_breakdown["uber"]["reconciled"] is True
    assert group.all_reconciled is False


def test_unknown_filter_ids_return_nothing(db):
    _seed_two_drivers(db)

    by_driver = group_revenue(db, WINDOW, RevenueFilters(driver_id=9999))
    by_vehicle = group_revenue(db, WINDOW, RevenueFilters(vehicle_id=9999))

    assert by_driver.items == [] and by_driver.total_revenue == Decimal("0.00")
    assert by_vehicle.items == []


def test_group_by_vehicle_uses_no_vehicle_bucket(db):
    driver = make_driver(db)
    vehicle = make_vehicle(db, plate="GR-1234-25")
    make_revenue(db, driver, "90", realized_at=_at(3), vehicle=vehicle)
    make_revenue(db, driver, "10", realized_at=_at(3))

    items = group_revenue(db, WINDOW, group_by="vehicle").items

    assert {g.key for g in items} == {str(vehicle.id), NO_VEHICLE}
    named = {g.key: g.name for g in items}
    assert named[NO_VEHICLE] == "No Vehicle"
    assert named[str(vehicle.id)] == "BYD Atto 3 GR-1234-25"


def test_window_excludes_outside_days(db):
    driver = make_driver(db)
    make_revenue(db, driver, "10", realized_at=datetime(2025, 2, 28, 23, 59))
    make_revenue(db, driver, "20", realized_at=datetime(2025, 3, 31, 23, 59))
    make_revenue(db, driver, "40", realized_at=datetime(2025, 4, 1, 0, 0))

    assert group_revenue(db, WINDOW).total_revenue == Decimal("20.00")


def test_expense_driver_filter_matches_submitter(db):
    ama = make_driver(db, full_name="Ama Owusu")
    kofi = make_driver(db, full_name="Kofi Boateng")
    vehicle = make_vehicle(db)
    for driver, amount in ((ama, "30"), (kofi, "45")):
        create_expense(
            db,
            user=db.get(User, driver.user_id),
            vehicle_id=vehicle.id,
            amount=Decimal(amount),
            category=ExpenseCategory.charging,
            day=date(2025, 3, 4),
            override_warnings=True,
        )

    result = group_expenses(db, WINDOW, ExpenseFilters(driver_id=ama.id))

    assert result.total_amount == Decimal("30.00")
    assert len(result.items) == 1
    assert result.items[0].category_breakdown == {"charging": Decimal("30")}

    everyone = group_expenses(db, WINDOW)
    assert everyone.items[0].count == 2
    assert everyone.category_totals == {"charging": Decimal("75")}


def test_stats(db):
    _seed_two_drivers(db)
    submitter = db.get(User, make_driver(db, full_name="Esi Asante").user_id)
    create_expense(
        db,
        user=submitter,
        vehicle_id=None,
        amount=Decimal("12.5"),
        category=ExpenseCategory.toll,
        day=date(2025, 3, 10),
    )

    revenue = revenue_stats(db, date(2025, 3, 11), date(2025, 3, 11))
    assert revenue["count"] == 3
    assert revenue["total_revenue"] == Decimal("525.50")
    assert revenue["source_totals"]["bolt"]["revenue"] == Decimal("300.00")

    assert revenue_stats(db)["count"] == 5

    expenses = expense_stats(db, date(2025, 3, 1), date(2025, 3, 31))
    assert expenses == {
        "total_amount": Decimal("12.50"),
        "count": 1,
        "category_totals": {"toll": Decimal("12.50")},
    }
