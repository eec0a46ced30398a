from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fleetops.core.security import create_access_token
from fleetops.db.session import build_engine, get_db
from fleetops.main import app
from fleetops.models import (
    Base,
    Driver,
    DriverTier,
    RevenueRecord,
    RevenueSource,
    ShiftAssignment,
    ShiftStatus,
    User,
    UserRole,
    Vehicle,
)


_seq = count(1)


@pytest.fixture
def engine():
    engine = build_engine("sqlite+pysqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, *, role=UserRole.driver, email=None, name="Test User", password_hash="not-a-real-hash"):
    n = next(_seq)
    user = User(
        email=email or f"user{n}@example.com",
        name=name,
        role=role,
        password_hash=password_hash,
        is_active=True,
    )
    db.add(user)
    db.commit()
    return user


def make_admin(db):
    return make_user(db, role=UserRole.admin, name="Admin")


def make_driver(db, *, full_name="Kwame Mensah", tier=DriverTier.tier_1, verified=True):
    user = make_user(db, name=full_name)
    driver = Driver(
        user_id=user.id,
        full_name=full_name,
        phone_number=f"+23320000{next(_seq):04d}",
        verified=verified,
        tier=tier,
    )
    db.add(driver)
    db.commit()
    return driver


def make_vehicle(db, *, make="BYD", model="Atto 3", plate=None):
    vehicle = Vehicle(
        license_plate=plate or f"GR-{next(_seq):04d}-25",
        make=make,
        model=model,
        year_of_manufacture=2024,
    )
    db.add(vehicle)
    db.commit()
    return vehicle


def make_assignment(db, driver, *, day=None, status=ShiftStatus.scheduled, vehicle=None):
    day = day or date.today()
    assignment = ShiftAssignment(
        driver_id=driver.id,
        vehicle_id=vehicle.id if vehicle is not None else None,
        start_time=datetime.combine(day, time(8)),
        end_time=datetime.combine(day, time(21)),
        status=status,
    )
    db.add(assignment)
    db.commit()
    return assignment


def make_revenue(db, driver, amount, *, realized_at, source=RevenueSource.off_trip, vehicle=None, reconciled=False):
    record = RevenueRecord(
        driver_id=driver.id,
        vehicle_id=vehicle.id if vehicle is not None else None,
        source=source,
        total_revenue=Decimal(str(amount)),
        reconciled=reconciled,
        realized_at=realized_at,
    )
    db.add(record)
    db.commit()
    return record


def auth_headers(user):
    token = create_access_token(subject=str(user.id), role=user.role.value)
    return {"Authorization": f"Bearer {token}"}
