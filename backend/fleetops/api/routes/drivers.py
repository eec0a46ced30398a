from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fleetops.api.deps import require_admin
from fleetops.api.envelope import run_service
from fleetops.core.errors import ErrorCode, ValidationCollector
from fleetops.core.security import hash_password
from fleetops.db.session import get_db, transaction
from fleetops.models.driver import Driver
from fleetops.models.user import User, UserRole
from fleetops.schemas.drivers import DriverCreateIn, DriverEnvelope, DriverOut


router = APIRouter(prefix="/drivers")


def _create_driver(db: Session, payload: DriverCreateIn) -> Driver:
    email = payload.email.strip().lower()
    phone = payload.phone_number.strip()

    errors = ValidationCollector()
    if db.query(User.id).filter(User.email == email).first() is not None:
        errors.add("Username/email already in use", field="email", code=ErrorCode.TAKEN)
    if db.query(Driver.id).filter(Driver.phone_number == phone).first() is not None:
        errors.add("Phone number already in use", field="phone_number", code=ErrorCode.TAKEN)
    errors.raise_if_any()

    with transaction(db):
        user = User(
            email=email,
            name=payload.full_name,
            role=UserRole.driver,
            password_hash=hash_password(payload.password),
            is_active=True,
        )
        db.add(user)
        db.flush()

        driver = Driver(
            user_id=user.id,
            full_name=payload.full_name,
            phone_number=phone,
            dob=payload.dob,
            verified=payload.verified,
            tier=payload.tier,
        )
        db.add(driver)
        db.flush()
    return driver


@router.post("", response_model=DriverEnvelope)
def create_driver(payload: DriverCreateIn, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return run_service(db, "driver", DriverOut, _create_driver, db, payload)


@router.get("", response_model=list[DriverOut])
def list_drivers(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    drivers = db.query(Driver).order_by(Driver.full_name.asc(), Driver.id.asc()).all()
    return [DriverOut.model_validate(d) for d in drivers]
