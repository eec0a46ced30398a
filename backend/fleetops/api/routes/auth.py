from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from fleetops.api.deps import get_current_user
from fleetops.core.security import create_access_token, hash_password, verify_password
from fleetops.db.session import get_db
from fleetops.models.driver import Driver
from fleetops.models.user import User, UserRole
from fleetops.schemas.auth import BootstrapAdminIn, MeOut, TokenOut


logger = logging.getLogger(__name__)


def _normalize_login(value: str) -> str:
    normalized = (value or "").strip().lower()
    if not normalized:
        raise HTTPException(status_code=422, detail="Username/email is required")
    return normalized


def _driver_id_for(db: Session, user: User) -> int | None:
    driver = db.query(Driver.id).filter(Driver.user_id == user.id).first()
    return driver.id if driver is not None else None


def _token_for(user: User) -> str:
    return create_access_token(subject=str(user.id), role=user.role.value)


router = APIRouter(prefix="/auth")


@router.post("/bootstrap", response_model=TokenOut)
def bootstrap_admin(payload: BootstrapAdminIn, db: Session = Depends(get_db)):
    existing_admin = db.query(User).filter(User.role == UserRole.admin).first()
    if existing_admin is not None:
        raise HTTPException(status_code=400, detail="Admin already exists; bootstrap disabled")

    user = User(
        email=_normalize_login(payload.admin_login),
        name=payload.admin_name,
        role=UserRole.admin,
        password_hash=hash_password(payload.admin_password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("Bootstrapped admin user %s", user.id)
    return TokenOut(access_token=_token_for(user))


@router.post("/login", response_model=TokenOut)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    identifier = _normalize_login(form_data.username)
    user = db.query(User).filter(User.email == identifier).first()
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not verify_password(form_data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return TokenOut(access_token=_token_for(user))


@router.get("/me", response_model=MeOut)
def me(current: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return MeOut(
        id=current.id,
        email=current.email,
        name=current.name,
        role=current.role.value,
        is_active=current.is_active,
        driver_id=_driver_id_for(db, current),
    )
