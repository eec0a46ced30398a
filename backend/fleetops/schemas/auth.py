from __future__ import annotations

from pydantic import BaseModel, Field


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class BootstrapAdminIn(BaseModel):
    admin_name: str = Field(min_length=1, max_length=100)
    admin_login: str = Field(min_length=1, max_length=255)
    admin_password: str = Field(min_length=8, max_length=128)


class MeOut(BaseModel):
    id: int
    email: str
    name: str
    role: str
    is_active: bool
    driver_id: int | None = None
