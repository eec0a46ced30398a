from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)

    # The backend reads DATABASE_URL from `backend/.env` (recommended) or from your
    # environment variables. This default is only a safe fallback.
    database_url: str = Field(
        default="sqlite+pysqlite:///./dev.db",
        validation_alias="DATABASE_URL",
    )

    auto_create_tables: bool = Field(
        default=True,
        validation_alias="AUTO_CREATE_TABLES",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
    )

    cors_origins: list[str] = Field(
        default=["http://127.0.0.1:5173", "http://localhost:5173"],
        validation_alias="CORS_ORIGINS",
    )

    jwt_secret_key: str = Field(
        default="change-me",
        validation_alias="JWT_SECRET_KEY",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        validation_alias="JWT_ALGORITHM",
    )
    access_token_exp_minutes: int = Field(
        default=60 * 24,
        validation_alias="ACCESS_TOKEN_EXP_MINUTES",
    )

    # Payroll split: base rate up to the daily target, surplus rate above it.
    payroll_daily_revenue_target: Decimal = Field(
        default=Decimal("500"),
        ge=0,
        validation_alias="PAYROLL_DAILY_REVENUE_TARGET",
    )
    payroll_tier_1_base_rate: Decimal = Field(
        default=Decimal("0.15"),
        ge=0,
        le=1,
        validation_alias="PAYROLL_TIER_1_BASE_RATE",
    )
    payroll_tier_2_base_rate: Decimal = Field(
        default=Decimal("0.20"),
        ge=0,
        le=1,
        validation_alias="PAYROLL_TIER_2_BASE_RATE",
    )
    payroll_surplus_rate: Decimal = Field(
        default=Decimal("0.30"),
        ge=0,
        le=1,
        validation_alias="PAYROLL_SURPLUS_RATE",
    )

    projection_uplift: Decimal = Field(
        default=Decimal("1.10"),
        gt=0,
        validation_alias="PROJECTION_UPLIFT",
    )

    shift_start_hour: int = Field(default=8, ge=0, le=23, validation_alias="SHIFT_START_HOUR")
    shift_end_hour: int = Field(default=21, ge=1, le=24, validation_alias="SHIFT_END_HOUR")

    # Clients must accept a confirmed trip at least this long before pickup.
    trip_response_cutoff_hours: int = Field(default=2, ge=0, validation_alias="TRIP_RESPONSE_CUTOFF_HOURS")

    currency: str = Field(default="GHS", validation_alias="CURRENCY")


@lru_cache
def get_settings() -> Settings:
    return Settings()
