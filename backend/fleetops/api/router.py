from __future__ import annotations

from fastapi import APIRouter

from fleetops.api.routes import (
    auth,
    drivers,
    expenses,
    finance,
    payroll,
    reports,
    revenue,
    scheduled_trips,
    shifts,
    vehicles,
)


api_router = APIRouter(prefix="/api")

api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(drivers.router, tags=["drivers"])
api_router.include_router(vehicles.router, tags=["vehicles"])
api_router.include_router(shifts.router, tags=["shifts"])
api_router.include_router(revenue.router, tags=["revenue"])
api_router.include_router(expenses.router, tags=["expenses"])
api_router.include_router(payroll.router, tags=["payroll"])
api_router.include_router(finance.router, tags=["finance"])
api_router.include_router(reports.router, tags=["reports"])
api_router.include_router(scheduled_trips.router, tags=["scheduled-trips"])
