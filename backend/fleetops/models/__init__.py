from fleetops.models.base import Base
from fleetops.models.driver import Driver
from fleetops.models.enums import (
    City,
    DriverTier,
    ExpenseCategory,
    RevenueSource,
    ShiftEventType,
    ShiftStatus,
    TripState,
)
from fleetops.models.expense import Expense
from fleetops.models.payroll_record import PayrollRecord
from fleetops.models.revenue_record import RevenueRecord
from fleetops.models.scheduled_trip import ScheduledTrip, ScheduledTripAuditLog
from fleetops.models.shift_assignment import ShiftAssignment
from fleetops.models.shift_event import ShiftEvent
from fleetops.models.user import User, UserRole
from fleetops.models.vehicle import Vehicle

import fleetops.db.immutability  # noqa: E402,F401  (registers ORM guards)

__all__ = [
    "Base",
    "City",
    "Driver",
    "DriverTier",
    "Expense",
    "ExpenseCategory",
    "PayrollRecord",
    "RevenueRecord",
    "RevenueSource",
    "ScheduledTrip",
    "ScheduledTripAuditLog",
    "ShiftAssignment",
    "ShiftEvent",
    "ShiftEventType",
    "ShiftStatus",
    "TripState",
    "User",
    "UserRole",
    "Vehicle",
]
