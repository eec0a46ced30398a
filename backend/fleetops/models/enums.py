from __future__ import annotations

import enum


class ShiftStatus(enum.IntEnum):
    scheduled = 0
    active = 1
    completed = 2
    missed = 3
    paused = 4


# Ordinals are persisted; never renumber.
class ShiftEventType(enum.IntEnum):
    clock_in = 0
    clock_out = 1
    telemetry_snapshot = 2
    pause = 3
    resume = 4


class RevenueSource(enum.IntEnum):
    bolt = 0
    uber = 1
    off_trip = 2

    @property
    def is_platform(self) -> bool:
        # Platform payouts are entered once per shift; off-trip fares are not.
        return self in (RevenueSource.bolt, RevenueSource.uber)


class ExpenseCategory(str, enum.Enum):
    charging = "charging"
    maintenance = "maintenance"
    toll = "toll"
    insurance = "insurance"
    other = "other"


class City(str, enum.Enum):
    accra = "accra"
    kumasi = "kumasi"
    takoradi = "takoradi"


class DriverTier(str, enum.Enum):
    tier_1 = "tier_1"
    tier_2 = "tier_2"


class TripState(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    accepted = "accepted"
    declined = "declined"
    auto_declined = "auto_declined"
