"""Business-rule errors raised by the services.

Services raise ``ServiceError`` with one or more ``ErrorDetail`` records; the
API layer rolls the transaction back and returns them in the response
envelope next to a null entity. Structural and authentication failures stay
``HTTPException`` and never reach this module.
"""

from __future__ import annotations

from dataclasses import dataclass


class ErrorCode:
    SHIFT_ASSIGNMENT_NOT_FOUND = "SHIFT_ASSIGNMENT_NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NO_DRIVER_PROFILE = "NO_DRIVER_PROFILE"
    ALREADY_CLOCKED_IN = "ALREADY_CLOCKED_IN"
    ALREADY_CLOCKED_OUT = "ALREADY_CLOCKED_OUT"
    NOT_CLOCKED_IN = "NOT_CLOCKED_IN"
    NO_ACTIVE_SHIFT = "NO_ACTIVE_SHIFT"
    ALREADY_PAUSED = "ALREADY_PAUSED"
    NO_PAUSED_SHIFT = "NO_PAUSED_SHIFT"
    NOT_PAUSED = "NOT_PAUSED"
    MULTIPLE_ACTIVE_SHIFTS = "MULTIPLE_ACTIVE_SHIFTS"
    VEHICLE_NOT_FOUND = "VEHICLE_NOT_FOUND"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_RECORD = "DUPLICATE_RECORD"
    DUPLICATE_EXPENSE_WARNING = "DUPLICATE_EXPENSE_WARNING"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_STATE = "INVALID_STATE"

    # Field-level validation codes
    BLANK = "blank"
    INVALID = "invalid"
    TAKEN = "taken"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL_TO = "greater_than_or_equal_to"
    LESS_THAN_OR_EQUAL_TO = "less_than_or_equal_to"


@dataclass(frozen=True)
class ErrorDetail:
    message: str
    field: str | None = None
    code: str | None = None

    def as_dict(self) -> dict:
        return {"message": self.message, "field": self.field, "code": self.code}


class ServiceError(Exception):
    def __init__(self, errors: list[ErrorDetail]):
        if not errors:
            raise ValueError("ServiceError requires at least one error")
        super().__init__("; ".join(e.message for e in errors))
        self.errors = list(errors)

    @classmethod
    def single(cls, message: str, *, code: str, field: str | None = None) -> "ServiceError":
        return cls([ErrorDetail(message=message, field=field, code=code)])

    @property
    def codes(self) -> list[str]:
        return [e.code for e in self.errors if e.code]


class ImmutableRecordError(Exception):
    """An append-only or frozen row was about to be updated or deleted."""


class ValidationCollector:
    """Accumulates field errors so every violation is reported at once."""

    def __init__(self) -> None:
        self.errors: list[ErrorDetail] = []

    def add(self, message: str, *, field: str | None = None, code: str | None = None) -> None:
        self.errors.append(ErrorDetail(message=message, field=field, code=code))

    def at_least(self, field: str, value, minimum, label: str | None = None) -> None:
        if value is not None and value < minimum:
            self.add(
                f"{label or field} must be greater than or equal to {minimum}",
                field=field,
                code=ErrorCode.GREATER_THAN_OR_EQUAL_TO,
            )

    def greater_than(self, field: str, value, minimum, label: str | None = None) -> None:
        if value is not None and value <= minimum:
            self.add(
                f"{label or field} must be greater than {minimum}",
                field=field,
                code=ErrorCode.GREATER_THAN,
            )

    def within(self, field: str, value, low, high, label: str | None = None) -> None:
        if value is None:
            return
        if value < low:
            self.add(
                f"{label or field} must be greater than or equal to {low}",
                field=field,
                code=ErrorCode.GREATER_THAN_OR_EQUAL_TO,
            )
        elif value > high:
            self.add(
                f"{label or field} must be less than or equal to {high}",
                field=field,
                code=ErrorCode.LESS_THAN_OR_EQUAL_TO,
            )

    def raise_if_any(self) -> None:
        if self.errors:
            raise ServiceError(self.errors)
