from __future__ import annotations

import enum
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer

from fleetops.models.enums import RevenueSource, ShiftEventType, ShiftStatus


# Decimal internally, JSON number on the wire.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def _member_by_name(enum_class: type[enum.Enum]):
    def parse(value):
        if isinstance(value, str) and value in enum_class.__members__:
            return enum_class[value]
        return value

    return parse


def _name(member: enum.Enum) -> str:
    return member.name


# Ordinal enums travel as their names.
RevenueSourceName = Annotated[
    RevenueSource,
    BeforeValidator(_member_by_name(RevenueSource)),
    PlainSerializer(_name, return_type=str),
]
ShiftStatusName = Annotated[
    ShiftStatus,
    BeforeValidator(_member_by_name(ShiftStatus)),
    PlainSerializer(_name, return_type=str),
]
ShiftEventTypeName = Annotated[
    ShiftEventType,
    BeforeValidator(_member_by_name(ShiftEventType)),
    PlainSerializer(_name, return_type=str),
]


class ErrorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message: str
    field: str | None = None
    code: str | None = None


class PaginationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_page: int
    page_size: int
    total_size: int
    page_count: int
    first_page: bool
    last_page: bool
    next_page: int | None
    prev_page: int | None
