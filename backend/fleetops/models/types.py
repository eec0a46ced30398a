from __future__ import annotations

import enum

from sqlalchemy import Integer
from sqlalchemy.types import TypeDecorator


class IntEnumType(TypeDecorator):
    """Stores an ``IntEnum`` member as its ordinal and loads it back as the member."""

    impl = Integer
    cache_ok = True

    def __init__(self, enum_class: type[enum.IntEnum], *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(self.enum_class(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self.enum_class(value)
