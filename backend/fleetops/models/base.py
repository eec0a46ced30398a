from __future__ import annotations

from decimal import Decimal
from typing import ClassVar

from sqlalchemy import Numeric
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    # Money columns: two decimal places, never floats.
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(12, 2),
    }
