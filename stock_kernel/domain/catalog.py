"""
Reference data types (``stock_kernel.domain.catalog``).

Locations, items and per-period item prices as seen by the close
workflow.  The catalog itself is maintained elsewhere; the kernel only
reads it (active locations, active items, period prices).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class LocationType(str, Enum):
    KITCHEN = "KITCHEN"
    STORE = "STORE"
    CENTRAL = "CENTRAL"
    WAREHOUSE = "WAREHOUSE"


class ItemUnit(str, Enum):
    KG = "KG"
    EA = "EA"
    LTR = "LTR"
    BOX = "BOX"
    CASE = "CASE"
    PACK = "PACK"


DEFAULT_CURRENCY = "SAR"


@dataclass(frozen=True)
class ItemPriceInfo:
    """One item's locked price for one period."""

    id: UUID
    item_id: UUID
    period_id: UUID
    price: Decimal
    currency: str = DEFAULT_CURRENCY
    set_by: UUID | None = None
    set_at: datetime | None = None
    item_code: str | None = None
    item_name: str | None = None


@dataclass(frozen=True)
class PriceInput:
    """A price to set for an item in a DRAFT period."""

    item_id: UUID
    price: Decimal
