"""
Module: stock_kernel.db.types
Responsibility: Annotated column types and the money rounding helper.
    Centralizes precision so every model and service uses identical
    definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/
    and services/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Currency amounts (opening/closing values, reconciliation figures) are
      stored with 2 decimal places; quantities, unit costs and prices with 4.
    - round_money() is the ONLY sanctioned rounding function for currency
      amounts.  Snapshot item values, totals and variances all pass
      through it.
    - No floats anywhere.  All amounts are Decimal.
    - Timestamps are stored and loaded as UTC-aware datetimes on every
      backend (SQLite drops the offset, so loads re-attach UTC).
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import JSON, DateTime, Numeric, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator

# Currency amount: DECIMAL(15, 2)
Amount = Annotated[Decimal, Numeric(15, 2)]

# Quantity, weighted-average cost and unit price: DECIMAL(15, 4)
Quantity = Annotated[Decimal, Numeric(15, 4)]

# ISO 4217 currency code
Currency = Annotated[str, String(3)]

# Structured payloads: JSONB on PostgreSQL, JSON text elsewhere
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp normalized to UTC.

    Guarantees:
        - process_bind_param: aware values are converted to UTC; naive
          values are taken to already be UTC.
        - process_result_value: always returns an aware UTC datetime.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


MONEY_DECIMAL_PLACES = 2
QUANTITY_DECIMAL_PLACES = 4
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_decimal(value: Decimal | int | str | None) -> Decimal:
    """Coerce a stored or user-supplied number to Decimal; None -> 0."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a currency amount to ``decimal_places`` (half-up).

    Preconditions: value is a Decimal.
    Postconditions: Returns value quantized to the requested places.
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)
