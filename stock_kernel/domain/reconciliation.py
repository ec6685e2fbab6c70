"""
Reconciliation math (``stock_kernel.domain.reconciliation``).

Responsibility
--------------
Pure formulas over a period-location's financial summary: the closing
stock implied by the period's movements, the variance against the
counted closing stock, consumption and cost per manday.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  May import ``db/types`` for the
rounding helper only.

Formulas
--------
::

    calculated_closing = opening_stock + receipts + transfers_in
                         - transfers_out - issues + adjustments
                         - back_charges + credits - condemnations

    variance           = closing_stock - calculated_closing

    consumption        = opening_stock + receipts + transfers_in
                         - transfers_out - closing_stock
                         + (back_charges - credits - condemnations
                            + adjustments)

    manday_cost        = consumption / total_mandays   (total_mandays > 0)

All results are rounded to 2 places with ``round_money``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from stock_kernel.db.types import round_money, to_decimal
from stock_kernel.exceptions import InvalidReconciliationError, ValidationFailedError

_ZERO = Decimal("0")

# Figures that describe physical stock and can never be negative
NON_NEGATIVE_FIELDS: tuple[str, ...] = (
    "opening_stock",
    "receipts",
    "transfers_in",
    "transfers_out",
    "closing_stock",
)


@dataclass(frozen=True)
class ReconciliationFigures:
    """The ten currency amounts of one period-location summary."""

    opening_stock: Decimal = _ZERO
    receipts: Decimal = _ZERO
    transfers_in: Decimal = _ZERO
    transfers_out: Decimal = _ZERO
    issues: Decimal = _ZERO
    closing_stock: Decimal = _ZERO
    adjustments: Decimal = _ZERO
    back_charges: Decimal = _ZERO
    credits: Decimal = _ZERO
    condemnations: Decimal = _ZERO

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_mapping(cls, data: dict) -> ReconciliationFigures:
        """Build from any mapping; missing figures default to zero."""
        return cls(**{
            name: to_decimal(data.get(name)) for name in cls.field_names()
        })

    def as_dict(self) -> dict[str, Decimal]:
        return asdict(self)


@dataclass(frozen=True)
class ReconciliationInfo:
    """Immutable view of a stored reconciliation row."""

    id: UUID
    period_id: UUID
    location_id: UUID
    figures: ReconciliationFigures
    last_updated: datetime | None = None


def validate_figures(figures: ReconciliationFigures) -> None:
    """
    Reject negative physical stock figures.

    Raises:
        InvalidReconciliationError: naming the first offending field.
    """
    for name in NON_NEGATIVE_FIELDS:
        value = getattr(figures, name)
        if value < 0:
            raise InvalidReconciliationError(name, str(value), "cannot be negative")


def calculated_closing(figures: ReconciliationFigures) -> Decimal:
    """Closing stock implied by opening stock and period movements."""
    return round_money(
        figures.opening_stock
        + figures.receipts
        + figures.transfers_in
        - figures.transfers_out
        - figures.issues
        + figures.adjustments
        - figures.back_charges
        + figures.credits
        - figures.condemnations
    )


def variance(figures: ReconciliationFigures) -> Decimal:
    """Counted closing stock minus the calculated closing stock."""
    return round_money(figures.closing_stock - calculated_closing(figures))


def total_adjustments(figures: ReconciliationFigures) -> Decimal:
    return round_money(
        figures.back_charges
        - figures.credits
        - figures.condemnations
        + figures.adjustments
    )


def consumption(figures: ReconciliationFigures) -> Decimal:
    """Value of stock used up during the period."""
    validate_figures(figures)
    return round_money(
        figures.opening_stock
        + figures.receipts
        + figures.transfers_in
        - figures.transfers_out
        - figures.closing_stock
        + total_adjustments(figures)
    )


def manday_cost(consumption_value: Decimal, total_mandays: int) -> Decimal:
    """Consumption divided across mandays.

    Raises:
        ValidationFailedError: when ``total_mandays`` is not positive.
    """
    if total_mandays <= 0:
        raise ValidationFailedError("total_mandays", "must be greater than zero")
    return round_money(Decimal(consumption_value) / Decimal(total_mandays))
