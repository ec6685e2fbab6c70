"""
stock_services._close_types -- DTOs for period close and roll-forward.

Responsibility:
    Frozen results returned by the close orchestrator and the
    roll-forward generator, plus the roll-forward request options.

Architecture position:
    Services.  These types live here because the orchestrators that
    produce them live here; they carry no kernel behaviour.

Invariants enforced:
    - All DTOs are frozen dataclasses.
    - ``PeriodCloseSummary.total_closing_value`` equals the sum of the
      per-location closing values it lists.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from stock_kernel.domain.period import PeriodInfo, PeriodLocationInfo


@dataclass(frozen=True)
class LocationCloseSummary:
    """Outcome of closing one location."""

    location_id: UUID
    location_code: str
    location_name: str
    closing_value: Decimal
    item_count: int
    variance: Decimal | None = None


@dataclass(frozen=True)
class PeriodCloseSummary:
    """Outcome of one successful period close."""

    period_id: UUID
    approval_id: UUID
    closed_at: datetime
    total_locations: int
    total_closing_value: Decimal
    locations: tuple[LocationCloseSummary, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RollForwardOptions:
    """Overrides for the period a roll-forward creates."""

    name: str | None = None
    end_date: date | None = None
    copy_prices: bool = True


@dataclass(frozen=True)
class RollForwardSummary:
    locations_created: int
    locations_with_opening_value: int
    total_opening_value: Decimal
    prices_copied: int


@dataclass(frozen=True)
class RollForwardResult:
    """The new DRAFT period, its locations, and carry-over counts."""

    source_period: PeriodInfo
    new_period: PeriodInfo
    locations: tuple[PeriodLocationInfo, ...]
    summary: RollForwardSummary
