"""
Period domain types (``stock_kernel.domain.period``).

Responsibility
--------------
Pure value objects and calendar math for accounting periods and the
per-location state inside them: status enums, transition tables, frozen
DTOs, and the date helpers used by period creation and roll-forward.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  No imports from ``db/``,
``models/``, ``services/`` or outer layers.

Invariants enforced
-------------------
* Period lifecycle: DRAFT -> OPEN -> PENDING_CLOSE -> {CLOSED, OPEN}.
  PENDING_CLOSE -> OPEN is the rejection path.  CLOSED is terminal.
* PeriodLocation lifecycle: OPEN -> READY -> CLOSED, with READY -> OPEN
  only through an explicit unmark.  CLOSED is terminal.
* Overlap: two inclusive ranges intersect when the new range starts
  inside an existing one, ends inside one, or fully contains one.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID


class PeriodStatus(str, Enum):
    """Lifecycle status of an accounting period."""

    DRAFT = "DRAFT"
    OPEN = "OPEN"
    PENDING_CLOSE = "PENDING_CLOSE"
    CLOSED = "CLOSED"


PERIOD_TRANSITIONS: dict[PeriodStatus, frozenset[PeriodStatus]] = {
    PeriodStatus.DRAFT: frozenset({PeriodStatus.OPEN}),
    PeriodStatus.OPEN: frozenset({PeriodStatus.PENDING_CLOSE}),
    PeriodStatus.PENDING_CLOSE: frozenset({
        PeriodStatus.CLOSED,
        PeriodStatus.OPEN,
    }),
    PeriodStatus.CLOSED: frozenset(),
}


class PeriodLocationStatus(str, Enum):
    """Per-location state inside one period."""

    OPEN = "OPEN"
    READY = "READY"
    CLOSED = "CLOSED"


PERIOD_LOCATION_TRANSITIONS: dict[
    PeriodLocationStatus, frozenset[PeriodLocationStatus]
] = {
    PeriodLocationStatus.OPEN: frozenset({PeriodLocationStatus.READY}),
    PeriodLocationStatus.READY: frozenset({
        PeriodLocationStatus.READY,
        PeriodLocationStatus.OPEN,
        PeriodLocationStatus.CLOSED,
    }),
    PeriodLocationStatus.CLOSED: frozenset(),
}

# Statuses that count as "done" for the all-ready check
CLOSABLE_LOCATION_STATUSES: frozenset[PeriodLocationStatus] = frozenset({
    PeriodLocationStatus.READY,
    PeriodLocationStatus.CLOSED,
})


def can_transition(current: PeriodStatus, target: PeriodStatus) -> bool:
    """True when ``current -> target`` is a legal period transition."""
    return target in PERIOD_TRANSITIONS.get(current, frozenset())


# =========================================================================
# DTOs
# =========================================================================


@dataclass(frozen=True)
class PeriodInfo:
    """Immutable view of a period."""

    id: UUID
    name: str
    start_date: date
    end_date: date
    status: PeriodStatus
    approval_id: UUID | None = None
    created_at: datetime | None = None
    closed_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN

    @property
    def is_closed(self) -> bool:
        return self.status == PeriodStatus.CLOSED


@dataclass(frozen=True)
class PeriodLocationInfo:
    """Immutable view of one location's state within a period."""

    period_id: UUID
    location_id: UUID
    status: PeriodLocationStatus
    location_code: str | None = None
    location_name: str | None = None
    ready_at: datetime | None = None
    closed_at: datetime | None = None
    opening_value: Decimal | None = None
    closing_value: Decimal | None = None


# =========================================================================
# Calendar math
# =========================================================================


def last_day_of_month(day: date) -> date:
    """Last calendar day of ``day``'s month (leap years included)."""
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def next_period_start(end_date: date) -> date:
    """A following period starts the day after the previous one ends."""
    return end_date + timedelta(days=1)


def default_period_name(start_date: date) -> str:
    """Month and year of the start date, e.g. ``"February 2025"``."""
    return f"{calendar.month_name[start_date.month]} {start_date.year}"


def ranges_overlap(
    start: date,
    end: date,
    other_start: date,
    other_end: date,
) -> bool:
    """
    True when inclusive ranges [start, end] and [other_start, other_end]
    share at least one day.

    Checked as the three configurations: the new range starts inside the
    other, ends inside it, or fully contains it.
    """
    starts_inside = other_start <= start <= other_end
    ends_inside = other_start <= end <= other_end
    contains = start <= other_start and end >= other_end
    return starts_inside or ends_inside or contains
