"""
PeriodService -- period administration and lookup.

Responsibility:
    Creates, edits and opens accounting periods, answers "which period is
    current", and owns the overlap and single-OPEN rules every path that
    creates or opens a period must pass through (including roll-forward).

Architecture position:
    Kernel > Services -- imperative shell.
    Called by the HTTP period routes, the roll-forward generator and the
    PERIOD_CLOSE approval handler (row-locked period fetch).

Invariants enforced:
    - start_date < end_date for any new or edited period.
    - No two periods' inclusive date ranges intersect (three overlap
      configurations: starts inside, ends inside, fully contains).
    - At most one OPEN period.  Checked under row lock in the same
      transaction that flips a period to OPEN; the partial unique index
      ``uq_periods_single_open`` backs it in storage.
    - Only DRAFT periods are editable; only DRAFT periods can be opened.
    - One OPEN PeriodLocation per active location on creation.
    - Flush-only: never commits.

Failure modes:
    - PeriodNotFoundError, InvalidDateRangeError, OverlappingPeriodError,
      PeriodAlreadyOpenError, PeriodNotEditableError,
      InvalidPeriodStatusError, NoLocationsError, ValidationFailedError.
"""

from datetime import date
from decimal import Decimal
from typing import Mapping
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock
from stock_kernel.domain.period import (
    PeriodInfo,
    PeriodLocationInfo,
    PeriodLocationStatus,
    PeriodStatus,
)
from stock_kernel.exceptions import (
    InvalidDateRangeError,
    InvalidPeriodStatusError,
    NoLocationsError,
    OverlappingPeriodError,
    PeriodAlreadyOpenError,
    PeriodNotEditableError,
    PeriodNotFoundError,
    ValidationFailedError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.location import Location
from stock_kernel.models.period import Period, PeriodLocation
from stock_kernel.services.base import BaseService

logger = get_logger("services.period")

MAX_PERIOD_NAME_LENGTH = 100

_CREATABLE_STATUSES = frozenset({PeriodStatus.DRAFT, PeriodStatus.OPEN})


class PeriodService(BaseService[Period]):
    """
    Service for period creation, editing, opening and lookup.

    Contract:
        Public methods return frozen ``PeriodInfo`` /
        ``PeriodLocationInfo`` DTOs.  ``get_period_for_update`` is the one
        method returning an ORM row; it is for other services that must
        mutate the period under lock.

    Non-goals:
        - Does NOT close periods (PeriodCloseOrchestrator).
        - Does NOT create a period from a closed one (RollForwardGenerator).
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_period(
        self,
        name: str,
        start_date: date,
        end_date: date,
        actor_id: UUID,
        status: PeriodStatus = PeriodStatus.DRAFT,
        opening_values: Mapping[UUID, Decimal | None] | None = None,
        allow_single_day: bool = False,
    ) -> PeriodInfo:
        """
        Create a period with one OPEN PeriodLocation per active location.

        ``opening_values`` seeds each location's opening_value by
        location id; locations missing from it open with None.
        ``allow_single_day`` accepts end_date == start_date (derived
        roll-forward ranges that start on a month's last day).

        Raises:
            ValidationFailedError: bad name or status other than DRAFT/OPEN.
            InvalidDateRangeError: end_date is not after start_date.
            OverlappingPeriodError: range intersects an existing period.
            PeriodAlreadyOpenError: status=OPEN while another period is OPEN.
        """
        status = PeriodStatus(status)
        if status not in _CREATABLE_STATUSES:
            raise ValidationFailedError(
                "status", "new periods must be DRAFT or OPEN",
            )
        self._validate_name(name)
        self.validate_date_range(start_date, end_date, allow_same_day=allow_single_day)
        self.validate_no_overlap(start_date, end_date)

        if status == PeriodStatus.OPEN:
            self._ensure_no_open_period()

        period = Period(
            name=name,
            start_date=start_date,
            end_date=end_date,
            status=status.value,
            created_by_id=actor_id,
        )
        self.session.add(period)
        self.session.flush()

        location_count = self._create_period_locations(period.id, opening_values or {})

        logger.info(
            "period_created",
            extra={
                "period_id": str(period.id),
                "period_name": name,
                "start_date": str(start_date),
                "end_date": str(end_date),
                "status": status.value,
                "location_count": location_count,
                "actor_id": str(actor_id),
            },
        )
        return period.to_dto()

    def update_period(
        self,
        period_id: UUID,
        name: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> PeriodInfo:
        """
        Edit a DRAFT period's name and/or date range.

        Raises:
            PeriodNotEditableError: period is not DRAFT.
            ValidationFailedError: nothing to update.
            InvalidDateRangeError, OverlappingPeriodError: new range invalid.
        """
        period = self.get_period_for_update(period_id)

        if period.status != PeriodStatus.DRAFT.value:
            raise PeriodNotEditableError(str(period_id), period.status)

        if name is None and start_date is None and end_date is None:
            raise ValidationFailedError("body", "no update data provided")

        if name is not None:
            self._validate_name(name)

        new_start = start_date or period.start_date
        new_end = end_date or period.end_date
        if start_date is not None or end_date is not None:
            self.validate_date_range(new_start, new_end)
            self.validate_no_overlap(new_start, new_end, exclude_id=period.id)

        if name is not None:
            period.name = name
        period.start_date = new_start
        period.end_date = new_end
        self.session.flush()

        logger.info(
            "period_updated",
            extra={
                "period_id": str(period_id),
                "period_name": period.name,
                "start_date": str(new_start),
                "end_date": str(new_end),
            },
        )
        return period.to_dto()

    def open_period(self, period_id: UUID, actor_id: UUID | None = None) -> PeriodInfo:
        """
        DRAFT -> OPEN.  Opening freezes the period's prices.

        Raises:
            InvalidPeriodStatusError: period is not DRAFT.
            PeriodAlreadyOpenError: another period is OPEN.
            NoLocationsError: period has no PeriodLocations.
        """
        period = self.get_period_for_update(period_id)

        if period.status != PeriodStatus.DRAFT.value:
            raise InvalidPeriodStatusError(
                str(period_id),
                current_status=period.status,
                expected_status=PeriodStatus.DRAFT.value,
                action="open",
            )

        self._ensure_no_open_period(exclude_id=period.id)

        location_count = self._count_period_locations(period.id)
        if location_count == 0:
            raise NoLocationsError(str(period_id))

        period.status = PeriodStatus.OPEN.value
        self.session.flush()

        logger.info(
            "period_opened",
            extra={
                "period_id": str(period_id),
                "period_name": period.name,
                "location_count": location_count,
                "actor_id": str(actor_id) if actor_id else None,
            },
        )
        return period.to_dto()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_period(self, period_id: UUID) -> PeriodInfo:
        period = self.session.get(Period, period_id)
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period.to_dto()

    def get_current_period(self) -> PeriodInfo | None:
        """The single OPEN period, or None.  Always a fresh query."""
        period = self.session.execute(
            select(Period)
            .where(Period.status == PeriodStatus.OPEN.value)
            .order_by(Period.start_date.desc())
        ).scalars().first()
        return period.to_dto() if period is not None else None

    def list_periods(
        self,
        status: PeriodStatus | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[PeriodInfo]:
        """Periods newest first, optionally filtered."""
        stmt = select(Period)
        if status is not None:
            stmt = stmt.where(Period.status == PeriodStatus(status).value)
        if start_date is not None:
            stmt = stmt.where(Period.start_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(Period.end_date <= end_date)
        stmt = stmt.order_by(Period.start_date.desc())
        return [p.to_dto() for p in self.session.execute(stmt).scalars()]

    def list_period_locations(self, period_id: UUID) -> list[PeriodLocationInfo]:
        """PeriodLocations of a period, ordered by location name."""
        if self.session.get(Period, period_id) is None:
            raise PeriodNotFoundError(str(period_id))

        rows = self.session.execute(
            select(PeriodLocation)
            .join(Location, Location.id == PeriodLocation.location_id)
            .where(PeriodLocation.period_id == period_id)
            .order_by(Location.name)
        ).scalars()
        return [pl.to_dto() for pl in rows]

    def get_period_for_update(self, period_id: UUID) -> Period:
        """Lock and return the period row (``SELECT ... FOR UPDATE``)."""
        period = self.session.execute(
            select(Period)
            .where(Period.id == period_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def validate_date_range(
        start_date: date, end_date: date, allow_same_day: bool = False,
    ) -> None:
        if end_date < start_date or (end_date == start_date and not allow_same_day):
            raise InvalidDateRangeError(str(start_date), str(end_date))

    def validate_no_overlap(
        self,
        start_date: date,
        end_date: date,
        exclude_id: UUID | None = None,
    ) -> None:
        """
        Reject a range that intersects any existing period.

        Raises:
            OverlappingPeriodError: carrying the first conflicting period.
        """
        conflict = self.find_overlapping_period(start_date, end_date, exclude_id)
        if conflict is None:
            return

        logger.warning(
            "period_overlap_rejected",
            extra={
                "start_date": str(start_date),
                "end_date": str(end_date),
                "existing_period_id": str(conflict.id),
            },
        )
        raise OverlappingPeriodError(
            start_date=str(start_date),
            end_date=str(end_date),
            existing_period_id=str(conflict.id),
            existing_period_name=conflict.name,
            existing_start_date=str(conflict.start_date),
            existing_end_date=str(conflict.end_date),
        )

    def find_overlapping_period(
        self,
        start_date: date,
        end_date: date,
        exclude_id: UUID | None = None,
    ) -> Period | None:
        starts_inside = and_(
            Period.start_date <= start_date, Period.end_date >= start_date,
        )
        ends_inside = and_(
            Period.start_date <= end_date, Period.end_date >= end_date,
        )
        contains = and_(
            Period.start_date >= start_date, Period.end_date <= end_date,
        )
        stmt = select(Period).where(or_(starts_inside, ends_inside, contains))
        if exclude_id is not None:
            stmt = stmt.where(Period.id != exclude_id)
        return self.session.execute(
            stmt.order_by(Period.start_date)
        ).scalars().first()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_no_open_period(self, exclude_id: UUID | None = None) -> None:
        stmt = (
            select(Period)
            .where(Period.status == PeriodStatus.OPEN.value)
            .with_for_update()
        )
        if exclude_id is not None:
            stmt = stmt.where(Period.id != exclude_id)
        open_period = self.session.execute(stmt).scalars().first()
        if open_period is not None:
            logger.warning(
                "period_already_open",
                extra={"open_period_id": str(open_period.id)},
            )
            raise PeriodAlreadyOpenError(str(open_period.id), open_period.name)

    def _create_period_locations(
        self,
        period_id: UUID,
        opening_values: Mapping[UUID, Decimal | None],
    ) -> int:
        location_ids = self.session.execute(
            select(Location.id).where(Location.is_active.is_(True))
        ).scalars().all()
        for location_id in location_ids:
            self.session.add(PeriodLocation(
                period_id=period_id,
                location_id=location_id,
                status=PeriodLocationStatus.OPEN.value,
                opening_value=opening_values.get(location_id),
            ))
        self.session.flush()
        return len(location_ids)

    def _count_period_locations(self, period_id: UUID) -> int:
        return len(self.session.execute(
            select(PeriodLocation.id).where(PeriodLocation.period_id == period_id)
        ).all())

    @staticmethod
    def _validate_name(name: str) -> None:
        if not name or len(name) > MAX_PERIOD_NAME_LENGTH:
            raise ValidationFailedError(
                "name", f"must be 1-{MAX_PERIOD_NAME_LENGTH} characters",
            )
