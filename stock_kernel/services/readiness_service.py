"""
LocationReadinessService -- per-location readiness within a period.

Responsibility:
    Marks and unmarks PeriodLocation rows READY and answers the all-ready
    question the close workflow asks twice: once when a close is
    requested and again inside the close transaction.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by the HTTP readiness routes, by the PERIOD_CLOSE approval
    handler (request-time gate) and by the close orchestrator
    (approval-time re-check).

Invariants enforced:
    - A PeriodLocation reaches READY only when a Reconciliation row exists
      for the same (period_id, location_id).
    - A CLOSED PeriodLocation is never marked or unmarked.
    - Readiness can only be withdrawn while the period is OPEN.
    - Writes to one (period_id, location_id) are serialized by locking
      the PeriodLocation row (``SELECT ... FOR UPDATE``).
    - Flush-only: never commits.

Failure modes:
    - PeriodNotFoundError, LocationNotFoundError,
      PeriodLocationNotFoundError for unknown ids.
    - ReconciliationMissingError when no reconciliation has been saved.
    - AlreadyClosedError when the location is already CLOSED.
    - NotReadyError / PeriodNotOpenError on unmark.

Open question decided here:
    Marking an already-READY location ready again succeeds and refreshes
    ``ready_at``.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock
from stock_kernel.domain.period import (
    CLOSABLE_LOCATION_STATUSES,
    PeriodLocationInfo,
    PeriodLocationStatus,
    PeriodStatus,
)
from stock_kernel.exceptions import (
    AlreadyClosedError,
    LocationNotFoundError,
    NotReadyError,
    PeriodLocationNotFoundError,
    PeriodNotFoundError,
    PeriodNotOpenError,
    ReconciliationMissingError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.location import Location
from stock_kernel.models.period import Period, PeriodLocation
from stock_kernel.models.reconciliation import Reconciliation
from stock_kernel.services.base import BaseService

logger = get_logger("services.readiness")

_CLOSABLE_VALUES = frozenset(s.value for s in CLOSABLE_LOCATION_STATUSES)


class LocationReadinessService(BaseService[PeriodLocation]):
    """
    Service for the OPEN <-> READY leg of the PeriodLocation lifecycle.

    Contract:
        Every public method re-reads current state; nothing is cached
        between calls.  Mutating methods return a frozen
        ``PeriodLocationInfo``.

    Non-goals:
        - Does NOT authorize the actor (supervisor tier is checked by the
          caller).
        - Does NOT move a location to CLOSED (close orchestrator only).
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def mark_ready(
        self,
        period_id: UUID,
        location_id: UUID,
        actor_id: UUID,
    ) -> PeriodLocationInfo:
        """
        Declare a location's reconciliation complete for the period.

        Raises:
            PeriodNotFoundError, LocationNotFoundError,
            PeriodLocationNotFoundError: unknown ids.
            ReconciliationMissingError: no Reconciliation row for the pair.
            AlreadyClosedError: the PeriodLocation is CLOSED.
        """
        self._require_period(period_id)
        self._require_location(location_id)

        has_reconciliation = self.session.execute(
            select(Reconciliation.id).where(
                Reconciliation.period_id == period_id,
                Reconciliation.location_id == location_id,
            )
        ).first() is not None

        if not has_reconciliation:
            logger.warning(
                "mark_ready_rejected_no_reconciliation",
                extra={
                    "period_id": str(period_id),
                    "location_id": str(location_id),
                },
            )
            raise ReconciliationMissingError(str(period_id), str(location_id))

        period_location = self._lock_period_location(period_id, location_id)

        if period_location.status == PeriodLocationStatus.CLOSED.value:
            logger.warning(
                "mark_ready_rejected_closed",
                extra={
                    "period_id": str(period_id),
                    "location_id": str(location_id),
                },
            )
            raise AlreadyClosedError(str(period_id), str(location_id))

        previous = period_location.status
        period_location.status = PeriodLocationStatus.READY.value
        period_location.ready_at = self._clock.now()
        self.session.flush()

        logger.info(
            "location_marked_ready",
            extra={
                "period_id": str(period_id),
                "location_id": str(location_id),
                "actor_id": str(actor_id),
                "previous_status": previous,
            },
        )

        return period_location.to_dto()

    def unmark_ready(
        self,
        period_id: UUID,
        location_id: UUID,
        actor_id: UUID,
    ) -> PeriodLocationInfo:
        """
        Withdraw a location's readiness (READY -> OPEN).

        Raises:
            NotReadyError: the location is not READY.
            PeriodNotOpenError: the period is PENDING_CLOSE, CLOSED or DRAFT.
        """
        period = self._require_period(period_id)
        period_location = self._lock_period_location(period_id, location_id)

        if period_location.status != PeriodLocationStatus.READY.value:
            raise NotReadyError(
                str(period_id), str(location_id), period_location.status,
            )

        if period.status != PeriodStatus.OPEN.value:
            logger.warning(
                "unmark_ready_rejected_period_not_open",
                extra={
                    "period_id": str(period_id),
                    "location_id": str(location_id),
                    "period_status": period.status,
                },
            )
            raise PeriodNotOpenError(str(period_id), period.status)

        period_location.status = PeriodLocationStatus.OPEN.value
        period_location.ready_at = None
        self.session.flush()

        logger.info(
            "location_unmarked_ready",
            extra={
                "period_id": str(period_id),
                "location_id": str(location_id),
                "actor_id": str(actor_id),
            },
        )

        return period_location.to_dto()

    def all_ready(self, period_id: UUID) -> bool:
        """True iff the period has locations and all are READY or CLOSED."""
        statuses = self.session.execute(
            select(PeriodLocation.status).where(
                PeriodLocation.period_id == period_id,
            )
        ).scalars().all()
        return bool(statuses) and all(s in _CLOSABLE_VALUES for s in statuses)

    def non_ready_locations(self, period_id: UUID) -> list[dict[str, str]]:
        """Locations blocking a close, shaped for LocationsNotReadyError."""
        rows = self.session.execute(
            select(
                PeriodLocation.location_id,
                PeriodLocation.status,
                Location.code,
                Location.name,
            )
            .join(Location, Location.id == PeriodLocation.location_id)
            .where(
                PeriodLocation.period_id == period_id,
                PeriodLocation.status.not_in(_CLOSABLE_VALUES),
            )
            .order_by(Location.code)
        ).all()
        return [
            {
                "location_id": str(row.location_id),
                "location_code": row.code,
                "location_name": row.name,
                "status": row.status,
            }
            for row in rows
        ]

    def _require_period(self, period_id: UUID) -> Period:
        period = self.session.get(Period, period_id)
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period

    def _require_location(self, location_id: UUID) -> Location:
        location = self.session.get(Location, location_id)
        if location is None:
            raise LocationNotFoundError(str(location_id))
        return location

    def _lock_period_location(
        self, period_id: UUID, location_id: UUID,
    ) -> PeriodLocation:
        period_location = self.session.execute(
            select(PeriodLocation)
            .where(
                PeriodLocation.period_id == period_id,
                PeriodLocation.location_id == location_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if period_location is None:
            raise PeriodLocationNotFoundError(str(period_id), str(location_id))
        return period_location
