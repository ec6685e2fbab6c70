"""
ReconciliationService -- save and read per-period-location summaries.

Responsibility:
    Upserts the ten reconciliation figures for one (period, location)
    and reads them back.  A saved row is what allows the location to be
    marked READY.

Architecture position:
    Kernel > Services.  The figures themselves are computed by the
    posting side of the system (receipts, issues, transfers, stock on
    hand); this service stores what it is given.

Invariants enforced:
    - One row per (period_id, location_id), upserted.
    - Physical stock figures (opening, receipts, transfers, closing) are
      never negative.
    - Only an OPEN period accepts reconciliation figures.
    - Flush-only: never commits.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock
from stock_kernel.domain.period import PeriodStatus
from stock_kernel.domain.reconciliation import (
    ReconciliationFigures,
    ReconciliationInfo,
    validate_figures,
)
from stock_kernel.exceptions import (
    InvalidPeriodStatusError,
    LocationNotFoundError,
    PeriodClosedError,
    PeriodNotFoundError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.location import Location
from stock_kernel.models.period import Period
from stock_kernel.models.reconciliation import Reconciliation
from stock_kernel.services.base import BaseService

logger = get_logger("services.reconciliation")


class ReconciliationService(BaseService[Reconciliation]):
    """Stores reconciliation figures."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def save(
        self,
        period_id: UUID,
        location_id: UUID,
        figures: ReconciliationFigures,
        actor_id: UUID,
    ) -> ReconciliationInfo:
        """
        Insert or replace the figures for one period-location.

        Raises:
            PeriodNotFoundError, LocationNotFoundError: unknown ids.
            PeriodClosedError: period is CLOSED.
            InvalidPeriodStatusError: period is DRAFT or PENDING_CLOSE.
            InvalidReconciliationError: negative physical stock figure.
        """
        period = self.session.get(Period, period_id)
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        if period.status == PeriodStatus.CLOSED.value:
            raise PeriodClosedError(str(period_id))
        if period.status != PeriodStatus.OPEN.value:
            raise InvalidPeriodStatusError(
                str(period_id),
                current_status=period.status,
                expected_status=PeriodStatus.OPEN.value,
                action="reconcile",
            )

        if self.session.get(Location, location_id) is None:
            raise LocationNotFoundError(str(location_id))

        validate_figures(figures)

        row = self.session.execute(
            select(Reconciliation).where(
                Reconciliation.period_id == period_id,
                Reconciliation.location_id == location_id,
            )
        ).scalar_one_or_none()

        created = row is None
        if row is None:
            row = Reconciliation(
                period_id=period_id,
                location_id=location_id,
                created_by_id=actor_id,
            )
            self.session.add(row)

        row.apply_figures(figures)
        row.last_updated = self._clock.now()
        self.session.flush()

        logger.info(
            "reconciliation_saved",
            extra={
                "period_id": str(period_id),
                "location_id": str(location_id),
                "is_new": created,
                "actor_id": str(actor_id),
            },
        )
        return row.to_dto()

    def get(self, period_id: UUID, location_id: UUID) -> ReconciliationInfo | None:
        row = self.session.execute(
            select(Reconciliation).where(
                Reconciliation.period_id == period_id,
                Reconciliation.location_id == location_id,
            )
        ).scalar_one_or_none()
        return row.to_dto() if row is not None else None
