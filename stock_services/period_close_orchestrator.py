"""
stock_services.period_close_orchestrator -- the approved period close.

Responsibility:
    Executes an approved PERIOD_CLOSE: re-verifies readiness, builds
    closing snapshots for every location in one pass, writes each
    PeriodLocation CLOSED with its closing value and snapshot, and closes
    the period.

Architecture position:
    Services -- orchestration over kernel services.
    Invoked by ``PeriodCloseApprovalHandler.on_approved`` inside the
    approval gateway's call, so the close writes and the approval's
    APPROVED flip share one transaction.

Invariants enforced:
    - All-or-nothing: every write happens in the caller's transaction and
      nothing is committed here.  Any failure propagates, the caller rolls
      back, and no PeriodLocation is left CLOSED without the period.
    - Readiness is re-checked under row lock at the start of the close;
      the request-time check is never trusted.
    - One clock read per close: every location shares the same
      ``closed_at`` and ``snapshot_timestamp``.
    - Inputs are fetched in batched queries (no per-location queries).

Failure modes:
    - PeriodNotFoundError, InvalidPeriodStatusError (period not
      PENDING_CLOSE), ValidationFailedError (approval does not match the
      period's pending approval).
    - LocationsNotReadyError when a location was unmarked after the
      request.
    - TransactionFailedError (retryable) wrapping any SQLAlchemyError.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stock_kernel.db.types import round_money
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.period import (
    CLOSABLE_LOCATION_STATUSES,
    PeriodLocationStatus,
    PeriodStatus,
)
from stock_kernel.exceptions import (
    InvalidPeriodStatusError,
    LocationsNotReadyError,
    TransactionFailedError,
    ValidationFailedError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.period import PeriodLocation
from stock_kernel.services.period_service import PeriodService
from stock_kernel.services.readiness_service import LocationReadinessService
from stock_kernel.services.snapshot_service import SnapshotService
from stock_services._close_types import LocationCloseSummary, PeriodCloseSummary

logger = get_logger("services.period_close")

_CLOSABLE_VALUES = frozenset(s.value for s in CLOSABLE_LOCATION_STATUSES)


class PeriodCloseOrchestrator:
    """
    Closes a PENDING_CLOSE period in one transaction.

    Contract:
        ``execute(period_id, approval_id)`` returns a
        ``PeriodCloseSummary`` on success.  On any failure the period,
        its locations and the approval are exactly as before the call
        once the caller rolls back.

    Non-goals:
        - Does NOT flip the approval to APPROVED (ApprovalGateway does).
        - Does NOT commit or roll back.
    """

    def __init__(
        self,
        session: Session,
        period_service: PeriodService,
        readiness: LocationReadinessService,
        snapshots: SnapshotService,
        clock: Clock | None = None,
    ):
        self._session = session
        self._period_service = period_service
        self._readiness = readiness
        self._snapshots = snapshots
        self._clock = clock or SystemClock()

    def execute(self, period_id: UUID, approval_id: UUID) -> PeriodCloseSummary:
        with LogContext.bind(period_id=period_id, approval_id=approval_id):
            logger.info("period_close_started")
            try:
                summary = self._close(period_id, approval_id)
            except SQLAlchemyError as exc:
                logger.error(
                    "period_close_failed",
                    extra={"reason": type(exc).__name__},
                    exc_info=True,
                )
                raise TransactionFailedError("period_close", str(exc)) from exc

            logger.info(
                "period_close_completed",
                extra={
                    "total_locations": summary.total_locations,
                    "total_closing_value": summary.total_closing_value,
                },
            )
            return summary

    def _close(self, period_id: UUID, approval_id: UUID) -> PeriodCloseSummary:
        period = self._period_service.get_period_for_update(period_id)

        if period.status != PeriodStatus.PENDING_CLOSE.value:
            raise InvalidPeriodStatusError(
                str(period_id),
                current_status=period.status,
                expected_status=PeriodStatus.PENDING_CLOSE.value,
                action="close",
            )
        if period.approval_id is not None and period.approval_id != approval_id:
            raise ValidationFailedError(
                "approval_id",
                f"period {period_id} is pending approval {period.approval_id}",
            )

        period_locations = list(self._session.execute(
            select(PeriodLocation)
            .where(PeriodLocation.period_id == period_id)
            .order_by(PeriodLocation.location_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars())

        # Re-check readiness inside the close transaction
        if not period_locations or any(
            pl.status not in _CLOSABLE_VALUES for pl in period_locations
        ):
            not_ready = self._readiness.non_ready_locations(period_id)
            logger.warning(
                "period_close_rejected_not_ready",
                extra={"not_ready_count": len(not_ready)},
            )
            raise LocationsNotReadyError(str(period_id), not_ready)

        to_close = [
            pl for pl in period_locations
            if pl.status != PeriodLocationStatus.CLOSED.value
        ]

        now = self._clock.now()
        snapshots = self._snapshots.build(
            period_id,
            [pl.location_id for pl in to_close],
            snapshot_timestamp=now,
        )

        location_summaries: list[LocationCloseSummary] = []
        for pl in to_close:
            snapshot = snapshots[pl.location_id]
            pl.status = PeriodLocationStatus.CLOSED.value
            pl.closing_value = snapshot.total_value
            pl.snapshot_data = snapshot.to_payload()
            pl.closed_at = now
            location_summaries.append(LocationCloseSummary(
                location_id=pl.location_id,
                location_code=snapshot.location_code,
                location_name=snapshot.location_name,
                closing_value=snapshot.total_value,
                item_count=snapshot.item_count,
                variance=(
                    snapshot.reconciliation.variance
                    if snapshot.reconciliation is not None
                    else None
                ),
            ))

        period.status = PeriodStatus.CLOSED.value
        period.closed_at = now
        self._session.flush()

        total = round_money(sum(
            (s.closing_value for s in location_summaries), Decimal("0"),
        ))
        return PeriodCloseSummary(
            period_id=period_id,
            approval_id=approval_id,
            closed_at=now,
            total_locations=len(location_summaries),
            total_closing_value=total,
            locations=tuple(location_summaries),
        )
