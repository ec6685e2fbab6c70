"""
stock_services.period_close_handler -- PERIOD_CLOSE approval strategy.

Responsibility:
    Binds the PERIOD_CLOSE entity type to the period close workflow:
    the request-time readiness gate, the OPEN -> PENDING_CLOSE flip on
    request, the close itself on approval, and the PENDING_CLOSE -> OPEN
    revert on rejection.

Architecture position:
    Services.  Registered with the kernel's ApprovalHandlerRegistry by
    ``PeriodCloseWorkflow``; the gateway calls it through the
    ``ApprovalHandler`` protocol only.

Invariants enforced:
    - A close can only be requested for an OPEN period with at least one
      location, all READY or CLOSED.
    - The period's PENDING_CLOSE status and approval_id are written in the
      same transaction as the approval row.
    - Rejection leaves every PeriodLocation as it was (READY stays READY).
"""

from __future__ import annotations

from uuid import UUID

from stock_kernel.domain.approval import ApprovalEntityType, ApprovalInfo
from stock_kernel.domain.period import PeriodStatus
from stock_kernel.exceptions import (
    InvalidPeriodStatusError,
    LocationsNotReadyError,
    NoLocationsError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.services.period_service import PeriodService
from stock_kernel.services.readiness_service import LocationReadinessService
from stock_services._close_types import PeriodCloseSummary
from stock_services.period_close_orchestrator import PeriodCloseOrchestrator

logger = get_logger("services.period_close_handler")


class PeriodCloseApprovalHandler:
    """ApprovalHandler for ``ApprovalEntityType.PERIOD_CLOSE``."""

    entity_type = ApprovalEntityType.PERIOD_CLOSE

    def __init__(
        self,
        period_service: PeriodService,
        readiness: LocationReadinessService,
        orchestrator: PeriodCloseOrchestrator,
    ):
        self._period_service = period_service
        self._readiness = readiness
        self._orchestrator = orchestrator

    def validate_request(self, entity_id: UUID) -> None:
        period = self._period_service.get_period_for_update(entity_id)

        if period.status != PeriodStatus.OPEN.value:
            raise InvalidPeriodStatusError(
                str(entity_id),
                current_status=period.status,
                expected_status=PeriodStatus.OPEN.value,
                action="request close of",
            )

        if not period.period_locations:
            raise NoLocationsError(str(entity_id))

        if not self._readiness.all_ready(entity_id):
            not_ready = self._readiness.non_ready_locations(entity_id)
            logger.warning(
                "period_close_request_rejected_not_ready",
                extra={
                    "period_id": str(entity_id),
                    "not_ready_count": len(not_ready),
                },
            )
            raise LocationsNotReadyError(str(entity_id), not_ready)

    def on_requested(self, approval: ApprovalInfo) -> None:
        period = self._period_service.get_period_for_update(approval.entity_id)
        period.status = PeriodStatus.PENDING_CLOSE.value
        period.approval_id = approval.id
        self._period_service.session.flush()

        logger.info(
            "period_close_requested",
            extra={
                "period_id": str(approval.entity_id),
                "approval_id": str(approval.id),
                "actor_id": str(approval.requested_by),
            },
        )

    def on_approved(self, approval: ApprovalInfo, reviewer_id: UUID) -> PeriodCloseSummary:
        return self._orchestrator.execute(approval.entity_id, approval.id)

    def on_rejected(self, approval: ApprovalInfo, reviewer_id: UUID) -> None:
        period = self._period_service.get_period_for_update(approval.entity_id)

        if period.status != PeriodStatus.PENDING_CLOSE.value:
            raise InvalidPeriodStatusError(
                str(approval.entity_id),
                current_status=period.status,
                expected_status=PeriodStatus.PENDING_CLOSE.value,
                action="reject close of",
            )

        period.status = PeriodStatus.OPEN.value
        period.approval_id = None
        self._period_service.session.flush()

        logger.info(
            "period_close_rejected",
            extra={
                "period_id": str(approval.entity_id),
                "approval_id": str(approval.id),
                "actor_id": str(reviewer_id),
            },
        )
