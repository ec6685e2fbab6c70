"""
stock_services.workflow -- composition root for the period close workflow.

Responsibility:
    Creates every kernel service and orchestrator once per session and
    wires them together, including registering the PERIOD_CLOSE handler
    with the approval gateway.  No service constructs its own
    collaborators.

Architecture position:
    Services.  The only place where kernel services are composed.  Used
    by the HTTP dependencies, scripts and tests.

Usage:
    with session_scope() as session:
        workflow = PeriodCloseWorkflow(session, clock=clock)
        workflow.readiness.mark_ready(period_id, location_id, actor_id)
        approval = workflow.request_close(period_id, actor_id)
        outcome = workflow.gateway.approve(approval.id, admin_id)
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from stock_kernel.domain.approval import ApprovalEntityType, ApprovalInfo
from stock_kernel.domain.catalog import DEFAULT_CURRENCY
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.services.approval_gateway import (
    DEFAULT_MAX_COMMENT_LENGTH,
    ApprovalGateway,
    ApprovalHandlerRegistry,
)
from stock_kernel.services.period_service import PeriodService
from stock_kernel.services.price_service import PriceService
from stock_kernel.services.readiness_service import LocationReadinessService
from stock_kernel.services.reconciliation_service import ReconciliationService
from stock_kernel.services.snapshot_service import SnapshotService
from stock_services._close_types import RollForwardOptions, RollForwardResult
from stock_services.period_close_handler import PeriodCloseApprovalHandler
from stock_services.period_close_orchestrator import PeriodCloseOrchestrator
from stock_services.roll_forward import RollForwardGenerator


class PeriodCloseWorkflow:
    """Central factory for the close workflow's services.

    Contract:
        Receives a Session and optional Clock.  Every service shares both.
        All services are public attributes.

    Non-goals:
        - Does NOT manage transaction boundaries (caller's responsibility).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        currency: str = DEFAULT_CURRENCY,
        max_comment_length: int = DEFAULT_MAX_COMMENT_LENGTH,
    ):
        self.session = session
        self.clock = clock or SystemClock()

        self.period_service = PeriodService(session, self.clock)
        self.price_service = PriceService(session, self.clock, currency=currency)
        self.reconciliation_service = ReconciliationService(session, self.clock)
        self.readiness = LocationReadinessService(session, self.clock)
        self.snapshots = SnapshotService(session, self.clock)

        self.orchestrator = PeriodCloseOrchestrator(
            session,
            period_service=self.period_service,
            readiness=self.readiness,
            snapshots=self.snapshots,
            clock=self.clock,
        )
        self.close_handler = PeriodCloseApprovalHandler(
            period_service=self.period_service,
            readiness=self.readiness,
            orchestrator=self.orchestrator,
        )

        self.registry = ApprovalHandlerRegistry([self.close_handler])
        self.gateway = ApprovalGateway(
            session,
            self.registry,
            clock=self.clock,
            max_comment_length=max_comment_length,
        )

        self.roll_forward_generator = RollForwardGenerator(
            session,
            period_service=self.period_service,
            price_service=self.price_service,
        )

    def request_close(self, period_id: UUID, actor_id: UUID) -> ApprovalInfo:
        """Open a PERIOD_CLOSE approval for the period."""
        return self.gateway.request(ApprovalEntityType.PERIOD_CLOSE, period_id, actor_id)

    def roll_forward(
        self,
        source_period_id: UUID,
        actor_id: UUID,
        options: RollForwardOptions | None = None,
    ) -> RollForwardResult:
        return self.roll_forward_generator.roll_forward(
            source_period_id, actor_id, options,
        )
