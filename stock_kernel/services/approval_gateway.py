"""
ApprovalGateway -- generic two-phase approval over pluggable handlers.

Responsibility:
    Creates PENDING approval records and moves them to APPROVED or
    REJECTED exactly once, dispatching the entity-specific work to the
    ``ApprovalHandler`` registered for the approval's entity type.

Architecture position:
    Kernel > Services -- imperative shell.
    Handlers are registered by the composition root
    (``stock_services.workflow.PeriodCloseWorkflow``); the gateway itself
    never imports an entity-specific module.

Invariants enforced:
    - PENDING -> {APPROVED, REJECTED} exactly once.  The approval row is
      locked (``SELECT ... FOR UPDATE``) and the status flip is a
      status-guarded UPDATE (``WHERE status = 'PENDING'``); a loser of a
      concurrent race sees zero affected rows and gets
      AlreadyProcessedError.
    - At most one PENDING approval per (entity_type, entity_id).
    - Handler side effects and the approval write share the caller's
      transaction: if the handler raises, the approval stays PENDING.
    - Flush-only: never commits.

Failure modes:
    - UnknownEntityTypeError: tag outside ApprovalEntityType.
    - UnsupportedEntityTypeError: tag without a registered handler.
    - DuplicateApprovalRequestError: a PENDING approval already exists.
    - ApprovalNotFoundError: unknown approval id.
    - AlreadyProcessedError: approval is no longer PENDING.
    - ValidationFailedError: rejection comment too long.
    - Anything the handler raises, unchanged.
"""

from __future__ import annotations

from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from stock_kernel.domain.approval import (
    ApprovalEntityType,
    ApprovalHandler,
    ApprovalInfo,
    ApprovalOutcome,
    ApprovalStatus,
)
from stock_kernel.domain.clock import Clock
from stock_kernel.exceptions import (
    AlreadyProcessedError,
    ApprovalNotFoundError,
    DuplicateApprovalRequestError,
    UnknownEntityTypeError,
    UnsupportedEntityTypeError,
    ValidationFailedError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.approval import ApprovalModel
from stock_kernel.services.base import BaseService

logger = get_logger("services.approval_gateway")

DEFAULT_MAX_COMMENT_LENGTH = 1000


def parse_entity_type(value: str | ApprovalEntityType) -> ApprovalEntityType:
    """Resolve a tag to ApprovalEntityType or raise UnknownEntityTypeError."""
    if isinstance(value, ApprovalEntityType):
        return value
    try:
        return ApprovalEntityType(value)
    except ValueError as exc:
        raise UnknownEntityTypeError(str(value)) from exc


class ApprovalHandlerRegistry:
    """Strategy table: entity type -> handler."""

    def __init__(self, handlers: Iterable[ApprovalHandler] = ()):
        self._handlers: dict[ApprovalEntityType, ApprovalHandler] = {}
        for handler in handlers:
            self.register(handler)

    def register(self, handler: ApprovalHandler) -> None:
        self._handlers[handler.entity_type] = handler

    def get(self, entity_type: str | ApprovalEntityType) -> ApprovalHandler:
        resolved = parse_entity_type(entity_type)
        handler = self._handlers.get(resolved)
        if handler is None:
            raise UnsupportedEntityTypeError(resolved.value)
        return handler

    def supported(self) -> frozenset[ApprovalEntityType]:
        return frozenset(self._handlers)

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._handlers


class ApprovalGateway(BaseService[ApprovalModel]):
    """
    Request / approve / reject for any registered entity type.

    Contract:
        ``request`` returns the new PENDING ``ApprovalInfo``.  ``approve``
        and ``reject`` return an ``ApprovalOutcome`` carrying the updated
        approval and whatever the handler returned (for PERIOD_CLOSE
        approval, the close summary).

    Non-goals:
        - Does NOT authorize reviewers (admin tier is checked upstream).
        - Does NOT know what any entity type means.
    """

    def __init__(
        self,
        session: Session,
        registry: ApprovalHandlerRegistry,
        clock: Clock | None = None,
        max_comment_length: int = DEFAULT_MAX_COMMENT_LENGTH,
    ):
        super().__init__(session, clock)
        self._registry = registry
        self._max_comment_length = max_comment_length

    @property
    def registry(self) -> ApprovalHandlerRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def request(
        self,
        entity_type: str | ApprovalEntityType,
        entity_id: UUID,
        requested_by: UUID,
    ) -> ApprovalInfo:
        """
        Open a PENDING approval for an entity.

        The handler validates the entity first (nothing is written if it
        raises), then the approval row is inserted and the handler applies
        its entity-side effects in the same transaction.
        """
        handler = self._registry.get(entity_type)
        resolved = handler.entity_type

        existing = self.session.execute(
            select(ApprovalModel).where(
                ApprovalModel.entity_type == resolved.value,
                ApprovalModel.entity_id == entity_id,
                ApprovalModel.status == ApprovalStatus.PENDING.value,
            )
        ).scalar_one_or_none()
        if existing is not None:
            logger.warning(
                "approval_request_rejected_duplicate",
                extra={
                    "entity_type": resolved.value,
                    "entity_id": str(entity_id),
                    "approval_id": str(existing.id),
                },
            )
            raise DuplicateApprovalRequestError(
                resolved.value, str(entity_id), str(existing.id),
            )

        handler.validate_request(entity_id)

        approval = ApprovalModel(
            entity_type=resolved.value,
            entity_id=entity_id,
            status=ApprovalStatus.PENDING.value,
            requested_by=requested_by,
            requested_at=self._clock.now(),
        )
        self.session.add(approval)
        self.session.flush()

        info = approval.to_dto()
        handler.on_requested(info)

        logger.info(
            "approval_requested",
            extra={
                "approval_id": str(approval.id),
                "entity_type": resolved.value,
                "entity_id": str(entity_id),
                "actor_id": str(requested_by),
            },
        )
        return info

    def approve(self, approval_id: UUID, reviewer_id: UUID) -> ApprovalOutcome:
        """
        Execute the approved action, then mark the approval APPROVED.

        If the handler raises, the approval is left PENDING and the
        exception propagates; the caller's rollback discards any partial
        handler writes.
        """
        with LogContext.bind(approval_id=approval_id):
            approval = self._lock_pending(approval_id, action="approve")
            handler = self._registry.get(approval.entity_type)

            result: Any = handler.on_approved(approval.to_dto(), reviewer_id)

            self._decide(approval, ApprovalStatus.APPROVED, reviewer_id, None)

            logger.info(
                "approval_approved",
                extra={
                    "approval_id": str(approval_id),
                    "entity_type": approval.entity_type,
                    "entity_id": str(approval.entity_id),
                    "actor_id": str(reviewer_id),
                },
            )
            return ApprovalOutcome(approval=approval.to_dto(), result=result)

    def reject(
        self,
        approval_id: UUID,
        reviewer_id: UUID,
        comments: str | None = None,
    ) -> ApprovalOutcome:
        """Mark the approval REJECTED and let the handler revert the entity."""
        if comments is not None and len(comments) > self._max_comment_length:
            raise ValidationFailedError(
                "comments",
                f"must be at most {self._max_comment_length} characters",
            )

        with LogContext.bind(approval_id=approval_id):
            approval = self._lock_pending(approval_id, action="reject")
            handler = self._registry.get(approval.entity_type)

            result: Any = handler.on_rejected(approval.to_dto(), reviewer_id)

            self._decide(approval, ApprovalStatus.REJECTED, reviewer_id, comments)

            logger.info(
                "approval_rejected",
                extra={
                    "approval_id": str(approval_id),
                    "entity_type": approval.entity_type,
                    "entity_id": str(approval.entity_id),
                    "actor_id": str(reviewer_id),
                    "has_comments": comments is not None,
                },
            )
            return ApprovalOutcome(approval=approval.to_dto(), result=result)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, approval_id: UUID) -> ApprovalInfo:
        approval = self.session.get(ApprovalModel, approval_id)
        if approval is None:
            raise ApprovalNotFoundError(str(approval_id))
        return approval.to_dto()

    def list_pending(
        self,
        entity_type: str | ApprovalEntityType | None = None,
    ) -> list[ApprovalInfo]:
        stmt = select(ApprovalModel).where(
            ApprovalModel.status == ApprovalStatus.PENDING.value,
        )
        if entity_type is not None:
            stmt = stmt.where(
                ApprovalModel.entity_type == parse_entity_type(entity_type).value,
            )
        stmt = stmt.order_by(ApprovalModel.requested_at, ApprovalModel.id)
        return [a.to_dto() for a in self.session.execute(stmt).scalars()]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_pending(self, approval_id: UUID, action: str) -> ApprovalModel:
        approval = self.session.execute(
            select(ApprovalModel)
            .where(ApprovalModel.id == approval_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if approval is None:
            raise ApprovalNotFoundError(str(approval_id))

        if approval.status != ApprovalStatus.PENDING.value:
            logger.warning(
                f"{action}_rejected_already_processed",
                extra={
                    "approval_id": str(approval_id),
                    "current_status": approval.status,
                },
            )
            raise AlreadyProcessedError(str(approval_id), approval.status)

        return approval

    def _decide(
        self,
        approval: ApprovalModel,
        status: ApprovalStatus,
        reviewer_id: UUID,
        comments: str | None,
    ) -> None:
        values: dict[str, Any] = {
            "status": status.value,
            "reviewed_by": reviewer_id,
            "reviewed_at": self._clock.now(),
        }
        if comments is not None:
            values["comments"] = comments

        # Flush handler writes before the guarded UPDATE.
        self.session.flush()
        result = self.session.execute(
            update(ApprovalModel)
            .where(
                ApprovalModel.id == approval.id,
                ApprovalModel.status == ApprovalStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            self.session.refresh(approval)
            logger.warning(
                "approval_decision_lost_race",
                extra={
                    "approval_id": str(approval.id),
                    "current_status": approval.status,
                },
            )
            raise AlreadyProcessedError(str(approval.id), approval.status)

        self.session.refresh(approval)
