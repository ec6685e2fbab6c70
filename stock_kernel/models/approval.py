"""
Module: stock_kernel.models.approval
Responsibility: ORM persistence for generic approval records.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - DB check constraints limit status and entity_type values.
    - At most one PENDING approval per (entity_type, entity_id): partial
      unique index.
    - Terminal approvals (APPROVED, REJECTED) are immutable: the
      ``before_update`` listener rejects modification once the persisted
      status is terminal.

Failure modes:
    - IntegrityError on a duplicate pending approval.
    - ImmutabilityViolationError on update of a terminal approval.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, String, Text, event, inspect, text
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, UUIDString
from stock_kernel.domain.approval import (
    TERMINAL_APPROVAL_STATUSES,
    ApprovalEntityType,
    ApprovalInfo,
    ApprovalStatus,
)
from stock_kernel.exceptions import ImmutabilityViolationError

_TERMINAL_VALUES = frozenset(s.value for s in TERMINAL_APPROVAL_STATUSES)


class ApprovalModel(Base):
    """Persistent approval record.

    Guarantees:
        - status leaves PENDING exactly once.
        - reviewed_by / reviewed_at are set together with the terminal status.
    """

    __tablename__ = "approvals"

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_approvals_valid_status",
        ),
        CheckConstraint(
            "entity_type IN ('PERIOD_CLOSE', 'TRANSFER', 'PRF', 'PO')",
            name="ck_approvals_valid_entity_type",
        ),
        Index(
            "uq_approvals_pending_entity",
            "entity_type", "entity_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
        Index("idx_approvals_status", "status", "requested_at"),
    )

    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalStatus.PENDING.value,
    )
    requested_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    requested_at: Mapped[datetime] = mapped_column(nullable=False)
    reviewed_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Approval {self.id} {self.entity_type}/{self.entity_id} "
            f"status={self.status}>"
        )

    def to_dto(self) -> ApprovalInfo:
        """Convert ORM model to frozen domain DTO."""
        return ApprovalInfo(
            id=self.id,
            entity_type=ApprovalEntityType(self.entity_type),
            entity_id=self.entity_id,
            status=ApprovalStatus(self.status),
            requested_by=self.requested_by,
            requested_at=self.requested_at,
            reviewed_by=self.reviewed_by,
            reviewed_at=self.reviewed_at,
            comments=self.comments,
        )


@event.listens_for(ApprovalModel, "before_update")
def prevent_terminal_approval_update(mapper, connection, target):
    """Reject modification of an approval that has already been decided."""
    history = inspect(target).attrs.status.history
    persisted = (history.deleted or history.unchanged or [None])[0]
    if persisted in _TERMINAL_VALUES:
        raise ImmutabilityViolationError(
            entity_type="Approval",
            entity_id=str(target.id),
            reason=f"Approval is {persisted} -- cannot modify",
        )
