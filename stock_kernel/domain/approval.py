"""
Approval domain types (``stock_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the generic two-phase approval gateway: the
status state machine, the entity-type tags, the frozen approval record,
and the handler protocol that binds an entity type to the work executed
when its approval is requested, approved or rejected.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.

Invariants enforced
-------------------
* ``APPROVAL_TRANSITIONS`` defines the only valid status transitions.
  PENDING is the only non-terminal state and each approval leaves it
  exactly once.
* The entity type determines which handler runs; entity types without a
  registered handler cannot be requested, approved or rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Protocol
from uuid import UUID


class ApprovalStatus(str, Enum):
    """Approval lifecycle states."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
    }),
    ApprovalStatus.APPROVED: frozenset(),
    ApprovalStatus.REJECTED: frozenset(),
}

TERMINAL_APPROVAL_STATUSES: frozenset[ApprovalStatus] = frozenset({
    ApprovalStatus.APPROVED,
    ApprovalStatus.REJECTED,
})


class ApprovalEntityType(str, Enum):
    """Kinds of entity that can sit behind an approval."""

    PERIOD_CLOSE = "PERIOD_CLOSE"
    TRANSFER = "TRANSFER"
    PRF = "PRF"
    PO = "PO"


@dataclass(frozen=True)
class ApprovalInfo:
    """Immutable snapshot of an approval record."""

    id: UUID
    entity_type: ApprovalEntityType
    entity_id: UUID
    status: ApprovalStatus
    requested_by: UUID
    requested_at: datetime | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    comments: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING


class ApprovalHandler(Protocol):
    """
    Strategy executed by the gateway for one entity type.

    All hooks run inside the caller's transaction.  Raising from any hook
    aborts the gateway operation and leaves the approval unchanged.
    """

    entity_type: ApprovalEntityType

    def validate_request(self, entity_id: UUID) -> None:
        """Check the entity may be put up for approval (before any write)."""
        ...

    def on_requested(self, approval: ApprovalInfo) -> None:
        """Apply entity-side effects of a new PENDING approval."""
        ...

    def on_approved(self, approval: ApprovalInfo, reviewer_id: UUID) -> Any:
        """Execute the approved action; the return value is passed back."""
        ...

    def on_rejected(self, approval: ApprovalInfo, reviewer_id: UUID) -> Any:
        """Revert entity-side effects of the request."""
        ...


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of approve/reject: the updated approval plus handler result."""

    approval: ApprovalInfo
    result: Any = None
