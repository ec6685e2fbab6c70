"""
Module: stock_kernel.models.period
Responsibility: ORM persistence for accounting periods and the per-location
    state rows inside them.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - At most one OPEN period: partial unique index on status WHERE
      status = 'OPEN' (PostgreSQL and SQLite).  PeriodService also checks
      under row lock before opening; the index is the storage backstop.
    - start_date <= end_date (CHECK).
    - One PeriodLocation per (period_id, location_id) (UNIQUE).
    - A CLOSED PeriodLocation is immutable: the ``before_update`` listener
      rejects any flush that modifies a row whose persisted status is
      CLOSED.  Its closing_value and snapshot_data are final.

Failure modes:
    - IntegrityError when a second period would become OPEN.
    - ImmutabilityViolationError on update of a CLOSED PeriodLocation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    event,
    inspect,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import Base, TrackedBase, UUIDString
from stock_kernel.db.types import JSONPayload
from stock_kernel.domain.period import (
    PeriodInfo,
    PeriodLocationInfo,
    PeriodLocationStatus,
    PeriodStatus,
)
from stock_kernel.domain.snapshot import LocationSnapshot
from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.models.location import Location


class Period(TrackedBase):
    """
    One accounting cycle over an inclusive date range.

    Contract:
        Status moves DRAFT -> OPEN -> PENDING_CLOSE -> {CLOSED, OPEN}.
        ``approval_id`` is set only while a close approval is in flight.
    """

    __tablename__ = "periods"

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_periods_date_range"),
        CheckConstraint(
            "status IN ('DRAFT', 'OPEN', 'PENDING_CLOSE', 'CLOSED')",
            name="ck_periods_valid_status",
        ),
        Index("idx_periods_dates", "start_date", "end_date"),
        Index(
            "uq_periods_single_open",
            "status",
            unique=True,
            postgresql_where=text("status = 'OPEN'"),
            sqlite_where=text("status = 'OPEN'"),
        ),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PeriodStatus.DRAFT.value,
    )
    approval_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("approvals.id"), nullable=True,
    )
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    period_locations: Mapped[list["PeriodLocation"]] = relationship(
        "PeriodLocation",
        back_populates="period",
        order_by="PeriodLocation.location_id",
    )

    def __repr__(self) -> str:
        return f"<Period {self.name}: {self.status}>"

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN.value

    @property
    def is_closed(self) -> bool:
        return self.status == PeriodStatus.CLOSED.value

    def to_dto(self) -> PeriodInfo:
        return PeriodInfo(
            id=self.id,
            name=self.name,
            start_date=self.start_date,
            end_date=self.end_date,
            status=PeriodStatus(self.status),
            approval_id=self.approval_id,
            created_at=self.created_at,
            closed_at=self.closed_at,
        )


class PeriodLocation(Base):
    """
    One location's readiness and closing state within one period.

    Contract:
        OPEN -> READY requires a Reconciliation row for the same
        (period_id, location_id).  READY -> CLOSED happens only inside the
        close orchestrator's transaction, which writes closing_value and
        snapshot_data in the same flush.
    """

    __tablename__ = "period_locations"

    __table_args__ = (
        UniqueConstraint("period_id", "location_id", name="uq_period_locations"),
        CheckConstraint(
            "status IN ('OPEN', 'READY', 'CLOSED')",
            name="ck_period_locations_valid_status",
        ),
        Index("idx_period_locations_status", "period_id", "status"),
    )

    period_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("periods.id"), nullable=False,
    )
    location_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("locations.id"), nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PeriodLocationStatus.OPEN.value,
    )
    ready_at: Mapped[datetime | None] = mapped_column(nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    opening_value: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    closing_value: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    snapshot_data: Mapped[dict[str, Any] | None] = mapped_column(
        JSONPayload, nullable=True,
    )

    period: Mapped[Period] = relationship("Period", back_populates="period_locations")
    location: Mapped[Location] = relationship("Location")

    def __repr__(self) -> str:
        return (
            f"<PeriodLocation period={self.period_id} "
            f"location={self.location_id} status={self.status}>"
        )

    def to_dto(self) -> PeriodLocationInfo:
        return PeriodLocationInfo(
            period_id=self.period_id,
            location_id=self.location_id,
            status=PeriodLocationStatus(self.status),
            location_code=self.location.code if self.location is not None else None,
            location_name=self.location.name if self.location is not None else None,
            ready_at=self.ready_at,
            closed_at=self.closed_at,
            opening_value=self.opening_value,
            closing_value=self.closing_value,
        )

    def snapshot(self) -> LocationSnapshot | None:
        """Parsed closing snapshot, or None before close."""
        if self.snapshot_data is None:
            return None
        return LocationSnapshot.from_payload(self.snapshot_data)


def _persisted_status(target: Any) -> str | None:
    """Status as last loaded from / flushed to the database."""
    history = inspect(target).attrs.status.history
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return None


@event.listens_for(PeriodLocation, "before_update")
def prevent_closed_location_update(mapper, connection, target):
    """Reject modification of a CLOSED period location."""
    if _persisted_status(target) == PeriodLocationStatus.CLOSED.value:
        raise ImmutabilityViolationError(
            entity_type="PeriodLocation",
            entity_id=f"{target.period_id}/{target.location_id}",
            reason="Closed period locations are immutable -- cannot modify",
        )
