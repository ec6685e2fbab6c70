"""
Module: stock_kernel.models.reconciliation
Responsibility: ORM persistence for per-period-location reconciliation
    summaries.
Architecture position: Kernel > Models.

A Reconciliation row's existence is the gate for marking the matching
PeriodLocation READY.  The close orchestrator reads it (read-only) to
compute calculated closing stock and variance for the snapshot.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase, UUIDString
from stock_kernel.domain.reconciliation import ReconciliationFigures, ReconciliationInfo

_ZERO = Decimal("0")


class Reconciliation(TrackedBase):
    """Financial summary of one location over one period."""

    __tablename__ = "reconciliations"

    __table_args__ = (
        UniqueConstraint("period_id", "location_id", name="uq_reconciliations"),
    )

    period_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("periods.id"), nullable=False,
    )
    location_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("locations.id"), nullable=False,
    )

    opening_stock: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=_ZERO)
    receipts: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=_ZERO)
    transfers_in: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=_ZERO)
    transfers_out: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=_ZERO)
    issues: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=_ZERO)
    closing_stock: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=_ZERO)
    adjustments: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=_ZERO)
    back_charges: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=_ZERO)
    credits: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=_ZERO)
    condemnations: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=_ZERO)

    last_updated: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Reconciliation period={self.period_id} location={self.location_id}>"

    def to_figures(self) -> ReconciliationFigures:
        return ReconciliationFigures(**{
            name: getattr(self, name) for name in ReconciliationFigures.field_names()
        })

    def apply_figures(self, figures: ReconciliationFigures) -> None:
        for name, value in figures.as_dict().items():
            setattr(self, name, value)

    def to_dto(self) -> ReconciliationInfo:
        return ReconciliationInfo(
            id=self.id,
            period_id=self.period_id,
            location_id=self.location_id,
            figures=self.to_figures(),
            last_updated=self.last_updated,
        )
