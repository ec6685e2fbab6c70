"""
Module: stock_kernel.models.stock
Responsibility: ORM persistence for current stock on hand per location/item.
Architecture position: Kernel > Models.

Written by the delivery/issue/transfer postings (outside this package),
read by the snapshot builder at period close.  ``wac`` is the weighted
average cost used as the snapshot's unit cost.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, UUIDString


class LocationStock(Base):
    """Quantity and weighted-average cost of one item at one location."""

    __tablename__ = "location_stock"

    __table_args__ = (
        UniqueConstraint("location_id", "item_id", name="uq_location_stock"),
        Index("idx_location_stock_location", "location_id"),
    )

    location_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("locations.id"), nullable=False,
    )
    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False,
    )
    on_hand: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    wac: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    def __repr__(self) -> str:
        return (
            f"<LocationStock loc={self.location_id} item={self.item_id} "
            f"on_hand={self.on_hand} wac={self.wac}>"
        )
