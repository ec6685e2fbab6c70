"""
Module: stock_kernel.models.item
Responsibility: ORM persistence for stock items and their per-period prices.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - One price per (item, period): UNIQUE(item_id, period_id).  Price
      writes are upserts against this key.
    - Prices are only written while the owning period is DRAFT; enforced
      by PriceService, which locks the period row first.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import TrackedBase, UUIDString
from stock_kernel.domain.catalog import DEFAULT_CURRENCY, ItemPriceInfo, ItemUnit


class Item(TrackedBase):
    """A stocked item."""

    __tablename__ = "items"

    __table_args__ = (
        Index("idx_items_active", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    unit: Mapped[str] = mapped_column(
        String(10), nullable=False, default=ItemUnit.EA.value,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Item {self.code}: {self.name}>"


class ItemPrice(TrackedBase):
    """Locked price of one item for one period."""

    __tablename__ = "item_prices"

    __table_args__ = (
        UniqueConstraint("item_id", "period_id", name="uq_item_prices_item_period"),
        Index("idx_item_prices_period", "period_id"),
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False,
    )
    period_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("periods.id"), nullable=False,
    )
    price: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default=DEFAULT_CURRENCY,
    )
    set_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    set_at: Mapped[datetime | None] = mapped_column(nullable=True)

    item: Mapped[Item] = relationship("Item")

    def __repr__(self) -> str:
        return f"<ItemPrice item={self.item_id} period={self.period_id} {self.price}>"

    def to_dto(self) -> ItemPriceInfo:
        return ItemPriceInfo(
            id=self.id,
            item_id=self.item_id,
            period_id=self.period_id,
            price=self.price,
            currency=self.currency,
            set_by=self.set_by,
            set_at=self.set_at,
            item_code=self.item.code if self.item is not None else None,
            item_name=self.item.name if self.item is not None else None,
        )
