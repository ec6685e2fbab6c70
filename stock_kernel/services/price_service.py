"""
PriceService -- per-period item prices.

Responsibility:
    Sets, copies and lists the locked prices of items within a period.
    Prices may only change while the period is DRAFT; opening the period
    freezes them.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by the HTTP price routes and by the roll-forward generator.

Invariants enforced:
    - One price per (item_id, period_id); every write is an upsert on
      that key, stamped with the acting user and the clock.
    - Writes require the target period to be DRAFT, checked with the
      period row locked.
    - Only active items receive prices (set and copy).
    - Flush-only: never commits.

Failure modes:
    - PeriodNotFoundError, PricesLockedError, InvalidItemsError,
      NoPreviousPeriodError, NoPricesFoundError, NoActivePricesError,
      ValidationFailedError.
"""

from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.catalog import DEFAULT_CURRENCY, ItemPriceInfo, PriceInput
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.period import PeriodInfo, PeriodStatus
from stock_kernel.exceptions import (
    InvalidItemsError,
    NoActivePricesError,
    NoPreviousPeriodError,
    NoPricesFoundError,
    PeriodNotFoundError,
    PricesLockedError,
    ValidationFailedError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.item import Item, ItemPrice
from stock_kernel.models.period import Period
from stock_kernel.services.base import BaseService

logger = get_logger("services.price")


class PriceService(BaseService[ItemPrice]):
    """Upserts and copies period prices."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        currency: str = DEFAULT_CURRENCY,
    ):
        super().__init__(session, clock)
        self._currency = currency

    def set_prices(
        self,
        period_id: UUID,
        prices: Sequence[PriceInput],
        actor_id: UUID,
    ) -> list[ItemPriceInfo]:
        """
        Upsert prices for a DRAFT period.

        Raises:
            ValidationFailedError: empty list or non-positive price.
            PricesLockedError: period is not DRAFT.
            InvalidItemsError: unknown or inactive items (all listed).
        """
        if not prices:
            raise ValidationFailedError("prices", "at least one price is required")
        for entry in prices:
            if Decimal(entry.price) <= 0:
                raise ValidationFailedError(
                    "price", f"must be positive (item {entry.item_id})",
                )

        self._lock_draft_period(period_id)

        item_ids = [entry.item_id for entry in prices]
        active_ids = set(self.session.execute(
            select(Item.id).where(Item.id.in_(item_ids), Item.is_active.is_(True))
        ).scalars())
        missing = [str(i) for i in item_ids if i not in active_ids]
        if missing:
            logger.warning(
                "set_prices_rejected_invalid_items",
                extra={"period_id": str(period_id), "item_count": len(missing)},
            )
            raise InvalidItemsError(missing)

        rows = self._upsert(
            period_id,
            {entry.item_id: (Decimal(entry.price), self._currency) for entry in prices},
            actor_id,
        )

        logger.info(
            "prices_set",
            extra={
                "period_id": str(period_id),
                "price_count": len(rows),
                "actor_id": str(actor_id),
            },
        )
        return [row.to_dto() for row in rows]

    def copy_prices(
        self,
        source_period_id: UUID,
        target_period_id: UUID,
        actor_id: UUID,
    ) -> list[ItemPriceInfo]:
        """
        Copy every active-item price of the source period into the target.

        A source without prices copies nothing.
        """
        self._lock_draft_period(target_period_id)

        source_rows = self._active_source_prices(source_period_id)
        rows = self._upsert(
            target_period_id,
            {p.item_id: (p.price, p.currency) for p in source_rows},
            actor_id,
        )

        logger.info(
            "prices_copied",
            extra={
                "source_period_id": str(source_period_id),
                "target_period_id": str(target_period_id),
                "price_count": len(rows),
                "actor_id": str(actor_id),
            },
        )
        return [row.to_dto() for row in rows]

    def copy_from_previous(
        self,
        target_period_id: UUID,
        actor_id: UUID,
    ) -> tuple[PeriodInfo, list[ItemPriceInfo]]:
        """
        Copy prices from the most recent CLOSED period ending before the
        target starts.

        Returns:
            The source period and the copied prices.
        """
        target = self._lock_draft_period(target_period_id)

        source = self.session.execute(
            select(Period)
            .where(
                Period.end_date < target.start_date,
                Period.status == PeriodStatus.CLOSED.value,
            )
            .order_by(Period.end_date.desc())
        ).scalars().first()
        if source is None:
            raise NoPreviousPeriodError(str(target_period_id))

        has_any = self.session.execute(
            select(ItemPrice.id).where(ItemPrice.period_id == source.id)
        ).first() is not None
        if not has_any:
            raise NoPricesFoundError(str(source.id))

        if not self._active_source_prices(source.id):
            raise NoActivePricesError(str(source.id))

        copied = self.copy_prices(source.id, target_period_id, actor_id)
        return source.to_dto(), copied

    def get_prices(self, period_id: UUID) -> list[ItemPriceInfo]:
        if self.session.get(Period, period_id) is None:
            raise PeriodNotFoundError(str(period_id))
        rows = self.session.execute(
            select(ItemPrice)
            .join(Item, Item.id == ItemPrice.item_id)
            .where(ItemPrice.period_id == period_id)
            .order_by(Item.code)
        ).scalars()
        return [row.to_dto() for row in rows]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_draft_period(self, period_id: UUID) -> Period:
        period = self.session.execute(
            select(Period)
            .where(Period.id == period_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        if period.status != PeriodStatus.DRAFT.value:
            logger.warning(
                "price_write_rejected_locked",
                extra={"period_id": str(period_id), "status": period.status},
            )
            raise PricesLockedError(str(period_id), period.status)
        return period

    def _active_source_prices(self, source_period_id: UUID) -> list[ItemPrice]:
        return list(self.session.execute(
            select(ItemPrice)
            .join(Item, Item.id == ItemPrice.item_id)
            .where(
                ItemPrice.period_id == source_period_id,
                Item.is_active.is_(True),
            )
        ).scalars())

    def _upsert(
        self,
        period_id: UUID,
        values: dict[UUID, tuple[Decimal, str]],
        actor_id: UUID,
    ) -> list[ItemPrice]:
        if not values:
            return []

        now = self._clock.now()
        existing = {
            row.item_id: row
            for row in self.session.execute(
                select(ItemPrice).where(
                    ItemPrice.period_id == period_id,
                    ItemPrice.item_id.in_(list(values)),
                )
            ).scalars()
        }

        rows: list[ItemPrice] = []
        for item_id, (price, currency) in values.items():
            row = existing.get(item_id)
            if row is None:
                row = ItemPrice(
                    item_id=item_id,
                    period_id=period_id,
                    currency=currency,
                )
                self.session.add(row)
            row.price = price
            row.set_by = actor_id
            row.set_at = now
            rows.append(row)

        self.session.flush()
        return rows
