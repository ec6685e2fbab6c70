"""
SnapshotService -- batched input fetch for the closing snapshot builder.

Responsibility:
    Loads, in a fixed number of queries regardless of location count, the
    locations, positive stock-on-hand rows and reconciliation figures the
    pure ``build_snapshots`` function needs, then calls it once.

Architecture position:
    Kernel > Services.  Read-only; writes nothing.  Called by the close
    orchestrator inside the close transaction.
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.reconciliation import ReconciliationFigures
from stock_kernel.domain.snapshot import (
    LocationRef,
    LocationSnapshot,
    StockRow,
    build_snapshots,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.item import Item
from stock_kernel.models.location import Location
from stock_kernel.models.reconciliation import Reconciliation
from stock_kernel.models.stock import LocationStock
from stock_kernel.services.base import BaseService

logger = get_logger("services.snapshot")


class SnapshotService(BaseService[LocationStock]):
    """Fetches snapshot inputs for many locations at once."""

    def build(
        self,
        period_id: UUID,
        location_ids: Sequence[UUID],
        snapshot_timestamp: datetime | None = None,
    ) -> dict[UUID, LocationSnapshot]:
        """
        Build one snapshot per location id.

        Args:
            period_id: Period whose reconciliations are attached.
            location_ids: Locations to snapshot.
            snapshot_timestamp: Shared creation timestamp; read from the
                clock once when not supplied.
        """
        if not location_ids:
            return {}

        timestamp = snapshot_timestamp or self._clock.now()

        locations = self.fetch_locations(location_ids)
        stock_rows = self.fetch_stock_rows(location_ids)
        reconciliations = self.fetch_reconciliations(period_id, location_ids)

        snapshots = build_snapshots(
            locations, stock_rows, reconciliations, timestamp,
        )

        logger.debug(
            "snapshots_built",
            extra={
                "period_id": str(period_id),
                "location_count": len(snapshots),
                "stock_row_count": len(stock_rows),
                "reconciliation_count": len(reconciliations),
            },
        )
        return snapshots

    def fetch_locations(self, location_ids: Sequence[UUID]) -> list[LocationRef]:
        rows = self.session.execute(
            select(Location)
            .where(Location.id.in_(location_ids))
            .order_by(Location.code)
        ).scalars()
        return [loc.to_ref() for loc in rows]

    def fetch_stock_rows(self, location_ids: Sequence[UUID]) -> list[StockRow]:
        """Stock-on-hand joined to its item, quantity > 0 only."""
        rows = self.session.execute(
            select(
                LocationStock.location_id,
                LocationStock.item_id,
                LocationStock.on_hand,
                LocationStock.wac,
                Item.code,
                Item.name,
                Item.unit,
            )
            .join(Item, Item.id == LocationStock.item_id)
            .where(
                LocationStock.location_id.in_(location_ids),
                LocationStock.on_hand > 0,
            )
        ).all()
        return [
            StockRow(
                location_id=row.location_id,
                item_id=row.item_id,
                item_code=row.code,
                item_name=row.name,
                item_unit=row.unit,
                quantity=row.on_hand,
                unit_cost=row.wac,
            )
            for row in rows
        ]

    def fetch_reconciliations(
        self,
        period_id: UUID,
        location_ids: Sequence[UUID],
    ) -> dict[UUID, ReconciliationFigures]:
        rows = self.session.execute(
            select(Reconciliation).where(
                Reconciliation.period_id == period_id,
                Reconciliation.location_id.in_(location_ids),
            )
        ).scalars()
        return {r.location_id: r.to_figures() for r in rows}
