"""
Closing snapshot types and builder (``stock_kernel.domain.snapshot``).

Responsibility
--------------
Defines the versioned, strongly-typed snapshot written to
``PeriodLocation.snapshot_data`` at period close, and the pure builder
that computes one snapshot per location from stock-on-hand rows and the
location's reconciliation.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  Fetching the inputs (batched) and
writing the outputs is the job of ``SnapshotService`` and the close
orchestrator.

Invariants enforced
-------------------
* ``ItemSnapshot.value == round_money(quantity * unit_cost)``.
* ``LocationSnapshot.total_value`` is the rounded sum of item values and
  becomes ``PeriodLocation.closing_value``.
* ``ReconciliationSnapshot.variance == closing_stock - calculated_closing``.
* All snapshots built in one call share one ``snapshot_timestamp``.
* Snapshots are frozen; the payload carries ``schema_version`` and
  readers reject versions they do not know.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence
from uuid import UUID

from stock_kernel.db.types import round_money
from stock_kernel.domain.reconciliation import (
    ReconciliationFigures,
    calculated_closing,
    variance,
)
from stock_kernel.exceptions import UnsupportedSnapshotVersionError

SNAPSHOT_SCHEMA_VERSION = 1
SUPPORTED_SNAPSHOT_VERSIONS: tuple[int, ...] = (1,)


# =========================================================================
# Builder inputs
# =========================================================================


@dataclass(frozen=True)
class StockRow:
    """One stock-on-hand row joined with its item's descriptive fields."""

    location_id: UUID
    item_id: UUID
    item_code: str
    item_name: str
    item_unit: str
    quantity: Decimal
    unit_cost: Decimal


@dataclass(frozen=True)
class LocationRef:
    location_id: UUID
    code: str
    name: str


# =========================================================================
# Snapshot records
# =========================================================================


@dataclass(frozen=True)
class ItemSnapshot:
    item_id: UUID
    item_code: str
    item_name: str
    item_unit: str
    quantity: Decimal
    unit_cost: Decimal
    value: Decimal

    def to_payload(self) -> dict[str, Any]:
        return {
            "item_id": str(self.item_id),
            "item_code": self.item_code,
            "item_name": self.item_name,
            "item_unit": self.item_unit,
            "quantity": str(self.quantity),
            "unit_cost": str(self.unit_cost),
            "value": str(self.value),
        }

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> ItemSnapshot:
        return cls(
            item_id=UUID(data["item_id"]),
            item_code=data["item_code"],
            item_name=data["item_name"],
            item_unit=data["item_unit"],
            quantity=Decimal(data["quantity"]),
            unit_cost=Decimal(data["unit_cost"]),
            value=Decimal(data["value"]),
        )


@dataclass(frozen=True)
class ReconciliationSnapshot:
    """The reconciliation figures as they stood at close, plus derived values."""

    figures: ReconciliationFigures
    calculated_closing: Decimal
    variance: Decimal

    @classmethod
    def from_figures(cls, figures: ReconciliationFigures) -> ReconciliationSnapshot:
        return cls(
            figures=figures,
            calculated_closing=calculated_closing(figures),
            variance=variance(figures),
        )

    def to_payload(self) -> dict[str, Any]:
        payload = {k: str(v) for k, v in self.figures.as_dict().items()}
        payload["calculated_closing"] = str(self.calculated_closing)
        payload["variance"] = str(self.variance)
        return payload

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> ReconciliationSnapshot:
        return cls(
            figures=ReconciliationFigures.from_mapping(data),
            calculated_closing=Decimal(data["calculated_closing"]),
            variance=Decimal(data["variance"]),
        )


@dataclass(frozen=True)
class LocationSnapshot:
    """Point-in-time capture of one location's stock at period close."""

    location_id: UUID
    location_code: str
    location_name: str
    total_value: Decimal
    items: tuple[ItemSnapshot, ...]
    reconciliation: ReconciliationSnapshot | None
    snapshot_timestamp: datetime
    schema_version: int = SNAPSHOT_SCHEMA_VERSION

    @property
    def item_count(self) -> int:
        return len(self.items)

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe form stored in ``PeriodLocation.snapshot_data``."""
        return {
            "schema_version": self.schema_version,
            "location_id": str(self.location_id),
            "location_code": self.location_code,
            "location_name": self.location_name,
            "total_value": str(self.total_value),
            "item_count": self.item_count,
            "items": [item.to_payload() for item in self.items],
            "reconciliation": (
                self.reconciliation.to_payload()
                if self.reconciliation is not None
                else None
            ),
            "snapshot_timestamp": self.snapshot_timestamp.isoformat(),
        }

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> LocationSnapshot:
        """Read a stored payload.

        Raises:
            UnsupportedSnapshotVersionError: unknown ``schema_version``.
        """
        version = data.get("schema_version")
        if version not in SUPPORTED_SNAPSHOT_VERSIONS:
            raise UnsupportedSnapshotVersionError(version, SUPPORTED_SNAPSHOT_VERSIONS)

        recon = data.get("reconciliation")
        return cls(
            location_id=UUID(data["location_id"]),
            location_code=data["location_code"],
            location_name=data["location_name"],
            total_value=Decimal(data["total_value"]),
            items=tuple(ItemSnapshot.from_payload(i) for i in data["items"]),
            reconciliation=(
                ReconciliationSnapshot.from_payload(recon)
                if recon is not None
                else None
            ),
            snapshot_timestamp=datetime.fromisoformat(data["snapshot_timestamp"]),
            schema_version=version,
        )


# =========================================================================
# Builder
# =========================================================================


def item_value(quantity: Decimal, unit_cost: Decimal) -> Decimal:
    return round_money(quantity * unit_cost)


def build_snapshots(
    locations: Sequence[LocationRef],
    stock_rows: Iterable[StockRow],
    reconciliations: Mapping[UUID, ReconciliationFigures],
    snapshot_timestamp: datetime,
) -> dict[UUID, LocationSnapshot]:
    """
    Build one snapshot per location.

    Rows with a non-positive quantity are ignored.  A location without a
    reconciliation gets ``reconciliation=None``; a location without stock
    gets an empty item list and a zero total.

    Returns:
        Mapping of location_id to its snapshot, for every location in
        ``locations``.
    """
    rows_by_location: dict[UUID, list[StockRow]] = defaultdict(list)
    for row in stock_rows:
        if row.quantity > 0:
            rows_by_location[row.location_id].append(row)

    snapshots: dict[UUID, LocationSnapshot] = {}
    for loc in locations:
        items = tuple(
            ItemSnapshot(
                item_id=row.item_id,
                item_code=row.item_code,
                item_name=row.item_name,
                item_unit=row.item_unit,
                quantity=row.quantity,
                unit_cost=row.unit_cost,
                value=item_value(row.quantity, row.unit_cost),
            )
            for row in sorted(
                rows_by_location.get(loc.location_id, ()),
                key=lambda r: r.item_code,
            )
        )
        figures = reconciliations.get(loc.location_id)
        snapshots[loc.location_id] = LocationSnapshot(
            location_id=loc.location_id,
            location_code=loc.code,
            location_name=loc.name,
            total_value=round_money(sum((i.value for i in items), Decimal("0"))),
            items=items,
            reconciliation=(
                ReconciliationSnapshot.from_figures(figures)
                if figures is not None
                else None
            ),
            snapshot_timestamp=snapshot_timestamp,
        )

    return snapshots
