"""
Snapshot builder and the versioned snapshot payload.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.domain.reconciliation import ReconciliationFigures
from stock_kernel.domain.snapshot import (
    SNAPSHOT_SCHEMA_VERSION,
    LocationRef,
    LocationSnapshot,
    StockRow,
    build_snapshots,
)
from stock_kernel.exceptions import UnsupportedSnapshotVersionError

SNAPSHOT_TIME = datetime(2025, 1, 31, 18, 0, tzinfo=timezone.utc)


def stock_row(location_id, code, quantity, unit_cost):
    return StockRow(
        location_id=location_id,
        item_id=uuid4(),
        item_code=code,
        item_name=code.title(),
        item_unit="KG",
        quantity=Decimal(quantity),
        unit_cost=Decimal(unit_cost),
    )


@pytest.fixture
def kitchen():
    return LocationRef(location_id=uuid4(), code="KIT", name="Kitchen")


class TestBuildSnapshots:
    def test_total_value_is_sum_of_item_values(self, kitchen):
        rows = [
            stock_row(kitchen.location_id, "rice", "10", "5.00"),
            stock_row(kitchen.location_id, "oil", "3", "2.50"),
        ]

        snapshot = build_snapshots([kitchen], rows, {}, SNAPSHOT_TIME)[kitchen.location_id]

        assert snapshot.total_value == Decimal("57.50")
        assert [i.item_code for i in snapshot.items] == ["oil", "rice"]
        assert [i.value for i in snapshot.items] == [Decimal("7.50"), Decimal("50.00")]
        assert snapshot.schema_version == SNAPSHOT_SCHEMA_VERSION
        assert snapshot.snapshot_timestamp == SNAPSHOT_TIME

    def test_zero_quantity_rows_are_ignored(self, kitchen):
        rows = [
            stock_row(kitchen.location_id, "rice", "0", "5.00"),
            stock_row(kitchen.location_id, "oil", "2", "1.25"),
        ]

        snapshot = build_snapshots([kitchen], rows, {}, SNAPSHOT_TIME)[kitchen.location_id]

        assert snapshot.item_count == 1
        assert snapshot.total_value == Decimal("2.50")

    def test_location_without_stock_has_zero_total(self, kitchen):
        snapshot = build_snapshots([kitchen], [], {}, SNAPSHOT_TIME)[kitchen.location_id]

        assert snapshot.items == ()
        assert snapshot.total_value == Decimal("0")
        assert snapshot.reconciliation is None

    def test_reconciliation_summary_is_embedded(self, kitchen):
        figures = ReconciliationFigures(
            opening_stock=Decimal("100"), receipts=Decimal("50"),
            transfers_in=Decimal("10"), transfers_out=Decimal("5"),
            issues=Decimal("80"), closing_stock=Decimal("70"),
        )

        snapshot = build_snapshots(
            [kitchen], [], {kitchen.location_id: figures}, SNAPSHOT_TIME,
        )[kitchen.location_id]

        assert snapshot.reconciliation.calculated_closing == Decimal("75")
        assert snapshot.reconciliation.variance == Decimal("-5")

    def test_rows_for_other_locations_are_not_mixed_in(self, kitchen):
        store = LocationRef(location_id=uuid4(), code="STR", name="Store")
        rows = [
            stock_row(kitchen.location_id, "rice", "1", "1.00"),
            stock_row(store.location_id, "rice", "2", "1.00"),
        ]

        snapshots = build_snapshots([kitchen, store], rows, {}, SNAPSHOT_TIME)

        assert snapshots[kitchen.location_id].total_value == Decimal("1.00")
        assert snapshots[store.location_id].total_value == Decimal("2.00")


class TestSnapshotPayload:
    def test_payload_is_json_safe_and_readable(self, kitchen):
        rows = [stock_row(kitchen.location_id, "rice", "10", "5.00")]
        figures = ReconciliationFigures(closing_stock=Decimal("50"))
        snapshot = build_snapshots(
            [kitchen], rows, {kitchen.location_id: figures}, SNAPSHOT_TIME,
        )[kitchen.location_id]

        payload = snapshot.to_payload()

        assert payload["schema_version"] == SNAPSHOT_SCHEMA_VERSION
        assert payload["total_value"] == "50.00"
        assert payload["item_count"] == 1
        assert LocationSnapshot.from_payload(payload) == snapshot

    def test_unknown_schema_version_rejected(self, kitchen):
        payload = build_snapshots([kitchen], [], {}, SNAPSHOT_TIME)[kitchen.location_id].to_payload()
        payload["schema_version"] = 99

        with pytest.raises(UnsupportedSnapshotVersionError) as exc_info:
            LocationSnapshot.from_payload(payload)

        assert exc_info.value.version == 99
