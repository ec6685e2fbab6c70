"""
Pytest fixtures for the stock period close test suite.

Provides:
- A database session per test (fresh tables every test)
- Deterministic clock and actor ids
- Data builders for locations, items, stock, periods and reconciliations
- Structured log capture

Environment Variables:
- DATABASE_URL: database URL.  Defaults to in-memory SQLite.  Tests marked
  ``postgres`` need a real row-locking database and are skipped otherwise.
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from stock_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from stock_kernel.domain.catalog import ItemUnit
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.domain.period import PeriodInfo, PeriodStatus
from stock_kernel.domain.reconciliation import ReconciliationFigures
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from stock_kernel.models.item import Item
from stock_kernel.models.location import Location
from stock_kernel.models.stock import LocationStock
from stock_services.workflow import PeriodCloseWorkflow

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

DEFAULT_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def is_postgres_url(url: str) -> bool:
    return url.startswith("postgresql")


def pytest_collection_modifyitems(config, items):
    if is_postgres_url(get_database_url()):
        return
    skip_pg = pytest.mark.skip(reason="requires DATABASE_URL pointing at PostgreSQL")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_pg)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture stock_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, workflow):
            workflow.readiness.mark_ready(...)
            logs = captured_logs()
            assert any(r["message"] == "location_marked_ready" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stock_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    """Engine with freshly created tables, dropped again after the test."""
    eng = init_engine_from_url(get_database_url(), pool_size=10, max_overflow=10)
    drop_tables()
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()


# =============================================================================
# Clock / actors / workflow
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2025, 1, 31, 18, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


@pytest.fixture
def admin_id() -> UUID:
    return uuid4()


@pytest.fixture
def workflow(session, deterministic_clock) -> PeriodCloseWorkflow:
    return PeriodCloseWorkflow(session, clock=deterministic_clock)


@pytest.fixture
def period_service(workflow):
    return workflow.period_service


@pytest.fixture
def readiness(workflow):
    return workflow.readiness


@pytest.fixture
def gateway(workflow):
    return workflow.gateway


# =============================================================================
# Data builders
# =============================================================================


@pytest.fixture
def make_location(session):
    counter = iter(range(1, 10_000))

    def _make(code: str | None = None, name: str | None = None, is_active: bool = True) -> Location:
        n = next(counter)
        location = Location(
            code=code or f"LOC{n:02d}",
            name=name or f"Location {n}",
            is_active=is_active,
        )
        session.add(location)
        session.flush()
        return location

    return _make


@pytest.fixture
def make_item(session):
    counter = iter(range(1, 10_000))

    def _make(
        code: str | None = None,
        name: str | None = None,
        unit: ItemUnit = ItemUnit.KG,
        is_active: bool = True,
    ) -> Item:
        n = next(counter)
        item = Item(
            code=code or f"ITEM-{n:03d}",
            name=name or f"Item {n}",
            unit=unit.value,
            is_active=is_active,
        )
        session.add(item)
        session.flush()
        return item

    return _make


@pytest.fixture
def set_stock(session):
    def _set(location: Location, item: Item, on_hand: str, wac: str) -> LocationStock:
        row = LocationStock(
            location_id=location.id,
            item_id=item.id,
            on_hand=Decimal(on_hand),
            wac=Decimal(wac),
        )
        session.add(row)
        session.flush()
        return row

    return _set


@pytest.fixture
def make_period(period_service, test_actor_id):
    def _make(
        name: str = "January 2025",
        start_date: date = date(2025, 1, 1),
        end_date: date = date(2025, 1, 31),
        status: PeriodStatus = PeriodStatus.OPEN,
    ) -> PeriodInfo:
        return period_service.create_period(
            name=name,
            start_date=start_date,
            end_date=end_date,
            actor_id=test_actor_id,
            status=status,
        )

    return _make


@pytest.fixture
def record_reconciliation(workflow, test_actor_id):
    def _record(period_id: UUID, location_id: UUID, **figures: str):
        return workflow.reconciliation_service.save(
            period_id,
            location_id,
            ReconciliationFigures(**{k: Decimal(v) for k, v in figures.items()}),
            test_actor_id,
        )

    return _record


@dataclass
class ReadyPeriod:
    period: PeriodInfo
    kitchen: Location
    store: Location


@pytest.fixture
def ready_period(
    make_location,
    make_item,
    set_stock,
    make_period,
    record_reconciliation,
    readiness,
    test_actor_id,
) -> ReadyPeriod:
    """An OPEN period whose two locations are reconciled and READY.

    Kitchen holds 10 x 5.00 and 3 x 2.50 (57.50); store holds 4 x 12.25 (49.00).
    """
    kitchen = make_location(code="KIT", name="Kitchen")
    store = make_location(code="STR", name="Store")
    rice = make_item(code="RICE", name="Rice")
    oil = make_item(code="OIL", name="Oil", unit=ItemUnit.LTR)
    set_stock(kitchen, rice, "10", "5.00")
    set_stock(kitchen, oil, "3", "2.50")
    set_stock(store, rice, "4", "12.25")

    period = make_period()
    record_reconciliation(
        period.id, kitchen.id,
        opening_stock="100", receipts="50", transfers_in="10",
        transfers_out="5", issues="80", closing_stock="70",
    )
    record_reconciliation(period.id, store.id, opening_stock="49", closing_stock="49")
    readiness.mark_ready(period.id, kitchen.id, test_actor_id)
    readiness.mark_ready(period.id, store.id, test_actor_id)
    return ReadyPeriod(period=period, kitchen=kitchen, store=store)
