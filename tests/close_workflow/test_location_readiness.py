"""
Location readiness tracking.

Verifies:
- mark_ready succeeds iff a reconciliation exists for (period, location)
- A rejected mark_ready leaves the location status unchanged
- mark_ready on a READY location refreshes ready_at
- unmark_ready is only allowed for READY locations of an OPEN period
- all_ready / non_ready_locations report the blocking locations
"""

from uuid import uuid4

import pytest

from stock_kernel.domain.period import PeriodLocationStatus
from stock_kernel.exceptions import (
    LocationNotFoundError,
    NotReadyError,
    PeriodLocationNotFoundError,
    PeriodNotFoundError,
    PeriodNotOpenError,
    ReconciliationMissingError,
)
from stock_kernel.models.period import PeriodLocation


def location_status(session, period_id, location_id) -> str:
    session.expire_all()
    return session.query(PeriodLocation).filter_by(
        period_id=period_id, location_id=location_id,
    ).one().status


class TestMarkReady:
    def test_requires_reconciliation(self, session, readiness, make_location, make_period, test_actor_id):
        location = make_location()
        period = make_period()

        with pytest.raises(ReconciliationMissingError) as exc_info:
            readiness.mark_ready(period.id, location.id, test_actor_id)

        assert exc_info.value.location_id == str(location.id)
        assert location_status(session, period.id, location.id) == PeriodLocationStatus.OPEN.value

    def test_succeeds_with_reconciliation(
        self, readiness, make_location, make_period, record_reconciliation,
        test_actor_id, deterministic_clock,
    ):
        location = make_location()
        period = make_period()
        record_reconciliation(period.id, location.id, opening_stock="10", closing_stock="10")

        result = readiness.mark_ready(period.id, location.id, test_actor_id)

        assert result.status == PeriodLocationStatus.READY
        assert result.ready_at is not None

    def test_ready_location_can_be_marked_again(
        self, readiness, make_location, make_period, record_reconciliation,
        test_actor_id, deterministic_clock,
    ):
        location = make_location()
        period = make_period()
        record_reconciliation(period.id, location.id)
        first = readiness.mark_ready(period.id, location.id, test_actor_id)

        deterministic_clock.advance(60)
        second = readiness.mark_ready(period.id, location.id, test_actor_id)

        assert second.status == PeriodLocationStatus.READY
        assert second.ready_at != first.ready_at

    def test_unknown_period(self, readiness, make_location, test_actor_id):
        with pytest.raises(PeriodNotFoundError):
            readiness.mark_ready(uuid4(), make_location().id, test_actor_id)

    def test_unknown_location(self, readiness, make_period, test_actor_id):
        period = make_period()

        with pytest.raises(LocationNotFoundError):
            readiness.mark_ready(period.id, uuid4(), test_actor_id)

    def test_location_added_after_period_creation(
        self, readiness, make_location, make_period, record_reconciliation, test_actor_id,
    ):
        make_location()
        period = make_period()
        late = make_location(code="LATE")
        record_reconciliation(period.id, late.id)

        with pytest.raises(PeriodLocationNotFoundError):
            readiness.mark_ready(period.id, late.id, test_actor_id)

    def test_logs_transition(
        self, readiness, make_location, make_period, record_reconciliation,
        test_actor_id, captured_logs,
    ):
        location = make_location()
        period = make_period()
        record_reconciliation(period.id, location.id)

        readiness.mark_ready(period.id, location.id, test_actor_id)

        records = [r for r in captured_logs() if r["message"] == "location_marked_ready"]
        assert len(records) == 1
        assert records[0]["location_id"] == str(location.id)
        assert records[0]["previous_status"] == "OPEN"


class TestUnmarkReady:
    def test_ready_location_returns_to_open(self, readiness, ready_period, test_actor_id):
        result = readiness.unmark_ready(
            ready_period.period.id, ready_period.kitchen.id, test_actor_id,
        )

        assert result.status == PeriodLocationStatus.OPEN
        assert result.ready_at is None

    def test_open_location_rejected(self, readiness, make_location, make_period, test_actor_id):
        location = make_location()
        period = make_period()

        with pytest.raises(NotReadyError) as exc_info:
            readiness.unmark_ready(period.id, location.id, test_actor_id)

        assert exc_info.value.current_status == "OPEN"

    def test_rejected_while_close_is_pending(
        self, session, workflow, readiness, ready_period, test_actor_id,
    ):
        workflow.request_close(ready_period.period.id, test_actor_id)

        with pytest.raises(PeriodNotOpenError) as exc_info:
            readiness.unmark_ready(
                ready_period.period.id, ready_period.kitchen.id, test_actor_id,
            )

        assert exc_info.value.current_status == "PENDING_CLOSE"
        assert location_status(
            session, ready_period.period.id, ready_period.kitchen.id,
        ) == PeriodLocationStatus.READY.value


class TestAllReady:
    def test_all_ready(self, readiness, ready_period):
        assert readiness.all_ready(ready_period.period.id)
        assert readiness.non_ready_locations(ready_period.period.id) == []

    def test_lists_exactly_the_open_locations(
        self, readiness, make_location, make_period, record_reconciliation, test_actor_id,
    ):
        done = make_location(code="A1", name="Done")
        pending = make_location(code="B1", name="Pending")
        period = make_period()
        record_reconciliation(period.id, done.id)
        readiness.mark_ready(period.id, done.id, test_actor_id)

        assert not readiness.all_ready(period.id)
        assert readiness.non_ready_locations(period.id) == [
            {
                "location_id": str(pending.id),
                "location_code": "B1",
                "location_name": "Pending",
                "status": "OPEN",
            }
        ]

    def test_period_without_locations_is_not_ready(self, readiness, make_period):
        period = make_period()

        assert not readiness.all_ready(period.id)
