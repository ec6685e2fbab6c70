"""
Roll-forward from a closed period.

Verifies:
- The source must be CLOSED
- Dates default to the day after the source ends through month end
- Opening values carry over exactly, including missing closing values
- Prices for active items are copied unless disabled
- The derived range must not overlap an existing period
"""

from datetime import date
from decimal import Decimal

import pytest

from stock_kernel.domain.catalog import PriceInput
from stock_kernel.domain.period import PeriodLocationStatus, PeriodStatus
from stock_kernel.exceptions import (
    InvalidDateRangeError,
    OverlappingPeriodError,
    SourceNotClosedError,
    ValidationFailedError,
)
from stock_kernel.models.period import PeriodLocation
from stock_services import RollForwardOptions


@pytest.fixture
def closed_period(workflow, gateway, ready_period, test_actor_id, admin_id):
    approval = workflow.request_close(ready_period.period.id, test_actor_id)
    gateway.approve(approval.id, admin_id)
    return ready_period


class TestRollForward:
    def test_creates_next_month_as_draft(self, workflow, closed_period, test_actor_id):
        result = workflow.roll_forward(closed_period.period.id, test_actor_id)

        assert result.new_period.start_date == date(2025, 2, 1)
        assert result.new_period.end_date == date(2025, 2, 28)
        assert result.new_period.name == "February 2025"
        assert result.new_period.status == PeriodStatus.DRAFT
        assert result.source_period.id == closed_period.period.id

    def test_opening_values_equal_closing_values(self, workflow, closed_period, test_actor_id):
        result = workflow.roll_forward(closed_period.period.id, test_actor_id)

        opening = {loc.location_id: loc.opening_value for loc in result.locations}
        assert opening == {
            closed_period.kitchen.id: Decimal("57.50"),
            closed_period.store.id: Decimal("49.00"),
        }
        assert all(loc.status == PeriodLocationStatus.OPEN for loc in result.locations)
        assert result.summary.locations_created == 2
        assert result.summary.locations_with_opening_value == 2
        assert result.summary.total_opening_value == Decimal("106.50")

    def test_location_without_closing_value_opens_with_none(
        self, session, workflow, closed_period, make_location, test_actor_id,
    ):
        newcomer = make_location(code="NEW", name="New outlet")

        result = workflow.roll_forward(closed_period.period.id, test_actor_id)

        opening = {loc.location_id: loc.opening_value for loc in result.locations}
        assert opening[newcomer.id] is None
        assert result.summary.locations_created == 3
        assert result.summary.locations_with_opening_value == 2

    def test_source_must_be_closed(self, workflow, ready_period, test_actor_id):
        with pytest.raises(SourceNotClosedError) as exc_info:
            workflow.roll_forward(ready_period.period.id, test_actor_id)

        assert exc_info.value.code == "PERIOD_NOT_CLOSED"
        assert exc_info.value.current_status == "OPEN"

    def test_custom_name_and_end_date(self, workflow, closed_period, test_actor_id):
        result = workflow.roll_forward(
            closed_period.period.id,
            test_actor_id,
            RollForwardOptions(name="Feb close", end_date=date(2025, 2, 14)),
        )

        assert result.new_period.name == "Feb close"
        assert result.new_period.end_date == date(2025, 2, 14)

    def test_end_date_must_follow_start(self, workflow, closed_period, test_actor_id):
        with pytest.raises(InvalidDateRangeError):
            workflow.roll_forward(
                closed_period.period.id,
                test_actor_id,
                RollForwardOptions(end_date=date(2025, 1, 31)),
            )

    def test_explicit_end_date_equal_to_start_rejected(
        self, workflow, closed_period, test_actor_id,
    ):
        with pytest.raises(InvalidDateRangeError):
            workflow.roll_forward(
                closed_period.period.id,
                test_actor_id,
                RollForwardOptions(end_date=date(2025, 2, 1)),
            )

    def test_default_range_may_be_a_single_day(
        self, workflow, gateway, make_location, make_period, record_reconciliation,
        readiness, test_actor_id, admin_id,
    ):
        depot = make_location(code="DEP", name="Depot")
        period = make_period(
            name="January to the 30th",
            start_date=date(2025, 1, 1),
            end_date=date(2025, 1, 30),
        )
        record_reconciliation(period.id, depot.id, opening_stock="5", closing_stock="5")
        readiness.mark_ready(period.id, depot.id, test_actor_id)
        approval = workflow.request_close(period.id, test_actor_id)
        gateway.approve(approval.id, admin_id)

        result = workflow.roll_forward(period.id, test_actor_id)

        assert result.new_period.start_date == date(2025, 1, 31)
        assert result.new_period.end_date == date(2025, 1, 31)
        assert result.new_period.status == PeriodStatus.DRAFT

    def test_name_length_validated(self, workflow, closed_period, test_actor_id):
        with pytest.raises(ValidationFailedError):
            workflow.roll_forward(
                closed_period.period.id, test_actor_id, RollForwardOptions(name="x" * 101),
            )

    def test_overlap_with_existing_period_rejected(
        self, workflow, make_period, closed_period, test_actor_id,
    ):
        existing = make_period(
            name="Mid Feb", start_date=date(2025, 2, 10), end_date=date(2025, 2, 20),
            status=PeriodStatus.DRAFT,
        )

        with pytest.raises(OverlappingPeriodError) as exc_info:
            workflow.roll_forward(closed_period.period.id, test_actor_id)

        assert exc_info.value.existing_period_id == str(existing.id)

    def test_rolling_forward_twice_overlaps(self, workflow, closed_period, test_actor_id):
        workflow.roll_forward(closed_period.period.id, test_actor_id)

        with pytest.raises(OverlappingPeriodError):
            workflow.roll_forward(closed_period.period.id, test_actor_id)

    def test_roll_forward_is_logged(self, workflow, closed_period, test_actor_id, captured_logs):
        result = workflow.roll_forward(closed_period.period.id, test_actor_id)

        rolled = [r for r in captured_logs() if r["message"] == "period_rolled_forward"]
        assert rolled[0]["period_id"] == str(result.new_period.id)
        assert rolled[0]["source_period_id"] == str(closed_period.period.id)


class TestRollForwardPrices:
    @pytest.fixture
    def priced_close(
        self, session, workflow, gateway, make_location, make_item, make_period,
        record_reconciliation, readiness, test_actor_id, admin_id,
    ):
        location = make_location()
        flour = make_item(code="FLOUR")
        salt = make_item(code="SALT")
        retired = make_item(code="OLD")
        period = make_period(status=PeriodStatus.DRAFT)
        workflow.price_service.set_prices(
            period.id,
            [
                PriceInput(item_id=flour.id, price=Decimal("3.2500")),
                PriceInput(item_id=salt.id, price=Decimal("0.7500")),
                PriceInput(item_id=retired.id, price=Decimal("9.0000")),
            ],
            test_actor_id,
        )
        workflow.period_service.open_period(period.id, test_actor_id)
        retired.is_active = False
        session.flush()

        record_reconciliation(period.id, location.id)
        readiness.mark_ready(period.id, location.id, test_actor_id)
        approval = workflow.request_close(period.id, test_actor_id)
        gateway.approve(approval.id, admin_id)
        return period, flour, salt

    def test_active_prices_are_copied(self, workflow, priced_close, test_actor_id):
        period, flour, salt = priced_close

        result = workflow.roll_forward(period.id, test_actor_id)

        prices = {p.item_id: p.price for p in workflow.price_service.get_prices(result.new_period.id)}
        assert prices == {flour.id: Decimal("3.2500"), salt.id: Decimal("0.7500")}
        assert result.summary.prices_copied == 2

    def test_price_copy_can_be_disabled(self, workflow, priced_close, test_actor_id):
        period, _, _ = priced_close

        result = workflow.roll_forward(
            period.id, test_actor_id, RollForwardOptions(copy_prices=False),
        )

        assert workflow.price_service.get_prices(result.new_period.id) == []
        assert result.summary.prices_copied == 0
