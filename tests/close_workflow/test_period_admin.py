"""
Period administration.

Verifies:
- Creation validates name, status and date range
- Overlap is rejected in the start-inside, end-inside and containing cases
- At most one period is OPEN at a time
- Only DRAFT periods can be edited
- Opening requires locations
"""

from datetime import date, timedelta

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from stock_kernel.domain.period import PeriodStatus
from stock_kernel.exceptions import (
    InvalidDateRangeError,
    InvalidPeriodStatusError,
    NoLocationsError,
    OverlappingPeriodError,
    PeriodAlreadyOpenError,
    PeriodNotEditableError,
    PeriodNotFoundError,
    ValidationFailedError,
)

FEB_START = date(2025, 2, 1)
FEB_END = date(2025, 2, 28)


class TestCreatePeriod:
    def test_creates_one_location_row_per_active_location(
        self, period_service, make_location, test_actor_id,
    ):
        make_location(code="A")
        make_location(code="B")
        make_location(code="GONE", is_active=False)

        period = period_service.create_period("February 2025", FEB_START, FEB_END, test_actor_id)

        assert period.status == PeriodStatus.DRAFT
        locations = period_service.list_period_locations(period.id)
        assert sorted(loc.location_code for loc in locations) == ["A", "B"]
        assert all(loc.opening_value is None for loc in locations)

    def test_end_must_be_after_start(self, period_service, test_actor_id):
        with pytest.raises(InvalidDateRangeError):
            period_service.create_period("Bad", FEB_END, FEB_START, test_actor_id)

    def test_single_day_range_rejected(self, period_service, test_actor_id):
        with pytest.raises(InvalidDateRangeError):
            period_service.create_period("One day", FEB_START, FEB_START, test_actor_id)

    @pytest.mark.parametrize("name", ["", "x" * 101])
    def test_name_length(self, period_service, test_actor_id, name):
        with pytest.raises(ValidationFailedError):
            period_service.create_period(name, FEB_START, FEB_END, test_actor_id)

    @pytest.mark.parametrize("status", [PeriodStatus.PENDING_CLOSE, PeriodStatus.CLOSED])
    def test_only_draft_or_open(self, period_service, test_actor_id, status):
        with pytest.raises(ValidationFailedError):
            period_service.create_period("Feb", FEB_START, FEB_END, test_actor_id, status=status)

    def test_second_open_period_rejected(self, period_service, make_period, test_actor_id):
        first = make_period(status=PeriodStatus.OPEN)

        with pytest.raises(PeriodAlreadyOpenError) as exc_info:
            period_service.create_period(
                "March 2025", date(2025, 3, 1), date(2025, 3, 31), test_actor_id,
                status=PeriodStatus.OPEN,
            )

        assert exc_info.value.open_period_id == str(first.id)


class TestOverlap:
    @pytest.mark.parametrize(
        "start,end",
        [
            (date(2025, 2, 15), date(2025, 3, 15)),
            (date(2025, 1, 15), date(2025, 2, 15)),
            (date(2025, 1, 1), date(2025, 3, 31)),
            (date(2025, 2, 5), date(2025, 2, 10)),
        ],
        ids=["starts-inside", "ends-inside", "contains", "contained"],
    )
    def test_overlapping_range_rejected(self, period_service, test_actor_id, start, end):
        existing = period_service.create_period("February 2025", FEB_START, FEB_END, test_actor_id)

        with pytest.raises(OverlappingPeriodError) as exc_info:
            period_service.create_period("Clash", start, end, test_actor_id)

        assert exc_info.value.existing_period_id == str(existing.id)
        assert exc_info.value.existing_period_name == "February 2025"

    def test_adjacent_periods_allowed(self, period_service, test_actor_id):
        period_service.create_period("February 2025", FEB_START, FEB_END, test_actor_id)

        march = period_service.create_period(
            "March 2025", date(2025, 3, 1), date(2025, 3, 31), test_actor_id,
        )

        assert march.start_date == date(2025, 3, 1)

    @settings(max_examples=25, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(
        offset=st.integers(min_value=-40, max_value=27),
        length=st.integers(min_value=1, max_value=60),
    )
    def test_any_intersecting_range_rejected(self, period_service, test_actor_id, offset, length):
        start = FEB_START + timedelta(days=offset)
        end = start + timedelta(days=length)
        if end < FEB_START:
            return
        if period_service.find_overlapping_period(FEB_START, FEB_END) is None:
            period_service.create_period("February 2025", FEB_START, FEB_END, test_actor_id)

        with pytest.raises(OverlappingPeriodError):
            period_service.validate_no_overlap(start, end)


class TestUpdatePeriod:
    def test_rename_and_move_draft(self, period_service, test_actor_id):
        period = period_service.create_period("Feb", FEB_START, FEB_END, test_actor_id)

        updated = period_service.update_period(
            period.id, name="February 2025", end_date=date(2025, 2, 27),
        )

        assert updated.name == "February 2025"
        assert updated.start_date == FEB_START
        assert updated.end_date == date(2025, 2, 27)

    def test_update_does_not_overlap_itself(self, period_service, test_actor_id):
        period = period_service.create_period("Feb", FEB_START, FEB_END, test_actor_id)

        updated = period_service.update_period(period.id, start_date=date(2025, 2, 2))

        assert updated.start_date == date(2025, 2, 2)

    def test_open_period_not_editable(self, period_service, make_period):
        period = make_period(status=PeriodStatus.OPEN)

        with pytest.raises(PeriodNotEditableError):
            period_service.update_period(period.id, name="Renamed")

    def test_empty_update_rejected(self, period_service, test_actor_id):
        period = period_service.create_period("Feb", FEB_START, FEB_END, test_actor_id)

        with pytest.raises(ValidationFailedError):
            period_service.update_period(period.id)


class TestOpenPeriod:
    def test_open_draft(self, period_service, make_location, make_period, test_actor_id):
        make_location()
        period = make_period(status=PeriodStatus.DRAFT)

        opened = period_service.open_period(period.id, test_actor_id)

        assert opened.status == PeriodStatus.OPEN
        assert period_service.get_current_period() == opened

    def test_requires_locations(self, period_service, make_period, test_actor_id):
        period = make_period(status=PeriodStatus.DRAFT)

        with pytest.raises(NoLocationsError):
            period_service.open_period(period.id, test_actor_id)

    def test_only_one_open_period(self, period_service, make_location, make_period, test_actor_id):
        make_location()
        make_period(status=PeriodStatus.OPEN)
        draft = make_period(
            name="February 2025", start_date=FEB_START, end_date=FEB_END,
            status=PeriodStatus.DRAFT,
        )

        with pytest.raises(PeriodAlreadyOpenError):
            period_service.open_period(draft.id, test_actor_id)

    def test_open_period_cannot_be_reopened(self, period_service, make_location, make_period, test_actor_id):
        make_location()
        period = make_period(status=PeriodStatus.OPEN)

        with pytest.raises(InvalidPeriodStatusError):
            period_service.open_period(period.id, test_actor_id)


class TestQueries:
    def test_unknown_period(self, period_service):
        from uuid import uuid4

        with pytest.raises(PeriodNotFoundError):
            period_service.get_period(uuid4())

    def test_no_current_period(self, period_service, make_period):
        make_period(status=PeriodStatus.DRAFT)

        assert period_service.get_current_period() is None

    def test_list_newest_first_with_status_filter(self, period_service, make_period):
        jan = make_period(status=PeriodStatus.OPEN)
        feb = make_period(
            name="February 2025", start_date=FEB_START, end_date=FEB_END,
            status=PeriodStatus.DRAFT,
        )

        assert [p.id for p in period_service.list_periods()] == [feb.id, jan.id]
        assert [p.id for p in period_service.list_periods(status=PeriodStatus.OPEN)] == [jan.id]
        assert [
            p.id for p in period_service.list_periods(start_date=FEB_START)
        ] == [feb.id]
