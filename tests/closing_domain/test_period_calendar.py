"""
Calendar math and status transition tables for stock periods.

Verifies:
- A following period starts the day after its predecessor ends
- The default end date is the last day of the start month, leap years included
- Overlap detection covers start-inside, end-inside and fully-containing ranges
- Period and location status transitions follow the lifecycle tables
"""

from datetime import date, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from stock_kernel.domain.period import (
    PeriodStatus,
    can_transition,
    default_period_name,
    last_day_of_month,
    next_period_start,
    ranges_overlap,
)

dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2099, 12, 31))


class TestRollForwardDates:
    def test_january_rolls_into_february(self):
        start = next_period_start(date(2025, 1, 31))

        assert start == date(2025, 2, 1)
        assert last_day_of_month(start) == date(2025, 2, 28)

    def test_leap_year_february_ends_on_29th(self):
        start = next_period_start(date(2024, 1, 31))

        assert last_day_of_month(start) == date(2024, 2, 29)

    def test_december_rolls_into_next_year(self):
        start = next_period_start(date(2025, 12, 31))

        assert start == date(2026, 1, 1)
        assert default_period_name(start) == "January 2026"

    @given(dates)
    def test_next_start_is_always_the_following_day(self, end):
        assert next_period_start(end) - end == timedelta(days=1)

    @given(dates)
    def test_last_day_of_month_stays_in_month(self, day):
        last = last_day_of_month(day)

        assert (last.year, last.month) == (day.year, day.month)
        assert last >= day
        assert (last + timedelta(days=1)).day == 1


class TestRangesOverlap:
    existing = (date(2025, 2, 1), date(2025, 2, 28))

    @pytest.mark.parametrize(
        "start,end",
        [
            (date(2025, 2, 15), date(2025, 3, 15)),   # starts inside
            (date(2025, 1, 15), date(2025, 2, 15)),   # ends inside
            (date(2025, 1, 1), date(2025, 3, 31)),    # fully contains
            (date(2025, 2, 28), date(2025, 3, 31)),   # shares the last day
        ],
    )
    def test_intersecting_ranges_overlap(self, start, end):
        assert ranges_overlap(start, end, *self.existing)

    @pytest.mark.parametrize(
        "start,end",
        [
            (date(2025, 1, 1), date(2025, 1, 31)),
            (date(2025, 3, 1), date(2025, 3, 31)),
        ],
    )
    def test_adjacent_ranges_do_not_overlap(self, start, end):
        assert not ranges_overlap(start, end, *self.existing)

    @given(dates, dates, dates, dates)
    def test_overlap_is_symmetric(self, a, b, c, d):
        s1, e1 = sorted((a, b))
        s2, e2 = sorted((c, d))

        assert ranges_overlap(s1, e1, s2, e2) == ranges_overlap(s2, e2, s1, e1)

    @given(dates, dates, dates, dates)
    def test_overlap_matches_shared_day(self, a, b, c, d):
        s1, e1 = sorted((a, b))
        s2, e2 = sorted((c, d))

        assert ranges_overlap(s1, e1, s2, e2) == (max(s1, s2) <= min(e1, e2))


class TestPeriodTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (PeriodStatus.DRAFT, PeriodStatus.OPEN),
            (PeriodStatus.OPEN, PeriodStatus.PENDING_CLOSE),
            (PeriodStatus.PENDING_CLOSE, PeriodStatus.CLOSED),
            (PeriodStatus.PENDING_CLOSE, PeriodStatus.OPEN),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("target", list(PeriodStatus))
    def test_closed_is_terminal(self, target):
        assert not can_transition(PeriodStatus.CLOSED, target)

    def test_open_cannot_close_without_approval(self):
        assert not can_transition(PeriodStatus.OPEN, PeriodStatus.CLOSED)
