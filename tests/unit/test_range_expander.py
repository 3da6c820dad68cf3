"""Unit tests for range_expander module."""

from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import Mock
from zoneinfo import ZoneInfo

import pytest

from calendar_range.range_clock import CalendarClock
from calendar_range.range_expander import (
    RecurrenceExpander,
    derive_occurrence_id,
    extract_source_event_id,
)
from calendar_range.range_models import QueryWindow

pytestmark = pytest.mark.unit


class TestOccurrenceIds:
    """Tests for occurrence id derivation."""

    def test_derive_occurrence_id_format(self):
        start = datetime(2024, 1, 3, 10, 0, tzinfo=UTC)
        assert derive_occurrence_id("evt-1", start) == "evt-1::20240103T100000Z"

    def test_derive_occurrence_id_normalizes_to_utc(self):
        start = datetime(2024, 1, 3, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert derive_occurrence_id("evt-1", start) == "evt-1::20240103T100000Z"

    def test_extract_source_event_id_with_double_colon(self):
        assert extract_source_event_id("evt-1::20240103T100000Z") == "evt-1"

    def test_extract_source_event_id_keeps_inner_delimiters(self):
        assert extract_source_event_id("ns::evt-1::20240103T100000Z") == "ns::evt-1"

    def test_extract_source_event_id_for_anchor(self):
        assert extract_source_event_id("evt-1") == "evt-1"


class TestRecurrenceExpander:
    """Tests for RecurrenceExpander.expand."""

    def setup_method(self):
        """Set up test fixtures."""
        self.expander = RecurrenceExpander()

    def test_daily_count_scenario(self, daily_series, jan_window):
        occurrences = self.expander.expand_to_list(daily_series, jan_window)

        assert [o.start_date for o in occurrences] == [
            datetime(2024, 1, day, 10, 0, tzinfo=UTC) for day in (3, 4, 5, 6)
        ]
        assert all(o.is_virtual for o in occurrences)
        assert all(o.end_date - o.start_date == timedelta(hours=1) for o in occurrences)
        assert all(o.source_event_id == "daily-standup" for o in occurrences)

    def test_anchor_and_terminal_instance_excluded(self, daily_series, jan_window):
        starts = {o.start_date for o in self.expander.expand(daily_series, jan_window)}

        assert datetime(2024, 1, 1, 10, 0, tzinfo=UTC) not in starts
        assert datetime(2024, 1, 10, 10, 0, tzinfo=UTC) not in starts

    def test_anchor_is_never_emitted_even_inside_window(self, daily_series):
        window = QueryWindow(
            start=datetime(2024, 1, 1, tzinfo=UTC), end=datetime(2024, 1, 2, 23, 0, tzinfo=UTC)
        )
        occurrences = self.expander.expand_to_list(daily_series, window)
        assert [o.start_date.day for o in occurrences] == [2]

    def test_instance_on_recurrence_end_is_included(self, daily_series):
        window = QueryWindow(
            start=datetime(2024, 1, 9, tzinfo=UTC), end=datetime(2024, 1, 31, tzinfo=UTC)
        )
        occurrences = self.expander.expand_to_list(daily_series, window)
        assert [o.start_date.day for o in occurrences] == [9, 10]

    def test_payload_is_carried_to_every_instance(self, daily_series, jan_window):
        for occurrence in self.expander.expand(daily_series, jan_window):
            assert occurrence.payload["title"] == "Standup"

    def test_non_recurring_event_expands_to_nothing(self, make_event, jan_window):
        event = make_event("single", datetime(2024, 1, 4, 9, tzinfo=UTC))
        assert self.expander.expand_to_list(event, jan_window) == []

    def test_empty_window_expands_to_nothing(self, daily_series):
        inverted = QueryWindow(
            start=datetime(2024, 1, 6, tzinfo=UTC), end=datetime(2024, 1, 3, tzinfo=UTC)
        )
        assert self.expander.expand_to_list(daily_series, inverted) == []

    def test_open_ended_series_bounded_by_window(self, make_event):
        event = make_event("weekly", datetime(2020, 1, 6, 9, tzinfo=UTC), recurrence="weekly")
        window = QueryWindow(
            start=datetime(2024, 1, 1, tzinfo=UTC), end=datetime(2024, 1, 31, tzinfo=UTC)
        )
        occurrences = self.expander.expand_to_list(event, window)

        assert [o.start_date.day for o in occurrences] == [1, 8, 15, 22, 29]

    def test_monthly_series_clamps_without_drift(self, make_event):
        event = make_event("month-end", datetime(2024, 1, 31, 9, tzinfo=UTC), recurrence="monthly")
        window = QueryWindow(
            start=datetime(2024, 2, 1, tzinfo=UTC), end=datetime(2024, 5, 31, 23, tzinfo=UTC)
        )
        occurrences = self.expander.expand_to_list(event, window)

        assert [(o.start_date.month, o.start_date.day) for o in occurrences] == [
            (2, 29),
            (3, 31),
            (4, 30),
            (5, 31),
        ]

    def test_daily_series_keeps_local_time_across_dst(self, make_event):
        tz = ZoneInfo("Europe/Berlin")
        event = make_event("berlin", datetime(2024, 3, 29, 10, 0, tzinfo=tz), recurrence="daily")
        window = QueryWindow(
            start=datetime(2024, 3, 30, tzinfo=tz), end=datetime(2024, 4, 1, 23, tzinfo=tz)
        )
        occurrences = self.expander.expand_to_list(event, window)

        assert [o.start_date.hour for o in occurrences] == [10, 10, 10]
        assert len({o.start_date.utcoffset() for o in occurrences}) == 2

    def test_instance_started_before_window_is_excluded(self, make_event):
        """Instances are selected by start time; one that began before the window is skipped."""
        event = make_event(
            "long", datetime(2024, 1, 1, 20, tzinfo=UTC), duration=timedelta(hours=6), recurrence="daily"
        )
        window = QueryWindow(
            start=datetime(2024, 1, 3, 0, tzinfo=UTC), end=datetime(2024, 1, 3, 23, tzinfo=UTC)
        )
        occurrences = self.expander.expand_to_list(event, window)
        assert [o.start_date for o in occurrences] == [datetime(2024, 1, 3, 20, tzinfo=UTC)]


class TestSeriesEndShortCircuit:
    """A series that ended before the window never touches the clock."""

    def test_no_iteration_when_series_ended_before_window(self, daily_series):
        clock = Mock(spec=CalendarClock)
        expander = RecurrenceExpander(clock=clock)
        window = QueryWindow(
            start=datetime(2024, 2, 1, tzinfo=UTC), end=datetime(2024, 2, 28, tzinfo=UTC)
        )

        assert list(expander.expand(daily_series, window)) == []
        clock.advance.assert_not_called()
        clock.periods_between.assert_not_called()


class TestClosedFormSeek:
    """Seeking to the window yields exactly what the period-by-period walk yields."""

    def setup_method(self):
        """Set up test fixtures."""
        self.expander = RecurrenceExpander()

    @pytest.mark.parametrize("recurrence", ["daily", "weekly", "monthly", "yearly"])
    @pytest.mark.parametrize(
        "anchor",
        [
            datetime(2019, 1, 31, 23, 30, tzinfo=UTC),
            datetime(2020, 2, 29, 8, 0, tzinfo=UTC),
            datetime(2021, 3, 27, 10, 0, tzinfo=ZoneInfo("Europe/Berlin")),
        ],
    )
    def test_expand_matches_naive_walk(self, make_event, recurrence, anchor):
        event = make_event("series", anchor, recurrence=recurrence)
        window = QueryWindow(
            start=datetime(2024, 2, 28, 12, 0, tzinfo=UTC),
            end=datetime(2025, 3, 31, 12, 0, tzinfo=UTC),
        )

        fast = [o.occurrence_id for o in self.expander.expand(event, window)]
        naive = [o.occurrence_id for o in self.expander.expand_naive(event, window)]

        assert fast == naive
        assert fast

    def test_seek_skips_periods_before_window(self, make_event):
        clock = CalendarClock()
        spy = Mock(wraps=clock)
        expander = RecurrenceExpander(clock=spy)

        event = make_event("old", datetime(2000, 1, 1, 9, tzinfo=UTC), recurrence="daily")
        window = QueryWindow(
            start=datetime(2024, 1, 3, tzinfo=UTC), end=datetime(2024, 1, 5, 23, tzinfo=UTC)
        )
        occurrences = list(expander.expand(event, window))

        assert len(occurrences) == 3
        # Thousands of days since the anchor, but only a handful of steps
        assert spy.advance.call_count < 10
