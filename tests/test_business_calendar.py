"""Tests for the business calendar: counted days and date windows."""

from datetime import date

import pandas as pd
import pytest

from pos_analytics.business_calendar import PRESETS, BusinessCalendar, DateWindow
from pos_analytics.exceptions import ValidationError

SATURDAY = date(2025, 12, 6)
SUNDAY = date(2025, 12, 7)


def calendar_on(today: date) -> BusinessCalendar:
    return BusinessCalendar(closed_weekday=6, today=lambda: today)


class TestCountedDays:
    def test_closed_weekday_is_not_counted(self) -> None:
        cal = BusinessCalendar()
        assert not cal.is_counted_day(SUNDAY)
        assert all(cal.is_counted_day(date(2025, 12, d)) for d in range(1, 7))

    def test_closed_weekday_is_configurable(self) -> None:
        cal = BusinessCalendar(closed_weekday=0)
        assert not cal.is_counted_day(date(2025, 12, 1))
        assert cal.is_counted_day(SUNDAY)

    def test_invalid_closed_weekday_rejected(self) -> None:
        with pytest.raises(ValueError):
            BusinessCalendar(closed_weekday=7)

    def test_business_days_count_skips_closed_day(self) -> None:
        cal = BusinessCalendar()
        assert cal.business_days_count(date(2025, 12, 1), SUNDAY) == 6
        assert cal.business_days_count(SUNDAY, SUNDAY) == 0

    def test_filter_counted_drops_closed_day_rows(self) -> None:
        df = pd.DataFrame(
            {
                "business_date": [date(2025, 12, 5), SATURDAY, SUNDAY, date(2025, 12, 8)],
                "total_amount": [100, 200, 300, 400],
            }
        )
        filtered = BusinessCalendar().filter_counted(df, "business_date")
        assert SUNDAY not in set(filtered["business_date"])
        assert filtered["total_amount"].tolist() == [100, 200, 400]
        assert filtered.index.tolist() == [0, 1, 2]

    def test_filter_counted_keeps_empty_frame_columns(self) -> None:
        df = pd.DataFrame(columns=["business_date", "total_amount"])
        filtered = BusinessCalendar().filter_counted(df, "business_date")
        assert filtered.empty
        assert list(filtered.columns) == ["business_date", "total_amount"]


class TestPresets:
    def test_today_on_open_day(self) -> None:
        window = calendar_on(SATURDAY).resolve_window("1d")
        assert (window.start, window.end) == (SATURDAY, SATURDAY)

    def test_today_on_closed_day_snaps_back(self) -> None:
        window = calendar_on(SUNDAY).resolve_window("1d")
        assert (window.start, window.end) == (SATURDAY, SATURDAY)

    def test_three_days_are_counted_days(self) -> None:
        window = calendar_on(SATURDAY).resolve_window("3d")
        assert window.start == date(2025, 12, 4)
        assert window.end == SATURDAY

    def test_seven_days_walk_back_over_closed_day(self) -> None:
        cal = calendar_on(SATURDAY)
        window = cal.resolve_window("7d")
        # Dec 1-6 are six counted days; Nov 30 is a Sunday, so Nov 29 is the 7th.
        assert window.start == date(2025, 11, 29)
        assert cal.business_days_count(window.start, window.end) == 7
        assert window.calendar_days() == 8

    def test_month_presets_use_calendar_months(self) -> None:
        cal = calendar_on(SATURDAY)
        one_month = cal.resolve_window("1m")
        assert one_month.start == date(2025, 11, 6)
        assert one_month.granularity == "weekly"
        one_year = cal.resolve_window("1y")
        assert one_year.start == date(2024, 12, 6)
        assert one_year.granularity == "monthly"

    def test_every_preset_resolves(self) -> None:
        cal = calendar_on(SATURDAY)
        for preset in PRESETS:
            window = cal.resolve_window(preset)
            assert window.start <= window.end == SATURDAY

    def test_unknown_preset_rejected(self) -> None:
        with pytest.raises(ValidationError):
            calendar_on(SATURDAY).resolve_window("2w")


class TestExplicitAndTrailingWindows:
    def test_explicit_window_from_strings(self) -> None:
        window = calendar_on(SATURDAY).resolve_window(("2025-12-01", "2025-12-03"))
        assert (window.start, window.end) == (date(2025, 12, 1), date(2025, 12, 3))
        assert window.label == "Custom"

    def test_explicit_window_start_after_end_rejected(self) -> None:
        with pytest.raises(ValidationError):
            calendar_on(SATURDAY).explicit_window("2025-12-05", "2025-12-01")

    def test_explicit_window_ending_after_today_rejected(self) -> None:
        with pytest.raises(ValidationError):
            calendar_on(SATURDAY).explicit_window("2025-12-01", "2025-12-08")

    def test_trailing_window_counts_calendar_days(self) -> None:
        window = calendar_on(SUNDAY).trailing_window(7)
        assert window.end == SATURDAY
        assert window.start == date(2025, 11, 30)
        assert window.calendar_days() == 7

    @pytest.mark.parametrize("days", [0, -3, 2.5, True, "7"])
    def test_trailing_window_rejects_invalid_days(self, days) -> None:
        with pytest.raises(ValidationError):
            calendar_on(SATURDAY).trailing_window(days)


class TestComparisonWindow:
    def test_comparison_window_precedes_with_same_length(self) -> None:
        cal = calendar_on(SATURDAY)
        window = cal.resolve_window("7d")
        previous = cal.comparison_window(window)
        assert previous.end == date(2025, 11, 28)
        assert previous.calendar_days() == window.calendar_days()
        assert previous.label == "Previous period"

    def test_comparison_of_single_day(self) -> None:
        window = DateWindow(SATURDAY, SATURDAY)
        previous = BusinessCalendar().comparison_window(window)
        assert (previous.start, previous.end) == (date(2025, 12, 5), date(2025, 12, 5))

    def test_window_rejects_reversed_dates(self) -> None:
        with pytest.raises(ValidationError):
            DateWindow(SATURDAY, date(2025, 12, 1))

    def test_window_membership(self) -> None:
        window = DateWindow(date(2025, 12, 1), SATURDAY)
        assert date(2025, 12, 3) in window
        assert SUNDAY not in window
