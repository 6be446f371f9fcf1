"""Business-calendar policy: counted days and date windows.

The restaurant is closed on one fixed weekday. Every read path excludes that
weekday through :meth:`BusinessCalendar.is_counted_day` /
:meth:`BusinessCalendar.filter_counted`; nothing else in the package
re-implements the rule.

Presets:
    - ``1d``: today (snapped back to the last open day)
    - ``3d`` / ``7d``: the trailing 3 / 7 counted days ending today
    - ``1m`` / ``3m`` / ``6m`` / ``1y``: calendar-month multiples back from today

Comparison windows:
    The comparison window is the immediately preceding window with the same
    number of *calendar* days. The open-day counts of the two windows can
    differ by one; this is an accepted approximation that keeps both windows
    the same length.

Example:
    >>> from datetime import date
    >>> cal = BusinessCalendar(today=lambda: date(2025, 12, 7))  # a Sunday
    >>> w = cal.resolve_window("1d")
    >>> w.start, w.end
    (datetime.date(2025, 12, 6), datetime.date(2025, 12, 6))
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import date, timedelta

import pandas as pd

from pos_analytics.exceptions import ValidationError
from pos_analytics.utils import iter_days, parse_date

logger = logging.getLogger(__name__)

PRESETS = ("1d", "3d", "7d", "1m", "3m", "6m", "1y")

_COUNTED_DAY_PRESETS = {"3d": (3, "Last 3 Days"), "7d": (7, "Last 7 Days")}
_MONTH_PRESETS = {
    "1m": (1, "Last Month", "weekly"),
    "3m": (3, "Last 3 Months", "weekly"),
    "6m": (6, "Last 6 Months", "monthly"),
    "1y": (12, "Last Year", "monthly"),
}


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar-date window.

    Attributes:
        start: First date (inclusive).
        end: Last date (inclusive).
        label: Human-readable label ("Last 7 Days", "Previous period", ...).
        granularity: Display hint: "daily", "weekly" or "monthly".
    """

    start: date
    end: date
    label: str = ""
    granularity: str = "daily"

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValidationError(
                f"Window start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    def calendar_days(self) -> int:
        """Number of calendar days spanned (inclusive)."""
        return (self.end - self.start).days + 1

    def iter_days(self) -> Iterator[date]:
        return iter_days(self.start, self.end)

    def __contains__(self, d: object) -> bool:
        return isinstance(d, date) and self.start <= d <= self.end


class BusinessCalendar:
    """Resolves date windows and decides which days are counted.

    Args:
        closed_weekday: Weekday excluded from every metric (0=Monday ... 6=Sunday).
        today: Callable returning the current date; injectable for tests.
    """

    def __init__(
        self,
        closed_weekday: int = 6,
        today: Callable[[], date] | None = None,
    ) -> None:
        if not 0 <= closed_weekday <= 6:
            raise ValueError(f"closed_weekday must be between 0 and 6, got {closed_weekday}")
        self.closed_weekday = closed_weekday
        self._today = today or date.today

    def today(self) -> date:
        return self._today()

    def is_counted_day(self, d: date) -> bool:
        """Return False for the closed weekday and True for every other day."""
        return d.weekday() != self.closed_weekday

    def filter_counted(self, df: pd.DataFrame, date_column: str) -> pd.DataFrame:
        """Drop rows whose ``date_column`` falls on the closed weekday.

        Args:
            df: DataFrame with a column of ``date`` values.
            date_column: Name of the date column.

        Returns:
            Filtered copy with a fresh index.
        """
        if df.empty:
            return df.copy()
        mask = df[date_column].map(self.is_counted_day).astype(bool)
        dropped = int((~mask).sum())
        if dropped:
            logger.debug("Excluded %d closed-day row(s) on column %s", dropped, date_column)
        return df.loc[mask].reset_index(drop=True)

    def snap_to_open_day(self, d: date) -> date:
        """Step back from a closed day to the previous open day."""
        while not self.is_counted_day(d):
            d -= timedelta(days=1)
        return d

    def business_days_count(self, start: date, end: date) -> int:
        """Count counted (open) days between start and end, inclusive."""
        return sum(1 for d in iter_days(start, end) if self.is_counted_day(d))

    def resolve_window(self, selection: str | tuple[object, object]) -> DateWindow:
        """Resolve a preset name or an explicit (start, end) pair.

        Args:
            selection: One of :data:`PRESETS`, or a ``(start, end)`` tuple of
                dates / ISO strings.

        Returns:
            DateWindow for the selection.

        Raises:
            ValidationError: For unknown presets, reversed ranges, or explicit
                ranges ending after today.
        """
        if isinstance(selection, tuple):
            return self.explicit_window(*selection)

        end = self.snap_to_open_day(self.today())

        if selection == "1d":
            return DateWindow(end, end, "Today", "daily")

        if selection in _COUNTED_DAY_PRESETS:
            count, label = _COUNTED_DAY_PRESETS[selection]
            return DateWindow(self._walk_back_counted(end, count), end, label, "daily")

        if selection in _MONTH_PRESETS:
            months, label, granularity = _MONTH_PRESETS[selection]
            start = (pd.Timestamp(end) - pd.DateOffset(months=months)).date()
            return DateWindow(start, end, label, granularity)

        raise ValidationError(f"Unknown date range {selection!r}. Expected one of {PRESETS}")

    def explicit_window(self, start: object, end: object, label: str = "Custom") -> DateWindow:
        """Build a window from an explicit start/end pair.

        Raises:
            ValidationError: If start > end or end is after today.
        """
        start_date = parse_date(start, "start_date")
        end_date = parse_date(end, "end_date")
        today = self.today()
        if end_date > today:
            raise ValidationError(
                f"End date {end_date.isoformat()} is after today ({today.isoformat()})"
            )
        granularity = "daily" if (end_date - start_date).days < 31 else "weekly"
        return DateWindow(start_date, end_date, label, granularity)

    def trailing_window(self, days: int) -> DateWindow:
        """Last ``days`` calendar days ending at today (snapped to an open day).

        Raises:
            ValidationError: If days is not a positive integer.
        """
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise ValidationError(f"days must be a positive integer, got {days!r}")
        end = self.snap_to_open_day(self.today())
        start = end - timedelta(days=days - 1)
        return DateWindow(start, end, f"Last {days} days", "daily" if days <= 31 else "weekly")

    def comparison_window(self, window: DateWindow) -> DateWindow:
        """Immediately preceding window with the same calendar-day length."""
        length = window.calendar_days()
        previous_end = window.start - timedelta(days=1)
        previous_start = previous_end - timedelta(days=length - 1)
        return DateWindow(previous_start, previous_end, "Previous period", window.granularity)

    def _walk_back_counted(self, end: date, count: int) -> date:
        """Earliest date such that [date, end] holds exactly ``count`` counted days."""
        current = end
        seen = 0
        while True:
            if self.is_counted_day(current):
                seen += 1
                if seen == count:
                    return current
            current -= timedelta(days=1)
