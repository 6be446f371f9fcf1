"""Data-coverage checks for a window.

Finds counted days that have no upload for a stream, and stored rows dated on
the closed weekday (data every query silently ignores). Runs on unfiltered
frames: ``AnalyticsService.load_frames(window, counted_only=False)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from pos_analytics.business_calendar import BusinessCalendar
from pos_analytics.metrics.types import WindowFrames

logger = logging.getLogger(__name__)


@dataclass
class CoverageQAResult:
    """Result of the coverage QA.

    Attributes:
        summary: Dictionary with counts and flags.
        missing_order_days: DataFrame of counted days without an order, or None.
        missing_split_days: DataFrame of counted days without a transaction
            history, or None.
        closed_day_records: DataFrame (stream, business_date) of rows stored on
            the closed weekday, or None.
    """

    summary: dict
    missing_order_days: pd.DataFrame | None
    missing_split_days: pd.DataFrame | None
    closed_day_records: pd.DataFrame | None

    @property
    def has_issues(self) -> bool:
        return any(
            df is not None
            for df in (self.missing_order_days, self.missing_split_days, self.closed_day_records)
        )


def detect_missing_days(
    df: pd.DataFrame, frames: WindowFrames, calendar: BusinessCalendar
) -> pd.DataFrame | None:
    """Counted days in the window with no row in ``df``.

    Examples:
        >>> from datetime import date
        >>> from pos_analytics.business_calendar import DateWindow
        >>> cal = BusinessCalendar()
        >>> window = DateWindow(date(2025, 12, 1), date(2025, 12, 3))
        >>> df = pd.DataFrame({"business_date": [date(2025, 12, 2)]})
        >>> detect_missing_days(df, WindowFrames.empty(window), cal)["business_date"].tolist()
        [datetime.date(2025, 12, 1), datetime.date(2025, 12, 3)]

    """
    existing = set(df["business_date"]) if not df.empty else set()
    missing = [
        day
        for day in frames.window.iter_days()
        if calendar.is_counted_day(day) and day not in existing
    ]
    if not missing:
        return None
    return pd.DataFrame({"business_date": missing})


def detect_closed_day_records(frames: WindowFrames, calendar: BusinessCalendar) -> pd.DataFrame | None:
    """Rows in any stream dated on the closed weekday."""
    rows = []
    streams = {
        "orders": frames.orders,
        "splits": frames.splits,
        "delivery": frames.delivery,
        "channel_sales": frames.channel_sales,
    }
    for stream, df in streams.items():
        if df.empty:
            continue
        for day in sorted(set(df["business_date"])):
            if not calendar.is_counted_day(day):
                rows.append({"stream": stream, "business_date": day})
    if not rows:
        return None
    return pd.DataFrame(rows)


def run_coverage_qa(frames: WindowFrames, calendar: BusinessCalendar) -> CoverageQAResult:
    """Run the coverage checks in memory.

    This function does not read from the store or write anything; it only
    logs.

    Args:
        frames: Unfiltered frames for the window.
        calendar: Calendar deciding which days are counted.

    Returns:
        CoverageQAResult.
    """
    window = frames.window
    logger.info("Running coverage QA for %s..%s", window.start, window.end)

    missing_orders = detect_missing_days(frames.orders, frames, calendar)
    missing_splits = detect_missing_days(frames.splits, frames, calendar)
    closed_records = detect_closed_day_records(frames, calendar)

    summary = {
        "window_start": window.start.isoformat(),
        "window_end": window.end.isoformat(),
        "counted_days": calendar.business_days_count(window.start, window.end),
        "missing_order_days_count": len(missing_orders) if missing_orders is not None else 0,
        "missing_split_days_count": len(missing_splits) if missing_splits is not None else 0,
        "closed_day_records_count": len(closed_records) if closed_records is not None else 0,
    }
    summary["has_missing_days"] = bool(
        summary["missing_order_days_count"] or summary["missing_split_days_count"]
    )
    summary["has_closed_day_records"] = bool(summary["closed_day_records_count"])

    logger.info(
        "Coverage QA complete: %d day(s) without orders, %d without transaction history, "
        "%d closed-day record(s)",
        summary["missing_order_days_count"],
        summary["missing_split_days_count"],
        summary["closed_day_records_count"],
    )
    return CoverageQAResult(
        summary=summary,
        missing_order_days=missing_orders,
        missing_split_days=missing_splits,
        closed_day_records=closed_records,
    )
