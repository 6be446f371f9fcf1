"""Tests for the data-coverage QA."""

from datetime import date

import pandas as pd

from conftest import make_receipt
from pos_analytics.business_calendar import DateWindow
from pos_analytics.ingestion.normalize import normalize_receipt, normalize_transaction_history
from pos_analytics.metrics.types import WindowFrames
from pos_analytics.qa import run_coverage_qa
from pos_analytics.qa.coverage import detect_missing_days

CLOSED = date(2025, 11, 30)


def d(day: int) -> date:
    return date(2025, 12, day)


def test_coverage_qa_on_store(service, gateway) -> None:
    for day in (d(1), d(2), d(3), CLOSED):
        gateway.insert_order(normalize_receipt(make_receipt(("짜조", 1, 6000, "사이드메뉴")), business_date=day))
    gateway.insert_revenue_split(
        normalize_transaction_history(
            {"transactions": [{"time": "12:00", "amount": 6000}], "total_amount": 6000},
            business_date=d(1),
        )
    )
    gateway.upsert_delivery_sales(CLOSED, 10000)

    # "7d" is Sat Nov 29 .. Sat Dec 6
    frames = service.load_frames("7d", counted_only=False)
    result = run_coverage_qa(frames, service.calendar)

    assert result.has_issues
    assert result.summary["counted_days"] == 7
    assert result.missing_order_days["business_date"].tolist() == [date(2025, 11, 29), d(4), d(5), d(6)]
    assert result.summary["missing_split_days_count"] == 6
    assert result.summary["has_missing_days"]

    closed = result.closed_day_records
    assert sorted(closed["stream"]) == ["delivery", "orders"]
    assert set(closed["business_date"]) == {CLOSED}
    assert result.summary["closed_day_records_count"] == 2


def test_complete_window_has_no_issues(calendar) -> None:
    window = DateWindow(d(1), d(1))
    frames = WindowFrames.empty(window)
    frames.orders = pd.DataFrame({"business_date": [d(1)]})
    frames.splits = pd.DataFrame({"business_date": [d(1)]})

    result = run_coverage_qa(frames, calendar)

    assert not result.has_issues
    assert result.missing_order_days is None
    assert result.closed_day_records is None
    assert result.summary["has_closed_day_records"] is False


def test_closed_day_is_never_missing(calendar) -> None:
    frames = WindowFrames.empty(DateWindow(d(6), d(8)))
    missing = detect_missing_days(frames.orders, frames, calendar)
    assert missing["business_date"].tolist() == [d(6), d(8)]
