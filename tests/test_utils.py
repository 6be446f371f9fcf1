"""Tests for parsing helpers and display formatting."""

from datetime import date, datetime

import pytest

from pos_analytics.exceptions import ValidationError
from pos_analytics.formatting import (
    format_currency,
    format_date,
    format_percent,
    format_short_date,
    format_signed_percent,
)
from pos_analytics.utils import iter_days, parse_amount, parse_date, round_half_away


@pytest.mark.parametrize(
    "value",
    ["2025-12-02", "2025/12/02", "2025.12.02", "2025-12-02T18:05:33", date(2025, 12, 2), datetime(2025, 12, 2, 9)],
)
def test_parse_date(value) -> None:
    assert parse_date(value) == date(2025, 12, 2)


@pytest.mark.parametrize("value", [None, "", "tomorrow", "2025-13-01"])
def test_parse_date_rejects_invalid(value) -> None:
    with pytest.raises(ValidationError):
        parse_date(value, "business_date")


def test_parse_date_names_field() -> None:
    with pytest.raises(ValidationError, match="business_date"):
        parse_date(None, "business_date")


@pytest.mark.parametrize(
    "value, expected",
    [
        (50000, 50000),
        ("50,000", 50000),
        ("₩50,000", 50000),
        ("-9,000", -9000),
        (12.5, 13),
        ("1,234.5", 1235),
    ],
)
def test_parse_amount(value, expected) -> None:
    assert parse_amount(value) == expected


@pytest.mark.parametrize("value", [None, True, "", "₩", "abc", float("nan")])
def test_parse_amount_rejects_invalid(value) -> None:
    with pytest.raises(ValidationError):
        parse_amount(value)


@pytest.mark.parametrize("value, expected", [(2.5, 3), (-2.5, -3), (3.5, 4), (0.49, 0), (-0.5, -1)])
def test_round_half_away(value, expected) -> None:
    assert round_half_away(value) == expected


def test_iter_days_is_inclusive() -> None:
    days = list(iter_days(date(2025, 11, 30), date(2025, 12, 2)))
    assert days == [date(2025, 11, 30), date(2025, 12, 1), date(2025, 12, 2)]
    assert list(iter_days(date(2025, 12, 2), date(2025, 12, 1))) == []


class TestFormatting:
    def test_currency(self) -> None:
        assert format_currency(1234567) == "₩1,234,567"
        assert format_currency(0) == "₩0"
        assert format_currency(-5000) == "-₩5,000"
        assert format_currency(38500.4) == "₩38,500"
        assert format_currency(1000, symbol="$") == "$1,000"

    def test_percent(self) -> None:
        assert format_percent(84.4155) == "84.4%"
        assert format_signed_percent(12.5) == "+12.5%"
        assert format_signed_percent(-3) == "-3.0%"

    def test_dates(self) -> None:
        assert format_date(date(2025, 12, 2)) == "Dec 02, 2025"
        assert format_short_date(date(2025, 1, 9)) == "Jan 09"
