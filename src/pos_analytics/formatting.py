"""Display formatting for money, percentages and dates.

Aggregation code works on integer currency units only; these helpers are
applied at the very edge (assistant tool results, CLI output).
"""

from __future__ import annotations

from datetime import date

SHORT_MONTHS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


def format_currency(amount: float, symbol: str = "₩") -> str:
    """Format an amount as a display string like '₩12,345'.

    Fractional amounts (averages) are rounded to whole currency units.

    Examples:
        >>> format_currency(1234567)
        '₩1,234,567'
        >>> format_currency(-5000)
        '-₩5,000'
    """
    value = int(round(amount))
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,}"


def format_percent(value: float, decimals: int = 1) -> str:
    """Format a percentage like '12.5%'."""
    return f"{value:.{decimals}f}%"


def format_signed_percent(value: float, decimals: int = 1) -> str:
    """Format a period-over-period change like '+12.5%' or '-3.0%'."""
    return f"{value:+.{decimals}f}%"


def format_date(d: date) -> str:
    """Format a date like 'Dec 02, 2025'."""
    return f"{SHORT_MONTHS[d.month - 1]} {d.day:02d}, {d.year}"


def format_short_date(d: date) -> str:
    """Format a date like 'Dec 02'."""
    return f"{SHORT_MONTHS[d.month - 1]} {d.day:02d}"
