"""Shared utilities for POS Analytics.

This module provides small parsing helpers used across modules:

- Date parsing: standardized business-date parsing
- Date iteration: walking inclusive date ranges
- Amount parsing: integer currency amounts from loosely formatted input

Examples:
    >>> from datetime import date
    >>> from pos_analytics.utils import parse_date, parse_amount
    >>> parse_date("2025-12-02")
    datetime.date(2025, 12, 2)
    >>> parse_amount("₩50,000")
    50000

"""

from __future__ import annotations

import math
import re
from collections.abc import Iterator
from datetime import date, datetime, timedelta
from typing import Any

from pos_analytics.exceptions import ValidationError

# Everything that is not a digit, sign or decimal point: currency symbols,
# thousands separators, whitespace.
_AMOUNT_NOISE_RE = re.compile(r"[^\d\-.]")


def parse_date(value: Any, field_name: str = "date") -> date:
    """Parse a business date.

    Accepts ``date``, ``datetime`` (time is dropped), pandas ``Timestamp``
    and ISO strings (``YYYY-MM-DD``, ``YYYY/MM/DD`` or a full ISO timestamp).

    Args:
        value: Value to parse.
        field_name: Field name used in error messages.

    Returns:
        Parsed date object.

    Raises:
        ValidationError: If the value is missing or not a valid date.

    Examples:
        >>> parse_date("2023-01-15")
        datetime.date(2023, 1, 15)

    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Missing required field: {field_name}")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date()
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name}: {value!r} (expected YYYY-MM-DD)") from e


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from start to end (both inclusive).

    Examples:
        >>> list(iter_days(date(2025, 1, 1), date(2025, 1, 3)))
        [datetime.date(2025, 1, 1), datetime.date(2025, 1, 2), datetime.date(2025, 1, 3)]

    """
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def parse_amount(value: Any, field_name: str = "amount") -> int:
    """Parse a currency amount into an integer number of currency units.

    Extraction models return numbers, numeric strings, or strings with
    currency symbols and separators ("50,000", "₩50,000"). Fractions are
    rounded half away from zero.

    Args:
        value: Value to parse.
        field_name: Field name used in error messages.

    Returns:
        Integer amount (may be negative for refunds).

    Raises:
        ValidationError: If the value is missing or not numeric.

    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Missing required field: {field_name}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValidationError(f"Invalid {field_name}: {value!r}")
        return round_half_away(value)

    text = _AMOUNT_NOISE_RE.sub("", str(value))
    if text in ("", "-", ".", "-."):
        raise ValidationError(f"Invalid {field_name}: {value!r}")
    try:
        number = float(text)
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name}: {value!r}") from e
    return round_half_away(number)


def round_half_away(number: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    rounded = math.floor(abs(number) + 0.5)
    return int(rounded if number >= 0 else -rounded)
