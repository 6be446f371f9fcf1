"""Normalize AI-extracted receipts and transaction histories.

Extraction output is best-effort and may mis-total. This module never trusts
a reported aggregate: totals and counts are recomputed from the most granular
data present, and disagreements beyond a small tolerance are flagged (logged
and attached to the result) without blocking the upload.

Raw receipt shape::

    {
        "items": [
            {"name": "팟타이꿍", "quantity": 2, "unit_price": 13000,
             "total_price": 26000, "category": "식사류"},
        ],
        "total_amount": 26000,
        "item_count": 2
    }

Raw transaction-history shape::

    {
        "business_date": "2025-12-02",
        "transactions": [
            {"time": "11:42:10", "amount": 27000, "payment_type": "카드"},
            {"time": "18:05:33", "amount": -9000, "payment_type": "카반"}
        ],
        "total_amount": 18000,
        "transaction_count": 2
    }
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import date
from typing import Any

from pos_analytics.config import AppConfig
from pos_analytics.exceptions import ValidationError
from pos_analytics.ingestion.types import (
    Discrepancy,
    NormalizedLineItem,
    NormalizedReceipt,
    Transaction,
    TransactionHistorySplit,
)
from pos_analytics.utils import parse_amount, parse_date

logger = logging.getLogger(__name__)

# "HH:MM", "HH:MM:SS", optionally preceded by "MM-DD " or a full date
_TIME_RE = re.compile(r"(?:^|[\sT])(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::\d{2})?\s*$")


def normalize_receipt(
    raw: Mapping[str, Any],
    business_date: date | str | None = None,
    source_ref: str | None = None,
    config: AppConfig | None = None,
) -> NormalizedReceipt:
    """Turn an extracted receipt into a canonical order with line items.

    Args:
        raw: Extraction payload (see module docstring).
        business_date: Business date of the receipt. Falls back to
            ``raw["order_date"]`` / ``raw["business_date"]``.
        source_ref: Reference to the uploaded file. Defaults to
            ``"<date>.jpg"``.
        config: AppConfig supplying tolerance and categories.

    Returns:
        NormalizedReceipt with recomputed totals.

    Raises:
        ValidationError: If the date, the reported total or the line items are
            missing, or a line item cannot be parsed.
    """
    config = config or AppConfig()
    day = parse_date(
        business_date or raw.get("order_date") or raw.get("business_date"), "business_date"
    )

    raw_items = raw.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("Missing required field: items")
    if raw.get("total_amount") is None:
        raise ValidationError("Missing required field: total_amount")
    reported_total = parse_amount(raw["total_amount"], "total_amount")

    items = tuple(
        _normalize_line_item(item, index, config) for index, item in enumerate(raw_items)
    )
    computed_total = sum(item.line_total for item in items)
    computed_count = sum(item.quantity for item in items)

    discrepancies = [
        d
        for d in (
            _check("total_amount", reported_total, computed_total, config.discrepancy_tolerance),
            _check_optional("item_count", raw.get("item_count"), computed_count, 0),
        )
        if d is not None
    ]
    for d in discrepancies:
        logger.warning(
            "Receipt %s: reported %s=%s but line items sum to %s (using %s)",
            day.isoformat(),
            d.field,
            d.reported,
            d.computed,
            d.computed,
        )

    receipt = NormalizedReceipt(
        business_date=day,
        total_amount=computed_total,
        item_count=computed_count,
        items=items,
        source_ref=source_ref or f"{day.isoformat()}.jpg",
        discrepancies=tuple(discrepancies),
    )
    logger.info(
        "Normalized receipt %s: %d line(s), %d item(s), total %d",
        day.isoformat(),
        len(items),
        computed_count,
        computed_total,
    )
    return receipt


def normalize_transaction_history(
    raw: Mapping[str, Any],
    business_date: date | str | None = None,
    source_ref: str | None = None,
    config: AppConfig | None = None,
) -> TransactionHistorySplit:
    """Partition a day's transactions into lunch and dinner.

    A transaction whose hour is below ``config.daypart_boundary_hour`` (16)
    is lunch; at or after the boundary it is dinner. Refunds keep their
    negative amount and land in the daypart of their timestamp.

    Args:
        raw: Extraction payload (see module docstring).
        business_date: Overrides ``raw["business_date"]`` when given.
        source_ref: Reference to the uploaded file. Defaults to
            ``"<date>-transactions.jpg"``.
        config: AppConfig supplying the boundary hour and tolerance.

    Returns:
        TransactionHistorySplit with recomputed totals.

    Raises:
        ValidationError: If the date, the reported total or the transaction
            list is missing, or a transaction cannot be parsed.
    """
    config = config or AppConfig()
    day = parse_date(business_date or raw.get("business_date"), "business_date")

    raw_transactions = raw.get("transactions")
    if not isinstance(raw_transactions, list):
        raise ValidationError("Missing required field: transactions")
    if raw.get("total_amount") is None:
        raise ValidationError("Missing required field: total_amount")
    reported_total = parse_amount(raw["total_amount"], "total_amount")

    transactions = [_parse_transaction(txn, index) for index, txn in enumerate(raw_transactions)]

    lunch_revenue = lunch_count = dinner_revenue = dinner_count = 0
    for txn in transactions:
        if txn.hour < config.daypart_boundary_hour:
            lunch_revenue += txn.amount
            lunch_count += 1
        else:
            dinner_revenue += txn.amount
            dinner_count += 1

    computed_total = lunch_revenue + dinner_revenue
    discrepancies = [
        d
        for d in (
            _check("total_amount", reported_total, computed_total, config.discrepancy_tolerance),
            _check_optional("transaction_count", raw.get("transaction_count"), len(transactions), 0),
        )
        if d is not None
    ]
    for d in discrepancies:
        logger.warning(
            "Transaction history %s: reported %s=%s but transactions sum to %s (using %s)",
            day.isoformat(),
            d.field,
            d.reported,
            d.computed,
            d.computed,
        )

    refunds = sum(1 for txn in transactions if txn.is_refund)
    logger.info(
        "Normalized transaction history %s: lunch %d (%d txn), dinner %d (%d txn), %d refund(s)",
        day.isoformat(),
        lunch_revenue,
        lunch_count,
        dinner_revenue,
        dinner_count,
        refunds,
    )
    return TransactionHistorySplit(
        business_date=day,
        lunch_revenue=lunch_revenue,
        lunch_count=lunch_count,
        dinner_revenue=dinner_revenue,
        dinner_count=dinner_count,
        source_ref=source_ref or f"{day.isoformat()}-transactions.jpg",
        discrepancies=tuple(discrepancies),
    )


def normalize_category(category: Any, config: AppConfig) -> str:
    """Map a raw category onto the closed category set.

    Missing or unknown categories become ``config.default_category`` so that
    category breakdowns never drop revenue.
    """
    if isinstance(category, str):
        cleaned = category.strip()
        if cleaned in config.categories:
            return cleaned
        if cleaned:
            logger.debug("Unknown category %r mapped to %s", cleaned, config.default_category)
    return config.default_category


def parse_hour(value: Any) -> int:
    """Extract the hour from 'HH:MM[:SS]' or 'MM-DD HH:MM:SS'.

    Raises:
        ValidationError: If no time component can be found.
    """
    if value is None:
        raise ValidationError("Missing required field: time")
    match = _TIME_RE.search(str(value).strip())
    if match is None:
        raise ValidationError(f"Invalid transaction time: {value!r}")
    hour = int(match.group("hour"))
    if hour > 23 or int(match.group("minute")) > 59:
        raise ValidationError(f"Invalid transaction time: {value!r}")
    return hour


def _normalize_line_item(item: Any, index: int, config: AppConfig) -> NormalizedLineItem:
    if not isinstance(item, Mapping):
        raise ValidationError(f"Line item {index} is not an object")

    name = str(item.get("name") or item.get("item_name") or "").strip()
    if not name:
        raise ValidationError(f"Line item {index} has no name")

    quantity = _parse_quantity(item.get("quantity"), f"items[{index}].quantity")
    if quantity <= 0:
        raise ValidationError(f"Line item {name!r} has non-positive quantity {quantity}")

    if item.get("unit_price") is not None:
        unit_price = parse_amount(item["unit_price"], f"items[{index}].unit_price")
    elif item.get("total_price") is not None:
        # Only the line total was read; derive the unit price from it
        total_price = parse_amount(item["total_price"], f"items[{index}].total_price")
        if total_price % quantity:
            raise ValidationError(
                f"Line item {name!r}: total_price {total_price} is not a multiple of quantity {quantity}"
            )
        unit_price = total_price // quantity
    else:
        raise ValidationError(f"Line item {name!r} has neither unit_price nor total_price")

    return NormalizedLineItem(
        name=name,
        category=normalize_category(item.get("category"), config),
        quantity=quantity,
        unit_price=unit_price,
        line_total=quantity * unit_price,
    )


def _parse_quantity(value: Any, field_name: str) -> int:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Missing required field: {field_name}")
    try:
        number = float(str(value).replace(",", "").strip())
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name}: {value!r}") from e
    if not number.is_integer():
        raise ValidationError(f"{field_name} must be a whole number, got {value!r}")
    return int(number)


def _parse_transaction(txn: Any, index: int) -> Transaction:
    if not isinstance(txn, Mapping):
        raise ValidationError(f"Transaction {index} is not an object")
    return Transaction(
        hour=parse_hour(txn.get("time")),
        amount=parse_amount(txn.get("amount"), f"transactions[{index}].amount"),
        payment_type=str(txn.get("payment_type") or ""),
    )


def _check(field: str, reported: int, computed: int, tolerance: int) -> Discrepancy | None:
    if abs(reported - computed) > tolerance:
        return Discrepancy(field=field, reported=reported, computed=computed)
    return None


def _check_optional(field: str, reported: Any, computed: int, tolerance: int) -> Discrepancy | None:
    if reported is None:
        return None
    try:
        value = parse_amount(reported, field)
    except ValidationError:
        logger.debug("Ignoring unparseable reported %s: %r", field, reported)
        return None
    return _check(field, value, computed, tolerance)
