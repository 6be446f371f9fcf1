"""Canonical records produced by the ingestion normalizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class Discrepancy:
    """A reported aggregate that disagrees with the recomputed one.

    Attributes:
        field: Name of the aggregate ("total_amount", "item_count", ...).
        reported: Value claimed by the extraction.
        computed: Value recomputed from line-level data (the persisted one).
    """

    field: str
    reported: int
    computed: int

    @property
    def difference(self) -> int:
        return self.reported - self.computed


@dataclass(frozen=True)
class NormalizedLineItem:
    name: str
    category: str
    quantity: int
    unit_price: int
    line_total: int


@dataclass(frozen=True)
class NormalizedReceipt:
    """One day's POS receipt, ready for the order stream.

    ``total_amount`` and ``item_count`` are always recomputed from ``items``.
    """

    business_date: date
    total_amount: int
    item_count: int
    items: tuple[NormalizedLineItem, ...]
    source_ref: str
    discrepancies: tuple[Discrepancy, ...] = field(default=())

    @property
    def has_discrepancies(self) -> bool:
        return bool(self.discrepancies)


@dataclass(frozen=True)
class Transaction:
    """One line of a transaction-history sheet (amount is signed)."""

    hour: int
    amount: int
    payment_type: str = ""

    @property
    def is_refund(self) -> bool:
        return self.amount < 0


@dataclass(frozen=True)
class TransactionHistorySplit:
    """One day's lunch/dinner revenue split.

    ``total_revenue == lunch_revenue + dinner_revenue`` and
    ``total_count == lunch_count + dinner_count`` hold by construction.
    """

    business_date: date
    lunch_revenue: int
    lunch_count: int
    dinner_revenue: int
    dinner_count: int
    source_ref: str
    discrepancies: tuple[Discrepancy, ...] = field(default=())

    @property
    def total_revenue(self) -> int:
        return self.lunch_revenue + self.dinner_revenue

    @property
    def total_count(self) -> int:
        return self.lunch_count + self.dinner_count

    @property
    def has_discrepancies(self) -> bool:
        return bool(self.discrepancies)
