"""Result types for the aggregation engine.

``Metrics`` and ``MetricsWithComparison`` are separate types: a bundle
either has a comparison period or it does not, and deltas are only
available on the latter.

Percentage deltas use :func:`~pos_analytics.metrics.grouping.percentage_delta`,
which reports 0.0 whenever the previous value is 0. A 0.0 delta therefore
means "no change, or no baseline to compare against".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

import pandas as pd

from pos_analytics.business_calendar import DateWindow
from pos_analytics.metrics.grouping import percentage_delta
from pos_analytics.store.gateway import (
    CHANNEL_COLUMNS,
    DELIVERY_COLUMNS,
    ITEM_COLUMNS,
    ORDER_COLUMNS,
    SPLIT_COLUMNS,
)


@dataclass
class WindowFrames:
    """Per-stream DataFrames for one window.

    Frames from ``AnalyticsService.load_frames`` are limited to counted days.

    Attributes:
        window: The window the frames cover.
        orders: One row per order (see ``store.gateway.ORDER_COLUMNS``).
        items: One row per line item (``ITEM_COLUMNS``).
        splits: One row per transaction-history split (``SPLIT_COLUMNS``).
        delivery: One row per delivery-sales date (``DELIVERY_COLUMNS``).
        channel_sales: One row per multi-channel sales date (``CHANNEL_COLUMNS``).
    """

    window: DateWindow
    orders: pd.DataFrame
    items: pd.DataFrame
    splits: pd.DataFrame
    delivery: pd.DataFrame
    channel_sales: pd.DataFrame

    @classmethod
    def empty(cls, window: DateWindow) -> WindowFrames:
        """Frames with the store columns and no rows."""
        return cls(
            window=window,
            orders=pd.DataFrame(columns=ORDER_COLUMNS),
            items=pd.DataFrame(columns=ITEM_COLUMNS),
            splits=pd.DataFrame(columns=SPLIT_COLUMNS),
            delivery=pd.DataFrame(columns=DELIVERY_COLUMNS),
            channel_sales=pd.DataFrame(columns=CHANNEL_COLUMNS),
        )


@dataclass(frozen=True)
class TopItem:
    name: str
    quantity: int
    revenue: int


@dataclass(frozen=True)
class CategoryShare:
    """One category's slice of revenue.

    ``share_of_revenue`` is relative to all line-item revenue in the window,
    not only to the categories returned.
    """

    category: str
    quantity: int
    revenue: int
    line_count: int
    share_of_revenue: float


@dataclass(frozen=True)
class RevenuePoint:
    business_date: date
    revenue: int
    orders: int
    items_sold: int
    avg_value_per_item: int
    top_items: tuple[TopItem, ...] = ()


@dataclass(frozen=True)
class CombinedRevenuePoint:
    """POS and delivery revenue for one date.

    A stream without a record for the date has ``None`` rather than 0;
    ``combined_revenue`` treats a missing stream as 0.
    """

    business_date: date
    pos_revenue: int | None
    delivery_revenue: int | None

    @property
    def combined_revenue(self) -> int:
        return (self.pos_revenue or 0) + (self.delivery_revenue or 0)


@dataclass(frozen=True)
class DaypartSplit:
    """Lunch/dinner totals with independent day-presence counts.

    A day counts toward ``lunch_days`` only if it had lunch transactions, and
    toward ``dinner_days`` only if it had dinner transactions.
    """

    lunch_revenue: int = 0
    lunch_count: int = 0
    lunch_days: int = 0
    dinner_revenue: int = 0
    dinner_count: int = 0
    dinner_days: int = 0
    days_with_data: int = 0

    @property
    def total_revenue(self) -> int:
        return self.lunch_revenue + self.dinner_revenue

    @property
    def average_lunch_revenue(self) -> float:
        return self.lunch_revenue / self.lunch_days if self.lunch_days else 0.0

    @property
    def average_dinner_revenue(self) -> float:
        return self.dinner_revenue / self.dinner_days if self.dinner_days else 0.0

    @property
    def lunch_share(self) -> float:
        total = self.total_revenue
        return self.lunch_revenue / total * 100 if total else 0.0


@dataclass(frozen=True)
class DeliveryTotals:
    channels: dict[str, int] = field(default_factory=dict)
    days_with_data: int = 0

    @property
    def total(self) -> int:
        return sum(self.channels.values())


@dataclass(frozen=True)
class Metrics:
    """Sales metrics for one window.

    Attributes:
        window: Window the metrics cover.
        total_revenue: POS revenue.
        total_orders: Counted days with an order row.
        total_items: Items sold.
        average_sale_value: total_revenue / total_orders (0 without orders).
        average_value_per_item: total_revenue / total_items (0 without items).
        average_items_per_day: total_items / max(1, total_orders).
        counted_days: Open days in the window, whether or not data exists.
        top_item: Item with the highest quantity, or None.
        dayparts: Lunch/dinner split from transaction histories.
        delivery: Delivery revenue per channel.
    """

    window: DateWindow
    total_revenue: int
    total_orders: int
    total_items: int
    average_sale_value: float
    average_value_per_item: float
    average_items_per_day: float
    counted_days: int
    top_item: TopItem | None
    dayparts: DaypartSplit
    delivery: DeliveryTotals

    @property
    def combined_revenue(self) -> int:
        """POS plus delivery revenue."""
        return self.total_revenue + self.delivery.total

    @property
    def days_with_orders(self) -> int:
        return self.total_orders


@dataclass(frozen=True)
class MetricsWithComparison:
    """Metrics for a window plus the same metrics for its comparison window."""

    current: Metrics
    previous: Metrics

    def delta(self, name: str) -> float:
        """Percentage change of a numeric metric (0.0 when previous is 0)."""
        return percentage_delta(getattr(self.current, name), getattr(self.previous, name))

    @property
    def revenue_change(self) -> float:
        return self.delta("total_revenue")

    @property
    def orders_change(self) -> float:
        return self.delta("total_orders")

    @property
    def items_change(self) -> float:
        return self.delta("total_items")

    @property
    def combined_revenue_change(self) -> float:
        return self.delta("combined_revenue")


@dataclass(frozen=True)
class ChannelSalesMetrics:
    """Sales for a location selling in-store and through delivery partners."""

    window: DateWindow
    total_revenue: int
    instore_revenue: int
    total_delivery_revenue: int
    instore_order_count: int
    channel_revenue: dict[str, int]
    avg_daily_revenue: float
    days_with_data: int


@dataclass(frozen=True)
class ChannelSalesWithComparison:
    current: ChannelSalesMetrics
    previous: ChannelSalesMetrics

    def delta(self, name: str) -> float:
        return percentage_delta(getattr(self.current, name), getattr(self.previous, name))

    def channel_delta(self, channel: str) -> float:
        return percentage_delta(
            self.current.channel_revenue.get(channel, 0),
            self.previous.channel_revenue.get(channel, 0),
        )


@dataclass(frozen=True)
class ChannelRevenuePoint:
    business_date: date
    instore_revenue: int
    instore_order_count: int
    channel_revenue: dict[str, int]

    @property
    def total_delivery_revenue(self) -> int:
        return sum(self.channel_revenue.values())

    @property
    def total_revenue(self) -> int:
        return self.instore_revenue + self.total_delivery_revenue
