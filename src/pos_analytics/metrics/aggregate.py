"""Metric computations over :class:`~pos_analytics.metrics.types.WindowFrames`.

Every function here is a pure pandas computation. The frames passed in are
already limited to one window and to counted days (see
:meth:`pos_analytics.analytics.AnalyticsService.load_frames`), so nothing in
this module knows about the closed weekday.

Revenue comes from the order headers (``orders.total_amount``); quantities
come from line items. Sums tolerate partial data across streams, while each
average divides by the day count of its own stream.
"""

from __future__ import annotations

import logging

import pandas as pd

from pos_analytics.business_calendar import BusinessCalendar
from pos_analytics.config import DELIVERY_CHANNELS
from pos_analytics.metrics.grouping import align_by_date, daily_totals, group_sum, require_columns
from pos_analytics.metrics.types import (
    CategoryShare,
    ChannelRevenuePoint,
    ChannelSalesMetrics,
    ChannelSalesWithComparison,
    CombinedRevenuePoint,
    DaypartSplit,
    DeliveryTotals,
    Metrics,
    MetricsWithComparison,
    RevenuePoint,
    TopItem,
    WindowFrames,
)
from pos_analytics.utils import round_half_away

logger = logging.getLogger(__name__)

DELIVERY_CHANNEL = "delivery"


def _int_sum(df: pd.DataFrame, column: str) -> int:
    if df.empty:
        return 0
    return int(pd.to_numeric(df[column], errors="coerce").fillna(0).sum())


def _counted_days(frames: WindowFrames, calendar: BusinessCalendar | None) -> int:
    calendar = calendar or BusinessCalendar()
    return calendar.business_days_count(frames.window.start, frames.window.end)


def _to_top_items(ranked: pd.DataFrame) -> list[TopItem]:
    return [
        TopItem(name=row.item_name, quantity=int(row.quantity), revenue=int(row.line_total))
        for row in ranked.itertuples(index=False)
    ]


# ----------------------------------------------------------------------
# Base POS stream
# ----------------------------------------------------------------------


def compute_metrics(
    frames: WindowFrames,
    comparison: WindowFrames | None = None,
    calendar: BusinessCalendar | None = None,
) -> Metrics | MetricsWithComparison:
    """Compute the metrics bundle for a window, optionally with a comparison.

    Args:
        frames: Frames for the primary window.
        comparison: Frames for the comparison window. If given, the result is
            a :class:`MetricsWithComparison`.
        calendar: BusinessCalendar used for ``counted_days``; defaults to a
            Sunday-closed calendar.

    Returns:
        Metrics, or MetricsWithComparison when ``comparison`` is given.
    """
    current = _compute_single(frames, calendar)
    if comparison is None:
        return current
    return MetricsWithComparison(current=current, previous=_compute_single(comparison, calendar))


def _compute_single(frames: WindowFrames, calendar: BusinessCalendar | None) -> Metrics:
    require_columns(frames.orders, ["business_date", "total_amount"], "orders")
    require_columns(frames.items, ["business_date", "item_name", "quantity", "line_total"], "items")

    total_revenue = _int_sum(frames.orders, "total_amount")
    # One order per (location, date): the order count is the number of days
    # with an order row.
    total_orders = int(frames.orders["business_date"].nunique()) if not frames.orders.empty else 0
    total_items = _int_sum(frames.items, "quantity")

    average_sale_value = total_revenue / total_orders if total_orders else 0.0
    average_value_per_item = total_revenue / total_items if total_items else 0.0
    average_items_per_day = total_items / max(1, total_orders)

    ranked = top_items(frames, limit=1)
    metrics = Metrics(
        window=frames.window,
        total_revenue=total_revenue,
        total_orders=total_orders,
        total_items=total_items,
        average_sale_value=average_sale_value,
        average_value_per_item=average_value_per_item,
        average_items_per_day=average_items_per_day,
        counted_days=_counted_days(frames, calendar),
        top_item=ranked[0] if ranked else None,
        dayparts=daypart_split(frames),
        delivery=delivery_totals(frames),
    )
    logger.debug(
        "Metrics %s..%s: revenue=%d orders=%d items=%d",
        frames.window.start,
        frames.window.end,
        total_revenue,
        total_orders,
        total_items,
    )
    return metrics


def top_items(frames: WindowFrames, limit: int | None = 10) -> list[TopItem]:
    """Items ranked by quantity sold; ties keep first-appearance order."""
    ranked = group_sum(
        frames.items,
        key="item_name",
        sum_columns=["quantity", "line_total"],
        rank_by="quantity",
        limit=limit,
    )
    return _to_top_items(ranked)


def category_breakdown(
    frames: WindowFrames,
    limit: int | None = None,
    rank_by: str = "revenue",
) -> list[CategoryShare]:
    """Quantity, revenue and line count per category.

    Args:
        frames: Window frames.
        limit: Keep at most this many categories.
        rank_by: "revenue" or "quantity".

    Returns:
        Categories ranked descending. ``share_of_revenue`` uses the revenue of
        all categories as denominator, including any cut off by ``limit``.
    """
    if rank_by not in ("revenue", "quantity"):
        raise ValueError(f"rank_by must be 'revenue' or 'quantity', got {rank_by!r}")
    column = {"revenue": "line_total", "quantity": "quantity"}[rank_by]
    grouped = group_sum(
        frames.items,
        key="category",
        sum_columns=["quantity", "line_total"],
        rank_by=column,
        count_column="line_count",
    )
    total = int(grouped["line_total"].sum()) if not grouped.empty else 0
    if limit is not None:
        grouped = grouped.head(limit)
    return [
        CategoryShare(
            category=row.category,
            quantity=int(row.quantity),
            revenue=int(row.line_total),
            line_count=int(row.line_count),
            share_of_revenue=(int(row.line_total) / total * 100) if total else 0.0,
        )
        for row in grouped.itertuples(index=False)
    ]


def revenue_trend(frames: WindowFrames, top_n: int = 3) -> list[RevenuePoint]:
    """One point per counted day with an order, in date order.

    The series is sparse: closed days and days without an upload do not
    appear. Zero-filling is left to the presentation layer.
    """
    if frames.orders.empty:
        return []

    revenue = daily_totals(frames.orders, "business_date", "total_amount")
    orders = frames.orders.groupby("business_date").size()
    items_sold = daily_totals(frames.items, "business_date", "quantity")

    points = []
    for day in sorted(revenue.index):
        day_revenue = int(revenue[day])
        day_items = int(items_sold.get(day, 0))
        day_lines = frames.items.loc[frames.items["business_date"] == day]
        ranked = group_sum(
            day_lines,
            key="item_name",
            sum_columns=["quantity", "line_total"],
            rank_by="quantity",
            limit=top_n,
        )
        points.append(
            RevenuePoint(
                business_date=day,
                revenue=day_revenue,
                orders=int(orders[day]),
                items_sold=day_items,
                avg_value_per_item=round_half_away(day_revenue / day_items) if day_items else 0,
                top_items=tuple(_to_top_items(ranked)),
            )
        )
    return points


# ----------------------------------------------------------------------
# Transaction-history and delivery streams
# ----------------------------------------------------------------------


def daypart_split(frames: WindowFrames) -> DaypartSplit:
    """Lunch/dinner totals from transaction-history splits.

    A day counts for a daypart only when that daypart had transactions. A
    day without an upload counts for neither.
    """
    splits = frames.splits
    if splits.empty:
        return DaypartSplit()
    require_columns(
        splits,
        ["business_date", "lunch_revenue", "lunch_count", "dinner_revenue", "dinner_count"],
        "splits",
    )
    lunch_count = pd.to_numeric(splits["lunch_count"], errors="coerce").fillna(0)
    dinner_count = pd.to_numeric(splits["dinner_count"], errors="coerce").fillna(0)
    return DaypartSplit(
        lunch_revenue=_int_sum(splits, "lunch_revenue"),
        lunch_count=int(lunch_count.sum()),
        lunch_days=int(splits.loc[lunch_count > 0, "business_date"].nunique()),
        dinner_revenue=_int_sum(splits, "dinner_revenue"),
        dinner_count=int(dinner_count.sum()),
        dinner_days=int(splits.loc[dinner_count > 0, "business_date"].nunique()),
        days_with_data=int(splits["business_date"].nunique()),
    )


def delivery_totals(frames: WindowFrames) -> DeliveryTotals:
    """Delivery revenue per channel for the window."""
    delivery = frames.delivery
    if delivery.empty:
        return DeliveryTotals()
    require_columns(delivery, ["business_date", "total_amount"], "delivery")
    return DeliveryTotals(
        channels={DELIVERY_CHANNEL: _int_sum(delivery, "total_amount")},
        days_with_data=int(delivery["business_date"].nunique()),
    )


def combined_revenue_trend(frames: WindowFrames) -> list[CombinedRevenuePoint]:
    """POS and delivery revenue aligned by date.

    Dates present in only one stream carry ``None`` for the other, so each
    stream's own averages are unaffected by the other's coverage.
    """
    pos = daily_totals(frames.orders, "business_date", "total_amount")
    delivery = daily_totals(frames.delivery, "business_date", "total_amount")
    if pos.empty and delivery.empty:
        return []
    aligned = align_by_date(pos, delivery, "pos", "delivery")
    return [
        CombinedRevenuePoint(
            business_date=day,
            pos_revenue=None if pd.isna(row["pos"]) else int(row["pos"]),
            delivery_revenue=None if pd.isna(row["delivery"]) else int(row["delivery"]),
        )
        for day, row in aligned.iterrows()
    ]


# ----------------------------------------------------------------------
# Multi-channel location
# ----------------------------------------------------------------------

_CHANNEL_REVENUE_COLUMNS = [f"{channel}_revenue" for channel in DELIVERY_CHANNELS]


def compute_channel_metrics(
    frames: WindowFrames,
    comparison: WindowFrames | None = None,
) -> ChannelSalesMetrics | ChannelSalesWithComparison:
    """Totals for a location selling in-store and through delivery partners."""
    current = _channel_single(frames)
    if comparison is None:
        return current
    return ChannelSalesWithComparison(current=current, previous=_channel_single(comparison))


def _channel_single(frames: WindowFrames) -> ChannelSalesMetrics:
    sales = frames.channel_sales
    require_columns(
        sales,
        ["business_date", "instore_revenue", "instore_order_count", *_CHANNEL_REVENUE_COLUMNS],
        "channel_sales",
    )
    channel_revenue = {
        channel: _int_sum(sales, f"{channel}_revenue") for channel in DELIVERY_CHANNELS
    }
    instore_revenue = _int_sum(sales, "instore_revenue")
    total_delivery = sum(channel_revenue.values())
    total_revenue = instore_revenue + total_delivery
    days_with_data = int(sales["business_date"].nunique()) if not sales.empty else 0
    return ChannelSalesMetrics(
        window=frames.window,
        total_revenue=total_revenue,
        instore_revenue=instore_revenue,
        total_delivery_revenue=total_delivery,
        instore_order_count=_int_sum(sales, "instore_order_count"),
        channel_revenue=channel_revenue,
        avg_daily_revenue=total_revenue / days_with_data if days_with_data else 0.0,
        days_with_data=days_with_data,
    )


def channel_revenue_trend(frames: WindowFrames) -> list[ChannelRevenuePoint]:
    """One point per date with multi-channel sales, in date order."""
    sales = frames.channel_sales
    if sales.empty:
        return []
    sales = sales.sort_values("business_date", kind="mergesort")
    return [
        ChannelRevenuePoint(
            business_date=row["business_date"],
            instore_revenue=int(row["instore_revenue"] or 0),
            instore_order_count=int(row["instore_order_count"] or 0),
            channel_revenue={
                channel: int(row[f"{channel}_revenue"] or 0) for channel in DELIVERY_CHANNELS
            },
        )
        for _, row in sales.iterrows()
    ]
