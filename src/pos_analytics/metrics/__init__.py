"""Aggregation engine over counted-day window frames."""

from pos_analytics.metrics.aggregate import (
    category_breakdown,
    channel_revenue_trend,
    combined_revenue_trend,
    compute_channel_metrics,
    compute_metrics,
    daypart_split,
    delivery_totals,
    revenue_trend,
    top_items,
)
from pos_analytics.metrics.grouping import align_by_date, group_sum, percentage_delta
from pos_analytics.metrics.types import Metrics, MetricsWithComparison, WindowFrames

__all__ = [
    "Metrics",
    "MetricsWithComparison",
    "WindowFrames",
    "align_by_date",
    "category_breakdown",
    "channel_revenue_trend",
    "combined_revenue_trend",
    "compute_channel_metrics",
    "compute_metrics",
    "daypart_split",
    "delivery_totals",
    "group_sum",
    "percentage_delta",
    "revenue_trend",
    "top_items",
]
