"""Analytics query façade.

Named queries over the store, each accepting a window selection: a
:class:`DateWindow`, a trailing day count (``7``), a preset (``"7d"``) or an
explicit ``(start, end)`` pair. Every query reads through :meth:`load_frames`,
which is where closed-day rows are dropped; nothing downstream repeats the
rule.

Money stays in integer currency units here. Display strings are produced by
:mod:`pos_analytics.formatting` at the edges (assistant tools, CLI).

Example:
    >>> service = AnalyticsService(gateway, BusinessCalendar())
    >>> summary = service.sales_summary(7)
    >>> print(summary.current.total_revenue, summary.revenue_change)
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import pandas as pd

from pos_analytics.business_calendar import BusinessCalendar, DateWindow
from pos_analytics.config import AppConfig
from pos_analytics.metrics import aggregate
from pos_analytics.metrics.types import (
    CategoryShare,
    ChannelRevenuePoint,
    ChannelSalesMetrics,
    ChannelSalesWithComparison,
    CombinedRevenuePoint,
    Metrics,
    MetricsWithComparison,
    RevenuePoint,
    TopItem,
    WindowFrames,
)
from pos_analytics.store.gateway import ORDER_COLUMNS, StoreGateway

logger = logging.getLogger(__name__)

WindowSelection = DateWindow | int | str | tuple

_RECENT_ORDERS_PAGE = 50


@dataclass
class DashboardData:
    """Everything the main dashboard renders for one window."""

    summary: MetricsWithComparison
    revenue_trend: list[RevenuePoint]
    top_items: list[TopItem]
    categories: list[CategoryShare]
    recent_orders: pd.DataFrame
    combined_trend: list[CombinedRevenuePoint]


class AnalyticsService:
    """Read-only analytics over one store.

    Args:
        gateway: Store gateway to read from.
        calendar: Business calendar; its closed weekday is applied to every
            stream.
        config: Application config; supplies the closed weekday when no
            calendar is given.
    """

    def __init__(
        self,
        gateway: StoreGateway,
        calendar: BusinessCalendar | None = None,
        config: AppConfig | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.gateway = gateway
        self.calendar = calendar or BusinessCalendar(closed_weekday=self.config.closed_weekday)

    def resolve(self, selection: WindowSelection) -> DateWindow:
        """Turn any accepted window selection into a DateWindow."""
        if isinstance(selection, DateWindow):
            return selection
        if isinstance(selection, int) and not isinstance(selection, bool):
            return self.calendar.trailing_window(selection)
        return self.calendar.resolve_window(selection)

    def load_frames(self, selection: WindowSelection, counted_only: bool = True) -> WindowFrames:
        """Read every stream for a window.

        Args:
            selection: Window selection.
            counted_only: Drop rows dated on the closed weekday. Only the
                data-coverage QA reads with ``False``.

        Returns:
            WindowFrames for the window.
        """
        window = self.resolve(selection)
        frames = WindowFrames(
            window=window,
            orders=self.gateway.read_orders(window.start, window.end),
            items=self.gateway.read_order_items(window.start, window.end),
            splits=self.gateway.read_revenue_splits(window.start, window.end),
            delivery=self.gateway.read_delivery_sales(window.start, window.end),
            channel_sales=self.gateway.read_channel_sales(window.start, window.end),
        )
        if not counted_only:
            return frames
        return WindowFrames(
            window=window,
            orders=self.calendar.filter_counted(frames.orders, "business_date"),
            items=self.calendar.filter_counted(frames.items, "business_date"),
            splits=self.calendar.filter_counted(frames.splits, "business_date"),
            delivery=self.calendar.filter_counted(frames.delivery, "business_date"),
            channel_sales=self.calendar.filter_counted(frames.channel_sales, "business_date"),
        )

    # ------------------------------------------------------------------
    # Base POS stream
    # ------------------------------------------------------------------

    def sales_summary(
        self, selection: WindowSelection, compare: bool = True
    ) -> Metrics | MetricsWithComparison:
        """Metrics for a window, with the preceding window when ``compare``."""
        window = self.resolve(selection)
        frames = self.load_frames(window)
        if not compare:
            return aggregate.compute_metrics(frames, calendar=self.calendar)
        previous = self.load_frames(self.calendar.comparison_window(window))
        return aggregate.compute_metrics(frames, previous, calendar=self.calendar)

    def top_items(self, selection: WindowSelection, limit: int = 10) -> list[TopItem]:
        return aggregate.top_items(self.load_frames(selection), limit=limit)

    def category_breakdown(
        self, selection: WindowSelection, limit: int | None = None, rank_by: str = "revenue"
    ) -> list[CategoryShare]:
        return aggregate.category_breakdown(self.load_frames(selection), limit=limit, rank_by=rank_by)

    def daily_revenue(self, selection: WindowSelection, top_n: int = 3) -> list[RevenuePoint]:
        return aggregate.revenue_trend(self.load_frames(selection), top_n=top_n)

    def combined_daily_revenue(self, selection: WindowSelection) -> list[CombinedRevenuePoint]:
        return aggregate.combined_revenue_trend(self.load_frames(selection))

    def recent_orders(self, limit: int = 10) -> pd.DataFrame:
        """Most recent orders on counted days, newest first.

        Pages through the order history until ``limit`` counted-day orders are
        collected or the history is exhausted.
        """
        if limit < 1:
            return pd.DataFrame(columns=ORDER_COLUMNS)
        collected: list[pd.DataFrame] = []
        found = 0
        offset = 0
        page_size = max(limit, _RECENT_ORDERS_PAGE)
        while found < limit:
            page = self.gateway.read_recent_orders(page_size, offset=offset)
            if page.empty:
                break
            counted = self.calendar.filter_counted(page, "business_date")
            collected.append(counted)
            found += len(counted)
            offset += len(page)
            if len(page) < page_size:
                break
        if not collected:
            return pd.DataFrame(columns=ORDER_COLUMNS)
        return pd.concat(collected, ignore_index=True).head(limit)

    # ------------------------------------------------------------------
    # Multi-channel location
    # ------------------------------------------------------------------

    def channel_summary(
        self, selection: WindowSelection, compare: bool = True
    ) -> ChannelSalesMetrics | ChannelSalesWithComparison:
        window = self.resolve(selection)
        frames = self.load_frames(window)
        if not compare:
            return aggregate.compute_channel_metrics(frames)
        previous = self.load_frames(self.calendar.comparison_window(window))
        return aggregate.compute_channel_metrics(frames, previous)

    def channel_daily_revenue(self, selection: WindowSelection) -> list[ChannelRevenuePoint]:
        return aggregate.channel_revenue_trend(self.load_frames(selection))

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def dashboard(
        self,
        selection: WindowSelection,
        recent_limit: int = 10,
        max_workers: int = 5,
    ) -> DashboardData:
        """Run the dashboard queries for a window concurrently.

        Window frames are read up front; the metric computations then run in
        a thread pool over those in-memory frames. The recent-orders query is
        the only task that touches the store.
        """
        window = self.resolve(selection)
        frames = self.load_frames(window)
        previous = self.load_frames(self.calendar.comparison_window(window))

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            summary = pool.submit(aggregate.compute_metrics, frames, previous, self.calendar)
            trend = pool.submit(aggregate.revenue_trend, frames)
            items = pool.submit(aggregate.top_items, frames, 10)
            categories = pool.submit(aggregate.category_breakdown, frames)
            recent = pool.submit(self.recent_orders, recent_limit)
            combined = pool.submit(aggregate.combined_revenue_trend, frames)

            data = DashboardData(
                summary=summary.result(),
                revenue_trend=trend.result(),
                top_items=items.result(),
                categories=categories.result(),
                recent_orders=recent.result(),
                combined_trend=combined.result(),
            )
        logger.info(
            "Dashboard %s (%s..%s): revenue %d over %d order day(s)",
            window.label,
            window.start,
            window.end,
            data.summary.current.total_revenue,
            data.summary.current.total_orders,
        )
        return data
