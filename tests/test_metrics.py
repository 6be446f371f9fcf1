"""Tests for the aggregation engine over in-memory window frames."""

from datetime import date

import pandas as pd
import pytest

from pos_analytics.business_calendar import DateWindow
from pos_analytics.exceptions import DataQualityError
from pos_analytics.metrics import aggregate
from pos_analytics.metrics.grouping import align_by_date, group_sum, percentage_delta
from pos_analytics.metrics.types import Metrics, MetricsWithComparison, WindowFrames
from pos_analytics.store.gateway import (
    CHANNEL_COLUMNS,
    DELIVERY_COLUMNS,
    ITEM_COLUMNS,
    ORDER_COLUMNS,
    SPLIT_COLUMNS,
)

WEEK = DateWindow(date(2025, 12, 1), date(2025, 12, 6), "Week")


def d(day: int) -> date:
    return date(2025, 12, day)


def build_frames(window=WEEK, lines=(), delivery=(), splits=(), channel=()) -> WindowFrames:
    """Build frames from line tuples (day, item, category, quantity, unit_price).

    One order per day; its total is the sum of that day's lines.
    """
    items = pd.DataFrame(
        [
            (i + 1, day.toordinal(), day, name, category, quantity, unit_price, quantity * unit_price)
            for i, (day, name, category, quantity, unit_price) in enumerate(lines)
        ],
        columns=ITEM_COLUMNS,
    )
    if items.empty:
        orders = pd.DataFrame(columns=ORDER_COLUMNS)
    else:
        per_day = items.groupby("business_date", sort=True).agg(
            total_amount=("line_total", "sum"), item_count=("quantity", "sum")
        )
        orders = pd.DataFrame(
            [
                (n, day, int(row.total_amount), int(row.item_count), f"{day}.jpg")
                for n, (day, row) in enumerate(per_day.iterrows(), start=1)
            ],
            columns=ORDER_COLUMNS,
        )
    return WindowFrames(
        window=window,
        orders=orders,
        items=items,
        splits=pd.DataFrame(
            [(day, lr, lc, dr, dc, lr + dr, lc + dc) for day, lr, lc, dr, dc in splits],
            columns=SPLIT_COLUMNS,
        ),
        delivery=pd.DataFrame([(day, amount, None) for day, amount in delivery], columns=DELIVERY_COLUMNS),
        channel_sales=pd.DataFrame(list(channel), columns=CHANNEL_COLUMNS),
    )


class TestGroupSum:
    def test_ranks_descending_with_stable_ties(self) -> None:
        df = pd.DataFrame({"item": ["a", "b", "c", "b", "d"], "qty": [2, 1, 3, 1, 2]})
        result = group_sum(df, "item", ["qty"], rank_by="qty")
        # a, b and d all sum to 2; they keep first-appearance order
        assert result["item"].tolist() == ["c", "a", "b", "d"]

    def test_truncates_after_ranking(self) -> None:
        df = pd.DataFrame({"item": ["a", "b", "c"], "qty": [1, 3, 2]})
        assert group_sum(df, "item", ["qty"], rank_by="qty", limit=2)["item"].tolist() == ["b", "c"]

    def test_counts_rows_per_group(self) -> None:
        df = pd.DataFrame({"cat": ["x", "y", "x"], "rev": [10, 20, 30]})
        result = group_sum(df, "cat", ["rev"], count_column="lines")
        assert result.to_dict("records") == [
            {"cat": "x", "rev": 40, "lines": 2},
            {"cat": "y", "rev": 20, "lines": 1},
        ]

    def test_empty_input_keeps_columns(self) -> None:
        df = pd.DataFrame(columns=["item", "qty"])
        result = group_sum(df, "item", ["qty"], rank_by="qty", count_column="n")
        assert result.empty
        assert list(result.columns) == ["item", "qty", "n"]

    def test_missing_column_raises(self) -> None:
        with pytest.raises(DataQualityError):
            group_sum(pd.DataFrame({"item": ["a"]}), "item", ["qty"])


class TestPercentageDelta:
    @pytest.mark.parametrize("current", [0, 1, 500, -20])
    def test_zero_previous_is_zero(self, current) -> None:
        assert percentage_delta(current, 0) == 0.0

    def test_regular_change(self) -> None:
        assert percentage_delta(150, 100) == 50.0
        assert percentage_delta(50, 100) == -50.0


def test_align_by_date_keeps_absence_and_sums() -> None:
    pos = pd.Series({d(1): 100, d(2): 200})
    delivery = pd.Series({d(2): 50, d(3): 70})
    aligned = align_by_date(pos, delivery, "pos", "delivery")
    assert aligned["combined"].tolist() == [100, 250, 70]
    assert aligned["pos"].count() == 2
    assert aligned["delivery"].count() == 2


class TestComputeMetrics:
    def test_basic_totals_and_averages(self) -> None:
        frames = build_frames(
            lines=[
                (d(1), "팟타이꿍", "식사류", 2, 13000),
                (d(1), "땡모반", "음료수류", 2, 6000),
                (d(2), "팟타이꿍", "식사류", 4, 13000),
            ]
        )
        metrics = aggregate.compute_metrics(frames)

        assert isinstance(metrics, Metrics)
        assert metrics.total_revenue == 90000
        assert metrics.total_orders == 2
        assert metrics.total_items == 8
        assert metrics.average_sale_value == 45000
        assert metrics.average_value_per_item == 11250
        assert metrics.average_items_per_day == 4
        assert metrics.counted_days == 6
        assert metrics.top_item.name == "팟타이꿍"
        assert metrics.top_item.quantity == 6

    def test_empty_window(self) -> None:
        metrics = aggregate.compute_metrics(WindowFrames.empty(WEEK))
        assert metrics.total_revenue == 0
        assert metrics.total_orders == 0
        assert metrics.average_sale_value == 0
        assert metrics.average_value_per_item == 0
        assert metrics.average_items_per_day == 0
        assert metrics.top_item is None
        assert metrics.combined_revenue == 0

    def test_items_per_day_divides_by_days_with_orders(self) -> None:
        # Seven counted days ending Saturday Dec 6 span Sunday Nov 30; only
        # Monday-Wednesday have orders.
        window = DateWindow(date(2025, 11, 29), d(6))
        frames = build_frames(
            window=window,
            lines=[(d(day), "짜조", "사이드메뉴", 3, 6000) for day in (1, 2, 3)],
        )
        metrics = aggregate.compute_metrics(frames)
        assert metrics.counted_days == 7
        assert metrics.total_orders == 3
        assert metrics.average_items_per_day == 3

    def test_top_item_ties_keep_first_appearance(self) -> None:
        frames = build_frames(
            lines=[
                (d(1), "쏨땀", "사이드메뉴", 2, 9000),
                (d(1), "팟타이꿍", "식사류", 3, 13000),
                (d(2), "쏨땀", "사이드메뉴", 1, 9000),
            ]
        )
        assert aggregate.compute_metrics(frames).top_item.name == "쏨땀"

    def test_comparison_deltas(self) -> None:
        current = build_frames(lines=[(d(1), "짜조", "사이드메뉴", 3, 10000)])
        previous = build_frames(
            window=DateWindow(date(2025, 11, 25), date(2025, 11, 30)),
            lines=[(date(2025, 11, 25), "짜조", "사이드메뉴", 2, 10000)],
        )
        result = aggregate.compute_metrics(current, previous)

        assert isinstance(result, MetricsWithComparison)
        assert result.revenue_change == 50.0
        assert result.items_change == 50.0
        assert result.orders_change == 0.0

    def test_comparison_against_empty_period_is_zero(self) -> None:
        current = build_frames(lines=[(d(1), "짜조", "사이드메뉴", 3, 10000)])
        previous = WindowFrames.empty(DateWindow(date(2025, 11, 25), date(2025, 11, 30)))
        result = aggregate.compute_metrics(current, previous)
        assert result.revenue_change == 0.0
        assert result.delta("total_items") == 0.0


class TestRankings:
    def test_top_items_by_quantity(self) -> None:
        frames = build_frames(
            lines=[
                (d(1), "팟타이꿍", "식사류", 1, 13000),
                (d(1), "땡모반", "음료수류", 5, 6000),
                (d(2), "짜조", "사이드메뉴", 2, 6000),
            ]
        )
        top = aggregate.top_items(frames, limit=2)
        assert [(item.name, item.quantity, item.revenue) for item in top] == [
            ("땡모반", 5, 30000),
            ("짜조", 2, 12000),
        ]

    def test_category_share_uses_untruncated_total(self) -> None:
        frames = build_frames(
            lines=[
                (d(1), "팟타이꿍", "식사류", 5, 12000),
                (d(1), "짜조", "사이드메뉴", 5, 6000),
                (d(1), "땡모반", "음료수류", 5, 4000),
            ]
        )
        top_one = aggregate.category_breakdown(frames, limit=1)
        assert len(top_one) == 1
        assert top_one[0].category == "식사류"
        assert top_one[0].revenue == 60000
        assert top_one[0].share_of_revenue == pytest.approx(60000 / 110000 * 100)
        assert top_one[0].line_count == 1

    def test_category_breakdown_by_quantity(self) -> None:
        frames = build_frames(
            lines=[
                (d(1), "팟타이꿍", "식사류", 1, 13000),
                (d(1), "땡모반", "음료수류", 4, 6000),
            ]
        )
        ranked = aggregate.category_breakdown(frames, rank_by="quantity")
        assert [share.category for share in ranked] == ["음료수류", "식사류"]
        assert sum(share.share_of_revenue for share in ranked) == pytest.approx(100)

    def test_category_breakdown_rejects_unknown_ranking(self) -> None:
        with pytest.raises(ValueError):
            aggregate.category_breakdown(WindowFrames.empty(WEEK), rank_by="margin")


class TestRevenueTrend:
    def test_sparse_series_with_daily_top_items(self) -> None:
        frames = build_frames(
            lines=[
                (d(3), "팟타이꿍", "식사류", 2, 13000),
                (d(1), "짜조", "사이드메뉴", 1, 6000),
                (d(1), "땡모반", "음료수류", 2, 6000),
                (d(1), "쏨땀", "사이드메뉴", 1, 9000),
                (d(1), "팟씨유", "식사류", 3, 12000),
            ]
        )
        trend = aggregate.revenue_trend(frames)

        assert [point.business_date for point in trend] == [d(1), d(3)]
        first = trend[0]
        assert first.revenue == 6000 + 12000 + 9000 + 36000
        assert first.items_sold == 7
        assert first.orders == 1
        assert first.avg_value_per_item == 9000
        assert [item.name for item in first.top_items] == ["팟씨유", "땡모반", "짜조"]

    def test_average_value_per_item_is_rounded(self) -> None:
        frames = build_frames(
            lines=[(d(2), "짜조", "사이드메뉴", 1, 6000), (d(2), "쏨땀", "사이드메뉴", 2, 4501)]
        )
        assert aggregate.revenue_trend(frames)[0].avg_value_per_item == 5001

    def test_empty_window_has_no_points(self) -> None:
        assert aggregate.revenue_trend(WindowFrames.empty(WEEK)) == []


class TestOtherStreams:
    def test_daypart_days_are_counted_independently(self) -> None:
        frames = build_frames(
            splits=[
                (d(1), 100000, 10, 200000, 12),
                (d(2), 0, 0, 150000, 9),
                (d(3), 80000, 7, 0, 0),
            ]
        )
        split = aggregate.daypart_split(frames)
        assert split.lunch_revenue == 180000
        assert split.dinner_revenue == 350000
        assert (split.lunch_days, split.dinner_days, split.days_with_data) == (2, 2, 3)
        assert split.average_lunch_revenue == 90000
        assert split.average_dinner_revenue == 175000

    def test_combined_revenue_with_delivery_only_date(self) -> None:
        frames = build_frames(
            lines=[(d(1), "짜조", "사이드메뉴", 10, 10000), (d(2), "짜조", "사이드메뉴", 20, 10000)],
            delivery=[(d(2), 50000), (d(4), 70000)],
        )
        points = {point.business_date: point for point in aggregate.combined_revenue_trend(frames)}

        assert points[d(4)].pos_revenue is None
        assert points[d(4)].combined_revenue == 70000
        assert points[d(2)].combined_revenue == 250000
        assert points[d(1)].delivery_revenue is None

        metrics = aggregate.compute_metrics(frames)
        # POS averages ignore the delivery-only date
        assert metrics.total_orders == 2
        assert metrics.average_sale_value == 150000
        assert metrics.delivery.total == 120000
        assert metrics.delivery.days_with_data == 2
        assert metrics.combined_revenue == 420000

    def test_channel_metrics_and_trend(self) -> None:
        frames = build_frames(
            channel=[
                (d(2), 300000, 25, 40000, 20000, 0),
                (d(1), 400000, 30, 50000, 30000, 10000),
            ]
        )
        metrics = aggregate.compute_channel_metrics(frames)
        assert metrics.instore_revenue == 700000
        assert metrics.channel_revenue == {"coupang": 90000, "baemin": 50000, "panda": 10000}
        assert metrics.total_delivery_revenue == 150000
        assert metrics.total_revenue == 850000
        assert metrics.instore_order_count == 55
        assert metrics.days_with_data == 2
        assert metrics.avg_daily_revenue == 425000

        trend = aggregate.channel_revenue_trend(frames)
        assert [point.business_date for point in trend] == [d(1), d(2)]
        assert trend[0].total_revenue == 490000

    def test_channel_comparison(self) -> None:
        current = build_frames(channel=[(d(1), 100, 1, 200, 0, 0)])
        previous = build_frames(channel=[(d(2), 100, 1, 100, 0, 0)])
        result = aggregate.compute_channel_metrics(current, previous)
        assert result.channel_delta("coupang") == 100.0
        assert result.channel_delta("baemin") == 0.0
        assert result.delta("total_revenue") == 50.0
