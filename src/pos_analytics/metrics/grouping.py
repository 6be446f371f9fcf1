"""Grouping and ranking helpers shared by every metric computation.

All rankings (top items, category breakdown, per-day top items) go through
:func:`group_sum`, so grouping order, tie-breaking and truncation behave the
same everywhere.
"""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from pos_analytics.exceptions import DataQualityError


def require_columns(df: pd.DataFrame, columns: Sequence[str], name: str) -> None:
    """Raise DataQualityError if ``df`` lacks any of ``columns``."""
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise DataQualityError(
            f"Missing required columns in {name}: {missing}. Required: {list(columns)}"
        )


def group_sum(
    df: pd.DataFrame,
    key: str,
    sum_columns: Sequence[str],
    rank_by: str | None = None,
    limit: int | None = None,
    count_column: str | None = None,
) -> pd.DataFrame:
    """Group by ``key``, sum numeric columns, rank descending, truncate.

    Groups keep the order of their first appearance in ``df``; ranking uses a
    stable sort, so ties stay in that order.

    Args:
        df: Input rows.
        key: Column to group by.
        sum_columns: Numeric columns to sum per group.
        rank_by: Column to sort by, descending. No sorting if None.
        limit: Keep at most this many groups after ranking.
        count_column: If given, add a column with the row count per group.

    Returns:
        DataFrame with ``key``, the summed columns and the optional count.

    Raises:
        DataQualityError: If ``key`` or a sum column is missing.

    Examples:
        >>> df = pd.DataFrame({"item": ["a", "b", "a"], "qty": [1, 5, 2]})
        >>> group_sum(df, "item", ["qty"], rank_by="qty").to_dict("records")
        [{'item': 'b', 'qty': 5}, {'item': 'a', 'qty': 3}]
    """
    require_columns(df, [key, *sum_columns], "group_sum input")
    out_columns = [key, *sum_columns] + ([count_column] if count_column else [])
    if df.empty:
        return pd.DataFrame(columns=out_columns)

    work = df[[key, *sum_columns]].copy()
    for col in sum_columns:
        work[col] = pd.to_numeric(work[col], errors="coerce").fillna(0).astype("int64")

    grouped = work.groupby(key, sort=False)
    result = grouped[list(sum_columns)].sum()
    if count_column:
        result[count_column] = grouped.size()
    result = result.reset_index()

    if rank_by is not None:
        result = result.sort_values(rank_by, ascending=False, kind="mergesort")
    if limit is not None:
        result = result.head(limit)
    return result[out_columns].reset_index(drop=True)


def percentage_delta(current: float, previous: float) -> float:
    """Percentage change from previous to current.

    Returns exactly 0.0 when ``previous`` is 0, for any ``current``. This is a
    floor, not a claim that nothing changed: there is no baseline to divide by.

    Examples:
        >>> percentage_delta(150, 100)
        50.0
        >>> percentage_delta(500, 0)
        0.0
    """
    if not previous:
        return 0.0
    return (current - previous) / previous * 100


def daily_totals(df: pd.DataFrame, date_column: str, value_column: str) -> pd.Series:
    """Sum ``value_column`` per date; dates without rows are absent, not 0."""
    require_columns(df, [date_column, value_column], "daily_totals input")
    if df.empty:
        return pd.Series(dtype="int64", name=value_column)
    values = pd.to_numeric(df[value_column], errors="coerce").fillna(0).astype("int64")
    return values.groupby(df[date_column]).sum()


def align_by_date(left: pd.Series, right: pd.Series, left_name: str, right_name: str) -> pd.DataFrame:
    """Outer-align two per-date series.

    The result keeps NaN where a stream has no record for a date, so each
    stream's own day count stays recoverable with ``.count()``. The
    ``combined`` column treats absence as 0.

    Returns:
        DataFrame indexed by date with ``left_name``, ``right_name`` and
        ``combined`` columns, sorted by date.
    """
    frame = pd.concat([left.rename(left_name), right.rename(right_name)], axis=1)
    frame = frame.sort_index()
    frame["combined"] = frame[[left_name, right_name]].fillna(0).sum(axis=1).astype("int64")
    return frame
