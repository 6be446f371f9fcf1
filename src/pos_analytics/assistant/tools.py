"""Read-only tool surface for the analytics assistant.

The assistant may call exactly the four tools in :data:`TOOL_DEFINITIONS`.
Any other name, including ingestion and upsert operations, is refused with
:class:`ToolNotAllowedError` before anything touches the store.

Every result carries money as display strings (``"₩12,345"``) and enough
day-count context (``period``, ``daysInPeriod``, ``daysWithSales``) for the
model to tell "no sales" from "no data".
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from pos_analytics.analytics import AnalyticsService
from pos_analytics.exceptions import ToolNotAllowedError, ValidationError
from pos_analytics.formatting import format_currency, format_percent
from pos_analytics.metrics import aggregate
from pos_analytics.metrics.types import WindowFrames
from pos_analytics.utils import round_half_away

logger = logging.getLogger(__name__)

MAX_DAYS = 366
MIN_LIMIT = 1
MAX_LIMIT = 50
DEFAULT_LIMIT = 10


def _days_parameter(description: str) -> dict[str, Any]:
    return {"type": "number", "description": description}


TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "get_sales_summary",
            "description": (
                "Get a summary of sales data including total revenue, orders, "
                "and items sold for a date range"
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "days": _days_parameter(
                        "Number of days to look back (e.g., 7 for last week, 30 for last month)"
                    ),
                },
                "required": ["days"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_top_items",
            "description": "Get the top selling menu items by quantity sold",
            "parameters": {
                "type": "object",
                "properties": {
                    "days": _days_parameter("Number of days to look back"),
                    "limit": {
                        "type": "number",
                        "description": f"Number of top items to return (default {DEFAULT_LIMIT}, max {MAX_LIMIT})",
                    },
                },
                "required": ["days"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_category_breakdown",
            "description": "Get sales breakdown by category (e.g., 식사류, 사이드메뉴, etc.)",
            "parameters": {
                "type": "object",
                "properties": {"days": _days_parameter("Number of days to look back")},
                "required": ["days"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_daily_revenue",
            "description": "Get daily revenue data to analyze trends",
            "parameters": {
                "type": "object",
                "properties": {"days": _days_parameter("Number of days to look back")},
                "required": ["days"],
            },
        },
    },
]

TOOL_NAMES = frozenset(tool["function"]["name"] for tool in TOOL_DEFINITIONS)


def validate_days(value: Any) -> int:
    """Coerce a tool's ``days`` argument to an int in 1..MAX_DAYS.

    Raises:
        ValidationError: If the value is missing, fractional or out of range.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError("days is required")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"days must be a number, got {value!r}") from e
    if not number.is_integer():
        raise ValidationError(f"days must be a whole number, got {value!r}")
    days = int(number)
    if not 1 <= days <= MAX_DAYS:
        raise ValidationError(f"days must be between 1 and {MAX_DAYS}, got {days}")
    return days


def validate_limit(value: Any) -> int:
    """Coerce ``limit`` to an int and clamp it to MIN_LIMIT..MAX_LIMIT."""
    if value is None:
        return DEFAULT_LIMIT
    if isinstance(value, bool):
        raise ValidationError(f"limit must be a number, got {value!r}")
    try:
        limit = int(float(value))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"limit must be a number, got {value!r}") from e
    return max(MIN_LIMIT, min(MAX_LIMIT, limit))


class AssistantToolbox:
    """Dispatches assistant tool calls to the analytics façade.

    Args:
        service: AnalyticsService to read from.
    """

    def __init__(self, service: AnalyticsService) -> None:
        self.service = service
        self.symbol = service.config.currency_symbol
        self._handlers: dict[str, Callable[[Mapping[str, Any]], dict[str, Any]]] = {
            "get_sales_summary": self._sales_summary,
            "get_top_items": self._top_items,
            "get_category_breakdown": self._category_breakdown,
            "get_daily_revenue": self._daily_revenue,
        }

    def execute(self, name: str, arguments: Mapping[str, Any] | str | None) -> dict[str, Any]:
        """Run one tool call.

        Args:
            name: Tool name requested by the model.
            arguments: Arguments as a mapping or the raw JSON string the model
                sent.

        Returns:
            JSON-serializable result.

        Raises:
            ToolNotAllowedError: If ``name`` is not one of the read-only tools.
            ValidationError: If the arguments are invalid.
        """
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("Refused tool call %r", name)
            raise ToolNotAllowedError(
                f"Tool {name!r} is not available; allowed tools: {sorted(TOOL_NAMES)}"
            )
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError as e:
                raise ValidationError(f"Tool arguments are not valid JSON: {e}") from e
        if not isinstance(arguments, Mapping):
            arguments = {}
        logger.info("Executing tool %s(%s)", name, dict(arguments))
        return handler(arguments)

    def _money(self, amount: float) -> str:
        return format_currency(amount, self.symbol)

    def _load(self, arguments: Mapping[str, Any]) -> tuple[int, WindowFrames]:
        days = validate_days(arguments.get("days"))
        return days, self.service.load_frames(days)

    def _context(self, days: int, frames: WindowFrames) -> dict[str, Any]:
        orders = frames.orders
        return {
            "period": f"Last {days} days",
            "daysInPeriod": self.service.calendar.business_days_count(
                frames.window.start, frames.window.end
            ),
            "daysWithSales": int(orders["business_date"].nunique()) if not orders.empty else 0,
        }

    def _sales_summary(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        days, frames = self._load(arguments)
        metrics = aggregate.compute_metrics(frames, calendar=self.service.calendar)
        return {
            **self._context(days, frames),
            "totalRevenue": self._money(metrics.total_revenue),
            "totalOrders": metrics.total_orders,
            "totalItems": metrics.total_items,
            "averageOrderValue": self._money(metrics.average_sale_value),
            "averageItemsPerDay": round_half_away(metrics.average_items_per_day),
            "topItem": metrics.top_item.name if metrics.top_item else None,
        }

    def _top_items(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        days, frames = self._load(arguments)
        limit = validate_limit(arguments.get("limit"))
        return {
            **self._context(days, frames),
            "items": [
                {"name": item.name, "quantitySold": item.quantity, "revenue": self._money(item.revenue)}
                for item in aggregate.top_items(frames, limit=limit)
            ],
        }

    def _category_breakdown(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        days, frames = self._load(arguments)
        return {
            **self._context(days, frames),
            "categories": [
                {
                    "category": share.category,
                    "itemsSold": share.quantity,
                    "revenue": self._money(share.revenue),
                    "percentOfRevenue": format_percent(share.share_of_revenue),
                }
                for share in aggregate.category_breakdown(frames, rank_by="quantity")
            ],
        }

    def _daily_revenue(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        days, frames = self._load(arguments)
        return {
            **self._context(days, frames),
            "days": [
                {
                    "date": point.business_date.isoformat(),
                    "revenue": self._money(point.revenue),
                    "itemsSold": point.items_sold,
                }
                for point in aggregate.revenue_trend(frames, top_n=0)
            ],
        }
