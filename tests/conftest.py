"""Shared fixtures: in-memory store, fixed calendar, sample payloads.

Dates used throughout the tests (December 2025):
    Mon 1, Tue 2, Wed 3, Thu 4, Fri 5, Sat 6, Sun 7 (closed)
"""

from datetime import date

import pytest

from pos_analytics.analytics import AnalyticsService
from pos_analytics.business_calendar import BusinessCalendar
from pos_analytics.config import AppConfig
from pos_analytics.store import (
    StoreGateway,
    create_engine_from_config,
    create_session_factory,
    init_schema,
)

SATURDAY = date(2025, 12, 6)
SUNDAY = date(2025, 12, 7)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(database_url="sqlite://")


@pytest.fixture
def engine(config):
    engine = create_engine_from_config(config)
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def gateway(session_factory, config) -> StoreGateway:
    return StoreGateway(session_factory, config.location, config.channel_location)


@pytest.fixture
def calendar() -> BusinessCalendar:
    """Calendar whose "today" is Saturday 2025-12-06."""
    return BusinessCalendar(closed_weekday=6, today=lambda: SATURDAY)


@pytest.fixture
def service(gateway, calendar, config) -> AnalyticsService:
    return AnalyticsService(gateway, calendar, config)


def make_receipt(*lines, total_amount=None, item_count=None) -> dict:
    """Build a raw receipt payload from (name, quantity, unit_price, category) tuples."""
    items = [
        {
            "name": name,
            "quantity": quantity,
            "unit_price": unit_price,
            "total_price": quantity * unit_price,
            "category": category,
        }
        for name, quantity, unit_price, category in lines
    ]
    computed = sum(item["total_price"] for item in items)
    return {
        "items": items,
        "total_amount": computed if total_amount is None else total_amount,
        "item_count": sum(item["quantity"] for item in items) if item_count is None else item_count,
    }
