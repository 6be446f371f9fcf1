"""POS Analytics - restaurant sales ingestion, storage and analytics.

This package turns point-of-sale receipt and transaction-history uploads into
a relational store and computes sales metrics over business-day windows:

- **Ingestion**: vision extraction, normalization, dedupe-on-insert storage
- **Store**: one gateway per location over SQLAlchemy
- **Metrics**: pandas aggregations over counted days only
- **Assistant**: four read-only tools for a tool-calling chat model

Module Structure:
    pos_analytics.business_calendar: Counted days and date windows
    pos_analytics.ingestion: Extraction, normalization and the ingest pipeline
    pos_analytics.store: Models, engine lifecycle and the StoreGateway
    pos_analytics.metrics: Aggregation engine and result types
    pos_analytics.analytics: Query façade (AnalyticsService)
    pos_analytics.assistant: Tool definitions, toolbox and assistant
    pos_analytics.qa: Data-coverage checks
    pos_analytics.config: AppConfig

Quick Start:
    >>> from pos_analytics import AppConfig, AnalyticsService, BusinessCalendar
    >>> from pos_analytics.store import StoreGateway, create_engine_from_config
    >>> from pos_analytics.store import create_session_factory, init_schema
    >>>
    >>> config = AppConfig.from_env()
    >>> engine = create_engine_from_config(config)
    >>> init_schema(engine)
    >>> gateway = StoreGateway(create_session_factory(engine), config.location)
    >>>
    >>> service = AnalyticsService(gateway, BusinessCalendar(config.closed_weekday), config)
    >>> summary = service.sales_summary("7d")
    >>> print(summary.current.total_revenue, summary.revenue_change)

Business rules:
    - The closed weekday (Sunday by default) is excluded from every metric.
    - Transactions before 16:00 are lunch, from 16:00 on dinner.
    - Percentage deltas are 0 when the comparison value is 0.
"""

__version__ = "0.1.0"

from pos_analytics.analytics import AnalyticsService, DashboardData
from pos_analytics.business_calendar import BusinessCalendar, DateWindow
from pos_analytics.config import AppConfig
from pos_analytics.exceptions import (
    ConfigError,
    ConflictError,
    DataQualityError,
    ExternalServiceError,
    ExtractionFormatError,
    OrphanedRecordError,
    PartialWriteFailure,
    PosAnalyticsError,
    ToolNotAllowedError,
    ValidationError,
)

__all__ = [
    "AnalyticsService",
    "AppConfig",
    "BusinessCalendar",
    "ConfigError",
    "ConflictError",
    "DashboardData",
    "DataQualityError",
    "DateWindow",
    "ExternalServiceError",
    "ExtractionFormatError",
    "OrphanedRecordError",
    "PartialWriteFailure",
    "PosAnalyticsError",
    "ToolNotAllowedError",
    "ValidationError",
    "__version__",
]
