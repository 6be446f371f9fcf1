"""Unified configuration for POS Analytics.

This module provides a single, simple configuration class used across
all domains (calendar, ingestion, store, metrics, assistant).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Mapping

from pos_analytics.exceptions import ConfigError

DEFAULT_CATEGORY = "기타"

# Closed set of receipt categories: meals, set menus, sides, beverages, other.
CATEGORIES = ("식사류", "세트메뉴", "사이드메뉴", "음료수류", DEFAULT_CATEGORY)

# Delivery partners recorded for the multi-channel location.
DELIVERY_CHANNELS = ("coupang", "baemin", "panda")


@dataclass(frozen=True)
class AppConfig:
    """All settings used by the analytics pipelines.

    Attributes:
        database_url: SQLAlchemy URL of the relational store.
        location: Location scope for orders, splits and delivery sales.
        channel_location: Location scope for multi-channel daily sales.
        closed_weekday: Weekday the restaurant is closed (0=Monday ... 6=Sunday).
        daypart_boundary_hour: Transactions at or after this hour count as dinner.
        discrepancy_tolerance: Absolute difference (currency units) between a
            reported and a recomputed total above which a discrepancy is flagged.
        default_category: Category assigned to line items without a known one.
        categories: Allowed line-item categories.
        currency_symbol: Prefix used when formatting money for display.
        llm_base_url: Base URL of the OpenAI-compatible chat-completions API.
        llm_api_key: API key for the chat-completions API.
        llm_model: Model used for extraction and the assistant.
        llm_timeout: HTTP timeout in seconds.
        llm_retries: Transport-level retries mounted on the HTTP session.
    """

    database_url: str = "sqlite:///pos_analytics.db"
    location: str = "main"
    channel_location: str = "ewha"
    closed_weekday: int = 6
    daypart_boundary_hour: int = 16
    discrepancy_tolerance: int = 100
    default_category: str = DEFAULT_CATEGORY
    categories: tuple[str, ...] = field(default=CATEGORIES)
    currency_symbol: str = "₩"
    llm_base_url: str = "https://api.openai.com/v1"
    llm_api_key: str | None = None
    llm_model: str = "gpt-5-mini"
    llm_timeout: int = 60
    llm_retries: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.closed_weekday <= 6:
            raise ConfigError(f"closed_weekday must be between 0 and 6, got {self.closed_weekday}")
        if not 0 <= self.daypart_boundary_hour <= 23:
            raise ConfigError(
                f"daypart_boundary_hour must be between 0 and 23, got {self.daypart_boundary_hour}"
            )
        if self.discrepancy_tolerance < 0:
            raise ConfigError("discrepancy_tolerance must not be negative")
        if self.default_category not in self.categories:
            raise ConfigError(
                f"default_category {self.default_category!r} is not one of {self.categories}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Create an AppConfig from environment variables.

        Unset variables fall back to the dataclass defaults.

        Args:
            environ: Mapping to read from (default: ``os.environ``).

        Returns:
            AppConfig instance.

        Raises:
            ConfigError: If a numeric variable cannot be parsed.

        Examples:
            >>> config = AppConfig.from_env({"POS_CLOSED_WEEKDAY": "0"})
            >>> config.closed_weekday
            0
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def _int(name: str, default: int) -> int:
            raw = env.get(name)
            if raw is None or raw.strip() == "":
                return default
            try:
                return int(raw.strip().strip('"').strip("'"))
            except ValueError as e:
                raise ConfigError(f"{name} must be an integer, got {raw!r}") from e

        def _str(name: str, default: str | None) -> str | None:
            raw = env.get(name)
            if raw is None:
                return default
            # Values copied from .env files often keep their quotes
            return raw.strip().strip('"').strip("'") or default

        return cls(
            database_url=_str("POS_DATABASE_URL", defaults.database_url),
            location=_str("POS_LOCATION", defaults.location),
            channel_location=_str("POS_CHANNEL_LOCATION", defaults.channel_location),
            closed_weekday=_int("POS_CLOSED_WEEKDAY", defaults.closed_weekday),
            daypart_boundary_hour=_int("POS_DAYPART_BOUNDARY_HOUR", defaults.daypart_boundary_hour),
            discrepancy_tolerance=_int("POS_DISCREPANCY_TOLERANCE", defaults.discrepancy_tolerance),
            currency_symbol=_str("POS_CURRENCY_SYMBOL", defaults.currency_symbol),
            llm_base_url=_str("OPENAI_BASE_URL", defaults.llm_base_url),
            llm_api_key=_str("OPENAI_API_KEY", defaults.llm_api_key),
            llm_model=_str("POS_LLM_MODEL", defaults.llm_model),
            llm_timeout=_int("POS_LLM_TIMEOUT", defaults.llm_timeout),
            llm_retries=_int("POS_LLM_RETRIES", defaults.llm_retries),
        )

    def with_overrides(self, **changes: object) -> AppConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)
