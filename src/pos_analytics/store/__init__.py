"""Relational store: ORM models, engine lifecycle and the gateway."""

from pos_analytics.store.db import (
    create_engine_from_config,
    create_session_factory,
    init_schema,
    normalize_database_url,
)
from pos_analytics.store.gateway import StoreGateway

__all__ = [
    "StoreGateway",
    "create_engine_from_config",
    "create_session_factory",
    "init_schema",
    "normalize_database_url",
]
