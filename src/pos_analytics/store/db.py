"""Engine and session lifecycle.

Nothing here runs at import time: the process entry point (CLI, test
fixture, web app) creates the engine, hands a session factory to
:class:`~pos_analytics.store.gateway.StoreGateway`, and disposes the engine
when it shuts down.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pos_analytics.config import AppConfig
from pos_analytics.store.models import Base

logger = logging.getLogger(__name__)


def normalize_database_url(url: str) -> str:
    """Map Heroku/Supabase-style postgres URLs onto the psycopg driver."""
    url = url.strip()
    if url.startswith("postgres://"):
        return "postgresql+psycopg://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://") :]
    return url


def create_engine_from_config(config: AppConfig) -> Engine:
    """Create the SQLAlchemy engine for ``config.database_url``.

    In-memory SQLite URLs share one connection (``StaticPool``) so every
    session, including those opened from worker threads, sees the same data.
    SQLite connections get ``PRAGMA foreign_keys=ON`` so line items cascade
    with their order.
    """
    url = normalize_database_url(config.database_url)
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_engine(url, pool_pre_ping=True)
    logger.debug("Created engine for %s", engine.url.render_as_string(hide_password=True))
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)
    logger.info("Schema ready (%d tables)", len(Base.metadata.tables))


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
