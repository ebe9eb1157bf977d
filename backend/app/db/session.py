from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.settings import Settings, get_settings


logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None
_replica_engine: AsyncEngine | None = None
_replica_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def connection_setup_statements(settings: Settings, *, read_only: bool) -> list[str]:
    """Statements run on every new PostgreSQL connection."""

    statements = [f"SET statement_timeout = {settings.db_statement_timeout_s * 1000}"]
    if read_only:
        statements.append("SET default_transaction_read_only = 't'")
    return statements


def _configure_connections(engine: AsyncEngine, statements: list[str]) -> None:
    # SQLite has no session settings for this; it is only used locally.
    if engine.dialect.name != "postgresql":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            for statement in statements:
                cursor.execute(statement)
        finally:
            cursor.close()


def _create_engine(url: str, *, read_only: bool) -> AsyncEngine:
    settings = get_settings()
    engine = create_async_engine(url, pool_pre_ping=True)
    _configure_connections(
        engine, connection_setup_statements(settings, read_only=read_only)
    )
    return engine


def get_engine() -> AsyncEngine:
    """Create the async engine lazily to avoid side effects at import time."""

    global _engine
    if _engine is None:
        settings = get_settings()
        if settings.db_read_only_mode:
            logger.warning("Primary database is in read-only mode")
        _engine = _create_engine(settings.db_url, read_only=settings.db_read_only_mode)
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _sessionmaker
    if _sessionmaker is None:
        _sessionmaker = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _sessionmaker


def get_read_only_engine() -> AsyncEngine:
    """The replica engine, or the primary one when no replica is configured."""

    global _replica_engine
    settings = get_settings()
    if settings.db_replica_url is None:
        return get_engine()
    if _replica_engine is None:
        _replica_engine = _create_engine(settings.db_replica_url, read_only=True)
    return _replica_engine


def get_read_only_sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _replica_sessionmaker
    if get_settings().db_replica_url is None:
        return get_sessionmaker()
    if _replica_sessionmaker is None:
        _replica_sessionmaker = async_sessionmaker(
            get_read_only_engine(), expire_on_commit=False
        )
    return _replica_sessionmaker


def reset_engine() -> None:
    """Forget the cached engines so the next use picks up fresh settings."""

    global _engine, _sessionmaker, _replica_engine, _replica_sessionmaker
    _engine = None
    _sessionmaker = None
    _replica_engine = None
    _replica_sessionmaker = None


async def dispose_engines() -> None:
    for engine in (_engine, _replica_engine):
        if engine is not None:
            await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an AsyncSession.

    Failures raised while the session is in use propagate unchanged; the
    request boundary classifies them.
    """

    async with get_sessionmaker()() as session:
        yield session


async def get_read_only_db() -> AsyncGenerator[AsyncSession, None]:
    """Like ``get_db``, but for handlers that only read."""

    async with get_read_only_sessionmaker()() as session:
        yield session
