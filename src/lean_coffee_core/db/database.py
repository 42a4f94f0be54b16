"""
Async engine and session-maker management.

One engine and one session maker live per process; the SQL record store
is built on the session maker, and tests build their own engines with
``create_engine`` against throwaway SQLite files.
"""

import os

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from lean_coffee_core.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./lean_coffee.db"

_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # noqa: ARG001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(
    database_url: str,
    pool_size: int = 10,
    max_overflow: int = 20,
    echo: bool = False,
) -> AsyncEngine:
    """
    Build an async engine for ``database_url``.

    SQLite engines get foreign-key enforcement switched on for every
    connection and ignore the pool sizing arguments.
    """
    if database_url.startswith("sqlite"):
        engine = create_async_engine(database_url, echo=echo)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        echo=echo,
    )


def get_engine(
    database_url: str | None = None,
    pool_size: int = 10,
    max_overflow: int = 20,
    echo: bool = False,
) -> AsyncEngine:
    """Return the process engine, creating it on first use.

    Without an explicit URL, ``DATABASE_URL`` or the local SQLite file is used.
    """
    global _engine

    if _engine is None:
        url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
        _engine = create_engine(url, pool_size, max_overflow, echo)
        logger.info(
            "Database engine created",
            extra={"context": {"dialect": _engine.dialect.name}},
        )

    return _engine


async def create_tables(engine: AsyncEngine, drop_all: bool = False) -> None:
    """Create every Lean Coffee table on ``engine``, optionally dropping them first."""
    from lean_coffee_core.db.base import Base

    # Importing the models registers their tables on Base.metadata
    import lean_coffee_core.db.models  # noqa: F401

    async with engine.begin() as conn:
        if drop_all:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def init_db(database_url: str | None = None, drop_all: bool = False) -> None:
    """Create the tables on the process engine."""
    await create_tables(get_engine(database_url), drop_all=drop_all)


def get_session_maker(database_url: str | None = None) -> async_sessionmaker[AsyncSession]:
    """Return the process session maker, creating it on first use.

    Sessions keep their objects usable after commit, since records are
    converted to pydantic models outside the transaction.
    """
    global _session_maker

    if _session_maker is None:
        _session_maker = async_sessionmaker(
            get_engine(database_url),
            class_=AsyncSession,
            expire_on_commit=False,
        )

    return _session_maker


async def close_db() -> None:
    """Dispose of the process engine; called on application shutdown."""
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_maker = None
