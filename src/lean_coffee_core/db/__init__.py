"""
Database utilities for the Lean Coffee engine.

Provides database session management and base models.
"""

from lean_coffee_core.db.base import Base, UTCDateTime
from lean_coffee_core.db.database import (
    AsyncSession,
    close_db,
    create_engine,
    create_tables,
    get_engine,
    get_session_maker,
    init_db,
)

__all__ = [
    "Base",
    "UTCDateTime",
    "AsyncSession",
    "close_db",
    "create_engine",
    "create_tables",
    "get_engine",
    "get_session_maker",
    "init_db",
]
