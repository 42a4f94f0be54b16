"""
Dependency injection for FastAPI routes.

Provides functions for injecting the record store, clock, configuration
and services into API route handlers.
"""

from functools import lru_cache

from fastapi import Depends

from lean_coffee_core.config import Config, get_config
from lean_coffee_core.core.clock import Clock, SystemClock
from lean_coffee_core.core.logging import get_logger
from lean_coffee_core.db.database import close_db, get_engine, get_session_maker, init_db
from lean_coffee_core.services import (
    ContinuationService,
    SessionService,
    TicketService,
    TimerService,
    VotingService,
)
from lean_coffee_core.storage import InMemoryRecordStore, RecordStore
from lean_coffee_server.repositories.record_store import SQLAlchemyRecordStore

logger = get_logger(__name__)

# Process-wide record store, built at startup
_store: RecordStore | None = None
_clock: Clock = SystemClock()


@lru_cache
def get_config_cached() -> Config:
    """
    Get the cached configuration instance.

    Returns:
        Config singleton instance
    """
    return get_config()


async def open_record_store(config: Config) -> RecordStore:
    """
    Build the record store selected by ``config.storage.backend``.

    The SQLAlchemy backend creates its tables on first use.
    """
    global _store

    if config.storage.backend == "sqlalchemy":
        database_url = config.get_database_url()
        get_engine(
            database_url,
            pool_size=config.database.pool_size,
            max_overflow=config.database.max_overflow,
            echo=config.database.echo,
        )
        await init_db(database_url=database_url)
        _store = SQLAlchemyRecordStore(get_session_maker(database_url))
    else:
        _store = InMemoryRecordStore()

    logger.info(
        "Record store ready",
        extra={"context": {"backend": config.storage.backend}},
    )
    return _store


async def close_record_store() -> None:
    """Release the record store and any database connections."""
    global _store
    _store = None
    await close_db()


def get_record_store() -> RecordStore:
    """
    Get the process-wide record store.

    Falls back to an in-memory store when the application was started
    without its lifespan (for example in scripts).
    """
    global _store
    if _store is None:
        _store = InMemoryRecordStore()
    return _store


def get_clock() -> Clock:
    """Get the wall clock used by all services."""
    return _clock


def get_session_service(
    store: RecordStore = Depends(get_record_store),
    clock: Clock = Depends(get_clock),
    config: Config = Depends(get_config_cached),
) -> SessionService:
    """Get a session service instance."""
    return SessionService(
        store,
        clock=clock,
        max_code_attempts=config.session.short_code_max_attempts,
    )


def get_ticket_service(
    store: RecordStore = Depends(get_record_store),
    clock: Clock = Depends(get_clock),
    config: Config = Depends(get_config_cached),
) -> TicketService:
    """Get a ticket service instance."""
    return TicketService(
        store,
        clock=clock,
        max_description_length=config.ticket.max_description_length,
    )


def get_timer_service(
    store: RecordStore = Depends(get_record_store),
    clock: Clock = Depends(get_clock),
    config: Config = Depends(get_config_cached),
) -> TimerService:
    """Get a discussion timer service instance."""
    return TimerService(store, clock=clock, duration_ms=config.discussion.duration_ms)


def get_voting_service(
    store: RecordStore = Depends(get_record_store),
    clock: Clock = Depends(get_clock),
    config: Config = Depends(get_config_cached),
) -> VotingService:
    """Get a quadratic voting service instance."""
    return VotingService(
        store,
        clock=clock,
        max_votes_per_ticket=config.voting.max_votes_per_ticket,
        min_todo_tickets=config.voting.min_todo_tickets,
    )


def get_continuation_service(
    store: RecordStore = Depends(get_record_store),
    clock: Clock = Depends(get_clock),
) -> ContinuationService:
    """Get a continuation voting service instance."""
    return ContinuationService(store, clock=clock)
