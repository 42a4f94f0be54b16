"""
Pytest configuration and shared fixtures for Lean Coffee tests.

This module provides common fixtures used across unit and integration
tests to ensure consistent test setup and data.
"""

import asyncio
import functools
import inspect
import os
import tempfile
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lean_coffee_core.core.clock import FakeClock
from lean_coffee_core.core.logging import setup_logging
from lean_coffee_core.db.database import create_engine, create_tables
from lean_coffee_core.models.common import TicketSpace
from lean_coffee_core.models.session import Session, User
from lean_coffee_core.models.ticket import Ticket
from lean_coffee_core.services import (
    ContinuationService,
    SessionService,
    TicketService,
    TimerService,
    VotingService,
)
from lean_coffee_core.storage import InMemoryRecordStore
from lean_coffee_server.repositories.record_store import SQLAlchemyRecordStore

# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def configure_logging() -> None:
    """Configure logging for all tests."""
    setup_logging(level="INFO", format_type="text")


# =============================================================================
# Store and Clock Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """Deterministic clock starting at 2025-01-01 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def store() -> InMemoryRecordStore:
    """Fresh in-memory record store."""
    return InMemoryRecordStore()


class InterleavingRecordStore:
    """Wraps a record store so every call first yields to the event loop.

    Calls on the memory store never suspend, so without this, tasks
    started with asyncio.gather would simply run one after another.
    """

    def __init__(self, inner: InMemoryRecordStore):
        self._inner = inner

    def __getattr__(self, name: str):
        attr = getattr(self._inner, name)
        if not inspect.iscoroutinefunction(attr):
            return attr

        @functools.wraps(attr)
        async def interleaved(*args, **kwargs):
            await asyncio.sleep(0)
            return await attr(*args, **kwargs)

        return interleaved


@pytest.fixture
def racing_store(store: InMemoryRecordStore) -> InterleavingRecordStore:
    """The test store, seen through a wrapper that interleaves concurrent calls."""
    return InterleavingRecordStore(store)


@pytest_asyncio.fixture(scope="function")
async def sql_store() -> AsyncGenerator[SQLAlchemyRecordStore]:
    """SQLAlchemy record store on a temporary SQLite file.

    Each test gets a fresh database file, removed afterwards.
    """
    fd, db_path = tempfile.mkstemp(suffix=".sqlite3")
    os.close(fd)

    engine = create_engine(f"sqlite+aiosqlite:///{db_path}")
    await create_tables(engine, drop_all=True)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    yield SQLAlchemyRecordStore(session_maker)

    await engine.dispose()
    if os.path.exists(db_path):
        os.unlink(db_path)


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def session_service(store: InMemoryRecordStore, clock: FakeClock) -> SessionService:
    return SessionService(store, clock=clock)


@pytest.fixture
def ticket_service(store: InMemoryRecordStore, clock: FakeClock) -> TicketService:
    return TicketService(store, clock=clock)


@pytest.fixture
def timer_service(store: InMemoryRecordStore, clock: FakeClock) -> TimerService:
    return TimerService(store, clock=clock)


@pytest.fixture
def voting_service(store: InMemoryRecordStore, clock: FakeClock) -> VotingService:
    return VotingService(store, clock=clock)


@pytest.fixture
def continuation_service(store: InMemoryRecordStore, clock: FakeClock) -> ContinuationService:
    return ContinuationService(store, clock=clock)


# =============================================================================
# Seed Data Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def lean_session(session_service: SessionService) -> Session:
    """A session with no members yet."""
    return await session_service.create_session("Team retro")


@pytest_asyncio.fixture
async def members(session_service: SessionService, lean_session: Session) -> list[User]:
    """Three members of the seeded session: alice, bob and carol."""
    users = []
    for name in ("alice", "bob", "carol"):
        result = await session_service.join_session(lean_session.id, name)
        users.append(result.user)
    return users


@pytest.fixture
def make_ticket(ticket_service: TicketService, lean_session: Session):
    """Factory creating a ticket and moving it into the requested space."""

    async def _make(
        owner: User, description: str = "Topic", space: TicketSpace = TicketSpace.PERSONAL
    ) -> Ticket:
        ticket = await ticket_service.create_ticket(lean_session.id, owner.id, description)
        if space != TicketSpace.PERSONAL:
            ticket = await ticket_service.move_to_space(ticket.id, space, owner.id, owner.username)
        return ticket

    return _make


# =============================================================================
# HTTP Client Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def api_client(
    store: InMemoryRecordStore, clock: FakeClock
) -> AsyncGenerator[AsyncClient]:
    """HTTP client bound to the app, backed by the test store and clock."""
    from lean_coffee_server.dependencies import get_clock, get_record_store
    from lean_coffee_server.main import app

    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
