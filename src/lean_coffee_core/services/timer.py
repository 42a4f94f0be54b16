"""
Discussion timer for the ticket in DOING.

Elapsed time is never stored as a ticking counter. A ticket carries the
start of its current interval, an optional pause stamp, and the total of
completed intervals; everything else is derived on read.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from lean_coffee_core.core.clock import Clock, SystemClock, elapsed_ms
from lean_coffee_core.core.logging import get_logger
from lean_coffee_core.errors import InvalidStateError, NotFoundError
from lean_coffee_core.models.common import DISCUSSION_DURATION_MS, TicketSpace
from lean_coffee_core.models.ticket import Ticket, TimerState
from lean_coffee_core.storage.interface import RecordStore

logger = get_logger(__name__)


def compute_timer_state(
    ticket: Ticket, now: datetime, duration_ms: int = DISCUSSION_DURATION_MS
) -> TimerState:
    """Derive the timer view of a ticket at ``now`` without mutating it."""
    running = ticket.is_timer_running
    elapsed = ticket.total_discussion_ms
    if running and ticket.timer_started_at is not None:
        elapsed += elapsed_ms(ticket.timer_started_at, now)

    return TimerState(
        ticket_id=ticket.id,
        is_running=running,
        elapsed_ms=elapsed,
        total_discussion_ms=ticket.total_discussion_ms,
        timer_started_at=ticket.timer_started_at,
        timer_paused_at=ticket.timer_paused_at,
        duration_ms=duration_ms,
        remaining_ms=max(0, duration_ms - elapsed),
        is_time_up=elapsed >= duration_ms,
    )


def timer_guard(ticket: Ticket) -> dict[str, Any]:
    """Expected timer fields for a conditional update based on ``ticket``."""
    return {
        "timer_started_at": ticket.timer_started_at,
        "timer_paused_at": ticket.timer_paused_at,
        "total_discussion_ms": ticket.total_discussion_ms,
    }


def freeze_timer(ticket: Ticket, now: datetime) -> dict[str, Any]:
    """Changes that stop the timer, folding a running interval into the total."""
    total = ticket.total_discussion_ms
    if ticket.is_timer_running and ticket.timer_started_at is not None:
        total += elapsed_ms(ticket.timer_started_at, now)
    return {
        "timer_started_at": None,
        "timer_paused_at": None,
        "total_discussion_ms": total,
    }


class TimerService:
    """
    Service controlling the discussion timer of a ticket.

    The time box length only feeds the derived ``remaining_ms`` and
    ``is_time_up`` fields; deciding what happens when time is up is left
    to the caller.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock | None = None,
        duration_ms: int = DISCUSSION_DURATION_MS,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._duration_ms = duration_ms

    async def _get_ticket(self, ticket_id: UUID) -> Ticket:
        ticket = await self._store.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        return ticket

    async def start_timer(self, ticket_id: UUID) -> TimerState:
        """
        Start (or restart) the running interval.

        The accumulated total is kept; a redundant start simply re-stamps
        the interval start.

        Raises:
            NotFoundError: If the ticket does not exist
            InvalidStateError: If the ticket is not in DOING
        """
        ticket = await self._get_ticket(ticket_id)
        if ticket.space != TicketSpace.DOING:
            raise InvalidStateError("Only tickets in DOING can have timers")

        now = self._clock.now()
        updated = await self._store.compare_and_set_ticket(
            ticket_id,
            {"space": TicketSpace.DOING},
            {"timer_started_at": now, "timer_paused_at": None},
        )
        if updated is None:
            await self._get_ticket(ticket_id)
            raise InvalidStateError("Only tickets in DOING can have timers")

        logger.info(
            "Discussion timer started",
            extra={"context": {"ticket_id": str(ticket_id)}},
        )
        return compute_timer_state(updated, now, self._duration_ms)

    async def pause_timer(self, ticket_id: UUID) -> TimerState:
        """
        Pause a running timer, folding the running interval into the total.

        The update is guarded by the timer fields that were read, so two
        concurrent pauses cannot both fold the same interval.

        Raises:
            NotFoundError: If the ticket does not exist
            InvalidStateError: If the timer is not running
        """
        ticket = await self._get_ticket(ticket_id)
        if not ticket.is_timer_running or ticket.timer_started_at is None:
            raise InvalidStateError("Timer is not running")

        now = self._clock.now()
        total = ticket.total_discussion_ms + elapsed_ms(ticket.timer_started_at, now)
        updated = await self._store.compare_and_set_ticket(
            ticket_id,
            timer_guard(ticket),
            {"timer_paused_at": now, "total_discussion_ms": total},
        )
        if updated is None:
            await self._get_ticket(ticket_id)
            raise InvalidStateError("Timer is not running")

        logger.info(
            "Discussion timer paused",
            extra={"context": {"ticket_id": str(ticket_id), "total_discussion_ms": total}},
        )
        return compute_timer_state(updated, now, self._duration_ms)

    async def reset_timer(self, ticket_id: UUID) -> TimerState:
        """
        Clear both timestamps and zero the accumulated total.

        Raises:
            NotFoundError: If the ticket does not exist
        """
        updated = await self._store.update_ticket(
            ticket_id,
            timer_started_at=None,
            timer_paused_at=None,
            total_discussion_ms=0,
        )
        if updated is None:
            raise NotFoundError("Ticket not found")

        logger.info("Discussion timer reset", extra={"context": {"ticket_id": str(ticket_id)}})
        return compute_timer_state(updated, self._clock.now(), self._duration_ms)

    async def get_timer_state(self, ticket_id: UUID) -> TimerState:
        """
        Read the timer without changing it.

        Raises:
            NotFoundError: If the ticket does not exist
        """
        ticket = await self._get_ticket(ticket_id)
        return compute_timer_state(ticket, self._clock.now(), self._duration_ms)
