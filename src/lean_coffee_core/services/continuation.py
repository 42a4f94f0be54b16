"""
Continuation vote coordinator.

While a ticket is in DOING, members vote to keep discussing it or to
archive it. The participant set is frozen when the first ballot arrives;
once all of them have voted, one request decides and applies the outcome.
"""

from uuid import UUID

from lean_coffee_core.core.clock import Clock, SystemClock
from lean_coffee_core.core.logging import get_logger
from lean_coffee_core.errors import DuplicateRecordError, InvalidStateError, NotFoundError
from lean_coffee_core.models.common import (
    ARCHIVED_BY_FORCED_END,
    ARCHIVED_BY_MAJORITY,
    ContinuationChoice,
    ContinuationDecision,
    TicketSpace,
)
from lean_coffee_core.models.continuation import (
    Ballot,
    ContinuationOutcome,
    ContinuationRound,
    decide,
)
from lean_coffee_core.models.ticket import Ticket
from lean_coffee_core.services.slots import DOING_SLOT, release_slot
from lean_coffee_core.services.timer import freeze_timer, timer_guard
from lean_coffee_core.storage.interface import RecordStore

logger = get_logger(__name__)

# Applying a decision races with timer writes on the same ticket
APPLY_ATTEMPTS = 3


class ContinuationService:
    """
    Service coordinating continue/archive votes on the ticket in DOING.
    """

    def __init__(self, store: RecordStore, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or SystemClock()

    async def _get_doing_ticket(self, ticket_id: UUID) -> Ticket:
        ticket = await self._store.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        if ticket.space != TicketSpace.DOING:
            raise InvalidStateError("Continuation votes are only possible for tickets in DOING")
        return ticket

    async def _open_round(self, ticket: Ticket) -> ContinuationRound:
        existing = await self._store.get_continuation_round(ticket.id)
        if existing is not None:
            return existing

        members = await self._store.list_users(ticket.session_id)
        try:
            return await self._store.add_continuation_round(
                ContinuationRound(
                    ticket_id=ticket.id,
                    session_id=ticket.session_id,
                    participant_ids=[u.id for u in members],
                    opened_at=self._clock.now(),
                )
            )
        except DuplicateRecordError:
            existing = await self._store.get_continuation_round(ticket.id)
            if existing is None:
                raise
            return existing

    async def cast_ballot(
        self, ticket_id: UUID, user_id: UUID, choice: ContinuationChoice
    ) -> Ballot:
        """
        Record a member's continue/archive choice.

        Recasting replaces the earlier choice. The ballot that completes
        the frozen participant set triggers the decision.

        Raises:
            NotFoundError: If the ticket or user is missing
            InvalidStateError: If the ticket is not in DOING or a decision is in progress
        """
        ticket = await self._get_doing_ticket(ticket_id)
        user = await self._store.get_user(user_id)
        if user is None or user.session_id != ticket.session_id:
            raise NotFoundError(f"User {user_id} not found in session")

        ballot_round = await self._open_round(ticket)
        if not ballot_round.is_active:
            raise InvalidStateError("A decision is already being applied")

        ballot = await self._store.upsert_ballot(
            Ballot(ticket_id=ticket_id, user_id=user_id, choice=choice, cast_at=self._clock.now())
        )

        voters = {b.user_id for b in await self._store.list_ballots(ticket_id)}
        if set(ballot_round.participant_ids) <= voters:
            await self._decide(ticket_id, ARCHIVED_BY_MAJORITY)

        return ballot

    async def list_ballots(self, ticket_id: UUID) -> list[Ballot]:
        """List the ballots cast on a ticket."""
        if await self._store.get_ticket(ticket_id) is None:
            raise NotFoundError("Ticket not found")
        return await self._store.list_ballots(ticket_id)

    async def clear_ballots(self, ticket_id: UUID) -> int:
        """Discard all ballots and the ballot round of a ticket."""
        deleted = await self._store.delete_ballots(ticket_id)
        await self._store.delete_continuation_round(ticket_id)
        return deleted

    async def force_end(self, ticket_id: UUID) -> ContinuationOutcome:
        """
        Decide on whatever ballots exist right now.

        With no ballots at all the ticket is archived.

        Raises:
            NotFoundError: If the ticket is missing
            InvalidStateError: If the ticket is not in DOING or a decision is in progress
        """
        ticket = await self._get_doing_ticket(ticket_id)
        await self._open_round(ticket)

        outcome = await self._decide(ticket_id, ARCHIVED_BY_FORCED_END)
        if outcome is None:
            raise InvalidStateError("A decision is already being applied")
        return outcome

    async def _decide(self, ticket_id: UUID, archived_by: str) -> ContinuationOutcome | None:
        closed = await self._store.compare_and_set_continuation_round(
            ticket_id, {"is_active": True}, {"is_active": False}
        )
        if closed is None:
            return None

        try:
            ballots = await self._store.list_ballots(ticket_id)
            continue_count = sum(1 for b in ballots if b.choice == ContinuationChoice.CONTINUE)
            archive_count = len(ballots) - continue_count
            decision = decide(continue_count, archive_count)

            if decision == ContinuationDecision.CONTINUE:
                await self._continue(ticket_id)
            else:
                await self._archive(ticket_id, archived_by)
        finally:
            await self._store.delete_ballots(ticket_id)
            await self._store.delete_continuation_round(ticket_id)

        logger.info(
            f"Continuation decided: {decision.value}",
            extra={
                "context": {
                    "ticket_id": str(ticket_id),
                    "continue": continue_count,
                    "archive": archive_count,
                    "archived_by": archived_by,
                }
            },
        )
        return ContinuationOutcome(
            ticket_id=ticket_id,
            decision=decision,
            continue_count=continue_count,
            archive_count=archive_count,
        )

    async def _continue(self, ticket_id: UUID) -> None:
        for _ in range(APPLY_ATTEMPTS):
            ticket = await self._store.get_ticket(ticket_id)
            if ticket is None or ticket.space != TicketSpace.DOING:
                break

            # A fresh time box starts; the accumulated total is left as is
            changes = {"timer_started_at": self._clock.now(), "timer_paused_at": None}
            updated = await self._store.compare_and_set_ticket(
                ticket_id, {"space": TicketSpace.DOING, **timer_guard(ticket)}, changes
            )
            if updated is not None:
                return

        logger.warning(
            "Ticket left DOING before continuation applied",
            extra={"context": {"ticket_id": str(ticket_id)}},
        )

    async def _archive(self, ticket_id: UUID, archived_by: str) -> None:
        for _ in range(APPLY_ATTEMPTS):
            ticket = await self._store.get_ticket(ticket_id)
            if ticket is None or ticket.space != TicketSpace.DOING:
                break

            now = self._clock.now()
            changes = freeze_timer(ticket, now)
            changes.update(space=TicketSpace.ARCHIVE, archived_by=archived_by, archived_at=now)
            updated = await self._store.compare_and_set_ticket(
                ticket_id, {"space": TicketSpace.DOING, **timer_guard(ticket)}, changes
            )
            if updated is not None:
                await release_slot(self._store, ticket.session_id, DOING_SLOT, ticket_id)
                return

        logger.warning(
            "Ticket left DOING before archive applied",
            extra={"context": {"ticket_id": str(ticket_id)}},
        )
