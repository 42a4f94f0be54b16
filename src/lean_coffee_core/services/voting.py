"""
Quadratic voting coordinator.

A round prioritizes the session's TODO queue. Each voter spends points
from a budget derived from the queue size, paying ``count ** 2`` for
``count`` votes on a ticket. The round closes once every participant
captured at start is done, or when someone forces it closed; exactly one
request performs the tally.
"""

from collections import defaultdict
from uuid import UUID

from lean_coffee_core.core.clock import Clock, SystemClock
from lean_coffee_core.core.logging import get_logger
from lean_coffee_core.errors import (
    BudgetExceededError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from lean_coffee_core.models.common import (
    MAX_VOTES_PER_TICKET,
    MIN_TODO_TICKETS_FOR_ROUND,
    TicketSpace,
)
from lean_coffee_core.models.voting import (
    RoundSummary,
    UserVotes,
    Vote,
    VoterStatus,
    VotingRound,
    quadratic_cost,
    total_points,
)
from lean_coffee_core.services.slots import ROUND_SLOT, claim_slot, release_slot
from lean_coffee_core.storage.interface import RecordStore

logger = get_logger(__name__)


class VotingService:
    """
    Service coordinating quadratic voting rounds.

    Provides methods for starting rounds, casting and reading votes,
    marking voters done and force-closing a round.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock | None = None,
        max_votes_per_ticket: int = MAX_VOTES_PER_TICKET,
        min_todo_tickets: int = MIN_TODO_TICKETS_FOR_ROUND,
    ) -> None:
        """
        Initialize the voting service.

        Args:
            store: Record store instance
            clock: Clock used for timestamps (defaults to system time)
            max_votes_per_ticket: Upper bound on votes per ticket per user
            min_todo_tickets: TODO tickets required to start a round
        """
        self._store = store
        self._clock = clock or SystemClock()
        self._max_votes = max_votes_per_ticket
        self._min_todo_tickets = min_todo_tickets

    # ========================================================================
    # Helpers
    # ========================================================================

    async def _get_round(self, round_id: UUID) -> VotingRound:
        voting_round = await self._store.get_round(round_id)
        if voting_round is None:
            raise NotFoundError("Voting round not found")
        return voting_round

    async def _current_budget(self, session_id: UUID) -> int:
        todo_count = await self._store.count_tickets(session_id, TicketSpace.TODO)
        return total_points(todo_count)

    async def _round_holder_is_stale(self, holder_id: UUID) -> bool:
        holder = await self._store.get_round(holder_id)
        return holder is None or not holder.is_active

    # ========================================================================
    # Rounds
    # ========================================================================

    async def start_round(self, session_id: UUID) -> VotingRound:
        """
        Start a voting round over the session's TODO queue.

        Every current member is captured as a participant. The session's
        round slot is claimed after the round is inserted; a loser of a
        concurrent start deactivates its own round before reporting the
        conflict.

        Raises:
            NotFoundError: If the session does not exist
            ConflictError: If a round is already active
            ValidationError: If the TODO queue is too short
        """
        session = await self._store.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")

        if session.active_round_id is not None:
            holder = await self._store.get_round(session.active_round_id)
            if holder is not None and holder.is_active:
                raise ConflictError("A voting round is already active")

        todo_count = await self._store.count_tickets(session_id, TicketSpace.TODO)
        if todo_count < self._min_todo_tickets:
            raise ValidationError(
                f"Need at least {self._min_todo_tickets} tickets in TODO to start voting"
            )

        now = self._clock.now()
        voting_round = VotingRound(session_id=session_id, started_at=now)
        members = await self._store.list_users(session_id)
        statuses = [VoterStatus(round_id=voting_round.id, user_id=u.id) for u in members]
        voting_round = await self._store.add_round(voting_round, statuses)

        claimed = await claim_slot(
            self._store,
            session_id,
            ROUND_SLOT,
            voting_round.id,
            self._round_holder_is_stale,
        )
        if not claimed:
            await self._store.compare_and_set_round(
                voting_round.id, {"is_active": True}, {"is_active": False, "ended_at": now}
            )
            logger.info(
                "Voting round start lost to a concurrent start",
                extra={"context": {"session_id": str(session_id)}},
            )
            raise ConflictError("A voting round is already active")

        logger.info(
            "Voting round started",
            extra={
                "context": {
                    "round_id": str(voting_round.id),
                    "session_id": str(session_id),
                    "participants": len(statuses),
                    "todo_count": todo_count,
                }
            },
        )
        return voting_round

    async def get_active_round(self, session_id: UUID) -> RoundSummary | None:
        """Return the session's active round with its current budget, if any."""
        session = await self._store.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        if session.active_round_id is None:
            return None

        voting_round = await self._store.get_round(session.active_round_id)
        if voting_round is None or not voting_round.is_active:
            return None

        return RoundSummary(
            round=voting_round,
            total_points=await self._current_budget(session_id),
            voter_statuses=await self._store.list_voter_statuses(voting_round.id),
        )

    # ========================================================================
    # Votes
    # ========================================================================

    async def cast_vote(
        self, round_id: UUID, ticket_id: UUID, user_id: UUID, vote_count: int
    ) -> Vote | None:
        """
        Set a user's allocation on one ticket.

        The count replaces any earlier allocation on the same ticket. A
        count of zero removes the vote and always succeeds, so a voter can
        free points even after the budget shrank.

        Args:
            round_id: Active round
            ticket_id: Ticket in the round's session
            user_id: Voter
            vote_count: Votes to place (0 to remove)

        Returns:
            The stored vote, or None when the vote was removed

        Raises:
            ValidationError: If the count is out of range
            NotFoundError: If the round, ticket or user is missing
            InvalidStateError: If the round is closed or the ticket is not in TODO
            BudgetExceededError: If the spend would exceed the budget
        """
        if not 0 <= vote_count <= self._max_votes:
            raise ValidationError(f"Vote count must be between 0 and {self._max_votes}")

        voting_round = await self._get_round(round_id)
        if not voting_round.is_active:
            raise InvalidStateError("Voting round is not active")

        ticket = await self._store.get_ticket(ticket_id)
        if ticket is None or ticket.session_id != voting_round.session_id:
            raise NotFoundError("Ticket not found")
        user = await self._store.get_user(user_id)
        if user is None or user.session_id != voting_round.session_id:
            raise NotFoundError(f"User {user_id} not found in session")

        if vote_count == 0:
            await self._store.delete_vote(round_id, ticket_id, user_id)
            return None

        if ticket.space != TicketSpace.TODO:
            raise InvalidStateError("Only tickets in TODO can receive votes")

        budget = await self._current_budget(voting_round.session_id)
        existing = await self._store.list_votes(round_id, user_id)
        spent_elsewhere = sum(v.points_cost for v in existing if v.ticket_id != ticket_id)
        cost = quadratic_cost(vote_count)

        if spent_elsewhere + cost > budget:
            logger.info(
                "Vote rejected over budget",
                extra={
                    "context": {
                        "round_id": str(round_id),
                        "user_id": str(user_id),
                        "spent": spent_elsewhere,
                        "cost": cost,
                        "budget": budget,
                    }
                },
            )
            raise BudgetExceededError(
                f"Not enough points: {spent_elsewhere} spent, {cost} needed, {budget} available",
                spent=spent_elsewhere,
                cost=cost,
                budget=budget,
            )

        return await self._store.upsert_vote(
            Vote(
                round_id=round_id,
                ticket_id=ticket_id,
                user_id=user_id,
                vote_count=vote_count,
                points_cost=cost,
            )
        )

    async def get_user_votes(self, round_id: UUID, user_id: UUID) -> UserVotes:
        """A user's allocations in a round with points spent and the current budget."""
        voting_round = await self._get_round(round_id)
        votes = await self._store.list_votes(round_id, user_id)
        return UserVotes(
            votes=votes,
            points_spent=sum(v.points_cost for v in votes),
            total_points=await self._current_budget(voting_round.session_id),
        )

    # ========================================================================
    # Closing
    # ========================================================================

    async def mark_done(self, round_id: UUID, user_id: UUID) -> VoterStatus:
        """
        Mark a participant as done voting.

        Repeating the call is harmless. When the last participant is done,
        the round is closed and tallied by whichever request wins the close.

        Raises:
            NotFoundError: If the round is missing or the user is not a participant
        """
        voting_round = await self._get_round(round_id)
        status = await self._store.update_voter_status(round_id, user_id, is_done=True)
        if status is None:
            raise NotFoundError("User is not a participant of this round")

        if voting_round.is_active:
            statuses = await self._store.list_voter_statuses(round_id)
            if all(s.is_done for s in statuses):
                await self._close_and_tally(voting_round)

        return status

    async def force_close(self, round_id: UUID, user_id: UUID, username: str) -> VotingRound:
        """
        Close a round regardless of who is done.

        Any member may force the close.

        Raises:
            NotFoundError: If the round or user is missing
            InvalidStateError: If the round is not active or was closed concurrently
        """
        voting_round = await self._get_round(round_id)
        user = await self._store.get_user(user_id)
        if user is None or user.session_id != voting_round.session_id:
            raise NotFoundError(f"User {user_id} not found in session")
        if not voting_round.is_active:
            raise InvalidStateError("Voting round is not active")

        closed = await self._close_and_tally(voting_round, force_closed_by=username or user.username)
        if closed is None:
            raise InvalidStateError("Voting round is not active")
        return closed

    async def _close_and_tally(
        self, voting_round: VotingRound, force_closed_by: str | None = None
    ) -> VotingRound | None:
        changes = {"is_active": False, "ended_at": self._clock.now()}
        if force_closed_by is not None:
            changes["force_closed_by"] = force_closed_by

        closed = await self._store.compare_and_set_round(
            voting_round.id, {"is_active": True}, changes
        )
        if closed is None:
            return None

        totals: dict[UUID, int] = defaultdict(int)
        for vote in await self._store.list_votes(voting_round.id):
            totals[vote.ticket_id] += vote.vote_count

        # Tickets without votes in this round keep their earlier tally
        for ticket_id, total in totals.items():
            await self._store.update_ticket(ticket_id, vote_count=total)

        await release_slot(self._store, voting_round.session_id, ROUND_SLOT, voting_round.id)

        logger.info(
            "Voting round closed",
            extra={
                "context": {
                    "round_id": str(voting_round.id),
                    "forced_by": force_closed_by,
                    "tickets_voted": len(totals),
                }
            },
        )
        return closed
