"""
Abstract record store interface for the Lean Coffee engine.

This module defines the RecordStore protocol that every durable store
must follow. The engine assumes nothing beyond single-record atomicity:
each call either applies completely or not at all, and the
``compare_and_set_*`` methods apply their changes only when the stored
record still matches the expected field values. Those conditional
updates are the only synchronisation primitive the services rely on.

All methods are async to support non-blocking I/O operations.
"""

from collections.abc import Iterable
from typing import Any, Protocol
from uuid import UUID

from lean_coffee_core.models.common import TicketSpace
from lean_coffee_core.models.continuation import Ballot, ContinuationRound
from lean_coffee_core.models.session import Session, User
from lean_coffee_core.models.ticket import Ticket
from lean_coffee_core.models.voting import Vote, VoterStatus, VotingRound


class RecordStore(Protocol):
    """
    Abstract record store interface.

    Records handed out by a store are detached copies; mutating them has
    no effect until passed back through an update call.
    """

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(self, session: Session) -> Session:
        """Insert a new session.

        Args:
            session: Session to insert

        Returns:
            The stored session

        Raises:
            DuplicateRecordError: If the short code is already taken
        """
        ...

    async def get_session(self, session_id: UUID) -> Session | None:
        """Retrieve a session by ID."""
        ...

    async def get_session_by_code(self, short_code: str) -> Session | None:
        """Retrieve a session by its short code."""
        ...

    async def update_session(self, session_id: UUID, **changes: Any) -> Session | None:
        """Unconditionally update session fields.

        Returns:
            The updated session, or None if it does not exist
        """
        ...

    async def compare_and_set_session(
        self, session_id: UUID, expected: dict[str, Any], changes: dict[str, Any]
    ) -> Session | None:
        """Apply ``changes`` only if every field in ``expected`` still matches.

        Args:
            session_id: Session to update
            expected: Field values the stored record must currently hold
            changes: Field values to write

        Returns:
            The updated session, or None if it is missing or did not match
        """
        ...

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def add_user(self, user: User) -> User:
        """Insert a session member.

        Raises:
            DuplicateRecordError: If the username is taken within the session
        """
        ...

    async def get_user(self, user_id: UUID) -> User | None:
        """Retrieve a user by ID."""
        ...

    async def get_user_by_username(self, session_id: UUID, username: str) -> User | None:
        """Retrieve a member of a session by username."""
        ...

    async def list_users(self, session_id: UUID) -> list[User]:
        """List all members of a session."""
        ...

    async def update_user(self, user_id: UUID, **changes: Any) -> User | None:
        """Update user fields; None if the user does not exist."""
        ...

    # ------------------------------------------------------------------
    # Tickets
    # ------------------------------------------------------------------

    async def add_ticket(self, ticket: Ticket) -> Ticket:
        """Insert a ticket."""
        ...

    async def get_ticket(self, ticket_id: UUID) -> Ticket | None:
        """Retrieve a ticket by ID."""
        ...

    async def list_tickets(
        self, session_id: UUID, spaces: Iterable[TicketSpace] | None = None
    ) -> list[Ticket]:
        """List tickets of a session, optionally restricted to some spaces.

        Ordering is unspecified; callers sort.
        """
        ...

    async def count_tickets(self, session_id: UUID, space: TicketSpace) -> int:
        """Count the tickets of a session currently in ``space``."""
        ...

    async def update_ticket(self, ticket_id: UUID, **changes: Any) -> Ticket | None:
        """Unconditionally update ticket fields; None if missing."""
        ...

    async def compare_and_set_ticket(
        self, ticket_id: UUID, expected: dict[str, Any], changes: dict[str, Any]
    ) -> Ticket | None:
        """Conditionally update a ticket (see compare_and_set_session)."""
        ...

    async def delete_ticket(self, ticket_id: UUID) -> bool:
        """Delete a ticket and the votes cast on it.

        Returns:
            True if deleted, False if not found
        """
        ...

    # ------------------------------------------------------------------
    # Quadratic voting
    # ------------------------------------------------------------------

    async def add_round(
        self, voting_round: VotingRound, voter_statuses: list[VoterStatus]
    ) -> VotingRound:
        """Insert a voting round together with its frozen voter statuses."""
        ...

    async def get_round(self, round_id: UUID) -> VotingRound | None:
        """Retrieve a voting round by ID."""
        ...

    async def compare_and_set_round(
        self, round_id: UUID, expected: dict[str, Any], changes: dict[str, Any]
    ) -> VotingRound | None:
        """Conditionally update a voting round (see compare_and_set_session)."""
        ...

    async def list_voter_statuses(self, round_id: UUID) -> list[VoterStatus]:
        """List the voter statuses captured for a round."""
        ...

    async def update_voter_status(
        self, round_id: UUID, user_id: UUID, **changes: Any
    ) -> VoterStatus | None:
        """Update a voter status; None if the user is not part of the round."""
        ...

    async def list_votes(self, round_id: UUID, user_id: UUID | None = None) -> list[Vote]:
        """List the votes of a round, optionally for one user."""
        ...

    async def upsert_vote(self, vote: Vote) -> Vote:
        """Insert or replace the vote keyed by (round, ticket, user).

        Raises:
            NotFoundError: If the round, ticket or user no longer exists
        """
        ...

    async def delete_vote(self, round_id: UUID, ticket_id: UUID, user_id: UUID) -> bool:
        """Delete a vote; False if there was none."""
        ...

    # ------------------------------------------------------------------
    # Continuation voting
    # ------------------------------------------------------------------

    async def add_continuation_round(self, ballot_round: ContinuationRound) -> ContinuationRound:
        """Open the ballot round for a ticket.

        Raises:
            DuplicateRecordError: If the ticket already has a ballot round
        """
        ...

    async def get_continuation_round(self, ticket_id: UUID) -> ContinuationRound | None:
        """Retrieve the ballot round of a ticket."""
        ...

    async def compare_and_set_continuation_round(
        self, ticket_id: UUID, expected: dict[str, Any], changes: dict[str, Any]
    ) -> ContinuationRound | None:
        """Conditionally update a ballot round (see compare_and_set_session)."""
        ...

    async def delete_continuation_round(self, ticket_id: UUID) -> bool:
        """Delete the ballot round of a ticket; False if there was none."""
        ...

    async def upsert_ballot(self, ballot: Ballot) -> Ballot:
        """Insert or replace the ballot keyed by (ticket, user)."""
        ...

    async def list_ballots(self, ticket_id: UUID) -> list[Ballot]:
        """List the ballots cast on a ticket."""
        ...

    async def delete_ballots(self, ticket_id: UUID) -> int:
        """Delete every ballot cast on a ticket.

        Returns:
            Number of ballots deleted
        """
        ...
