"""
In-memory record store for the Lean Coffee engine.

This module provides a simple in-memory store suitable for development
and testing. Data is stored in dictionaries and does not persist across
server restarts.

Every method body runs without awaiting, so on a single event loop each
call is atomic with respect to every other call. That is exactly the
single-record atomicity the RecordStore contract promises, and it makes
the compare-and-set methods true conditional updates.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel

from lean_coffee_core.core.logging import get_logger
from lean_coffee_core.errors import DuplicateRecordError
from lean_coffee_core.models.common import TicketSpace
from lean_coffee_core.models.continuation import Ballot, ContinuationRound
from lean_coffee_core.models.session import Session, User
from lean_coffee_core.models.ticket import Ticket
from lean_coffee_core.models.voting import Vote, VoterStatus, VotingRound
from lean_coffee_core.storage.interface import RecordStore

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def _matches(record: BaseModel, expected: dict[str, Any]) -> bool:
    return all(getattr(record, key) == value for key, value in expected.items())


def _copy(record: RecordT) -> RecordT:
    return record.model_copy(deep=True)


class InMemoryRecordStore(RecordStore):
    """
    In-memory record store for development and testing.

    Storage structure:
    - sessions: Dict[session_id, Session]
    - users: Dict[user_id, User]
    - tickets: Dict[ticket_id, Ticket]
    - rounds: Dict[round_id, VotingRound]
    - voter_statuses: Dict[(round_id, user_id), VoterStatus]
    - votes: Dict[(round_id, ticket_id, user_id), Vote]
    - continuation_rounds: Dict[ticket_id, ContinuationRound]
    - ballots: Dict[(ticket_id, user_id), Ballot]
    """

    def __init__(self) -> None:
        self._sessions: dict[UUID, Session] = {}
        self._users: dict[UUID, User] = {}
        self._tickets: dict[UUID, Ticket] = {}
        self._rounds: dict[UUID, VotingRound] = {}
        self._voter_statuses: dict[tuple[UUID, UUID], VoterStatus] = {}
        self._votes: dict[tuple[UUID, UUID, UUID], Vote] = {}
        self._continuation_rounds: dict[UUID, ContinuationRound] = {}
        self._ballots: dict[tuple[UUID, UUID], Ballot] = {}

        logger.info("InMemoryRecordStore initialized")

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(self, session: Session) -> Session:
        if any(s.short_code == session.short_code for s in self._sessions.values()):
            raise DuplicateRecordError(f"Short code '{session.short_code}' is already taken")
        self._sessions[session.id] = _copy(session)
        return _copy(session)

    async def get_session(self, session_id: UUID) -> Session | None:
        session = self._sessions.get(session_id)
        return _copy(session) if session else None

    async def get_session_by_code(self, short_code: str) -> Session | None:
        for session in self._sessions.values():
            if session.short_code == short_code:
                return _copy(session)
        return None

    async def update_session(self, session_id: UUID, **changes: Any) -> Session | None:
        return await self.compare_and_set_session(session_id, {}, changes)

    async def compare_and_set_session(
        self, session_id: UUID, expected: dict[str, Any], changes: dict[str, Any]
    ) -> Session | None:
        session = self._sessions.get(session_id)
        if session is None or not _matches(session, expected):
            return None
        updated = session.model_copy(update=changes)
        self._sessions[session_id] = updated
        return _copy(updated)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def add_user(self, user: User) -> User:
        existing = await self.get_user_by_username(user.session_id, user.username)
        if existing is not None:
            raise DuplicateRecordError(
                f"Username '{user.username}' is already taken in session {user.session_id}"
            )
        self._users[user.id] = _copy(user)
        return _copy(user)

    async def get_user(self, user_id: UUID) -> User | None:
        user = self._users.get(user_id)
        return _copy(user) if user else None

    async def get_user_by_username(self, session_id: UUID, username: str) -> User | None:
        for user in self._users.values():
            if user.session_id == session_id and user.username == username:
                return _copy(user)
        return None

    async def list_users(self, session_id: UUID) -> list[User]:
        return [_copy(u) for u in self._users.values() if u.session_id == session_id]

    async def update_user(self, user_id: UUID, **changes: Any) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        updated = user.model_copy(update=changes)
        self._users[user_id] = updated
        return _copy(updated)

    # ------------------------------------------------------------------
    # Tickets
    # ------------------------------------------------------------------

    async def add_ticket(self, ticket: Ticket) -> Ticket:
        self._tickets[ticket.id] = _copy(ticket)
        return _copy(ticket)

    async def get_ticket(self, ticket_id: UUID) -> Ticket | None:
        ticket = self._tickets.get(ticket_id)
        return _copy(ticket) if ticket else None

    async def list_tickets(
        self, session_id: UUID, spaces: Iterable[TicketSpace] | None = None
    ) -> list[Ticket]:
        wanted = set(spaces) if spaces is not None else None
        return [
            _copy(t)
            for t in self._tickets.values()
            if t.session_id == session_id and (wanted is None or t.space in wanted)
        ]

    async def count_tickets(self, session_id: UUID, space: TicketSpace) -> int:
        return sum(
            1 for t in self._tickets.values() if t.session_id == session_id and t.space == space
        )

    async def update_ticket(self, ticket_id: UUID, **changes: Any) -> Ticket | None:
        return await self.compare_and_set_ticket(ticket_id, {}, changes)

    async def compare_and_set_ticket(
        self, ticket_id: UUID, expected: dict[str, Any], changes: dict[str, Any]
    ) -> Ticket | None:
        ticket = self._tickets.get(ticket_id)
        if ticket is None or not _matches(ticket, expected):
            return None
        values = dict(changes)
        values.setdefault("updated_at", datetime.now(UTC))
        updated = ticket.model_copy(update=values)
        self._tickets[ticket_id] = updated
        return _copy(updated)

    async def delete_ticket(self, ticket_id: UUID) -> bool:
        if self._tickets.pop(ticket_id, None) is None:
            return False
        for key in [k for k in self._votes if k[1] == ticket_id]:
            del self._votes[key]
        return True

    # ------------------------------------------------------------------
    # Quadratic voting
    # ------------------------------------------------------------------

    async def add_round(
        self, voting_round: VotingRound, voter_statuses: list[VoterStatus]
    ) -> VotingRound:
        self._rounds[voting_round.id] = _copy(voting_round)
        for status in voter_statuses:
            self._voter_statuses[(status.round_id, status.user_id)] = _copy(status)
        return _copy(voting_round)

    async def get_round(self, round_id: UUID) -> VotingRound | None:
        voting_round = self._rounds.get(round_id)
        return _copy(voting_round) if voting_round else None

    async def compare_and_set_round(
        self, round_id: UUID, expected: dict[str, Any], changes: dict[str, Any]
    ) -> VotingRound | None:
        voting_round = self._rounds.get(round_id)
        if voting_round is None or not _matches(voting_round, expected):
            return None
        updated = voting_round.model_copy(update=changes)
        self._rounds[round_id] = updated
        return _copy(updated)

    async def list_voter_statuses(self, round_id: UUID) -> list[VoterStatus]:
        return [_copy(s) for (rid, _), s in self._voter_statuses.items() if rid == round_id]

    async def update_voter_status(
        self, round_id: UUID, user_id: UUID, **changes: Any
    ) -> VoterStatus | None:
        status = self._voter_statuses.get((round_id, user_id))
        if status is None:
            return None
        updated = status.model_copy(update=changes)
        self._voter_statuses[(round_id, user_id)] = updated
        return _copy(updated)

    async def list_votes(self, round_id: UUID, user_id: UUID | None = None) -> list[Vote]:
        return [
            _copy(v)
            for (rid, _, uid), v in self._votes.items()
            if rid == round_id and (user_id is None or uid == user_id)
        ]

    async def upsert_vote(self, vote: Vote) -> Vote:
        self._votes[(vote.round_id, vote.ticket_id, vote.user_id)] = _copy(vote)
        return _copy(vote)

    async def delete_vote(self, round_id: UUID, ticket_id: UUID, user_id: UUID) -> bool:
        return self._votes.pop((round_id, ticket_id, user_id), None) is not None

    # ------------------------------------------------------------------
    # Continuation voting
    # ------------------------------------------------------------------

    async def add_continuation_round(self, ballot_round: ContinuationRound) -> ContinuationRound:
        if ballot_round.ticket_id in self._continuation_rounds:
            raise DuplicateRecordError(
                f"Ticket {ballot_round.ticket_id} already has a continuation round"
            )
        self._continuation_rounds[ballot_round.ticket_id] = _copy(ballot_round)
        return _copy(ballot_round)

    async def get_continuation_round(self, ticket_id: UUID) -> ContinuationRound | None:
        ballot_round = self._continuation_rounds.get(ticket_id)
        return _copy(ballot_round) if ballot_round else None

    async def compare_and_set_continuation_round(
        self, ticket_id: UUID, expected: dict[str, Any], changes: dict[str, Any]
    ) -> ContinuationRound | None:
        ballot_round = self._continuation_rounds.get(ticket_id)
        if ballot_round is None or not _matches(ballot_round, expected):
            return None
        updated = ballot_round.model_copy(update=changes)
        self._continuation_rounds[ticket_id] = updated
        return _copy(updated)

    async def delete_continuation_round(self, ticket_id: UUID) -> bool:
        return self._continuation_rounds.pop(ticket_id, None) is not None

    async def upsert_ballot(self, ballot: Ballot) -> Ballot:
        self._ballots[(ballot.ticket_id, ballot.user_id)] = _copy(ballot)
        return _copy(ballot)

    async def list_ballots(self, ticket_id: UUID) -> list[Ballot]:
        return [_copy(b) for (tid, _), b in self._ballots.items() if tid == ticket_id]

    async def delete_ballots(self, ticket_id: UUID) -> int:
        keys = [k for k in self._ballots if k[0] == ticket_id]
        for key in keys:
            del self._ballots[key]
        return len(keys)
