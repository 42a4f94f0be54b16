"""
SQLAlchemy implementation of RecordStore.
"""

from collections.abc import Iterable
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lean_coffee_core.core.logging import get_logger
from lean_coffee_core.db.base import Base
from lean_coffee_core.db.models import (
    BallotDB,
    ContinuationRoundDB,
    SessionDB,
    TicketDB,
    UserDB,
    VoteDB,
    VoterStatusDB,
    VotingRoundDB,
)
from lean_coffee_core.errors import DuplicateRecordError, NotFoundError
from lean_coffee_core.models.common import TicketSpace
from lean_coffee_core.models.continuation import Ballot, ContinuationRound
from lean_coffee_core.models.session import Session, User
from lean_coffee_core.models.ticket import Ticket
from lean_coffee_core.models.voting import Vote, VoterStatus, VotingRound
from lean_coffee_core.storage.interface import RecordStore

logger = get_logger(__name__)


def _column_value(key: str, value: Any) -> Any:
    if key == "participant_ids":
        return [str(v) for v in value]
    if isinstance(value, Enum) and not isinstance(value, TicketSpace):
        return value.value
    return value


def _column_values(values: dict[str, Any]) -> dict[str, Any]:
    return {key: _column_value(key, value) for key, value in values.items()}


# SQLSTATE for a foreign key violation; SQLite only reports it in the message
FOREIGN_KEY_VIOLATION = "23503"


def _is_foreign_key_violation(error: IntegrityError) -> bool:
    orig = error.orig
    if getattr(orig, "sqlstate", None) == FOREIGN_KEY_VIOLATION:
        return True
    return "FOREIGN KEY constraint failed" in str(orig)


def _guards(model: type[Base], expected: dict[str, Any]) -> list:
    conditions = []
    for key, value in expected.items():
        column = getattr(model, key)
        conditions.append(column.is_(None) if value is None else column == _column_value(key, value))
    return conditions


class SQLAlchemyRecordStore(RecordStore):
    """
    SQLAlchemy implementation of RecordStore.

    Every method opens its own short transaction, so a committed write is
    visible to the next call of any concurrent request. Conditional
    updates are single ``UPDATE ... WHERE`` statements whose row count
    tells whether the guard matched.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        """
        Initialize the store.

        Args:
            session_maker: Factory for SQLAlchemy async sessions
        """
        self._session_maker = session_maker
        logger.info("SQLAlchemyRecordStore initialized")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get(self, model: type[Base], *conditions) -> Any | None:
        async with self._session_maker() as session:
            result = await session.execute(select(model).where(*conditions))
            row = result.scalar_one_or_none()
            return row.to_pydantic() if row else None

    async def _list(self, model: type[Base], *conditions, order_by=None) -> list[Any]:
        async with self._session_maker() as session:
            stmt = select(model).where(*conditions)
            if order_by is not None:
                stmt = stmt.order_by(order_by)
            result = await session.execute(stmt)
            return [row.to_pydantic() for row in result.scalars().all()]

    async def _insert(self, row: Base, description: str) -> Any:
        try:
            async with self._session_maker() as session, session.begin():
                session.add(row)
                await session.flush()
                return row.to_pydantic()
        except IntegrityError as e:
            if _is_foreign_key_violation(e):
                raise NotFoundError(f"{description} refers to a record that does not exist") from e
            raise DuplicateRecordError(f"{description} already exists") from e

    async def _compare_and_set(
        self,
        model: type[Base],
        key_conditions: list,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> Any | None:
        values = _column_values(changes)
        if not values:
            values = {"updated_at": func.now()}

        async with self._session_maker() as session, session.begin():
            result = await session.execute(
                update(model)
                .where(*key_conditions, *_guards(model, expected))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            row = (await session.execute(select(model).where(*key_conditions))).scalar_one()
            return row.to_pydantic()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(self, session: Session) -> Session:
        return await self._insert(
            SessionDB(
                id=session.id,
                name=session.name,
                short_code=session.short_code,
                created_at=session.created_at,
                last_interaction_at=session.last_interaction_at,
                doing_ticket_id=session.doing_ticket_id,
                active_round_id=session.active_round_id,
            ),
            f"Session with short code '{session.short_code}'",
        )

    async def get_session(self, session_id: UUID) -> Session | None:
        return await self._get(SessionDB, SessionDB.id == session_id)

    async def get_session_by_code(self, short_code: str) -> Session | None:
        return await self._get(SessionDB, SessionDB.short_code == short_code)

    async def update_session(self, session_id: UUID, **changes: Any) -> Session | None:
        return await self.compare_and_set_session(session_id, {}, changes)

    async def compare_and_set_session(
        self, session_id: UUID, expected: dict[str, Any], changes: dict[str, Any]
    ) -> Session | None:
        return await self._compare_and_set(SessionDB, [SessionDB.id == session_id], expected, changes)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def add_user(self, user: User) -> User:
        return await self._insert(
            UserDB(
                id=user.id,
                session_id=user.session_id,
                username=user.username,
                joined_at=user.joined_at,
                last_seen=user.last_seen,
            ),
            f"User '{user.username}'",
        )

    async def get_user(self, user_id: UUID) -> User | None:
        return await self._get(UserDB, UserDB.id == user_id)

    async def get_user_by_username(self, session_id: UUID, username: str) -> User | None:
        return await self._get(UserDB, UserDB.session_id == session_id, UserDB.username == username)

    async def list_users(self, session_id: UUID) -> list[User]:
        return await self._list(UserDB, UserDB.session_id == session_id, order_by=UserDB.joined_at)

    async def update_user(self, user_id: UUID, **changes: Any) -> User | None:
        return await self._compare_and_set(UserDB, [UserDB.id == user_id], {}, changes)

    # ------------------------------------------------------------------
    # Tickets
    # ------------------------------------------------------------------

    async def add_ticket(self, ticket: Ticket) -> Ticket:
        return await self._insert(
            TicketDB(**ticket.model_dump()),
            f"Ticket {ticket.id}",
        )

    async def get_ticket(self, ticket_id: UUID) -> Ticket | None:
        return await self._get(TicketDB, TicketDB.id == ticket_id)

    async def list_tickets(
        self, session_id: UUID, spaces: Iterable[TicketSpace] | None = None
    ) -> list[Ticket]:
        conditions = [TicketDB.session_id == session_id]
        if spaces is not None:
            conditions.append(TicketDB.space.in_(list(spaces)))
        return await self._list(TicketDB, *conditions, order_by=TicketDB.created_at)

    async def count_tickets(self, session_id: UUID, space: TicketSpace) -> int:
        async with self._session_maker() as session:
            result = await session.execute(
                select(func.count())
                .select_from(TicketDB)
                .where(TicketDB.session_id == session_id, TicketDB.space == space)
            )
            return result.scalar_one()

    async def update_ticket(self, ticket_id: UUID, **changes: Any) -> Ticket | None:
        return await self.compare_and_set_ticket(ticket_id, {}, changes)

    async def compare_and_set_ticket(
        self, ticket_id: UUID, expected: dict[str, Any], changes: dict[str, Any]
    ) -> Ticket | None:
        return await self._compare_and_set(TicketDB, [TicketDB.id == ticket_id], expected, changes)

    async def delete_ticket(self, ticket_id: UUID) -> bool:
        async with self._session_maker() as session, session.begin():
            await session.execute(delete(VoteDB).where(VoteDB.ticket_id == ticket_id))
            await session.execute(delete(BallotDB).where(BallotDB.ticket_id == ticket_id))
            await session.execute(
                delete(ContinuationRoundDB).where(ContinuationRoundDB.ticket_id == ticket_id)
            )
            result = await session.execute(delete(TicketDB).where(TicketDB.id == ticket_id))
            return result.rowcount > 0

    # ------------------------------------------------------------------
    # Quadratic voting
    # ------------------------------------------------------------------

    async def add_round(
        self, voting_round: VotingRound, voter_statuses: list[VoterStatus]
    ) -> VotingRound:
        async with self._session_maker() as session, session.begin():
            db_round = VotingRoundDB(**voting_round.model_dump())
            session.add(db_round)
            session.add_all(
                VoterStatusDB(round_id=s.round_id, user_id=s.user_id, is_done=s.is_done)
                for s in voter_statuses
            )
            await session.flush()
            return db_round.to_pydantic()

    async def get_round(self, round_id: UUID) -> VotingRound | None:
        return await self._get(VotingRoundDB, VotingRoundDB.id == round_id)

    async def compare_and_set_round(
        self, round_id: UUID, expected: dict[str, Any], changes: dict[str, Any]
    ) -> VotingRound | None:
        return await self._compare_and_set(
            VotingRoundDB, [VotingRoundDB.id == round_id], expected, changes
        )

    async def list_voter_statuses(self, round_id: UUID) -> list[VoterStatus]:
        return await self._list(VoterStatusDB, VoterStatusDB.round_id == round_id)

    async def update_voter_status(
        self, round_id: UUID, user_id: UUID, **changes: Any
    ) -> VoterStatus | None:
        return await self._compare_and_set(
            VoterStatusDB,
            [VoterStatusDB.round_id == round_id, VoterStatusDB.user_id == user_id],
            {},
            changes,
        )

    async def list_votes(self, round_id: UUID, user_id: UUID | None = None) -> list[Vote]:
        conditions = [VoteDB.round_id == round_id]
        if user_id is not None:
            conditions.append(VoteDB.user_id == user_id)
        return await self._list(VoteDB, *conditions)

    async def upsert_vote(self, vote: Vote) -> Vote:
        keys = [
            VoteDB.round_id == vote.round_id,
            VoteDB.ticket_id == vote.ticket_id,
            VoteDB.user_id == vote.user_id,
        ]
        changes = {"vote_count": vote.vote_count, "points_cost": vote.points_cost}

        # A concurrent insert of the same key turns the second attempt into an update
        for _ in range(2):
            updated = await self._compare_and_set(VoteDB, keys, {}, changes)
            if updated is not None:
                return updated
            try:
                return await self._insert(VoteDB(**vote.model_dump()), "Vote")
            except DuplicateRecordError:
                continue

        raise DuplicateRecordError("Vote could not be stored")

    async def delete_vote(self, round_id: UUID, ticket_id: UUID, user_id: UUID) -> bool:
        async with self._session_maker() as session, session.begin():
            result = await session.execute(
                delete(VoteDB).where(
                    VoteDB.round_id == round_id,
                    VoteDB.ticket_id == ticket_id,
                    VoteDB.user_id == user_id,
                )
            )
            return result.rowcount > 0

    # ------------------------------------------------------------------
    # Continuation voting
    # ------------------------------------------------------------------

    async def add_continuation_round(self, ballot_round: ContinuationRound) -> ContinuationRound:
        return await self._insert(
            ContinuationRoundDB(**_column_values(ballot_round.model_dump())),
            f"Continuation round for ticket {ballot_round.ticket_id}",
        )

    async def get_continuation_round(self, ticket_id: UUID) -> ContinuationRound | None:
        return await self._get(ContinuationRoundDB, ContinuationRoundDB.ticket_id == ticket_id)

    async def compare_and_set_continuation_round(
        self, ticket_id: UUID, expected: dict[str, Any], changes: dict[str, Any]
    ) -> ContinuationRound | None:
        return await self._compare_and_set(
            ContinuationRoundDB, [ContinuationRoundDB.ticket_id == ticket_id], expected, changes
        )

    async def delete_continuation_round(self, ticket_id: UUID) -> bool:
        async with self._session_maker() as session, session.begin():
            result = await session.execute(
                delete(ContinuationRoundDB).where(ContinuationRoundDB.ticket_id == ticket_id)
            )
            return result.rowcount > 0

    async def upsert_ballot(self, ballot: Ballot) -> Ballot:
        keys = [BallotDB.ticket_id == ballot.ticket_id, BallotDB.user_id == ballot.user_id]
        changes = {"choice": ballot.choice, "cast_at": ballot.cast_at}

        for _ in range(2):
            updated = await self._compare_and_set(BallotDB, keys, {}, changes)
            if updated is not None:
                return updated
            try:
                return await self._insert(BallotDB(**_column_values(ballot.model_dump())), "Ballot")
            except DuplicateRecordError:
                continue

        raise DuplicateRecordError("Ballot could not be stored")

    async def list_ballots(self, ticket_id: UUID) -> list[Ballot]:
        return await self._list(BallotDB, BallotDB.ticket_id == ticket_id, order_by=BallotDB.cast_at)

    async def delete_ballots(self, ticket_id: UUID) -> int:
        async with self._session_maker() as session, session.begin():
            result = await session.execute(delete(BallotDB).where(BallotDB.ticket_id == ticket_id))
            return result.rowcount
