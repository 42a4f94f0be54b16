"""
Unit tests for the in-memory record store.

Tests conditional updates, uniqueness rules and copy isolation.
"""

from uuid import uuid4

import pytest
import pytest_asyncio

from lean_coffee_core.errors import DuplicateRecordError
from lean_coffee_core.models.common import ContinuationChoice, TicketSpace
from lean_coffee_core.models.continuation import Ballot, ContinuationRound
from lean_coffee_core.models.session import Session, User
from lean_coffee_core.models.ticket import Ticket
from lean_coffee_core.models.voting import Vote, VoterStatus, VotingRound
from lean_coffee_core.storage.memory import InMemoryRecordStore


@pytest_asyncio.fixture
async def seeded():
    """A store holding one session with one member."""
    store = InMemoryRecordStore()
    session = await store.create_session(Session(name="Retro", short_code="abc-def-ghi"))
    user = await store.add_user(User(session_id=session.id, username="alice"))
    return store, session, user


@pytest.mark.unit
class TestInMemoryRecordStore:
    """Tests for InMemoryRecordStore class."""

    async def test_duplicate_short_code_rejected(self, seeded) -> None:
        store, _, _ = seeded

        with pytest.raises(DuplicateRecordError):
            await store.create_session(Session(name="Other", short_code="abc-def-ghi"))

    async def test_duplicate_username_rejected_per_session(self, seeded) -> None:
        store, session, _ = seeded
        other = await store.create_session(Session(name="Other", short_code="xyz-xyz-xyz"))

        with pytest.raises(DuplicateRecordError):
            await store.add_user(User(session_id=session.id, username="alice"))

        added = await store.add_user(User(session_id=other.id, username="alice"))
        assert added.session_id == other.id

    async def test_compare_and_set_matches_guard(self, seeded) -> None:
        store, session, _ = seeded
        holder = uuid4()

        claimed = await store.compare_and_set_session(
            session.id, {"doing_ticket_id": None}, {"doing_ticket_id": holder}
        )
        rejected = await store.compare_and_set_session(
            session.id, {"doing_ticket_id": None}, {"doing_ticket_id": uuid4()}
        )

        assert claimed is not None
        assert claimed.doing_ticket_id == holder
        assert rejected is None
        assert (await store.get_session(session.id)).doing_ticket_id == holder

    async def test_compare_and_set_missing_record(self) -> None:
        store = InMemoryRecordStore()

        assert await store.compare_and_set_ticket(uuid4(), {}, {"vote_count": 1}) is None

    async def test_returned_records_are_copies(self, seeded) -> None:
        store, session, _ = seeded

        fetched = await store.get_session(session.id)
        fetched.name = "Mutated"

        assert (await store.get_session(session.id)).name == "Retro"

    async def test_ticket_update_touches_updated_at(self, seeded) -> None:
        store, session, user = seeded
        ticket = await store.add_ticket(
            Ticket(session_id=session.id, owner_id=user.id, description="Topic")
        )

        updated = await store.update_ticket(ticket.id, space=TicketSpace.TODO)

        assert updated.space == TicketSpace.TODO
        assert updated.updated_at >= ticket.updated_at

    async def test_list_and_count_tickets_by_space(self, seeded) -> None:
        store, session, user = seeded
        for space in (TicketSpace.PERSONAL, TicketSpace.TODO, TicketSpace.TODO):
            await store.add_ticket(
                Ticket(session_id=session.id, owner_id=user.id, description="T", space=space)
            )

        assert await store.count_tickets(session.id, TicketSpace.TODO) == 2
        assert len(await store.list_tickets(session.id, [TicketSpace.PERSONAL])) == 1
        assert len(await store.list_tickets(session.id)) == 3

    async def test_delete_ticket_drops_its_votes(self, seeded) -> None:
        store, session, user = seeded
        ticket = await store.add_ticket(
            Ticket(session_id=session.id, owner_id=user.id, description="T", space=TicketSpace.TODO)
        )
        voting_round = await store.add_round(
            VotingRound(session_id=session.id),
            [VoterStatus(round_id=uuid4(), user_id=user.id)],
        )
        await store.upsert_vote(
            Vote(round_id=voting_round.id, ticket_id=ticket.id, user_id=user.id, vote_count=2, points_cost=4)
        )

        assert await store.delete_ticket(ticket.id) is True
        assert await store.list_votes(voting_round.id) == []
        assert await store.delete_ticket(ticket.id) is False

    async def test_upsert_vote_replaces(self, seeded) -> None:
        store, session, user = seeded
        round_id, ticket_id = uuid4(), uuid4()

        await store.upsert_vote(
            Vote(round_id=round_id, ticket_id=ticket_id, user_id=user.id, vote_count=1, points_cost=1)
        )
        await store.upsert_vote(
            Vote(round_id=round_id, ticket_id=ticket_id, user_id=user.id, vote_count=3, points_cost=9)
        )

        votes = await store.list_votes(round_id, user.id)
        assert len(votes) == 1
        assert votes[0].points_cost == 9
        assert await store.delete_vote(round_id, ticket_id, user.id) is True
        assert await store.delete_vote(round_id, ticket_id, user.id) is False

    async def test_voter_status_update(self, seeded) -> None:
        store, session, user = seeded
        voting_round = VotingRound(session_id=session.id)
        await store.add_round(voting_round, [VoterStatus(round_id=voting_round.id, user_id=user.id)])

        status = await store.update_voter_status(voting_round.id, user.id, is_done=True)

        assert status.is_done is True
        assert await store.update_voter_status(voting_round.id, uuid4(), is_done=True) is None

    async def test_one_continuation_round_per_ticket(self, seeded) -> None:
        store, session, user = seeded
        ticket_id = uuid4()
        await store.add_continuation_round(
            ContinuationRound(ticket_id=ticket_id, session_id=session.id, participant_ids=[user.id])
        )

        with pytest.raises(DuplicateRecordError):
            await store.add_continuation_round(
                ContinuationRound(ticket_id=ticket_id, session_id=session.id)
            )

        closed = await store.compare_and_set_continuation_round(
            ticket_id, {"is_active": True}, {"is_active": False}
        )
        again = await store.compare_and_set_continuation_round(
            ticket_id, {"is_active": True}, {"is_active": False}
        )
        assert closed is not None
        assert again is None

    async def test_ballots_upsert_and_clear(self, seeded) -> None:
        store, _, user = seeded
        ticket_id = uuid4()

        await store.upsert_ballot(
            Ballot(ticket_id=ticket_id, user_id=user.id, choice=ContinuationChoice.CONTINUE)
        )
        await store.upsert_ballot(
            Ballot(ticket_id=ticket_id, user_id=user.id, choice=ContinuationChoice.ARCHIVE)
        )

        ballots = await store.list_ballots(ticket_id)
        assert [b.choice for b in ballots] == [ContinuationChoice.ARCHIVE]
        assert await store.delete_ballots(ticket_id) == 1
        assert await store.list_ballots(ticket_id) == []
