"""
Unit tests for TicketService.

Tests creation, visibility and ordering, the space state machine, the
single-DOING rule and owner-only edits and deletes.
"""

import asyncio

import pytest

from lean_coffee_core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from lean_coffee_core.models.common import ARCHIVED_BY_UNKNOWN, TicketSpace


@pytest.mark.unit
class TestCreateTicket:
    """Tests for ticket creation."""

    async def test_create_ticket_in_personal(self, ticket_service, lean_session, members) -> None:
        alice = members[0]

        ticket = await ticket_service.create_ticket(lean_session.id, alice.id, "  Remote work  ")

        assert ticket.space == TicketSpace.PERSONAL
        assert ticket.owner_id == alice.id
        assert ticket.description == "  Remote work  "
        assert ticket.vote_count == 0
        assert ticket.total_discussion_ms == 0

    @pytest.mark.parametrize("description", ["", "   ", "x" * 1001])
    async def test_create_ticket_rejects_bad_description(
        self, ticket_service, lean_session, members, description
    ) -> None:
        with pytest.raises(ValidationError):
            await ticket_service.create_ticket(lean_session.id, members[0].id, description)

    async def test_create_ticket_accepts_max_length(self, ticket_service, lean_session, members) -> None:
        ticket = await ticket_service.create_ticket(lean_session.id, members[0].id, "x" * 1000)
        assert len(ticket.description) == 1000

    async def test_create_ticket_unknown_user(self, ticket_service, lean_session) -> None:
        from uuid import uuid4

        with pytest.raises(NotFoundError):
            await ticket_service.create_ticket(lean_session.id, uuid4(), "Topic")

    async def test_create_ticket_user_from_other_session(
        self, ticket_service, session_service, members
    ) -> None:
        other = await session_service.create_session("Other")

        with pytest.raises(NotFoundError):
            await ticket_service.create_ticket(other.id, members[0].id, "Topic")


@pytest.mark.unit
class TestListVisible:
    """Tests for visibility and ordering."""

    async def test_personal_tickets_are_private(
        self, ticket_service, lean_session, members, make_ticket
    ) -> None:
        alice, bob, _ = members
        private = await make_ticket(alice, "Alice draft")
        shared = await make_ticket(alice, "Alice shared", TicketSpace.TODO)

        alice_view = {t.id for t in await ticket_service.list_visible(lean_session.id, alice.id)}
        bob_view = {t.id for t in await ticket_service.list_visible(lean_session.id, bob.id)}

        assert alice_view == {private.id, shared.id}
        assert bob_view == {shared.id}

    async def test_ordering_by_votes_then_newest(
        self, ticket_service, store, clock, lean_session, members, make_ticket
    ) -> None:
        alice = members[0]
        older = await make_ticket(alice, "Older", TicketSpace.TODO)
        clock.advance(seconds=1)
        newer = await make_ticket(alice, "Newer", TicketSpace.TODO)
        clock.advance(seconds=1)
        low = await make_ticket(alice, "Low", TicketSpace.TODO)

        await store.update_ticket(older.id, vote_count=5)
        await store.update_ticket(newer.id, vote_count=5)
        await store.update_ticket(low.id, vote_count=2)

        tickets = await ticket_service.list_visible(lean_session.id, alice.id)

        assert [t.id for t in tickets] == [newer.id, older.id, low.id]
        assert [t.vote_count for t in tickets] == [5, 5, 2]


@pytest.mark.unit
class TestMoveToSpace:
    """Tests for the space state machine."""

    async def test_personal_move_by_other_user_forbidden(self, ticket_service, members, make_ticket) -> None:
        alice, bob, _ = members
        ticket = await make_ticket(alice)

        with pytest.raises(ForbiddenError):
            await ticket_service.move_to_space(ticket.id, TicketSpace.TODO, bob.id)

    async def test_shared_ticket_movable_by_anyone(self, ticket_service, members, make_ticket) -> None:
        alice, bob, _ = members
        ticket = await make_ticket(alice, space=TicketSpace.TODO)

        moved = await ticket_service.move_to_space(ticket.id, TicketSpace.DOING, bob.id)

        assert moved.space == TicketSpace.DOING

    async def test_move_to_same_space_is_noop(self, ticket_service, members, make_ticket) -> None:
        alice = members[0]
        ticket = await make_ticket(alice, space=TicketSpace.TODO)

        again = await ticket_service.move_to_space(ticket.id, TicketSpace.TODO, alice.id)

        assert again.updated_at == ticket.updated_at
        assert again.space == TicketSpace.TODO

    async def test_archive_stamps_username(self, ticket_service, clock, members, make_ticket) -> None:
        alice, bob, _ = members
        ticket = await make_ticket(alice, space=TicketSpace.TODO)

        archived = await ticket_service.move_to_space(
            ticket.id, TicketSpace.ARCHIVE, bob.id, bob.username
        )

        assert archived.archived_by == "bob"
        assert archived.archived_at == clock.now()

    async def test_archive_without_username_is_unknown(self, ticket_service, members, make_ticket) -> None:
        alice = members[0]
        ticket = await make_ticket(alice, space=TicketSpace.TODO)

        archived = await ticket_service.move_to_space(ticket.id, TicketSpace.ARCHIVE, alice.id)

        assert archived.archived_by == ARCHIVED_BY_UNKNOWN

    async def test_archive_is_terminal(self, ticket_service, members, make_ticket) -> None:
        alice = members[0]
        ticket = await make_ticket(alice, space=TicketSpace.ARCHIVE)

        with pytest.raises(InvalidStateError):
            await ticket_service.move_to_space(ticket.id, TicketSpace.TODO, alice.id)

        same = await ticket_service.move_to_space(ticket.id, TicketSpace.ARCHIVE, alice.id, "x")
        assert same.archived_at == ticket.archived_at
        assert same.archived_by == ticket.archived_by

    async def test_second_ticket_into_doing_conflicts(self, ticket_service, members, make_ticket) -> None:
        alice = members[0]
        first = await make_ticket(alice, "First", TicketSpace.DOING)
        second = await make_ticket(alice, "Second", TicketSpace.TODO)

        with pytest.raises(ConflictError):
            await ticket_service.move_to_space(second.id, TicketSpace.DOING, alice.id)

        assert (await ticket_service.get_ticket(first.id)).space == TicketSpace.DOING
        assert (await ticket_service.get_ticket(second.id)).space == TicketSpace.TODO

    async def test_concurrent_moves_into_doing(
        self, racing_store, clock, lean_session, members, make_ticket
    ) -> None:
        from lean_coffee_core.services import TicketService

        alice = members[0]
        tickets = [await make_ticket(alice, f"T{i}", TicketSpace.TODO) for i in range(5)]
        racing = TicketService(racing_store, clock=clock)

        results = await asyncio.gather(
            *(racing.move_to_space(t.id, TicketSpace.DOING, alice.id) for t in tickets),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert all(isinstance(f, ConflictError) for f in failures)
        assert await racing_store.count_tickets(lean_session.id, TicketSpace.DOING) == 1
        session = await racing_store.get_session(lean_session.id)
        assert session.doing_ticket_id == successes[0].id

    async def test_leaving_doing_folds_timer_and_frees_slot(
        self, ticket_service, timer_service, clock, members, make_ticket
    ) -> None:
        alice = members[0]
        ticket = await make_ticket(alice, "Discussed", TicketSpace.DOING)
        await timer_service.start_timer(ticket.id)
        clock.advance(milliseconds=3000)

        moved = await ticket_service.move_to_space(ticket.id, TicketSpace.TODO, alice.id)

        assert moved.total_discussion_ms == 3000
        assert moved.timer_started_at is None
        assert moved.timer_paused_at is None

        nxt = await make_ticket(alice, "Next", TicketSpace.TODO)
        entered = await ticket_service.move_to_space(nxt.id, TicketSpace.DOING, alice.id)
        assert entered.space == TicketSpace.DOING

    async def test_leaving_doing_discards_ballots(
        self, ticket_service, continuation_service, store, members, make_ticket
    ) -> None:
        from lean_coffee_core.models.common import ContinuationChoice

        alice, bob, _ = members
        ticket = await make_ticket(alice, space=TicketSpace.DOING)
        await continuation_service.cast_ballot(ticket.id, alice.id, ContinuationChoice.ARCHIVE)
        await continuation_service.cast_ballot(ticket.id, bob.id, ContinuationChoice.ARCHIVE)

        await ticket_service.move_to_space(ticket.id, TicketSpace.TODO, alice.id)

        assert await store.list_ballots(ticket.id) == []
        assert await store.get_continuation_round(ticket.id) is None

    async def test_deleted_doing_holder_is_reclaimed(
        self, ticket_service, store, lean_session, members, make_ticket
    ) -> None:
        alice = members[0]
        holder = await make_ticket(alice, "Holder", TicketSpace.DOING)
        # Simulate a crash that removed the ticket but left the slot set
        await store.delete_ticket(holder.id)

        nxt = await make_ticket(alice, "Next", TicketSpace.TODO)
        entered = await ticket_service.move_to_space(nxt.id, TicketSpace.DOING, alice.id)

        assert entered.space == TicketSpace.DOING
        assert (await store.get_session(lean_session.id)).doing_ticket_id == nxt.id

    async def test_missing_ticket(self, ticket_service, members) -> None:
        from uuid import uuid4

        with pytest.raises(NotFoundError):
            await ticket_service.move_to_space(uuid4(), TicketSpace.TODO, members[0].id)


@pytest.mark.unit
class TestEditAndDelete:
    """Tests for owner-only edits and deletes."""

    async def test_edit_by_owner(self, ticket_service, members, make_ticket) -> None:
        alice = members[0]
        ticket = await make_ticket(alice, space=TicketSpace.ARCHIVE)

        edited = await ticket_service.edit_ticket(ticket.id, alice.id, "Reworded")

        assert edited.description == "Reworded"
        assert edited.space == TicketSpace.ARCHIVE

    async def test_edit_by_other_forbidden(self, ticket_service, members, make_ticket) -> None:
        alice, bob, _ = members
        ticket = await make_ticket(alice, space=TicketSpace.TODO)

        with pytest.raises(ForbiddenError):
            await ticket_service.edit_ticket(ticket.id, bob.id, "Hijacked")

    async def test_edit_revalidates_length(self, ticket_service, members, make_ticket) -> None:
        alice = members[0]
        ticket = await make_ticket(alice)

        with pytest.raises(ValidationError):
            await ticket_service.edit_ticket(ticket.id, alice.id, "x" * 1001)

    @pytest.mark.parametrize(
        "space",
        [TicketSpace.PERSONAL, TicketSpace.TODO, TicketSpace.DOING, TicketSpace.ARCHIVE],
    )
    async def test_delete_in_any_space_by_owner(
        self, ticket_service, store, members, make_ticket, space
    ) -> None:
        alice, bob, _ = members
        ticket = await make_ticket(alice, space=space)

        with pytest.raises(ForbiddenError):
            await ticket_service.delete_ticket(ticket.id, bob.id)

        await ticket_service.delete_ticket(ticket.id, alice.id)

        assert await store.get_ticket(ticket.id) is None

    async def test_delete_doing_ticket_frees_slot(
        self, ticket_service, store, lean_session, members, make_ticket
    ) -> None:
        alice = members[0]
        ticket = await make_ticket(alice, space=TicketSpace.DOING)

        await ticket_service.delete_ticket(ticket.id, alice.id)

        assert (await store.get_session(lean_session.id)).doing_ticket_id is None

    async def test_delete_removes_ballots(
        self, ticket_service, continuation_service, store, members, make_ticket
    ) -> None:
        from lean_coffee_core.models.common import ContinuationChoice

        alice, bob, _ = members
        ticket = await make_ticket(alice, space=TicketSpace.DOING)
        await continuation_service.cast_ballot(ticket.id, bob.id, ContinuationChoice.CONTINUE)

        await ticket_service.delete_ticket(ticket.id, alice.id)

        assert await store.list_ballots(ticket.id) == []
        assert await store.get_continuation_round(ticket.id) is None
