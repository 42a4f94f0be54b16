"""
Ticket lifecycle service.

Owns the space state machine: creation in PERSONAL, ownership rules,
the one-ticket-in-DOING rule, timer freezing when a discussion ends, and
archive bookkeeping.
"""

from uuid import UUID

from lean_coffee_core.core.clock import Clock, SystemClock
from lean_coffee_core.core.logging import get_logger
from lean_coffee_core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from lean_coffee_core.models.common import (
    ARCHIVED_BY_UNKNOWN,
    MAX_DESCRIPTION_LENGTH,
    MIN_DESCRIPTION_LENGTH,
    TicketSpace,
)
from lean_coffee_core.models.ticket import Ticket
from lean_coffee_core.services.slots import DOING_SLOT, claim_slot, release_slot
from lean_coffee_core.services.timer import freeze_timer, timer_guard
from lean_coffee_core.storage.interface import RecordStore

logger = get_logger(__name__)


class TicketService:
    """
    Service for managing tickets within a session.

    Provides methods for creating, listing, moving, editing and deleting
    tickets. Moves into DOING claim the session's DOING slot first, so at
    most one ticket per session is ever observed in DOING.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock | None = None,
        max_description_length: int = MAX_DESCRIPTION_LENGTH,
    ) -> None:
        """
        Initialize the ticket service.

        Args:
            store: Record store instance
            clock: Clock used for timestamps (defaults to system time)
            max_description_length: Upper bound on description length
        """
        self._store = store
        self._clock = clock or SystemClock()
        self._max_description_length = max_description_length

    # ========================================================================
    # Helpers
    # ========================================================================

    def _validate_description(self, description: str) -> str:
        # Blank text is rejected, but the description is stored as written
        if (
            len(description.strip()) < MIN_DESCRIPTION_LENGTH
            or len(description) > self._max_description_length
        ):
            raise ValidationError(
                f"Description must be between {MIN_DESCRIPTION_LENGTH} and "
                f"{self._max_description_length} characters"
            )
        return description

    async def get_ticket(self, ticket_id: UUID) -> Ticket:
        """
        Retrieve a ticket by ID.

        Raises:
            NotFoundError: If the ticket does not exist
        """
        ticket = await self._store.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        return ticket

    async def _doing_holder_is_stale(self, holder_id: UUID) -> bool:
        # A holder in PERSONAL or TODO may be mid-move into DOING
        holder = await self._store.get_ticket(holder_id)
        return holder is None or holder.space == TicketSpace.ARCHIVE

    # ========================================================================
    # Operations
    # ========================================================================

    async def create_ticket(self, session_id: UUID, user_id: UUID, description: str) -> Ticket:
        """
        Create a ticket in the creator's PERSONAL space.

        Args:
            session_id: Owning session
            user_id: Creator
            description: Topic text (1-1000 characters)

        Returns:
            The created ticket

        Raises:
            ValidationError: If the description is empty or too long
            NotFoundError: If the session or user does not exist
        """
        description = self._validate_description(description)

        if await self._store.get_session(session_id) is None:
            raise NotFoundError(f"Session {session_id} not found")
        user = await self._store.get_user(user_id)
        if user is None or user.session_id != session_id:
            raise NotFoundError(f"User {user_id} not found in session")

        now = self._clock.now()
        ticket = await self._store.add_ticket(
            Ticket(
                session_id=session_id,
                owner_id=user_id,
                description=description,
                space=TicketSpace.PERSONAL,
                created_at=now,
                updated_at=now,
            )
        )

        logger.info(
            "Ticket created",
            extra={"context": {"ticket_id": str(ticket.id), "session_id": str(session_id)}},
        )
        return ticket

    async def list_visible(self, session_id: UUID, user_id: UUID) -> list[Ticket]:
        """
        List the tickets a member may see.

        Shared spaces are visible to everyone; PERSONAL tickets only to
        their creator. Ordered by vote tally, then newest first.

        Raises:
            NotFoundError: If the session does not exist
        """
        if await self._store.get_session(session_id) is None:
            raise NotFoundError(f"Session {session_id} not found")

        tickets = await self._store.list_tickets(session_id)
        visible = [t for t in tickets if t.is_visible_to(user_id)]
        visible.sort(key=lambda t: (t.vote_count, t.created_at), reverse=True)
        return visible

    async def move_to_space(
        self,
        ticket_id: UUID,
        target: TicketSpace,
        user_id: UUID,
        username: str | None = None,
    ) -> Ticket:
        """
        Move a ticket to another space.

        Args:
            ticket_id: Ticket to move
            target: Destination space
            user_id: Acting user
            username: Acting username, recorded when archiving

        Returns:
            The updated ticket

        Raises:
            NotFoundError: If the ticket does not exist
            ForbiddenError: If a PERSONAL ticket is moved by someone else
            InvalidStateError: If the ticket is already archived
            ConflictError: If DOING is occupied or the ticket changed concurrently
        """
        ticket = await self.get_ticket(ticket_id)

        if ticket.space == TicketSpace.PERSONAL and ticket.owner_id != user_id:
            raise ForbiddenError("You can only move your own personal tickets")

        if ticket.space == target:
            return ticket

        if ticket.space == TicketSpace.ARCHIVE:
            raise InvalidStateError("Archived tickets cannot be moved")

        if target == TicketSpace.DOING:
            return await self._enter_doing(ticket)

        now = self._clock.now()
        expected: dict = {"space": ticket.space}
        changes: dict = {"space": target}

        leaving_doing = ticket.space == TicketSpace.DOING
        if leaving_doing:
            expected.update(timer_guard(ticket))
            changes.update(freeze_timer(ticket, now))

        if target == TicketSpace.ARCHIVE:
            changes["archived_by"] = username or ARCHIVED_BY_UNKNOWN
            changes["archived_at"] = now

        updated = await self._store.compare_and_set_ticket(ticket.id, expected, changes)
        if updated is None:
            await self.get_ticket(ticket_id)
            raise ConflictError("Ticket changed concurrently; reload and try again")

        if leaving_doing:
            await release_slot(self._store, ticket.session_id, DOING_SLOT, ticket.id)
            # Ballots belong to one discussion; a later one starts clean
            await self._store.delete_ballots(ticket.id)
            await self._store.delete_continuation_round(ticket.id)

        logger.info(
            f"Ticket moved {ticket.space.value} -> {target.value}",
            extra={"context": {"ticket_id": str(ticket.id), "user_id": str(user_id)}},
        )
        return updated

    async def _enter_doing(self, ticket: Ticket) -> Ticket:
        claimed = await claim_slot(
            self._store,
            ticket.session_id,
            DOING_SLOT,
            ticket.id,
            self._doing_holder_is_stale,
        )
        if not claimed:
            logger.info(
                "DOING slot occupied",
                extra={"context": {"ticket_id": str(ticket.id), "session_id": str(ticket.session_id)}},
            )
            raise ConflictError("Only one ticket can be in DOING at a time")

        updated = await self._store.compare_and_set_ticket(
            ticket.id, {"space": ticket.space}, {"space": TicketSpace.DOING}
        )
        if updated is None:
            await release_slot(self._store, ticket.session_id, DOING_SLOT, ticket.id)
            await self.get_ticket(ticket.id)
            raise ConflictError("Ticket changed concurrently; reload and try again")

        logger.info(
            f"Ticket moved {ticket.space.value} -> DOING",
            extra={"context": {"ticket_id": str(ticket.id)}},
        )
        return updated

    async def edit_ticket(self, ticket_id: UUID, user_id: UUID, description: str) -> Ticket:
        """
        Replace a ticket's description. Only the creator may edit.

        Raises:
            ValidationError: If the description is empty or too long
            NotFoundError: If the ticket does not exist
            ForbiddenError: If the actor is not the creator
        """
        description = self._validate_description(description)
        ticket = await self.get_ticket(ticket_id)
        if ticket.owner_id != user_id:
            raise ForbiddenError("You can only edit your own tickets")

        updated = await self._store.update_ticket(ticket_id, description=description)
        if updated is None:
            raise NotFoundError("Ticket not found")
        return updated

    async def delete_ticket(self, ticket_id: UUID, user_id: UUID) -> None:
        """
        Delete a ticket in any space. Only the creator may delete.

        Raises:
            NotFoundError: If the ticket does not exist
            ForbiddenError: If the actor is not the creator
        """
        ticket = await self.get_ticket(ticket_id)
        if ticket.owner_id != user_id:
            raise ForbiddenError("You can only delete your own tickets")

        if not await self._store.delete_ticket(ticket_id):
            raise NotFoundError("Ticket not found")

        await release_slot(self._store, ticket.session_id, DOING_SLOT, ticket_id)
        await self._store.delete_ballots(ticket_id)
        await self._store.delete_continuation_round(ticket_id)

        logger.info(
            "Ticket deleted",
            extra={"context": {"ticket_id": str(ticket_id), "space": ticket.space.value}},
        )
