"""
Request and response payloads of the HTTP surface.
"""

from uuid import UUID

from pydantic import BaseModel, Field

from lean_coffee_core.models.common import (
    MAX_DESCRIPTION_LENGTH,
    MAX_SESSION_NAME_LENGTH,
    MAX_USERNAME_LENGTH,
    MAX_VOTES_PER_TICKET,
    ContinuationChoice,
    TicketSpace,
)
from lean_coffee_core.models.session import User
from lean_coffee_core.models.voting import Vote


class SessionCreate(BaseModel):
    """Model for creating a new session."""

    name: str = Field(..., min_length=1, max_length=MAX_SESSION_NAME_LENGTH)


class JoinSessionRequest(BaseModel):
    """Join a session under a self-asserted username."""

    username: str = Field(..., min_length=1, max_length=MAX_USERNAME_LENGTH)


class TicketCreate(BaseModel):
    """Model for creating a new ticket."""

    session_id: UUID
    user_id: UUID
    description: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION_LENGTH)


class TicketUpdate(BaseModel):
    """Model for editing a ticket's description."""

    user_id: UUID
    description: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION_LENGTH)


class TicketMove(BaseModel):
    """Model for moving a ticket to another space."""

    space: TicketSpace
    user_id: UUID
    username: str | None = Field(default=None, max_length=MAX_USERNAME_LENGTH)


class VoteCast(BaseModel):
    """Absolute allocation for one ticket in a round."""

    ticket_id: UUID
    user_id: UUID
    vote_count: int = Field(..., ge=0, le=MAX_VOTES_PER_TICKET)


class MarkDoneRequest(BaseModel):
    user_id: UUID


class ForceCloseRequest(BaseModel):
    user_id: UUID
    username: str = Field(..., min_length=1, max_length=MAX_USERNAME_LENGTH)


class BallotCast(BaseModel):
    """Continuation ballot for the ticket in DOING."""

    user_id: UUID
    choice: ContinuationChoice


# ============================================================================
# Responses
# ============================================================================


class MemberStatus(BaseModel):
    """A session member with derived presence."""

    user: User
    is_online: bool


class UsernameAvailability(BaseModel):
    username: str
    available: bool


class VoteResult(BaseModel):
    """Result of a cast; `vote` is None when a zero count removed the vote."""

    vote: Vote | None = None
    deleted: bool = False


class BallotsCleared(BaseModel):
    ticket_id: UUID
    deleted: int


__all__ = [
    "SessionCreate",
    "JoinSessionRequest",
    "TicketCreate",
    "TicketUpdate",
    "TicketMove",
    "VoteCast",
    "MarkDoneRequest",
    "ForceCloseRequest",
    "BallotCast",
    "MemberStatus",
    "UsernameAvailability",
    "VoteResult",
    "BallotsCleared",
]
