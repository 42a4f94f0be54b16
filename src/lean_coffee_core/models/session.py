"""
Session and participant models.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from lean_coffee_core.models.common import (
    MAX_SESSION_NAME_LENGTH,
    MAX_USERNAME_LENGTH,
    ONLINE_THRESHOLD_SECONDS,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Session(BaseModel):
    """A Lean Coffee session.

    Attributes:
        id: Unique session ID
        name: Display name
        short_code: Human-shareable code such as ``evx-asd-hzo``; unique and immutable
        created_at: Creation timestamp
        last_interaction_at: Last time a member joined (read by an external reaper)
        doing_ticket_id: Ticket currently holding the DOING slot, if any
        active_round_id: Quadratic voting round currently active, if any
    """

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=MAX_SESSION_NAME_LENGTH)
    short_code: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=_utcnow)
    last_interaction_at: datetime = Field(default_factory=_utcnow)
    doing_ticket_id: UUID | None = None
    active_round_id: UUID | None = None

    model_config = {"from_attributes": True}


class User(BaseModel):
    """A participant scoped to a single session.

    Usernames are self-asserted and only unique within their session.
    """

    id: UUID = Field(default_factory=uuid4)
    session_id: UUID
    username: str = Field(..., min_length=1, max_length=MAX_USERNAME_LENGTH)
    joined_at: datetime = Field(default_factory=_utcnow)
    last_seen: datetime = Field(default_factory=_utcnow)

    model_config = {"from_attributes": True}

    def is_online(
        self, now: datetime, threshold_seconds: int = ONLINE_THRESHOLD_SECONDS
    ) -> bool:
        """Check whether the user was seen within the presence threshold."""
        return (now - self.last_seen).total_seconds() < threshold_seconds


class SessionDetails(BaseModel):
    """Session with its members, most recently seen first."""

    session: Session
    users: list[User] = Field(default_factory=list)


class JoinResult(BaseModel):
    """Outcome of joining a session with a username."""

    user: User
    is_new: bool


__all__ = ["Session", "User", "SessionDetails", "JoinResult"]
