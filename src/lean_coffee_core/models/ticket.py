"""
Ticket and discussion timer models.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from lean_coffee_core.models.common import TicketSpace


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Ticket(BaseModel):
    """A discussion topic proposed by a participant.

    Attributes:
        id: Unique ticket ID
        session_id: Owning session
        owner_id: Creator; ownership never transfers
        description: Topic text
        space: Queue the ticket currently occupies
        vote_count: Tally written by the last closed voting round
        timer_started_at: Start of the running (or last) timer interval
        timer_paused_at: When the timer was paused, if paused
        total_discussion_ms: Accumulated discussion time of completed intervals
        archived_by: Who (or what) archived the ticket
        archived_at: When the ticket entered ARCHIVE
    """

    id: UUID = Field(default_factory=uuid4)
    session_id: UUID
    owner_id: UUID
    description: str
    space: TicketSpace = TicketSpace.PERSONAL
    vote_count: int = 0
    timer_started_at: datetime | None = None
    timer_paused_at: datetime | None = None
    total_discussion_ms: int = Field(default=0, ge=0)
    archived_by: str | None = None
    archived_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = {"from_attributes": True}

    @property
    def is_timer_running(self) -> bool:
        return self.timer_started_at is not None and self.timer_paused_at is None

    def is_visible_to(self, user_id: UUID) -> bool:
        """PERSONAL tickets are private to their creator."""
        return self.space != TicketSpace.PERSONAL or self.owner_id == user_id


class TimerState(BaseModel):
    """Derived view of a ticket's discussion timer at a point in time."""

    ticket_id: UUID
    is_running: bool
    elapsed_ms: int
    total_discussion_ms: int
    timer_started_at: datetime | None = None
    timer_paused_at: datetime | None = None
    duration_ms: int
    remaining_ms: int
    is_time_up: bool


__all__ = ["Ticket", "TimerState"]
