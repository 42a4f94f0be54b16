"""
Quadratic voting models.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, computed_field

from lean_coffee_core.models.common import MAX_VOTES_PER_TICKET


def _utcnow() -> datetime:
    return datetime.now(UTC)


def quadratic_cost(vote_count: int) -> int:
    """Points needed to place ``vote_count`` votes on one ticket."""
    return vote_count * vote_count


def total_points(todo_ticket_count: int) -> int:
    """Per-voter budget for a round given the current TODO queue size.

    An empty queue yields no budget at all rather than (0 - 1)^2.
    """
    if todo_ticket_count <= 0:
        return 0
    return (todo_ticket_count - 1) ** 2


class VotingRound(BaseModel):
    """A prioritization round over the session's TODO queue."""

    id: UUID = Field(default_factory=uuid4)
    session_id: UUID
    is_active: bool = True
    started_at: datetime = Field(default_factory=_utcnow)
    ended_at: datetime | None = None
    force_closed_by: str | None = None

    model_config = {"from_attributes": True}


class VoterStatus(BaseModel):
    """Whether a participant captured at round start has finished voting."""

    round_id: UUID
    user_id: UUID
    is_done: bool = False

    model_config = {"from_attributes": True}


class Vote(BaseModel):
    """A user's allocation on one ticket. A zero allocation is never stored."""

    round_id: UUID
    ticket_id: UUID
    user_id: UUID
    vote_count: int = Field(..., ge=1, le=MAX_VOTES_PER_TICKET)
    points_cost: int = Field(..., ge=1)

    model_config = {"from_attributes": True}


class RoundSummary(BaseModel):
    """Active round with its budget evaluated at read time."""

    round: VotingRound
    total_points: int
    voter_statuses: list[VoterStatus] = Field(default_factory=list)


class UserVotes(BaseModel):
    """A user's current allocations within a round."""

    votes: list[Vote] = Field(default_factory=list)
    points_spent: int = 0
    total_points: int = 0

    @computed_field
    @property
    def points_remaining(self) -> int:
        return max(0, self.total_points - self.points_spent)


__all__ = [
    "quadratic_cost",
    "total_points",
    "VotingRound",
    "VoterStatus",
    "Vote",
    "RoundSummary",
    "UserVotes",
]
