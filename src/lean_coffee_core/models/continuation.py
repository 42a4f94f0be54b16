"""
Continuation voting models.
"""

from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from lean_coffee_core.models.common import ContinuationChoice, ContinuationDecision


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ContinuationRound(BaseModel):
    """Ballot round for the ticket in DOING.

    The participant set is frozen when the first ballot arrives so that
    members joining mid-vote cannot make quorum unreachable.
    """

    ticket_id: UUID
    session_id: UUID
    participant_ids: list[UUID] = Field(default_factory=list)
    is_active: bool = True
    opened_at: datetime = Field(default_factory=_utcnow)

    model_config = {"from_attributes": True}


class Ballot(BaseModel):
    """One user's continue/archive choice for a ticket."""

    ticket_id: UUID
    user_id: UUID
    choice: ContinuationChoice
    cast_at: datetime = Field(default_factory=_utcnow)

    model_config = {"from_attributes": True}


class ContinuationOutcome(BaseModel):
    """Decision reached by a tally together with the counts behind it."""

    ticket_id: UUID
    decision: ContinuationDecision
    continue_count: int
    archive_count: int


def decide(continue_count: int, archive_count: int) -> ContinuationDecision:
    """Continue only on a strict majority; ties end the discussion."""
    if continue_count > archive_count:
        return ContinuationDecision.CONTINUE
    return ContinuationDecision.ARCHIVE


__all__ = [
    "ContinuationRound",
    "Ballot",
    "ContinuationOutcome",
    "decide",
]
