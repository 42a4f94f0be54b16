"""
Continuation voting database models.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from lean_coffee_core.db.base import Base, UTCDateTime
from lean_coffee_core.models.common import ContinuationChoice
from lean_coffee_core.models.continuation import Ballot, ContinuationRound

__all__ = ["ContinuationRoundDB", "BallotDB"]


class ContinuationRoundDB(Base):
    """Database model for ballot rounds. At most one per ticket."""

    __tablename__ = "continuation_rounds"

    ticket_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    session_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    participant_ids: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    opened_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    def to_pydantic(self) -> ContinuationRound:
        """Convert to Pydantic model."""
        return ContinuationRound(
            ticket_id=self.ticket_id,
            session_id=self.session_id,
            participant_ids=[UUID(p) for p in self.participant_ids or []],
            is_active=self.is_active,
            opened_at=self.opened_at,
        )


class BallotDB(Base):
    """Database model for continuation ballots. One row per (ticket, user)."""

    __tablename__ = "ballots"
    __table_args__ = (UniqueConstraint("ticket_id", "user_id", name="uq_ballots_ticket_user"),)

    ticket_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    choice: Mapped[str] = mapped_column(String(16), nullable=False)
    cast_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    def to_pydantic(self) -> Ballot:
        """Convert to Pydantic model."""
        return Ballot(
            ticket_id=self.ticket_id,
            user_id=self.user_id,
            choice=ContinuationChoice(self.choice),
            cast_at=self.cast_at,
        )
