"""
Quadratic voting database models.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from lean_coffee_core.db.base import Base, UTCDateTime
from lean_coffee_core.models.voting import Vote, VoterStatus, VotingRound

__all__ = ["VotingRoundDB", "VoterStatusDB", "VoteDB"]


class VotingRoundDB(Base):
    """Database model for voting rounds."""

    __tablename__ = "voting_rounds"

    session_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    force_closed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_pydantic(self) -> VotingRound:
        """Convert to Pydantic model."""
        return VotingRound(
            id=self.id,
            session_id=self.session_id,
            is_active=self.is_active,
            started_at=self.started_at,
            ended_at=self.ended_at,
            force_closed_by=self.force_closed_by,
        )


class VoterStatusDB(Base):
    """Database model for the participants frozen at round start."""

    __tablename__ = "voter_statuses"
    __table_args__ = (UniqueConstraint("round_id", "user_id", name="uq_voter_statuses_round_user"),)

    round_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("voting_rounds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_done: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def to_pydantic(self) -> VoterStatus:
        """Convert to Pydantic model."""
        return VoterStatus(round_id=self.round_id, user_id=self.user_id, is_done=self.is_done)


class VoteDB(Base):
    """Database model for votes. One row per (round, ticket, user)."""

    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("round_id", "ticket_id", "user_id", name="uq_votes_round_ticket_user"),
    )

    round_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("voting_rounds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
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
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False)
    points_cost: Mapped[int] = mapped_column(Integer, nullable=False)

    def to_pydantic(self) -> Vote:
        """Convert to Pydantic model."""
        return Vote(
            round_id=self.round_id,
            ticket_id=self.ticket_id,
            user_id=self.user_id,
            vote_count=self.vote_count,
            points_cost=self.points_cost,
        )
