"""
Ticket database model.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Enum as SQLEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from lean_coffee_core.db.base import Base, UTCDateTime
from lean_coffee_core.models.common import TicketSpace
from lean_coffee_core.models.ticket import Ticket

__all__ = ["TicketDB"]


class TicketDB(Base):
    """
    Database model for tickets.

    Discussion time is stored as the start of the running interval, an
    optional pause stamp and the total of completed intervals.
    """

    __tablename__ = "tickets"
    __table_args__ = (Index("ix_tickets_session_space", "session_id", "space"),)

    session_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    space: Mapped[TicketSpace] = mapped_column(
        SQLEnum(TicketSpace), default=TicketSpace.PERSONAL, nullable=False
    )
    vote_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    timer_started_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    timer_paused_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    total_discussion_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    archived_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    def to_pydantic(self) -> Ticket:
        """Convert to Pydantic model."""
        return Ticket(
            id=self.id,
            session_id=self.session_id,
            owner_id=self.owner_id,
            description=self.description,
            space=TicketSpace(self.space),
            vote_count=self.vote_count,
            timer_started_at=self.timer_started_at,
            timer_paused_at=self.timer_paused_at,
            total_discussion_ms=self.total_discussion_ms,
            archived_by=self.archived_by,
            archived_at=self.archived_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
