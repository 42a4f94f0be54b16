"""
Session and member database models.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from lean_coffee_core.db.base import Base, UTCDateTime
from lean_coffee_core.models.common import MAX_SESSION_NAME_LENGTH, MAX_USERNAME_LENGTH
from lean_coffee_core.models.session import Session, User

__all__ = ["SessionDB", "UserDB"]


class SessionDB(Base):
    """
    Database model for Lean Coffee sessions.

    ``doing_ticket_id`` and ``active_round_id`` are single-occupancy
    slots claimed with conditional updates; they carry no foreign key so
    a slot can briefly point at a row that is being removed.
    """

    __tablename__ = "sessions"

    name: Mapped[str] = mapped_column(String(MAX_SESSION_NAME_LENGTH), nullable=False)
    short_code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    last_interaction_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    doing_ticket_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, default=None)
    active_round_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True, default=None)

    def to_pydantic(self) -> Session:
        """Convert to Pydantic model."""
        return Session(
            id=self.id,
            name=self.name,
            short_code=self.short_code,
            created_at=self.created_at,
            last_interaction_at=self.last_interaction_at,
            doing_ticket_id=self.doing_ticket_id,
            active_round_id=self.active_round_id,
        )


class UserDB(Base):
    """Database model for session members. Usernames are unique per session."""

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("session_id", "username", name="uq_users_session_username"),)

    session_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    username: Mapped[str] = mapped_column(String(MAX_USERNAME_LENGTH), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    last_seen: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)

    def to_pydantic(self) -> User:
        """Convert to Pydantic model."""
        return User(
            id=self.id,
            session_id=self.session_id,
            username=self.username,
            joined_at=self.joined_at,
            last_seen=self.last_seen,
        )
