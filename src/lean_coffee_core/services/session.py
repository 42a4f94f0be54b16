"""
Session directory service.

Creates sessions with short shareable codes, lets participants join under
a self-asserted username, and keeps their last-seen timestamps fresh.
"""

import secrets
from collections.abc import Callable
from uuid import UUID

from lean_coffee_core.core.clock import Clock, SystemClock
from lean_coffee_core.core.logging import get_logger
from lean_coffee_core.errors import (
    DuplicateRecordError,
    NotFoundError,
    ShortCodeExhaustedError,
    ValidationError,
)
from lean_coffee_core.models.common import (
    MAX_SESSION_NAME_LENGTH,
    MAX_USERNAME_LENGTH,
    SHORT_CODE_ALPHABET,
    SHORT_CODE_MAX_ATTEMPTS,
)
from lean_coffee_core.models.session import JoinResult, Session, SessionDetails, User
from lean_coffee_core.storage.interface import RecordStore

logger = get_logger(__name__)


def generate_short_code() -> str:
    """Generate a code in the style of ``evx-asd-hzo``."""

    def part() -> str:
        return "".join(secrets.choice(SHORT_CODE_ALPHABET) for _ in range(3))

    return f"{part()}-{part()}-{part()}"


class SessionService:
    """
    Service for managing sessions and their members.

    Provides methods for creating sessions, resolving short codes,
    joining sessions, and recording presence.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock | None = None,
        max_code_attempts: int = SHORT_CODE_MAX_ATTEMPTS,
        code_generator: Callable[[], str] = generate_short_code,
    ) -> None:
        """
        Initialize the session service.

        Args:
            store: Record store instance
            clock: Clock used for timestamps (defaults to system time)
            max_code_attempts: Short codes tried before giving up
            code_generator: Produces candidate short codes
        """
        self._store = store
        self._clock = clock or SystemClock()
        self._max_code_attempts = max_code_attempts
        self._code_generator = code_generator

    async def create_session(self, name: str) -> Session:
        """
        Create a new session with a unique short code.

        Candidates are probed first; a unique-key rejection at insert time
        counts as a collision too, so two concurrent creations can never
        share a code.

        Args:
            name: Session display name

        Returns:
            The created session

        Raises:
            ValidationError: If the name is empty or too long
            ShortCodeExhaustedError: If no free code was found within the bound
        """
        name = name.strip()
        if not name or len(name) > MAX_SESSION_NAME_LENGTH:
            raise ValidationError(
                f"Session name must be between 1 and {MAX_SESSION_NAME_LENGTH} characters"
            )

        for attempt in range(1, self._max_code_attempts + 1):
            short_code = self._code_generator()
            if await self._store.get_session_by_code(short_code) is not None:
                logger.debug(
                    "Short code collision",
                    extra={"context": {"short_code": short_code, "attempt": attempt}},
                )
                continue

            now = self._clock.now()
            session = Session(
                name=name,
                short_code=short_code,
                created_at=now,
                last_interaction_at=now,
            )
            try:
                created = await self._store.create_session(session)
            except DuplicateRecordError:
                logger.debug(
                    "Short code taken at insert",
                    extra={"context": {"short_code": short_code, "attempt": attempt}},
                )
                continue

            logger.info(
                f"Session created: {created.short_code}",
                extra={"context": {"session_id": str(created.id), "short_code": short_code}},
            )
            return created

        logger.error(
            "Failed to generate unique short code",
            extra={"context": {"attempts": self._max_code_attempts}},
        )
        raise ShortCodeExhaustedError("Failed to generate unique session ID")

    async def get_session(self, session_id: UUID) -> Session:
        """
        Retrieve a session by ID.

        Raises:
            NotFoundError: If the session does not exist
        """
        session = await self._store.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    async def get_by_short_code(self, short_code: str) -> SessionDetails:
        """
        Resolve a short code to its session and members.

        Members are ordered by last-seen time, most recent first.

        Raises:
            NotFoundError: If no session uses the code
        """
        session = await self._store.get_session_by_code(short_code)
        if session is None:
            raise NotFoundError("Session not found")

        users = await self._store.list_users(session.id)
        users.sort(key=lambda u: u.last_seen, reverse=True)
        return SessionDetails(session=session, users=users)

    async def join_session(self, session_id: UUID, username: str) -> JoinResult:
        """
        Join a session, or rejoin under an existing username.

        Rejoining refreshes the member's last-seen time. A new member also
        touches the session's last-interaction time.

        Args:
            session_id: Session to join
            username: Self-asserted username, unique within the session

        Returns:
            The member and whether it was newly created

        Raises:
            ValidationError: If the username is empty or too long
            NotFoundError: If the session does not exist
        """
        username = username.strip()
        if not username or len(username) > MAX_USERNAME_LENGTH:
            raise ValidationError(
                f"Username must be between 1 and {MAX_USERNAME_LENGTH} characters"
            )

        await self.get_session(session_id)
        now = self._clock.now()

        existing = await self._store.get_user_by_username(session_id, username)
        if existing is None:
            try:
                user = await self._store.add_user(
                    User(session_id=session_id, username=username, joined_at=now, last_seen=now)
                )
            except DuplicateRecordError:
                # Lost a race with a concurrent join under the same name
                existing = await self._store.get_user_by_username(session_id, username)
                if existing is None:
                    raise
            else:
                await self._store.update_session(session_id, last_interaction_at=now)
                logger.info(
                    f"User joined session: {username}",
                    extra={"context": {"session_id": str(session_id), "user_id": str(user.id)}},
                )
                return JoinResult(user=user, is_new=True)

        refreshed = await self._store.update_user(existing.id, last_seen=now)
        return JoinResult(user=refreshed or existing, is_new=False)

    async def is_username_available(self, session_id: UUID, username: str) -> bool:
        """Check whether a username is still free within a session."""
        return await self._store.get_user_by_username(session_id, username.strip()) is None

    async def list_members(self, session_id: UUID) -> list[User]:
        """List the members of a session."""
        await self.get_session(session_id)
        return await self._store.list_users(session_id)

    async def update_presence(self, user_id: UUID) -> User:
        """
        Record that a member is still around.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self._store.update_user(user_id, last_seen=self._clock.now())
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user
