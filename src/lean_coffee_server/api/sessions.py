"""
API endpoints for sessions and their members.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from lean_coffee_core.config import Config
from lean_coffee_core.core.clock import Clock
from lean_coffee_core.errors import LeanCoffeeError
from lean_coffee_core.models.schemas import (
    JoinSessionRequest,
    MemberStatus,
    SessionCreate,
    UsernameAvailability,
)
from lean_coffee_core.models.session import JoinResult, Session, SessionDetails, User
from lean_coffee_core.services.session import SessionService
from lean_coffee_server.api.errors import to_http_exception
from lean_coffee_server.dependencies import get_clock, get_config_cached, get_session_service

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=Session, status_code=status.HTTP_201_CREATED)
async def create_session(
    data: SessionCreate,
    service: SessionService = Depends(get_session_service),
) -> Session:
    """
    Create a new session with a shareable short code.

    Args:
        data: Session creation data
        service: Session service (injected)

    Returns:
        The created session
    """
    try:
        return await service.create_session(data.name)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.get("/code/{short_code}", response_model=SessionDetails)
async def get_session_by_code(
    short_code: str,
    service: SessionService = Depends(get_session_service),
) -> SessionDetails:
    """Resolve a short code to its session and members."""
    try:
        return await service.get_by_short_code(short_code)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.get("/{session_id}", response_model=Session)
async def get_session(
    session_id: UUID,
    service: SessionService = Depends(get_session_service),
) -> Session:
    """Get a session by ID."""
    try:
        return await service.get_session(session_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.post("/{session_id}/join", response_model=JoinResult)
async def join_session(
    session_id: UUID,
    data: JoinSessionRequest,
    service: SessionService = Depends(get_session_service),
) -> JoinResult:
    """
    Join a session, or rejoin under an existing username.

    Args:
        session_id: Session ID
        data: Username to join with
        service: Session service (injected)

    Returns:
        The member and whether it was newly created
    """
    try:
        return await service.join_session(session_id, data.username)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.get("/{session_id}/username-available", response_model=UsernameAvailability)
async def check_username(
    session_id: UUID,
    username: str = Query(..., min_length=1, description="Username to check"),
    service: SessionService = Depends(get_session_service),
) -> UsernameAvailability:
    """Check whether a username is still free within a session."""
    available = await service.is_username_available(session_id, username)
    return UsernameAvailability(username=username, available=available)


@router.get("/{session_id}/members", response_model=list[MemberStatus])
async def list_members(
    session_id: UUID,
    service: SessionService = Depends(get_session_service),
    clock: Clock = Depends(get_clock),
    config: Config = Depends(get_config_cached),
) -> list[MemberStatus]:
    """List the members of a session with their presence."""
    try:
        members = await service.list_members(session_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e

    now = clock.now()
    threshold = config.session.online_threshold_seconds
    return [MemberStatus(user=u, is_online=u.is_online(now, threshold)) for u in members]


@router.post("/members/{user_id}/presence", response_model=User)
async def update_presence(
    user_id: UUID,
    service: SessionService = Depends(get_session_service),
) -> User:
    """Record that a member is still around."""
    try:
        return await service.update_presence(user_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e
