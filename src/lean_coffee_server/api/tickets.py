"""
API endpoints for tickets and their discussion timers.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from lean_coffee_core.errors import LeanCoffeeError
from lean_coffee_core.models.schemas import TicketCreate, TicketMove, TicketUpdate
from lean_coffee_core.models.ticket import Ticket, TimerState
from lean_coffee_core.services.ticket import TicketService
from lean_coffee_core.services.timer import TimerService
from lean_coffee_server.api.errors import to_http_exception
from lean_coffee_server.dependencies import get_ticket_service, get_timer_service

router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.post("", response_model=Ticket, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    data: TicketCreate,
    service: TicketService = Depends(get_ticket_service),
) -> Ticket:
    """
    Create a ticket in the creator's personal space.

    Args:
        data: Ticket creation data
        service: Ticket service (injected)

    Returns:
        The created ticket
    """
    try:
        return await service.create_ticket(data.session_id, data.user_id, data.description)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.get("", response_model=list[Ticket])
async def list_tickets(
    session_id: UUID = Query(..., description="Session to list"),
    user_id: UUID = Query(..., description="Viewing member"),
    service: TicketService = Depends(get_ticket_service),
) -> list[Ticket]:
    """
    List the tickets visible to a member.

    Ordered by vote tally, then newest first.
    """
    try:
        return await service.list_visible(session_id, user_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.get("/{ticket_id}", response_model=Ticket)
async def get_ticket(
    ticket_id: UUID,
    service: TicketService = Depends(get_ticket_service),
) -> Ticket:
    """Get a ticket by ID."""
    try:
        return await service.get_ticket(ticket_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.post("/{ticket_id}/move", response_model=Ticket)
async def move_ticket(
    ticket_id: UUID,
    data: TicketMove,
    service: TicketService = Depends(get_ticket_service),
) -> Ticket:
    """
    Move a ticket to another space.

    Args:
        ticket_id: Ticket ID
        data: Target space and acting member
        service: Ticket service (injected)

    Returns:
        The updated ticket
    """
    try:
        return await service.move_to_space(ticket_id, data.space, data.user_id, data.username)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.patch("/{ticket_id}", response_model=Ticket)
async def edit_ticket(
    ticket_id: UUID,
    data: TicketUpdate,
    service: TicketService = Depends(get_ticket_service),
) -> Ticket:
    """Replace a ticket's description."""
    try:
        return await service.edit_ticket(ticket_id, data.user_id, data.description)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ticket(
    ticket_id: UUID,
    user_id: UUID = Query(..., description="Acting member"),
    service: TicketService = Depends(get_ticket_service),
) -> Response:
    """Delete a ticket. Only its creator may delete it."""
    try:
        await service.delete_ticket(ticket_id, user_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Discussion timer
# ============================================================================


@router.get("/{ticket_id}/timer", response_model=TimerState)
async def get_timer(
    ticket_id: UUID,
    service: TimerService = Depends(get_timer_service),
) -> TimerState:
    """Read a ticket's discussion timer."""
    try:
        return await service.get_timer_state(ticket_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.post("/{ticket_id}/timer/start", response_model=TimerState)
async def start_timer(
    ticket_id: UUID,
    service: TimerService = Depends(get_timer_service),
) -> TimerState:
    """Start the discussion timer of the ticket in DOING."""
    try:
        return await service.start_timer(ticket_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.post("/{ticket_id}/timer/pause", response_model=TimerState)
async def pause_timer(
    ticket_id: UUID,
    service: TimerService = Depends(get_timer_service),
) -> TimerState:
    """Pause a running discussion timer."""
    try:
        return await service.pause_timer(ticket_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.post("/{ticket_id}/timer/reset", response_model=TimerState)
async def reset_timer(
    ticket_id: UUID,
    service: TimerService = Depends(get_timer_service),
) -> TimerState:
    """Reset a discussion timer to zero."""
    try:
        return await service.reset_timer(ticket_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e
