"""
API endpoints for continuation votes on the ticket in DOING.
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from lean_coffee_core.errors import LeanCoffeeError
from lean_coffee_core.models.continuation import Ballot, ContinuationOutcome
from lean_coffee_core.models.schemas import BallotCast, BallotsCleared
from lean_coffee_core.services.continuation import ContinuationService
from lean_coffee_server.api.errors import to_http_exception
from lean_coffee_server.dependencies import get_continuation_service

router = APIRouter(prefix="/continuation", tags=["continuation"])


@router.post("/tickets/{ticket_id}/ballots", response_model=Ballot)
async def cast_ballot(
    ticket_id: UUID,
    data: BallotCast,
    service: ContinuationService = Depends(get_continuation_service),
) -> Ballot:
    """
    Cast or replace a continue/archive ballot.

    Args:
        ticket_id: Ticket in DOING
        data: Voter and choice
        service: Continuation service (injected)

    Returns:
        The stored ballot
    """
    try:
        return await service.cast_ballot(ticket_id, data.user_id, data.choice)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.get("/tickets/{ticket_id}/ballots", response_model=list[Ballot])
async def list_ballots(
    ticket_id: UUID,
    service: ContinuationService = Depends(get_continuation_service),
) -> list[Ballot]:
    """List the ballots cast on a ticket."""
    try:
        return await service.list_ballots(ticket_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.delete("/tickets/{ticket_id}/ballots", response_model=BallotsCleared)
async def clear_ballots(
    ticket_id: UUID,
    service: ContinuationService = Depends(get_continuation_service),
) -> BallotsCleared:
    """Discard every ballot cast on a ticket."""
    deleted = await service.clear_ballots(ticket_id)
    return BallotsCleared(ticket_id=ticket_id, deleted=deleted)


@router.post("/tickets/{ticket_id}/force-end", response_model=ContinuationOutcome)
async def force_end(
    ticket_id: UUID,
    service: ContinuationService = Depends(get_continuation_service),
) -> ContinuationOutcome:
    """Decide on the ballots cast so far. With none, the ticket is archived."""
    try:
        return await service.force_end(ticket_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e
