"""
API endpoints for quadratic voting rounds.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from lean_coffee_core.errors import LeanCoffeeError
from lean_coffee_core.models.schemas import ForceCloseRequest, MarkDoneRequest, VoteCast, VoteResult
from lean_coffee_core.models.voting import RoundSummary, UserVotes, VoterStatus, VotingRound
from lean_coffee_core.services.voting import VotingService
from lean_coffee_server.api.errors import to_http_exception
from lean_coffee_server.dependencies import get_voting_service

router = APIRouter(prefix="/voting", tags=["voting"])


@router.post(
    "/sessions/{session_id}/rounds",
    response_model=VotingRound,
    status_code=status.HTTP_201_CREATED,
)
async def start_round(
    session_id: UUID,
    service: VotingService = Depends(get_voting_service),
) -> VotingRound:
    """
    Start a voting round over the session's TODO queue.

    Args:
        session_id: Session ID
        service: Voting service (injected)

    Returns:
        The started round
    """
    try:
        return await service.start_round(session_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.get("/sessions/{session_id}/active", response_model=RoundSummary | None)
async def get_active_round(
    session_id: UUID,
    service: VotingService = Depends(get_voting_service),
) -> RoundSummary | None:
    """Get the session's active round with its current budget, or null."""
    try:
        return await service.get_active_round(session_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.post("/rounds/{round_id}/votes", response_model=VoteResult)
async def cast_vote(
    round_id: UUID,
    data: VoteCast,
    service: VotingService = Depends(get_voting_service),
) -> VoteResult:
    """
    Set a member's vote count on one ticket. A count of 0 removes the vote.

    Args:
        round_id: Round ID
        data: Ticket, voter and count
        service: Voting service (injected)

    Returns:
        The stored vote, or a deletion marker
    """
    try:
        vote = await service.cast_vote(round_id, data.ticket_id, data.user_id, data.vote_count)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e
    return VoteResult(vote=vote, deleted=vote is None)


@router.get("/rounds/{round_id}/votes/{user_id}", response_model=UserVotes)
async def get_user_votes(
    round_id: UUID,
    user_id: UUID,
    service: VotingService = Depends(get_voting_service),
) -> UserVotes:
    """Get a member's votes in a round with points spent and remaining."""
    try:
        return await service.get_user_votes(round_id, user_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.post("/rounds/{round_id}/done", response_model=VoterStatus)
async def mark_done(
    round_id: UUID,
    data: MarkDoneRequest,
    service: VotingService = Depends(get_voting_service),
) -> VoterStatus:
    """Mark a member as done voting; the last one closes the round."""
    try:
        return await service.mark_done(round_id, data.user_id)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e


@router.post("/rounds/{round_id}/force-close", response_model=VotingRound)
async def force_close(
    round_id: UUID,
    data: ForceCloseRequest,
    service: VotingService = Depends(get_voting_service),
) -> VotingRound:
    """Close a round and tally it regardless of who is done."""
    try:
        return await service.force_close(round_id, data.user_id, data.username)
    except LeanCoffeeError as e:
        raise to_http_exception(e) from e
