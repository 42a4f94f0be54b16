"""
Data models for the Lean Coffee engine.
"""

from lean_coffee_core.models.common import (
    ContinuationChoice,
    ContinuationDecision,
    TicketSpace,
)
from lean_coffee_core.models.continuation import (
    Ballot,
    ContinuationOutcome,
    ContinuationRound,
    decide,
)
from lean_coffee_core.models.session import JoinResult, Session, SessionDetails, User
from lean_coffee_core.models.ticket import Ticket, TimerState
from lean_coffee_core.models.voting import (
    RoundSummary,
    UserVotes,
    Vote,
    VoterStatus,
    VotingRound,
    quadratic_cost,
    total_points,
)

__all__ = [
    # Enums
    "TicketSpace",
    "ContinuationChoice",
    "ContinuationDecision",
    # Session
    "Session",
    "User",
    "SessionDetails",
    "JoinResult",
    # Ticket
    "Ticket",
    "TimerState",
    # Quadratic voting
    "VotingRound",
    "VoterStatus",
    "Vote",
    "RoundSummary",
    "UserVotes",
    "quadratic_cost",
    "total_points",
    # Continuation voting
    "ContinuationRound",
    "Ballot",
    "ContinuationOutcome",
    "decide",
]
