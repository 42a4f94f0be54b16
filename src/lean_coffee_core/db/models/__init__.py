"""
Database models for the Lean Coffee engine.

Importing this package registers every table on ``Base.metadata``.
"""

from lean_coffee_core.db.models.continuation import BallotDB, ContinuationRoundDB
from lean_coffee_core.db.models.session import SessionDB, UserDB
from lean_coffee_core.db.models.ticket import TicketDB
from lean_coffee_core.db.models.voting import VoteDB, VoterStatusDB, VotingRoundDB

__all__ = [
    "SessionDB",
    "UserDB",
    "TicketDB",
    "VotingRoundDB",
    "VoterStatusDB",
    "VoteDB",
    "ContinuationRoundDB",
    "BallotDB",
]
