"""
Services for the Lean Coffee coordination engine.
"""

from lean_coffee_core.services.continuation import ContinuationService
from lean_coffee_core.services.session import SessionService, generate_short_code
from lean_coffee_core.services.ticket import TicketService
from lean_coffee_core.services.timer import TimerService, compute_timer_state
from lean_coffee_core.services.voting import VotingService

__all__ = [
    "ContinuationService",
    "SessionService",
    "generate_short_code",
    "TicketService",
    "TimerService",
    "compute_timer_state",
    "VotingService",
]
