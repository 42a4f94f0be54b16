"""
REST API endpoints for the Lean Coffee server.

Provides API routes for sessions, tickets, quadratic voting and
continuation voting.
"""

from lean_coffee_server.api.continuation import router as continuation_router
from lean_coffee_server.api.sessions import router as sessions_router
from lean_coffee_server.api.tickets import router as tickets_router
from lean_coffee_server.api.voting import router as voting_router

__all__ = [
    "sessions_router",
    "tickets_router",
    "voting_router",
    "continuation_router",
]
