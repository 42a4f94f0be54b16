"""
Exception hierarchy for the Lean Coffee engine.

Every failure a service raises derives from LeanCoffeeError and carries
the HTTP status code the API layer should answer with. Errors are
terminal for the request that triggered them; callers re-read state and
decide whether to retry.
"""

from typing import Any


class LeanCoffeeError(Exception):
    """Base exception for engine errors."""

    status_code: int = 400

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(LeanCoffeeError):
    """Referenced session, user, ticket, round, or ballot does not exist."""

    status_code = 404


class ForbiddenError(LeanCoffeeError):
    """Actor does not own the entity it is trying to mutate."""

    status_code = 403


class ValidationError(LeanCoffeeError):
    """Input falls outside its declared bounds."""

    status_code = 422


class ConflictError(LeanCoffeeError):
    """A single-occupancy slot (DOING, active round) is already taken."""

    status_code = 409


class InvalidStateError(LeanCoffeeError):
    """Operation is not valid for the entity's current state."""

    status_code = 409


class BudgetExceededError(LeanCoffeeError):
    """Quadratic spend would exceed the voter's point budget."""

    status_code = 422

    def __init__(self, message: str, spent: int, cost: int, budget: int):
        super().__init__(
            message,
            details={"spent": spent, "cost": cost, "budget": budget},
        )
        self.spent = spent
        self.cost = cost
        self.budget = budget


class ShortCodeExhaustedError(LeanCoffeeError):
    """No free short code was found within the attempt bound."""

    status_code = 503


class DuplicateRecordError(Exception):
    """Raised by a record store when a unique key is already taken."""


__all__ = [
    "LeanCoffeeError",
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "ConflictError",
    "InvalidStateError",
    "BudgetExceededError",
    "ShortCodeExhaustedError",
    "DuplicateRecordError",
]
