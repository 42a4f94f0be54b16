"""
Translation of engine errors into HTTP errors.
"""

from fastapi import HTTPException

from lean_coffee_core.errors import BudgetExceededError, LeanCoffeeError


def to_http_exception(error: LeanCoffeeError) -> HTTPException:
    """
    Build the HTTPException answering for an engine error.

    Budget rejections carry the spent/cost/budget figures so a client can
    show how far over the budget the vote was.
    """
    if isinstance(error, BudgetExceededError):
        return HTTPException(
            status_code=error.status_code,
            detail={"message": error.message, **error.details},
        )
    return HTTPException(status_code=error.status_code, detail=error.message)
