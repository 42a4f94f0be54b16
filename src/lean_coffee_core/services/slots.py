"""
Single-occupancy slots stored on the session record.

A slot is a nullable field on the session (``doing_ticket_id``,
``active_round_id``). Claiming it is a conditional update from ``None`` to
the claimant, so of any number of concurrent claimants exactly one wins
without a lock being held across store calls.
"""

from collections.abc import Awaitable, Callable
from uuid import UUID

from lean_coffee_core.core.logging import get_logger
from lean_coffee_core.errors import NotFoundError
from lean_coffee_core.storage.interface import RecordStore

logger = get_logger(__name__)

DOING_SLOT = "doing_ticket_id"
ROUND_SLOT = "active_round_id"

StaleCheck = Callable[[UUID], Awaitable[bool]]


async def claim_slot(
    store: RecordStore,
    session_id: UUID,
    slot: str,
    claimant_id: UUID,
    is_stale: StaleCheck,
    attempts: int = 3,
) -> bool:
    """
    Claim a session slot for ``claimant_id``.

    Re-claiming a slot already held by the claimant succeeds, which makes
    retried requests harmless. A holder reported stale by ``is_stale`` is
    released with a guarded update before trying again.

    Returns:
        True if the claimant holds the slot, False if someone else does

    Raises:
        NotFoundError: If the session does not exist
    """
    for _ in range(attempts):
        claimed = await store.compare_and_set_session(
            session_id, {slot: None}, {slot: claimant_id}
        )
        if claimed is not None:
            return True

        session = await store.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")

        holder_id = getattr(session, slot)
        if holder_id == claimant_id:
            return True
        if holder_id is None:
            continue
        if not await is_stale(holder_id):
            return False

        logger.warning(
            "Releasing stale session slot",
            extra={"context": {"session_id": str(session_id), "slot": slot, "holder": str(holder_id)}},
        )
        await store.compare_and_set_session(session_id, {slot: holder_id}, {slot: None})

    return False


async def release_slot(store: RecordStore, session_id: UUID, slot: str, holder_id: UUID) -> bool:
    """Release a slot, but only if ``holder_id`` still holds it."""
    released = await store.compare_and_set_session(session_id, {slot: holder_id}, {slot: None})
    return released is not None
