"""
Common enums and constants used across the Lean Coffee engine.

This module provides a single source of truth for all enumerations
so that models, services, and store implementations agree on the
same values.
"""

from enum import Enum

# ============================================================================
# Ticket Spaces
# ============================================================================


class TicketSpace(str, Enum):
    """Queue a ticket currently occupies.

    PERSONAL tickets are private drafts; every other space is shared
    with all members of the session.
    """

    PERSONAL = "PERSONAL"
    TODO = "TODO"
    DOING = "DOING"
    ARCHIVE = "ARCHIVE"


SHARED_SPACES = (TicketSpace.TODO, TicketSpace.DOING, TicketSpace.ARCHIVE)


# ============================================================================
# Continuation Voting
# ============================================================================


class ContinuationChoice(str, Enum):
    """Ballot choice when a discussion's time box runs out."""

    CONTINUE = "continue"
    ARCHIVE = "archive"


class ContinuationDecision(str, Enum):
    """Outcome of a continuation tally."""

    CONTINUE = "continue"
    ARCHIVE = "archive"


# ============================================================================
# Archive Attribution
# ============================================================================

ARCHIVED_BY_UNKNOWN = "Unknown"
ARCHIVED_BY_MAJORITY = "Majority Vote"
ARCHIVED_BY_FORCED_END = "Forced Vote End"


# ============================================================================
# Common Constants
# ============================================================================

# Validation constraints
MIN_DESCRIPTION_LENGTH = 1
MAX_DESCRIPTION_LENGTH = 1000
MAX_SESSION_NAME_LENGTH = 100
MAX_USERNAME_LENGTH = 50
MAX_VOTES_PER_TICKET = 20

# Voting
MIN_TODO_TICKETS_FOR_ROUND = 2

# Timer
DISCUSSION_DURATION_MS = 9 * 60 * 1000

# Presence
ONLINE_THRESHOLD_SECONDS = 30

# Short codes
SHORT_CODE_ALPHABET = "abcdefghijklmnopqrstuvwxyz"
SHORT_CODE_MAX_ATTEMPTS = 10


__all__ = [
    "TicketSpace",
    "SHARED_SPACES",
    "ContinuationChoice",
    "ContinuationDecision",
    "ARCHIVED_BY_UNKNOWN",
    "ARCHIVED_BY_MAJORITY",
    "ARCHIVED_BY_FORCED_END",
    "MIN_DESCRIPTION_LENGTH",
    "MAX_DESCRIPTION_LENGTH",
    "MAX_SESSION_NAME_LENGTH",
    "MAX_USERNAME_LENGTH",
    "MAX_VOTES_PER_TICKET",
    "MIN_TODO_TICKETS_FOR_ROUND",
    "DISCUSSION_DURATION_MS",
    "ONLINE_THRESHOLD_SECONDS",
    "SHORT_CODE_ALPHABET",
    "SHORT_CODE_MAX_ATTEMPTS",
]
