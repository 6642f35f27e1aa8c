"""
Session client states and roles.
"""

from enum import Enum


class CallState(Enum):
    """Where the local client is in the call lifecycle."""

    IDLE = "idle"
    AWAITING_CALL_DECISION = "awaiting_call_decision"
    AWAITING_LOCAL_DECISION = "awaiting_local_decision"
    NEGOTIATING = "negotiating"
    IN_CALL = "in_call"


class CallRole(Enum):
    """Which side creates the offer once a call is accepted."""

    OFFERER = "offerer"
    ANSWERER = "answerer"


ACTIVE_CALL_STATES = frozenset({CallState.NEGOTIATING, CallState.IN_CALL})
