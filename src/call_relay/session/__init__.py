"""
Client-side call session.

This package contains the call state machine that drives a client from
idle through consent and negotiation to an established call and back.
"""

from .call_session import CallSession
from .types import CallRole, CallState

__all__ = ["CallSession", "CallRole", "CallState"]
