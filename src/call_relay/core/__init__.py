"""
Core definitions for the call relay system.

This package contains the protocol vocabulary shared by the relay server,
the session client and the tests.
"""

from .types import (
    ClientId,
    CONTROL_MESSAGE_TYPES,
    SIGNALING_MESSAGE_TYPES,
    DISCONNECT_REASON_CONNECTION_LOST,
    DISCONNECT_REASON_CONNECTION_ERROR,
)

__all__ = [
    "ClientId",
    "CONTROL_MESSAGE_TYPES",
    "SIGNALING_MESSAGE_TYPES",
    "DISCONNECT_REASON_CONNECTION_LOST",
    "DISCONNECT_REASON_CONNECTION_ERROR",
]
