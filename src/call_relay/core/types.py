"""
Common types and constants for the call relay system.

This module centralizes the wire protocol vocabulary so that the server,
the client and the tests never hardcode message names.
"""

from typing import Final

# Identifier type used throughout the system (short numeric string)
ClientId = str

# WebSocket message keys
WS_KEY_TYPE: Final[str] = "type"
WS_KEY_ID: Final[str] = "id"
WS_KEY_TARGET_ID: Final[str] = "targetId"
WS_KEY_FROM: Final[str] = "from"
WS_KEY_ACCEPTED: Final[str] = "accepted"
WS_KEY_REASON: Final[str] = "reason"
WS_KEY_MESSAGE: Final[str] = "message"

# WebSocket message types
WS_MSG_ID: Final[str] = "id"
WS_MSG_REQUEST: Final[str] = "request"
WS_MSG_RESPONSE: Final[str] = "response"
WS_MSG_OFFER: Final[str] = "offer"
WS_MSG_ANSWER: Final[str] = "answer"
WS_MSG_CANDIDATE: Final[str] = "candidate"
WS_MSG_DISCONNECT: Final[str] = "disconnect"
WS_MSG_ERROR: Final[str] = "error"

# Message groups
CONTROL_MESSAGE_TYPES: Final[frozenset] = frozenset(
    {WS_MSG_REQUEST, WS_MSG_RESPONSE, WS_MSG_DISCONNECT}
)
SIGNALING_MESSAGE_TYPES: Final[frozenset] = frozenset(
    {WS_MSG_OFFER, WS_MSG_ANSWER, WS_MSG_CANDIDATE}
)

# Disconnect reasons attached by the server on connection teardown
DISCONNECT_REASON_CONNECTION_LOST: Final[str] = "connection lost"
DISCONNECT_REASON_CONNECTION_ERROR: Final[str] = "connection error"

# Error texts sent to clients
ERROR_TARGET_NOT_AVAILABLE: Final[str] = "Target not available"

# Identifier generation
ID_GENERATION_MAX_ATTEMPTS: Final[int] = 32

# Default Values
DEFAULT_HOST: Final[str] = "localhost"
DEFAULT_PORT: Final[int] = 3198
DEFAULT_ID_MIN: Final[int] = 10000
DEFAULT_ID_MAX: Final[int] = 99999
DEFAULT_WEBSOCKET_URL: Final[str] = "ws://localhost:3198"
