"""
Custom exceptions for the call relay system.

This module defines all custom exceptions used throughout the system,
providing clear error categorization and handling.
"""


class CallRelayError(Exception):
    """Base exception for all call relay related errors."""

    pass


class ConfigurationError(CallRelayError):
    """Raised when there are configuration-related errors."""

    pass


class ValidationError(ConfigurationError):
    """Raised when configuration validation fails."""

    pass


class NetworkError(CallRelayError):
    """Raised when there are network communication errors."""

    pass


class WebSocketError(NetworkError):
    """Raised when there are WebSocket communication errors."""

    pass


class TransportFailure(NetworkError):
    """Raised when a client connection closes or errors out mid-session."""

    pass


class ProtocolError(CallRelayError):
    """Raised when a message cannot be parsed or has an unknown type."""

    pass


class TargetUnavailableError(CallRelayError):
    """Raised when a call request names an unreachable identifier."""

    def __init__(self, message: str, target_id: str = None):
        super().__init__(message)
        self.target_id = target_id


class PreconditionViolation(CallRelayError):
    """Raised when a client command is issued in a state that cannot honor it."""

    pass
