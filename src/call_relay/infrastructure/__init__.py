"""
Infrastructure components for the call relay system.

This package contains infrastructure concerns including:
- Logging configuration with environment-aware levels
- Custom exception definitions
"""

from .logging import setup_logging, get_logger
from .logging_manager import LoggingManager, Environment
from .exceptions import (
    CallRelayError,
    ConfigurationError,
    ValidationError,
    NetworkError,
    WebSocketError,
    TransportFailure,
    ProtocolError,
    TargetUnavailableError,
    PreconditionViolation,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "LoggingManager",
    "Environment",
    # Exceptions
    "CallRelayError",
    "ConfigurationError",
    "ValidationError",
    "NetworkError",
    "WebSocketError",
    "TransportFailure",
    "ProtocolError",
    "TargetUnavailableError",
    "PreconditionViolation",
]
