"""
Call Relay - Signaling relay and session client for peer-to-peer audio calls.

A central WebSocket relay hands every connected client a short numeric
identifier, brokers the consent handshake when one client calls another and
forwards negotiation messages between the two. Audio flows directly between
the peers; the relay never sees it.

Architecture:
- Core: Protocol vocabulary and shared types
- WebSockets: Relay server, client transport and message handlers
- Session: Client-side call state machine
- Media: Peer connection and microphone backends
- Config: Configuration management
- Infrastructure: Logging and exceptions
"""

__version__ = "1.0.0"
__author__ = "Call Relay Team"

# Networking components
from .websockets.core import ConnectionManager
from .websockets.server import SignalingRelayServer
from .websockets.client import WebSocketClient

# Session
from .session import CallSession, CallState, CallRole

# Configuration
from .config import RelayConfig, RelayConfigManager

# Infrastructure
from .infrastructure.logging import setup_logging, get_logger
from .infrastructure.exceptions import (
    CallRelayError,
    ConfigurationError,
    NetworkError,
    ProtocolError,
    TargetUnavailableError,
    PreconditionViolation,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Networking components
    "ConnectionManager",
    "SignalingRelayServer",
    "WebSocketClient",
    # Session
    "CallSession",
    "CallState",
    "CallRole",
    # Configuration
    "RelayConfig",
    "RelayConfigManager",
    # Infrastructure
    "setup_logging",
    "get_logger",
    "CallRelayError",
    "ConfigurationError",
    "NetworkError",
    "ProtocolError",
    "TargetUnavailableError",
    "PreconditionViolation",
]
