"""
WebSocket server implementation for call signaling.

This module contains the SignalingRelayServer class and its message handlers.
"""

from .relay_server import SignalingRelayServer

__all__ = [
    "SignalingRelayServer",
]
