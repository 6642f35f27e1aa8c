"""
Message processing modules for the signaling relay server.

This package contains handlers for the different kinds of WebSocket messages.
"""

from .control_message import ControlMessageHandler
from .signaling_message import SignalingMessageHandler
from .utils import ConnectionUtils

__all__ = [
    "ControlMessageHandler",
    "SignalingMessageHandler",
    "ConnectionUtils",
]
