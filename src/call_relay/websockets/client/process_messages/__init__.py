"""
Client-side message processing modules.

This package contains handlers for the different kinds of WebSocket
messages received by the client, mirroring the server's process_messages
structure.
"""

from .control_message import ControlMessageHandler
from .signaling_message import SignalingMessageHandler

__all__ = ["ControlMessageHandler", "SignalingMessageHandler"]
