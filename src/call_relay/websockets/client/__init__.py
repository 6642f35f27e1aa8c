"""
WebSocket client components for the call relay.

This module provides the session client transport that connects to the
relay and drives a CallSession from inbound messages.
"""

from .websocket_client import WebSocketClient

__all__ = ["WebSocketClient"]
