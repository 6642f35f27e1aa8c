"""
Shared WebSocket components for the call relay system.
"""

from .connection_manager import ConnectionManager
from .protocol import encode_message, parse_message

__all__ = ["ConnectionManager", "encode_message", "parse_message"]
