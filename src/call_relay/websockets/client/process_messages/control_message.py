"""
Client-side control message handler.

This module handles control messages (identifier assignment, call
requests and responses, disconnects, errors) for the session client.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from call_relay.core.types import (
    ClientId,
    WS_KEY_ACCEPTED,
    WS_KEY_FROM,
    WS_KEY_ID,
    WS_KEY_MESSAGE,
    WS_KEY_REASON,
    WS_KEY_TYPE,
    WS_MSG_DISCONNECT,
    WS_MSG_ERROR,
    WS_MSG_ID,
    WS_MSG_REQUEST,
    WS_MSG_RESPONSE,
)
from call_relay.infrastructure.exceptions import WebSocketError
from call_relay.session import CallSession


class ControlMessageHandler:
    """Handles control messages for the session client."""

    def __init__(self, session: CallSession, logger: logging.Logger) -> None:
        """
        Initialize the control message handler.

        Args:
            session: Call session driven by inbound messages
            logger: Logger instance
        """
        self.session: CallSession = session
        self.logger: logging.Logger = logger
        self.id_future: Optional[asyncio.Future[ClientId]] = None

    def create_id_future(self) -> asyncio.Future:
        """Create a new future resolved by the server's id message."""
        self.id_future = asyncio.get_running_loop().create_future()
        return self.id_future

    async def process_control_message(self, data: Dict[str, Any]) -> None:
        """Process a parsed control message."""
        message_type = data.get(WS_KEY_TYPE)

        if message_type == WS_MSG_ID:
            self._handle_id(data)
        elif message_type == WS_MSG_REQUEST:
            await self.session.handle_request(self._sender(data))
        elif message_type == WS_MSG_RESPONSE:
            await self.session.handle_response(
                self._sender(data), data.get(WS_KEY_ACCEPTED) is True
            )
        elif message_type == WS_MSG_DISCONNECT:
            await self.session.handle_disconnect(
                self._sender(data), data.get(WS_KEY_REASON)
            )
        elif message_type == WS_MSG_ERROR:
            await self._handle_error_response(data)
        else:
            self.logger.warning(
                f"[{self.session.client_id}] Unknown control message: {message_type}"
            )

    def _handle_id(self, data: Dict[str, Any]) -> None:
        client_id = data.get(WS_KEY_ID)
        if client_id is None:
            self.logger.error(f"Invalid id message: {data}")
            if self.id_future and not self.id_future.done():
                self.id_future.set_exception(WebSocketError("Invalid id message"))
            return

        client_id = str(client_id)
        self.session.assign_id(client_id)
        if self.id_future and not self.id_future.done():
            self.id_future.set_result(client_id)

    async def _handle_error_response(self, data: Dict[str, Any]) -> None:
        """Handle error response from server."""
        error_msg = data.get(WS_KEY_MESSAGE, "Unknown error")
        self.logger.error(f"[{self.session.client_id}] Server error: {error_msg}")

        if self.id_future and not self.id_future.done():
            self.id_future.set_exception(WebSocketError(error_msg))
            return
        await self.session.handle_error(error_msg)

    @staticmethod
    def _sender(data: Dict[str, Any]) -> Optional[ClientId]:
        sender = data.get(WS_KEY_FROM)
        return None if sender is None else str(sender)
