"""
Control message handler for the signaling relay server.

Handles the consent handshake (request/response) and explicit call
teardown (disconnect).
"""

import logging
from typing import Any, Dict

from call_relay.core.types import (
    ClientId,
    ERROR_TARGET_NOT_AVAILABLE,
    WS_KEY_ACCEPTED,
    WS_KEY_FROM,
    WS_KEY_MESSAGE,
    WS_KEY_TYPE,
    WS_MSG_DISCONNECT,
    WS_MSG_ERROR,
    WS_MSG_REQUEST,
    WS_MSG_RESPONSE,
)

from ...core import ConnectionManager
from .utils import ConnectionUtils, get_target_id


class ControlMessageHandler:
    """Handles control messages (request, response, disconnect)."""

    def __init__(self, connections: ConnectionManager, logger: logging.Logger) -> None:
        self.connections = connections
        self.logger = logger

    async def process_control_message(
        self, client_id: ClientId, data: Dict[str, Any]
    ) -> None:
        """Dispatch a parsed control message from client_id."""
        message_type = data[WS_KEY_TYPE]

        if message_type == WS_MSG_REQUEST:
            await self._handle_request(client_id, data)
        elif message_type == WS_MSG_RESPONSE:
            await self._handle_response(client_id, data)
        elif message_type == WS_MSG_DISCONNECT:
            await self._handle_disconnect(client_id)
        else:
            self.logger.warning(f"[{client_id}] Not a control message: {message_type}")

    async def _handle_request(self, client_id: ClientId, data: Dict[str, Any]) -> None:
        """Forward a call request to its target, or report it unreachable."""
        target_id = get_target_id(data)
        target_ws = self.connections.get_open_websocket(target_id)

        if target_ws is None:
            self.logger.info(f"[{client_id}] Call request to unavailable target {target_id}")
            await self._send_error(client_id, ERROR_TARGET_NOT_AVAILABLE)
            return

        await ConnectionUtils.send_json(
            target_ws,
            {WS_KEY_TYPE: WS_MSG_REQUEST, WS_KEY_FROM: client_id},
            self.logger,
        )
        self.logger.info(f"[{client_id}] Call request forwarded to {target_id}")

    async def _handle_response(self, client_id: ClientId, data: Dict[str, Any]) -> None:
        """Forward a call decision and pair both clients when it is an acceptance."""
        target_id = get_target_id(data)
        target_ws = self.connections.get_open_websocket(target_id)

        if target_ws is None:
            # The requester may have gone away in the meantime
            self.logger.debug(f"[{client_id}] Dropped response to unavailable {target_id}")
            return

        accepted = data.get(WS_KEY_ACCEPTED) is True

        displaced = []
        if accepted:
            displaced = self.connections.pair(client_id, target_id)
            self.logger.info(f"Call established: {client_id} <-> {target_id}")

        await ConnectionUtils.send_json(
            target_ws,
            {
                WS_KEY_TYPE: WS_MSG_RESPONSE,
                WS_KEY_FROM: client_id,
                WS_KEY_ACCEPTED: accepted,
            },
            self.logger,
        )

        for former_partner, member in displaced:
            self.logger.info(f"Call {former_partner} <-> {member} replaced by a new call")
            await ConnectionUtils.send_json(
                self.connections.get_open_websocket(former_partner),
                {WS_KEY_TYPE: WS_MSG_DISCONNECT, WS_KEY_FROM: member},
                self.logger,
            )

    async def _handle_disconnect(self, client_id: ClientId) -> None:
        """End the sender's call and tell its partner."""
        partner_id = self.connections.end_call(client_id)
        if partner_id is None:
            self.logger.debug(f"[{client_id}] Disconnect without an active call")
            return

        self.logger.info(f"Call ended by {client_id}: {client_id} <-> {partner_id}")
        await ConnectionUtils.send_json(
            self.connections.get_open_websocket(partner_id),
            {WS_KEY_TYPE: WS_MSG_DISCONNECT, WS_KEY_FROM: client_id},
            self.logger,
        )

    async def _send_error(self, client_id: ClientId, message: str) -> None:
        """Send error message to client."""
        await ConnectionUtils.send_json(
            self.connections.get_client_websocket(client_id),
            {WS_KEY_TYPE: WS_MSG_ERROR, WS_KEY_MESSAGE: message},
            self.logger,
        )
