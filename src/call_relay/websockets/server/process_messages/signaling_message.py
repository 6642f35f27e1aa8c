"""
Signaling message handler for the relay server.

Offers, answers and candidates are relayed verbatim to the named peer,
tagged with the sender's identifier.
"""

import logging
from typing import Any, Dict

from call_relay.core.types import (
    ClientId,
    SIGNALING_MESSAGE_TYPES,
    WS_KEY_FROM,
    WS_KEY_TYPE,
)

from ...core import ConnectionManager
from .utils import ConnectionUtils, get_target_id


class SignalingMessageHandler:
    """Relays offer/answer/candidate messages between peers."""

    def __init__(self, connections: ConnectionManager, logger: logging.Logger) -> None:
        self.connections = connections
        self.logger = logger
        self._relayed_messages = 0
        self._dropped_messages = 0

    async def process_signaling_message(
        self, client_id: ClientId, data: Dict[str, Any]
    ) -> None:
        """Forward a parsed signaling message; unreachable targets drop it silently."""
        message_type = data[WS_KEY_TYPE]
        if message_type not in SIGNALING_MESSAGE_TYPES:
            self.logger.warning(f"[{client_id}] Not a signaling message: {message_type}")
            return

        target_id = get_target_id(data)
        target_ws = self.connections.get_open_websocket(target_id)
        if target_ws is None:
            self._dropped_messages += 1
            self.logger.debug(
                f"[{client_id}] Dropped {message_type} to unavailable {target_id}"
            )
            return

        relayed = {WS_KEY_TYPE: message_type, WS_KEY_FROM: client_id}
        # An absent payload stays absent; an explicit null is passed through
        if message_type in data:
            relayed[message_type] = data[message_type]
        if await ConnectionUtils.send_json(target_ws, relayed, self.logger):
            self._relayed_messages += 1
            self.logger.debug(f"[{client_id}] Relayed {message_type} to {target_id}")
        else:
            self._dropped_messages += 1

    def get_stats(self) -> Dict[str, int]:
        return {
            "relayed_messages": self._relayed_messages,
            "dropped_messages": self._dropped_messages,
        }
