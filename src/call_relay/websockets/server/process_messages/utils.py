"""
Utility functions for the signaling relay server.

Safe sends, targetId normalization and the teardown that runs when a
client connection goes away.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from websockets.asyncio.server import ServerConnection
from websockets.exceptions import ConnectionClosed

from call_relay.core.types import (
    ClientId,
    WS_KEY_FROM,
    WS_KEY_REASON,
    WS_KEY_TARGET_ID,
    WS_KEY_TYPE,
    WS_MSG_DISCONNECT,
)

from ...core import ConnectionManager, encode_message


def get_target_id(data: Dict[str, Any]) -> Optional[ClientId]:
    """Read targetId, accepting numbers as well as strings."""
    target_id = data.get(WS_KEY_TARGET_ID)
    if target_id is None or isinstance(target_id, bool):
        return None
    if isinstance(target_id, (int, str)):
        return str(target_id).strip() or None
    return None


class ConnectionUtils:
    """Utility functions for connection management."""

    @staticmethod
    async def send_json(
        websocket: Optional[ServerConnection],
        payload: Dict[str, Any],
        logger: logging.Logger,
    ) -> bool:
        """Send a JSON message, returning False instead of raising on failure."""
        if websocket is None:
            return False
        try:
            await websocket.send(encode_message(payload))
            return True
        except ConnectionClosed:
            logger.debug(f"Dropped '{payload.get(WS_KEY_TYPE)}' to closed connection")
        except Exception as e:
            logger.error(f"Failed to send '{payload.get(WS_KEY_TYPE)}': {e}")
        return False

    @staticmethod
    async def cleanup_connection(
        connections: ConnectionManager,
        client_id: ClientId,
        reason: str,
        logger: logging.Logger,
    ) -> None:
        """Clean up when a connection is closed, notifying the call partner."""
        partner_id = connections.unregister(client_id)
        logger.info(f"Client disconnected: {client_id} ({reason})")

        if partner_id is None or partner_id == client_id:
            return

        partner_ws = connections.get_open_websocket(partner_id)
        if partner_ws is None:
            return

        await ConnectionUtils.send_json(
            partner_ws,
            {
                WS_KEY_TYPE: WS_MSG_DISCONNECT,
                WS_KEY_FROM: client_id,
                WS_KEY_REASON: reason,
            },
            logger,
        )
        logger.info(f"Notified {partner_id} that call with {client_id} ended")

    @staticmethod
    async def health_monitor(
        connections: ConnectionManager,
        ping_interval: float,
        logger: logging.Logger,
    ) -> None:
        """Monitor connection health and send pings."""
        while True:
            await asyncio.sleep(ping_interval)

            for client_id, websocket in list(connections.clients.items()):
                try:
                    await websocket.ping()
                except Exception as e:
                    # The close path tears the client down
                    logger.debug(f"Ping to {client_id} failed: {e}")
