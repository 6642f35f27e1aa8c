"""
WebSocket signaling relay server.

Assigns every connecting client a short numeric identifier, brokers the
call consent handshake and relays negotiation messages between paired
clients. Media never passes through this server.
"""

import asyncio
from typing import Any, Dict, Optional

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from call_relay.config import RelayConfig
from call_relay.core.types import (
    ClientId,
    CONTROL_MESSAGE_TYPES,
    DISCONNECT_REASON_CONNECTION_ERROR,
    DISCONNECT_REASON_CONNECTION_LOST,
    SIGNALING_MESSAGE_TYPES,
    WS_KEY_ID,
    WS_KEY_TYPE,
    WS_MSG_ID,
)
from call_relay.infrastructure import setup_logging
from call_relay.infrastructure.exceptions import ProtocolError
from ..core import ConnectionManager, encode_message, parse_message
from .process_messages import (
    ControlMessageHandler,
    SignalingMessageHandler,
    ConnectionUtils,
)

logger = setup_logging(component_name="signaling_relay")


class SignalingRelayServer:
    """WebSocket server brokering call signaling between clients."""

    def __init__(
        self,
        config: Optional[RelayConfig] = None,
        connections: Optional[ConnectionManager] = None,
    ) -> None:
        """Initialize the signaling relay server."""
        self.config = config or RelayConfig()
        self.config.validate()

        self.server: Optional[Server] = None
        self.connections = connections or ConnectionManager(
            id_min=self.config.id_min, id_max=self.config.id_max
        )
        self._connection_semaphore = asyncio.Semaphore(self.config.max_connections)
        self._health_task: Optional[asyncio.Task] = None

        self.control_handler = ControlMessageHandler(self.connections, logger)
        self.signaling_handler = SignalingMessageHandler(self.connections, logger)

    @property
    def port(self) -> int:
        """Port actually bound, useful when configured with port 0."""
        if self.server is None:
            return self.config.port
        for sock in self.server.sockets:
            return sock.getsockname()[1]
        return self.config.port

    async def start(self) -> bool:
        """Start the signaling relay server."""
        try:
            self.server = await serve(
                self._handle_connection,
                self.config.host,
                self.config.port,
                ping_interval=None,  # Manual ping handling
                max_size=self.config.max_message_size,
            )
            logger.info(f"Signaling relay started on {self.config.host}:{self.port}")
            self._health_task = asyncio.create_task(
                ConnectionUtils.health_monitor(
                    self.connections, self.config.ping_interval, logger
                )
            )
            return True
        except Exception as e:
            logger.error(f"Failed to start signaling relay: {e}", exc_info=True)
            return False

    async def stop(self) -> None:
        """Stop the signaling relay server."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            self.server = None
            logger.info("Signaling relay stopped")

        if self._health_task:
            self._health_task.cancel()
            try:
                await self._health_task
            except asyncio.CancelledError:
                pass
            self._health_task = None

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        """Register a client, run its message loop and tear it down on close."""
        async with self._connection_semaphore:
            client_id = self.connections.register(websocket)
            logger.info(f"Client connected: {client_id} from {websocket.remote_address}")

            reason = DISCONNECT_REASON_CONNECTION_LOST
            try:
                await websocket.send(encode_message({WS_KEY_TYPE: WS_MSG_ID, WS_KEY_ID: client_id}))
                async for message in websocket:
                    await self.process_message(client_id, message)
            except ConnectionClosedOK:
                pass
            except ConnectionClosed as e:
                reason = DISCONNECT_REASON_CONNECTION_ERROR
                logger.warning(f"WebSocket error for client {client_id}: {e}")
            except Exception as e:
                reason = DISCONNECT_REASON_CONNECTION_ERROR
                logger.error(
                    f"Error handling connection for client {client_id}: {e}",
                    exc_info=True,
                )
            finally:
                await ConnectionUtils.cleanup_connection(
                    self.connections, client_id, reason, logger
                )

    async def process_message(self, client_id: ClientId, message: Any) -> None:
        """Route one inbound frame; malformed frames are logged and ignored."""
        if not isinstance(message, str):
            logger.warning(f"[{client_id}] Ignoring non-text frame")
            return

        try:
            data = parse_message(message)
        except ProtocolError as e:
            logger.warning(f"[{client_id}] Ignoring malformed message: {e}")
            return

        message_type = data[WS_KEY_TYPE]
        try:
            if message_type in CONTROL_MESSAGE_TYPES:
                await self.control_handler.process_control_message(client_id, data)
            elif message_type in SIGNALING_MESSAGE_TYPES:
                await self.signaling_handler.process_signaling_message(client_id, data)
            else:
                logger.warning(f"[{client_id}] Unknown message type: {message_type}")
        except Exception as e:
            logger.error(
                f"[{client_id}] Error processing {message_type} message: {e}",
                exc_info=True,
            )

    def get_stats(self) -> Dict[str, Any]:
        """Get server statistics."""
        return {
            "server_running": self.server is not None,
            "registry_stats": self.connections.get_stats(),
            "signaling_stats": self.signaling_handler.get_stats(),
        }


async def main(config: Optional[RelayConfig] = None) -> None:
    """Run the signaling relay server until cancelled."""
    server = SignalingRelayServer(config)

    try:
        if await server.start():
            logger.info("Signaling relay running. Press Ctrl+C to stop.")
            await asyncio.Future()  # Run forever
    except KeyboardInterrupt:
        logger.info("Shutting down signaling relay...")
    finally:
        await server.stop()


if __name__ == "__main__":
    asyncio.run(main())
