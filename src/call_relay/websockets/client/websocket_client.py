"""
WebSocket client for the call relay.

Owns the connection to the relay server and the CallSession it drives.
Outbound messages from the session go through send_json; inbound frames
are parsed and dispatched to the control or signaling handler.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import websockets.exceptions
from websockets.asyncio.client import ClientConnection, connect

from call_relay.core.types import (
    ClientId,
    SIGNALING_MESSAGE_TYPES,
    WS_KEY_TYPE,
)
from call_relay.infrastructure.exceptions import (
    ProtocolError,
    TransportFailure,
    WebSocketError,
)
from call_relay.media.base import MediaSource, PeerConnection, TrackCallback
from call_relay.session import CallSession
from call_relay.session.call_session import ConsentPrompt, StatusCallback

from ..core import encode_message, parse_message
from .process_messages import ControlMessageHandler, SignalingMessageHandler


class WebSocketClient:
    """
    Session client transport.

    Connects to the relay, waits for the assigned identifier and keeps a
    message loop running until the connection closes.
    """

    def __init__(
        self,
        server_url: str,
        logger: logging.Logger,
        peer_factory: Callable[[], PeerConnection],
        media_factory: Callable[[], Union[MediaSource, Awaitable[MediaSource]]],
        consent_prompt: Optional[ConsentPrompt] = None,
        on_status: Optional[StatusCallback] = None,
        on_remote_track: Optional[TrackCallback] = None,
        id_timeout: float = 10.0,
    ) -> None:
        """
        Initialize the WebSocket client.

        Args:
            server_url: WebSocket server URL
            logger: Logger instance
            peer_factory: Creates a PeerConnection for each call
            media_factory: Opens the local capture device
            consent_prompt: Decides on incoming calls
            on_status: Receives human-readable progress strings
            on_remote_track: Renders the remote audio track
            id_timeout: Seconds to wait for the server's id message
        """
        if not server_url:
            raise ValueError("server_url cannot be empty")
        if not server_url.startswith(("ws://", "wss://")):
            raise ValueError("server_url must start with 'ws://' or 'wss://'")

        self.server_url: str = server_url
        self.logger: logging.Logger = logger
        self.id_timeout: float = id_timeout
        self._on_status = on_status

        self.websocket: Optional[ClientConnection] = None
        self.is_connected: bool = False

        self.session: CallSession = CallSession(
            send=self.send_json,
            peer_factory=peer_factory,
            media_factory=media_factory,
            consent_prompt=consent_prompt,
            on_status=on_status,
            on_remote_track=on_remote_track,
            logger=logger,
        )

        self.control_handler: ControlMessageHandler = ControlMessageHandler(
            self.session, logger
        )
        self.signaling_handler: SignalingMessageHandler = SignalingMessageHandler(
            self.session, logger
        )

        self._connection_task: Optional[asyncio.Task[None]] = None
        self._messages_sent: int = 0
        self._messages_received: int = 0
        self._connection_errors: int = 0

    @property
    def client_id(self) -> Optional[ClientId]:
        return self.session.client_id

    async def connect(self, max_retries: int = 5, retry_delay: float = 1.0) -> bool:
        """
        Connect to the relay server with retry logic.

        Args:
            max_retries: Maximum number of connection attempts
            retry_delay: Initial delay between retries (exponential backoff)

        Returns:
            True once an identifier has been assigned, False otherwise
        """
        for attempt in range(max_retries):
            try:
                self.logger.info(
                    f"Connecting to {self.server_url} (attempt {attempt + 1}/{max_retries})"
                )
                self.websocket = await connect(self.server_url)

                # The loop must run before the id arrives so it can resolve the future
                id_future = self.control_handler.create_id_future()
                self._connection_task = asyncio.create_task(self._process_messages())

                client_id = await asyncio.wait_for(id_future, timeout=self.id_timeout)
                self.is_connected = True
                self._status("WebSocket connected.")
                self.logger.info(f"[{client_id}] Client ready")
                return True

            except (OSError, asyncio.TimeoutError, WebSocketError,
                    websockets.exceptions.WebSocketException) as e:
                self._connection_errors += 1
                self.logger.error(
                    f"Error connecting (attempt {attempt + 1}): {e}",
                    exc_info=True,
                )
                await self._close_transport()
                if attempt < max_retries - 1:
                    await asyncio.sleep(retry_delay)
                    retry_delay *= 2

        return False

    async def _process_messages(self) -> None:
        """Process incoming messages from the server."""
        try:
            async for message in self.websocket:
                self._messages_received += 1
                await self.process_message(message)
        except websockets.exceptions.ConnectionClosed as e:
            self.logger.error(f"[{self.client_id}] Connection closed by server: {e}")
        except Exception as e:
            self.logger.error(
                f"[{self.client_id}] Error processing messages: {e}", exc_info=True
            )
        finally:
            self.is_connected = False
            if self.control_handler.id_future and not self.control_handler.id_future.done():
                self.control_handler.id_future.set_exception(
                    WebSocketError("Connection closed before an id was assigned")
                )
            self._status("WebSocket disconnected.")
            await self.session.handle_connection_lost()

    async def process_message(self, message: Any) -> None:
        """Dispatch one inbound frame; malformed frames are logged and ignored."""
        if not isinstance(message, str):
            self.logger.warning(f"[{self.client_id}] Ignoring non-text frame")
            return

        try:
            data = parse_message(message)
        except ProtocolError as e:
            self.logger.warning(f"[{self.client_id}] Ignoring malformed message: {e}")
            return

        try:
            if data[WS_KEY_TYPE] in SIGNALING_MESSAGE_TYPES:
                await self.signaling_handler.process_signaling_message(data)
            else:
                await self.control_handler.process_control_message(data)
        except Exception as e:
            self.logger.error(
                f"[{self.client_id}] Error handling {data[WS_KEY_TYPE]} message: {e}",
                exc_info=True,
            )

    async def send_json(self, payload: Dict[str, Any]) -> None:
        """
        Send one message to the relay.

        Raises:
            WebSocketError: If the client is not connected
            TransportFailure: If the connection closed while sending
        """
        if self.websocket is None:
            raise WebSocketError("Not connected to the relay")
        try:
            await self.websocket.send(encode_message(payload))
            self._messages_sent += 1
        except websockets.exceptions.ConnectionClosed as e:
            self.is_connected = False
            raise TransportFailure(f"Connection closed while sending: {e}") from e

    async def _close_transport(self) -> None:
        if self._connection_task:
            self._connection_task.cancel()
            try:
                await self._connection_task
            except asyncio.CancelledError:
                pass
            self._connection_task = None

        if self.websocket:
            try:
                await self.websocket.close()
            except Exception as e:
                self.logger.error(f"[{self.client_id}] Error disconnecting: {e}", exc_info=True)
            finally:
                self.websocket = None
                self.is_connected = False

    async def disconnect(self) -> None:
        """End any call and disconnect from the relay server."""
        if self.is_connected and self.session.target_id is not None:
            await self.session.end_call()

        await self._close_transport()
        await self.session.handle_connection_lost()
        self.logger.info(f"[{self.client_id}] Disconnected from server")

    def _status(self, message: str) -> None:
        if self._on_status is not None:
            self._on_status(message)

    def get_status(self) -> Dict[str, Any]:
        """Get client status and traffic information."""
        return {
            "server_url": self.server_url,
            "is_connected": self.is_connected,
            "messages_sent": self._messages_sent,
            "messages_received": self._messages_received,
            "connection_errors": self._connection_errors,
            **self.session.get_status(),
        }
