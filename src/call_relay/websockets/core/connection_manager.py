"""
Client registry for the WebSocket signaling relay.

This module owns the two tables the relay works with: the registry of
connected clients and the symmetric pairing of clients that are in a call.
All mutations are synchronous so the tables are consistent at every
suspension point of the event loop.
"""

import random
from typing import Dict, List, Optional, Tuple

from websockets.asyncio.server import ServerConnection
from websockets.protocol import State

from call_relay.core.types import (
    ClientId,
    DEFAULT_ID_MAX,
    DEFAULT_ID_MIN,
    ID_GENERATION_MAX_ATTEMPTS,
)
from call_relay.infrastructure.exceptions import ConfigurationError


class ConnectionManager:
    """Registry of connected clients and of active call pairings."""

    def __init__(
        self,
        id_min: int = DEFAULT_ID_MIN,
        id_max: int = DEFAULT_ID_MAX,
        rng: Optional[random.Random] = None,
    ) -> None:
        if id_min > id_max:
            raise ConfigurationError(
                f"id_min ({id_min}) must not exceed id_max ({id_max})"
            )

        self.id_min = id_min
        self.id_max = id_max
        self._rng = rng or random.Random()

        # Map client_id -> WebSocket connection
        self.clients: Dict[ClientId, ServerConnection] = {}

        # Map client_id -> partner client_id (always symmetric)
        self.calls: Dict[ClientId, ClientId] = {}

    def generate_client_id(self) -> ClientId:
        """
        Pick an identifier not held by any connected client.

        Random candidates are drawn first; when they keep colliding the
        identifier space is scanned for the first free slot.
        """
        for _ in range(ID_GENERATION_MAX_ATTEMPTS):
            candidate = str(self._rng.randint(self.id_min, self.id_max))
            if candidate not in self.clients:
                return candidate

        for value in range(self.id_min, self.id_max + 1):
            candidate = str(value)
            if candidate not in self.clients:
                return candidate

        raise ConfigurationError(
            f"Identifier space {self.id_min}-{self.id_max} is exhausted"
        )

    def register(self, ws: ServerConnection) -> ClientId:
        """Assign an identifier to a new connection and register it."""
        client_id = self.generate_client_id()
        self.clients[client_id] = ws
        return client_id

    def unregister(self, client_id: ClientId) -> Optional[ClientId]:
        """
        Remove a client and dissolve its call, if any.

        Safe to call more than once for the same client.

        Returns:
            The former call partner, or None
        """
        self.clients.pop(client_id, None)
        return self.end_call(client_id)

    def pair(self, first: ClientId, second: ClientId) -> List[Tuple[ClientId, ClientId]]:
        """
        Record first <-> second as an active call.

        Pairings either member held before are dissolved for both sides.

        Returns:
            (former_partner, member) tuples for every displaced pairing
        """
        displaced: List[Tuple[ClientId, ClientId]] = []
        for member in (first, second):
            previous = self.calls.get(member)
            if previous is not None and previous not in (first, second):
                displaced.append((previous, member))
            self.end_call(member)

        self.calls[first] = second
        self.calls[second] = first
        return displaced

    def end_call(self, client_id: ClientId) -> Optional[ClientId]:
        """Remove both directions of the client's pairing and return the partner."""
        partner = self.calls.pop(client_id, None)
        if partner is not None and self.calls.get(partner) == client_id:
            del self.calls[partner]
        return partner

    def get_partner(self, client_id: ClientId) -> Optional[ClientId]:
        """Get the call partner of a client - O(1) lookup."""
        return self.calls.get(client_id)

    def get_client_websocket(self, client_id: ClientId) -> Optional[ServerConnection]:
        """Get WebSocket for a client - O(1) lookup."""
        return self.clients.get(client_id)

    def get_open_websocket(self, client_id: Optional[ClientId]) -> Optional[ServerConnection]:
        """Get WebSocket for a client only if its connection is open."""
        if client_id is None:
            return None
        ws = self.clients.get(client_id)
        if ws is None or ws.state is not State.OPEN:
            return None
        return ws

    def is_registered(self, client_id: ClientId) -> bool:
        """Check if client is registered."""
        return client_id in self.clients

    def is_in_call(self, client_id: ClientId) -> bool:
        """Check if client has an active pairing."""
        return client_id in self.calls

    def get_stats(self) -> Dict[str, int]:
        """Get registry statistics."""
        return {
            "connected_clients": len(self.clients),
            "active_calls": len(self.calls) // 2,
        }
