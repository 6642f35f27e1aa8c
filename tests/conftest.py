"""
Pytest configuration and shared fixtures for the Call Relay test suite.

This module provides common fixtures and configuration for all tests.
"""

import json
import logging
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from websockets.protocol import State

from call_relay.config.settings import RelayConfig
from call_relay.media.base import MediaSource, PeerConnection
from call_relay.websockets.core import ConnectionManager


class SequenceRandom:
    """Stand-in for random.Random that returns scripted values."""

    def __init__(self, values: List[int]) -> None:
        self.values = list(values)

    def randint(self, low: int, high: int) -> int:
        # The last value repeats forever
        return self.values.pop(0) if len(self.values) > 1 else self.values[0]


class FakeMediaSource(MediaSource):
    """Local capture stand-in with a single dummy track."""

    def __init__(self) -> None:
        self.track = object()
        self.stopped = False

    def tracks(self) -> List[Any]:
        return [self.track]

    async def stop(self) -> None:
        self.stopped = True


class FakePeerConnection(PeerConnection):
    """Records every negotiation call instead of talking WebRTC."""

    def __init__(self) -> None:
        super().__init__()
        self.tracks: List[Any] = []
        self.local: Dict[str, Any] = None
        self.remote: Dict[str, Any] = None
        self.candidates: List[Dict[str, Any]] = []
        self.closed = False
        self.fail_on: str = None

    @property
    def local_description(self):
        return self.local

    def _maybe_fail(self, step: str) -> None:
        if self.fail_on == step:
            raise RuntimeError(f"{step} failed")

    async def create_offer(self):
        self._maybe_fail("create_offer")
        return {"type": "offer", "sdp": "v=0 offer"}

    async def create_answer(self):
        self._maybe_fail("create_answer")
        return {"type": "answer", "sdp": "v=0 answer"}

    async def set_local_description(self, description):
        self.local = description

    async def set_remote_description(self, description):
        self._maybe_fail("set_remote_description")
        self.remote = description

    async def add_ice_candidate(self, candidate):
        self.candidates.append(candidate)

    def add_track(self, track):
        self.tracks.append(track)

    async def close(self):
        self.closed = True


def make_websocket(state: State = State.OPEN) -> MagicMock:
    """Create a mock server-side WebSocket connection."""
    websocket = MagicMock()
    websocket.state = state
    websocket.remote_address = ("127.0.0.1", 12345)
    websocket.send = AsyncMock()
    websocket.close = AsyncMock()
    websocket.ping = AsyncMock()
    return websocket


def sent_messages(websocket: MagicMock) -> List[Dict[str, Any]]:
    """Decode every JSON frame sent through a mock WebSocket."""
    return [json.loads(call.args[0]) for call in websocket.send.call_args_list]


@pytest.fixture
def logger():
    """Logger shared by handler tests."""
    return logging.getLogger("call_relay.tests")


@pytest.fixture
def mock_config():
    """Create a configuration for testing."""
    return RelayConfig(
        host="127.0.0.1",
        port=0,
        id_min=10000,
        id_max=99999,
        max_connections=16,
        ping_interval=30.0,
        log_level="DEBUG",
    )


@pytest.fixture
def mock_websocket():
    """Create a mock WebSocket connection for testing."""
    return make_websocket()


@pytest.fixture
def connections():
    """Registry with a small identifier space."""
    return ConnectionManager(id_min=10000, id_max=99999)


@pytest.fixture
def registered_pair(connections):
    """Two registered clients, 12345 and 67890, with open connections."""
    caller_ws = make_websocket()
    callee_ws = make_websocket()
    connections.clients["12345"] = caller_ws
    connections.clients["67890"] = callee_ws
    return caller_ws, callee_ws


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
