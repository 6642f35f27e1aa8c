"""
Unit tests for wire message parsing and relay utilities.
"""

import json

import pytest
from websockets.exceptions import ConnectionClosedOK
from websockets.frames import Close

from call_relay.infrastructure.exceptions import ProtocolError
from call_relay.websockets.core import encode_message, parse_message
from call_relay.websockets.server.process_messages import ConnectionUtils
from call_relay.websockets.server.process_messages.utils import get_target_id
from tests.conftest import make_websocket, sent_messages


class TestParseMessage:
    """Test cases for inbound frame parsing."""

    @pytest.mark.unit
    def test_parses_object_with_type(self):
        data = parse_message('{"type": "request", "targetId": "67890"}')

        assert data == {"type": "request", "targetId": "67890"}

    @pytest.mark.unit
    def test_strips_type(self):
        assert parse_message('{"type": " offer "}')["type"] == "offer"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "frame",
        [
            "not json",
            "[1, 2, 3]",
            '"request"',
            "{}",
            '{"type": ""}',
            '{"type": 5}',
        ],
    )
    def test_rejects_malformed_frames(self, frame):
        """Test that anything but an object with a non-empty type is refused."""
        with pytest.raises(ProtocolError):
            parse_message(frame)

    @pytest.mark.unit
    def test_encode_is_json(self):
        assert json.loads(encode_message({"type": "id", "id": "12345"})) == {
            "type": "id",
            "id": "12345",
        }


class TestTargetId:
    """Test cases for targetId normalization."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("67890", "67890"),
            (67890, "67890"),
            (" 67890 ", "67890"),
            ("", None),
            (None, None),
            (True, None),
            ({"id": 1}, None),
        ],
    )
    def test_get_target_id(self, value, expected):
        assert get_target_id({"targetId": value}) == expected


class TestConnectionUtils:
    """Test cases for safe sends and connection teardown."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_json_to_missing_socket(self, logger):
        assert await ConnectionUtils.send_json(None, {"type": "id"}, logger) is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_json_swallows_closed_connection(self, logger):
        """Test that a send racing a close reports failure instead of raising."""
        websocket = make_websocket()
        websocket.send.side_effect = ConnectionClosedOK(Close(1000, ""), Close(1000, ""), True)

        assert await ConnectionUtils.send_json(websocket, {"type": "offer"}, logger) is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cleanup_notifies_partner_with_reason(self, connections, registered_pair, logger):
        """Test that a departing client's partner learns why."""
        _, callee_ws = registered_pair
        connections.pair("12345", "67890")

        await ConnectionUtils.cleanup_connection(connections, "12345", "connection lost", logger)

        assert sent_messages(callee_ws) == [
            {"type": "disconnect", "from": "12345", "reason": "connection lost"}
        ]
        assert connections.calls == {}
        assert not connections.is_registered("12345")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cleanup_without_call_sends_nothing(self, connections, registered_pair, logger):
        caller_ws, callee_ws = registered_pair

        await ConnectionUtils.cleanup_connection(connections, "12345", "connection error", logger)

        caller_ws.send.assert_not_called()
        callee_ws.send.assert_not_called()
        assert connections.get_stats() == {"connected_clients": 1, "active_calls": 0}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cleanup_runs_once_per_client(self, connections, registered_pair, logger):
        """Test that repeated cleanup does not notify the partner twice."""
        _, callee_ws = registered_pair
        connections.pair("12345", "67890")

        await ConnectionUtils.cleanup_connection(connections, "12345", "connection lost", logger)
        await ConnectionUtils.cleanup_connection(connections, "12345", "connection lost", logger)

        assert callee_ws.send.call_count == 1
