"""
Unit tests for the relay server's frame routing.
"""

import pytest

from call_relay.config import RelayConfig
from call_relay.infrastructure.exceptions import ValidationError
from call_relay.websockets.server import SignalingRelayServer
from tests.conftest import sent_messages


@pytest.fixture
def server(mock_config, connections):
    return SignalingRelayServer(mock_config, connections=connections)


class TestSignalingRelayServer:
    """Test cases for SignalingRelayServer message routing."""

    @pytest.mark.unit
    def test_invalid_config_rejected(self):
        """Test that the server refuses an inconsistent configuration."""
        with pytest.raises(ValidationError):
            SignalingRelayServer(RelayConfig(id_min=1, id_max=10, max_connections=50))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_control_message_routed(self, server, registered_pair):
        _, callee_ws = registered_pair

        await server.process_message("12345", '{"type": "request", "targetId": "67890"}')

        assert sent_messages(callee_ws) == [{"type": "request", "from": "12345"}]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_signaling_message_routed(self, server, registered_pair):
        _, callee_ws = registered_pair

        await server.process_message(
            "12345", '{"type": "offer", "offer": {"sdp": "v=0"}, "targetId": "67890"}'
        )

        assert sent_messages(callee_ws) == [
            {"type": "offer", "from": "12345", "offer": {"sdp": "v=0"}}
        ]
        assert server.get_stats()["signaling_stats"]["relayed_messages"] == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "frame",
        [
            "garbage",
            '{"targetId": "67890"}',
            '{"type": "teleport", "targetId": "67890"}',
            '{"type": "id", "id": "67890"}',
            b'{"type": "request", "targetId": "67890"}',
        ],
    )
    async def test_unusable_frames_ignored(self, server, connections, registered_pair, frame):
        """Test that malformed, unknown and binary frames change nothing."""
        caller_ws, callee_ws = registered_pair

        await server.process_message("12345", frame)

        caller_ws.send.assert_not_called()
        callee_ws.send.assert_not_called()
        assert connections.calls == {}
        assert connections.get_stats()["connected_clients"] == 2

    @pytest.mark.unit
    def test_stats_before_start(self, server):
        stats = server.get_stats()

        assert stats["server_running"] is False
        assert stats["registry_stats"] == {"connected_clients": 0, "active_calls": 0}
