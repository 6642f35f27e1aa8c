"""
Unit tests for the aiortc peer-connection wrapper.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiortc import RTCIceCandidate, RTCSessionDescription

from call_relay.media.aiortc_backend import AiortcPeerConnection


@pytest.fixture
def rtc():
    pc = MagicMock()
    pc.addIceCandidate = AsyncMock()
    pc.setRemoteDescription = AsyncMock()
    pc.close = AsyncMock()
    pc.localDescription = None
    return pc


class TestAiortcPeerConnection:
    """Test cases for AiortcPeerConnection."""

    @pytest.mark.unit
    def test_registers_event_handlers(self, rtc):
        AiortcPeerConnection(rtc)

        events = [call.args[0] for call in rtc.on.call_args_list]
        assert events == ["track", "connectionstatechange"]

    @pytest.mark.unit
    def test_local_description_as_dict(self, rtc):
        rtc.localDescription = RTCSessionDescription(sdp="v=0", type="offer")

        assert AiortcPeerConnection(rtc).local_description == {"type": "offer", "sdp": "v=0"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_remote_description_converted(self, rtc):
        await AiortcPeerConnection(rtc).set_remote_description({"type": "answer", "sdp": "v=0"})

        description = rtc.setRemoteDescription.call_args.args[0]
        assert isinstance(description, RTCSessionDescription)
        assert (description.type, description.sdp) == ("answer", "v=0")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_candidate_parsed_from_browser_format(self, rtc):
        """Test that a browser-style candidate line is applied with its media id."""
        peer = AiortcPeerConnection(rtc)

        await peer.add_ice_candidate(
            {
                "candidate": "candidate:1 1 UDP 2130706431 10.0.0.1 5000 typ host",
                "sdpMid": "0",
                "sdpMLineIndex": 0,
            }
        )

        candidate = rtc.addIceCandidate.call_args.args[0]
        assert isinstance(candidate, RTCIceCandidate)
        assert (candidate.ip, candidate.port, candidate.type) == ("10.0.0.1", 5000, "host")
        assert (candidate.sdpMid, candidate.sdpMLineIndex) == ("0", 0)

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("candidate", [{"candidate": ""}, {}, None])
    async def test_end_of_candidates_ignored(self, rtc, candidate):
        await AiortcPeerConnection(rtc).add_ice_candidate(candidate)

        rtc.addIceCandidate.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_remote_track_goes_to_host_renderer(self, rtc):
        peer = AiortcPeerConnection(rtc)
        received = []
        peer.on_track = received.append
        track = MagicMock(kind="audio")

        await peer._handle_track(track)

        assert received == [track]
        assert peer._sinks == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_close_closes_underlying_connection(self, rtc):
        await AiortcPeerConnection(rtc).close()

        rtc.close.assert_awaited_once()
