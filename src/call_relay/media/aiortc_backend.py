"""
aiortc implementation of the media-negotiation interfaces.

aiortc gathers all ICE candidates while applying the local description and
embeds them in the SDP, so on_ice_candidate never fires for local
candidates. Remote candidates trickled by browser peers are still applied.
"""

import inspect
import logging
import sys
from typing import Any, List, Optional

from aiortc import RTCPeerConnection, RTCSessionDescription
from aiortc.contrib.media import MediaBlackhole, MediaPlayer
from aiortc.sdp import candidate_from_sdp

from .base import IceCandidate, MediaSource, PeerConnection, SessionDescription

logger = logging.getLogger(__name__)

CANDIDATE_PREFIX = "candidate:"


def _to_dict(description: Optional[RTCSessionDescription]) -> Optional[SessionDescription]:
    if description is None:
        return None
    return {"type": description.type, "sdp": description.sdp}


def _to_rtc(description: SessionDescription) -> RTCSessionDescription:
    return RTCSessionDescription(sdp=description["sdp"], type=description["type"])


class AiortcPeerConnection(PeerConnection):
    """PeerConnection backed by aiortc.RTCPeerConnection."""

    def __init__(self, pc: Optional[RTCPeerConnection] = None) -> None:
        super().__init__()
        self._pc = pc or RTCPeerConnection()
        self._sinks: List[MediaBlackhole] = []

        self._pc.on("track", self._handle_track)
        self._pc.on("connectionstatechange", self._handle_connection_state)

    @property
    def local_description(self) -> Optional[SessionDescription]:
        return _to_dict(self._pc.localDescription)

    async def create_offer(self) -> SessionDescription:
        return _to_dict(await self._pc.createOffer())

    async def create_answer(self) -> SessionDescription:
        return _to_dict(await self._pc.createAnswer())

    async def set_local_description(self, description: SessionDescription) -> None:
        await self._pc.setLocalDescription(_to_rtc(description))

    async def set_remote_description(self, description: SessionDescription) -> None:
        await self._pc.setRemoteDescription(_to_rtc(description))

    async def add_ice_candidate(self, candidate: IceCandidate) -> None:
        sdp = (candidate or {}).get("candidate") or ""
        if not sdp:
            # End-of-candidates marker
            return
        if sdp.startswith(CANDIDATE_PREFIX):
            sdp = sdp[len(CANDIDATE_PREFIX):]

        ice_candidate = candidate_from_sdp(sdp)
        ice_candidate.sdpMid = candidate.get("sdpMid")
        ice_candidate.sdpMLineIndex = candidate.get("sdpMLineIndex")
        await self._pc.addIceCandidate(ice_candidate)

    def add_track(self, track: Any) -> None:
        self._pc.addTrack(track)

    async def close(self) -> None:
        for sink in self._sinks:
            await sink.stop()
        self._sinks.clear()
        await self._pc.close()

    async def _handle_track(self, track: Any) -> None:
        logger.info(f"Remote {track.kind} track received")
        if self.on_track is not None:
            result = self.on_track(track)
            if inspect.isawaitable(result):
                await result
            return

        # No renderer supplied: consume the track so the receiver keeps flowing
        sink = MediaBlackhole()
        sink.addTrack(track)
        await sink.start()
        self._sinks.append(sink)

    async def _handle_connection_state(self) -> None:
        logger.info(f"Peer connection state: {self._pc.connectionState}")


class MicrophoneSource(MediaSource):
    """Local microphone opened through ffmpeg via aiortc's MediaPlayer."""

    def __init__(self, device: Optional[str] = None, format: Optional[str] = None) -> None:
        if device is None:
            if sys.platform == "darwin":
                device, format = "none:0", format or "avfoundation"
            else:
                device, format = "default", format or "pulse"

        self.device = device
        self._player = MediaPlayer(device, format=format)
        logger.info(f"Opened microphone {device} ({format})")

    def tracks(self) -> List[Any]:
        if self._player.audio is None:
            return []
        return [self._player.audio]

    async def stop(self) -> None:
        if self._player.audio is not None:
            self._player.audio.stop()
        logger.info(f"Released microphone {self.device}")


def create_peer_connection() -> AiortcPeerConnection:
    """Default peer-connection factory for the session client."""
    return AiortcPeerConnection()
