"""
Media-negotiation interfaces used by the session client.

Session descriptions and candidates cross these interfaces as plain dicts
so the session and the relay never depend on a particular WebRTC stack.
A session description looks like {"type": "offer", "sdp": "..."}; a
candidate looks like {"candidate": "candidate:...", "sdpMid": "0",
"sdpMLineIndex": 0}.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

SessionDescription = Dict[str, Any]
IceCandidate = Dict[str, Any]

CandidateCallback = Callable[[IceCandidate], Union[None, Awaitable[None]]]
TrackCallback = Callable[[Any], Union[None, Awaitable[None]]]


class MediaSource(ABC):
    """Local capture handle (e.g. a microphone)."""

    @abstractmethod
    def tracks(self) -> List[Any]:
        """Tracks to attach to a peer connection."""

    @abstractmethod
    async def stop(self) -> None:
        """Release the capture device."""


class PeerConnection(ABC):
    """One point-to-point media session."""

    def __init__(self) -> None:
        self.on_ice_candidate: Optional[CandidateCallback] = None
        self.on_track: Optional[TrackCallback] = None

    @property
    @abstractmethod
    def local_description(self) -> Optional[SessionDescription]:
        """The description applied locally, as it should be sent to the peer."""

    @abstractmethod
    async def create_offer(self) -> SessionDescription:
        ...

    @abstractmethod
    async def create_answer(self) -> SessionDescription:
        ...

    @abstractmethod
    async def set_local_description(self, description: SessionDescription) -> None:
        ...

    @abstractmethod
    async def set_remote_description(self, description: SessionDescription) -> None:
        ...

    @abstractmethod
    async def add_ice_candidate(self, candidate: IceCandidate) -> None:
        ...

    @abstractmethod
    def add_track(self, track: Any) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
