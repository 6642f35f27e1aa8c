"""
Media-negotiation components for the session client.

- base: backend-neutral PeerConnection and MediaSource interfaces
- aiortc_backend: implementation on top of aiortc
"""

from .base import IceCandidate, MediaSource, PeerConnection, SessionDescription

__all__ = [
    "IceCandidate",
    "MediaSource",
    "PeerConnection",
    "SessionDescription",
]
