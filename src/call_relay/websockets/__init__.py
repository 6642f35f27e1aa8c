"""
WebSocket components for the call relay system.

- core: client registry and call pairing
- server: the signaling relay server and its message handlers
- client: the session client transport and its message handlers
"""
