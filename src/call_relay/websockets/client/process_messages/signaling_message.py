"""
Client-side signaling message handler.

Hands relayed offers, answers and candidates to the call session.
"""

import logging
from typing import Any, Dict

from call_relay.core.types import (
    WS_KEY_FROM,
    WS_KEY_TYPE,
    WS_MSG_ANSWER,
    WS_MSG_CANDIDATE,
    WS_MSG_OFFER,
)
from call_relay.session import CallSession


class SignalingMessageHandler:
    """Handles offer/answer/candidate messages for the session client."""

    def __init__(self, session: CallSession, logger: logging.Logger) -> None:
        self.session = session
        self.logger = logger

    async def process_signaling_message(self, data: Dict[str, Any]) -> None:
        message_type = data.get(WS_KEY_TYPE)
        sender = data.get(WS_KEY_FROM)
        sender = None if sender is None else str(sender)
        payload = data.get(message_type)

        if message_type == WS_MSG_OFFER:
            await self.session.handle_offer(sender, payload)
        elif message_type == WS_MSG_ANSWER:
            await self.session.handle_answer(sender, payload)
        elif message_type == WS_MSG_CANDIDATE:
            await self.session.handle_candidate(sender, payload)
        else:
            self.logger.warning(
                f"[{self.session.client_id}] Unknown signaling message: {message_type}"
            )
