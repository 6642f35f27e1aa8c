"""
Wire protocol helpers shared by the relay server and the session client.

Every frame is a JSON object with a ``type`` discriminator; nothing else
about its shape is checked here.
"""

import json
from typing import Any, Dict

from call_relay.core.types import WS_KEY_TYPE
from call_relay.infrastructure.exceptions import ProtocolError


def parse_message(message: str) -> Dict[str, Any]:
    """
    Parse an inbound text frame into a message dict.

    Raises:
        ProtocolError: If the frame is not a JSON object with a non-empty type
    """
    try:
        data = json.loads(message)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ProtocolError("Message must be a JSON object")

    message_type = data.get(WS_KEY_TYPE)
    if not isinstance(message_type, str) or not message_type.strip():
        raise ProtocolError("Message missing non-empty 'type'")

    data[WS_KEY_TYPE] = message_type.strip()
    return data


def encode_message(payload: Dict[str, Any]) -> str:
    return json.dumps(payload)
