"""
Control channel event schema.

Inbound events are JSON objects with a "type" discriminator; outbound
events configure the session and return function-call results.
"""

import json
from typing import Any, Dict, List, Union

from ..errors import ProtocolParseError

# Inbound
TRANSCRIPTION_COMPLETED = "conversation.item.input_audio_transcription.completed"
AUDIO_DELTA = "response.audio.delta"
AUDIO_DONE = "response.audio.done"
FUNCTION_CALL_DELTA = "response.function_call_arguments.delta"
FUNCTION_CALL_DONE = "response.function_call_arguments.done"
SPEECH_STARTED = "input_audio_buffer.speech_started"
SPEECH_STOPPED = "input_audio_buffer.speech_stopped"

# Outbound
SESSION_UPDATE = "session.update"
CONVERSATION_ITEM_CREATE = "conversation.item.create"
FUNCTION_CALL_OUTPUT = "function_call_output"


def decode_event(raw: Union[str, bytes]) -> Dict[str, Any]:
    """
    Decode one control channel message.

    Raises:
        ProtocolParseError: not UTF-8, not JSON, or not an object with a
            string "type"
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolParseError(f"Control message is not UTF-8: {e}", raw)

    try:
        event = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProtocolParseError(f"Control message is not JSON: {e}", raw)

    if not isinstance(event, dict) or not isinstance(event.get("type"), str):
        raise ProtocolParseError("Control message has no event type", raw)

    return event


def parse_arguments(raw: Any) -> Dict[str, Any]:
    """Decode the JSON-encoded arguments of a function call."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        arguments = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProtocolParseError(f"Invalid function call arguments: {e}", raw)
    if not isinstance(arguments, dict):
        raise ProtocolParseError("Function call arguments must be an object", raw)
    return arguments


def session_update(
    tools: List[Dict[str, Any]],
    instructions: str,
    modalities: List[str],
) -> Dict[str, Any]:
    return {
        "type": SESSION_UPDATE,
        "session": {
            "modalities": list(modalities),
            "tools": tools,
            "instructions": instructions,
        },
    }


def function_call_output(call_id: str, output: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": CONVERSATION_ITEM_CREATE,
        "item": {
            "type": FUNCTION_CALL_OUTPUT,
            "call_id": call_id,
            "output": json.dumps(output, ensure_ascii=False),
        },
    }
