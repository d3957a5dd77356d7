"""Control channel protocol."""
from .events import decode_event, function_call_output, parse_arguments, session_update
from .handler import ControlChannelProtocolHandler

__all__ = [
    "decode_event",
    "function_call_output",
    "parse_arguments",
    "session_update",
    "ControlChannelProtocolHandler",
]
