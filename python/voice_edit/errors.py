"""
Voice session error taxonomy.

DeviceError, SignalingError and TransportError are fatal to a connection
attempt and surface through the controller as connection_state=error.
ToolExecutionError never leaves ToolRegistry.execute and ProtocolParseError
never leaves the control channel reader; both are converted or logged.
"""

from typing import Optional


class VoiceSessionError(Exception):
    """Base class for voice session errors."""


class DeviceError(VoiceSessionError):
    """Microphone unavailable or permission denied."""


class SignalingError(VoiceSessionError):
    """Offer/answer exchange rejected by the relay."""

    def __init__(self, status: Optional[int], body: str = ""):
        self.status = status
        self.body = body
        if status is None:
            message = f"Signaling failed: {body}"
        else:
            message = f"Failed to connect to realtime API: {status} - {body}"
        super().__init__(message)


class TransportError(VoiceSessionError):
    """Peer transport dropped or timed out."""


class ToolExecutionError(VoiceSessionError):
    """A tool executor failed."""


class ProtocolParseError(VoiceSessionError):
    """Inbound control-channel message could not be decoded."""

    def __init__(self, message: str, raw: object = None):
        super().__init__(message)
        self.raw = raw
