"""
Voice Edit - realtime voice commands for AI image editing.

Connects the microphone to a realtime AI assistant over WebRTC:
- SDP offer/answer exchange through a signaling relay
- Audio in both directions plus a JSON control data channel
- Function calls from the assistant dispatched to local tools (editImage,
  analyzeImage), each call id executed at most once
- Observable status state machine for the user interface

Usage:
    python -m voice_edit session --image-url https://example.com/photo.png
    python -m voice_edit relay

Environment Variables:
    VOICE_RELAY_URL - Signaling relay endpoint
    VOICE_EDIT_URL - Image edit endpoint
    OPENAI_API_KEY - Realtime provider key (relay only)
"""

__version__ = "1.0.0"

from .config import VoiceConfig, get_config
from .controller import VoiceSessionController
from .core import ActivityState, ConnectionState, SessionStatus

__all__ = [
    "VoiceConfig",
    "get_config",
    "VoiceSessionController",
    "ActivityState",
    "ConnectionState",
    "SessionStatus",
]
