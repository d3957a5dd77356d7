"""
Voice session configuration with environment variable support.

Environment Variables:
    VOICE_RELAY_URL - Signaling relay endpoint (SDP offer/answer exchange)
    VOICE_EDIT_URL - Image edit endpoint used by the editImage tool
    VOICE_EDIT_PROVIDER - Image generation backend (fal, modelscope)
    VOICE_STUN_URLS - Comma-separated STUN server URLs
    VOICE_SIGNALING_TIMEOUT - Seconds before the offer/answer exchange fails
    VOICE_TOOL_TIMEOUT - Seconds before an image edit request fails
    OPENAI_API_KEY - Realtime provider key (relay only)
    VOICE_LOG_LEVEL - Log level (DEBUG, INFO, WARNING, ERROR)
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


DEFAULT_INSTRUCTIONS = (
    "You are an AI image editing assistant with voice capabilities. "
    "You can see and edit the user's current image.\n\n"
    "When users ask you to edit their image, use the editImage function with "
    "detailed, specific prompts.\n"
    "Be conversational and encouraging. Explain what you're doing as you edit images.\n"
    "The user has an image loaded that you can edit using your tools."
)

RELAY_INSTRUCTIONS = (
    "You are an AI image editing assistant with voice capabilities. "
    "You can see and edit the user's current image using the available tools. "
    "Be conversational and helpful."
)


def _split_urls(value: str) -> List[str]:
    """Split comma-separated URL list and strip whitespace."""
    urls = []
    for raw in value.split(","):
        url = raw.strip()
        if url and not url.startswith("#"):
            urls.append(url)
    return urls


def _get_stun_urls_from_env() -> List[str]:
    """Collect STUN server URLs from environment."""
    return _split_urls(os.getenv("VOICE_STUN_URLS", "stun:stun.l.google.com:19302"))


@dataclass
class VoiceConfig:
    """Voice session configuration."""

    # Collaborator endpoints
    relay_url: str = field(
        default_factory=lambda: os.getenv(
            "VOICE_RELAY_URL", "http://localhost:3000/api/rtc-connect"
        )
    )
    edit_url: str = field(
        default_factory=lambda: os.getenv(
            "VOICE_EDIT_URL", "http://localhost:3000/api/voice-edit"
        )
    )
    edit_provider: str = field(
        default_factory=lambda: os.getenv("VOICE_EDIT_PROVIDER", "fal")
    )

    # Peer transport
    stun_urls: List[str] = field(default_factory=_get_stun_urls_from_env)
    control_channel: str = field(
        default_factory=lambda: os.getenv("VOICE_CONTROL_CHANNEL", "response")
    )

    # Timeouts (seconds)
    signaling_timeout: float = field(
        default_factory=lambda: float(os.getenv("VOICE_SIGNALING_TIMEOUT", "30"))
    )
    tool_timeout: float = field(
        default_factory=lambda: float(os.getenv("VOICE_TOOL_TIMEOUT", "300"))
    )

    # Status display delays (seconds)
    tool_complete_delay: float = field(
        default_factory=lambda: float(os.getenv("VOICE_TOOL_COMPLETE_DELAY", "2.0"))
    )
    error_delay: float = field(
        default_factory=lambda: float(os.getenv("VOICE_ERROR_DELAY", "3.0"))
    )

    # Audio devices (PyAV device name + format, see aiortc.contrib.media)
    audio_input: str = field(
        default_factory=lambda: os.getenv("VOICE_AUDIO_INPUT", "default")
    )
    audio_input_format: str = field(
        default_factory=lambda: os.getenv("VOICE_AUDIO_INPUT_FORMAT", "pulse")
    )
    audio_output: str = field(
        default_factory=lambda: os.getenv("VOICE_AUDIO_OUTPUT", "default")
    )
    audio_output_format: str = field(
        default_factory=lambda: os.getenv("VOICE_AUDIO_OUTPUT_FORMAT", "pulse")
    )

    # Session configuration sent over the control channel
    instructions: str = DEFAULT_INSTRUCTIONS
    modalities: List[str] = field(default_factory=lambda: ["text", "audio"])

    # Default image dimensions when the caller does not know them
    default_width: int = 1024
    default_height: int = 768

    # Signaling relay (server side)
    openai_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY") or None
    )
    realtime_url: str = field(
        default_factory=lambda: os.getenv(
            "VOICE_REALTIME_URL", "https://api.openai.com/v1/realtime"
        )
    )
    realtime_model: str = field(
        default_factory=lambda: os.getenv(
            "VOICE_REALTIME_MODEL", "gpt-4o-realtime-preview-2024-12-17"
        )
    )
    realtime_voice: str = field(
        default_factory=lambda: os.getenv("VOICE_REALTIME_VOICE", "ash")
    )
    relay_instructions: str = RELAY_INSTRUCTIONS
    relay_host: str = field(
        default_factory=lambda: os.getenv("VOICE_RELAY_HOST", "0.0.0.0")
    )
    relay_port: int = field(
        default_factory=lambda: int(os.getenv("VOICE_RELAY_PORT", "8787"))
    )

    # Prometheus metrics server (0 disables)
    metrics_port: int = field(
        default_factory=lambda: int(os.getenv("VOICE_METRICS_PORT", "0"))
    )

    def __post_init__(self):
        """Validate values after initialization."""
        import logging

        logger = logging.getLogger("voice.config")

        if self.edit_provider not in ("fal", "modelscope"):
            logger.warning(
                f"Unknown edit provider '{self.edit_provider}', falling back to 'fal'"
            )
            self.edit_provider = "fal"

        if not self.stun_urls:
            logger.warning("No STUN servers configured. Set VOICE_STUN_URLS.")

    @property
    def ice_servers(self) -> List[str]:
        """STUN URLs used for the peer connection."""
        return list(self.stun_urls)


# Singleton config instance
_config: Optional[VoiceConfig] = None


def get_config() -> VoiceConfig:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = VoiceConfig()
    return _config


def reset_config():
    """Reset the global config (useful for testing)."""
    global _config
    _config = None
