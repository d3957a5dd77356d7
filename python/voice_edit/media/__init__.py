"""Audio devices and peer transport."""
from .devices import CaptureHandle, DeviceManager, PlaybackHandle, frame_level
from .session_manager import MediaSessionManager, RemoteStream

__all__ = [
    "CaptureHandle",
    "DeviceManager",
    "PlaybackHandle",
    "frame_level",
    "MediaSessionManager",
    "RemoteStream",
]
