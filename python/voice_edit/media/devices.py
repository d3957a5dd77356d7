"""
Audio devices.

Capture opens the local microphone through PyAV (aiortc's MediaPlayer) and
wraps its track with a level meter. Playback renders the remote assistant
track through aiortc's MediaRecorder, with a mute switch that replaces
samples by silence instead of pausing the stream.
"""

import asyncio
import logging
from typing import Callable, Optional

import numpy as np
from aiortc import MediaStreamTrack
from aiortc.contrib.media import MediaPlayer, MediaRecorder
from av import AudioFrame

from ..errors import DeviceError

logger = logging.getLogger("voice.devices")


def frame_level(frame: AudioFrame) -> float:
    """RMS level of an audio frame, normalized to 0.0 - 1.0."""
    samples = frame.to_ndarray()
    if samples.size == 0:
        return 0.0
    if np.issubdtype(samples.dtype, np.integer):
        scale = float(np.iinfo(samples.dtype).max)
    else:
        scale = 1.0
    data = samples.astype(np.float64) / scale
    rms = float(np.sqrt(np.mean(np.square(data))))
    return min(rms, 1.0)


def silence_like(frame: AudioFrame) -> AudioFrame:
    """Silent copy of a frame with the same format, layout and timing."""
    silent = AudioFrame.from_ndarray(
        np.zeros_like(frame.to_ndarray()),
        format=frame.format.name,
        layout=frame.layout.name,
    )
    silent.sample_rate = frame.sample_rate
    silent.pts = frame.pts
    if frame.time_base is not None:
        silent.time_base = frame.time_base
    return silent


class LevelMeterTrack(MediaStreamTrack):
    """Pass-through audio track that records the input level of each frame."""

    kind = "audio"

    def __init__(self, source: MediaStreamTrack):
        super().__init__()
        self.source = source
        self.level = 0.0

    async def recv(self) -> AudioFrame:
        frame = await self.source.recv()
        self.level = frame_level(frame)
        return frame

    def stop(self) -> None:
        super().stop()
        self.source.stop()


class MutableAudioTrack(MediaStreamTrack):
    """Pass-through audio track that outputs silence while muted."""

    kind = "audio"

    def __init__(self, source: MediaStreamTrack, muted: bool = False):
        super().__init__()
        self.source = source
        self.muted = muted

    async def recv(self) -> AudioFrame:
        frame = await self.source.recv()
        if self.muted:
            return silence_like(frame)
        return frame


def _close_player(player: MediaPlayer) -> None:
    """Stop every track of an unused player; the last stop closes its input."""
    for track in (player.audio, player.video):
        if track is not None:
            track.stop()


class CaptureHandle:
    """Exclusive handle on the microphone."""

    def __init__(
        self,
        track: MediaStreamTrack,
        player: Optional[MediaPlayer] = None,
        on_release: Optional[Callable[["CaptureHandle"], None]] = None,
    ):
        self.track = track
        self.on_release = on_release
        self._player = player
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    @property
    def level(self) -> float:
        return getattr(self.track, "level", 0.0)

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self.track.stop()
        if self.on_release:
            self.on_release(self)
        logger.debug("Capture device released")


class PlaybackHandle:
    """Renders one remote track to the output device."""

    def __init__(self, track: MutableAudioTrack, recorder: MediaRecorder):
        self.track = track
        self._recorder = recorder
        self._stopped = False

    @property
    def muted(self) -> bool:
        return self.track.muted

    @muted.setter
    def muted(self, value: bool) -> None:
        self.track.muted = value

    async def start(self) -> None:
        await self._recorder.start()

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        await self._recorder.stop()


class DeviceManager:
    """Opens capture and playback devices through PyAV."""

    def __init__(
        self,
        input_device: str = "default",
        input_format: Optional[str] = "pulse",
        output_device: str = "default",
        output_format: Optional[str] = "pulse",
    ):
        self.input_device = input_device
        self.input_format = input_format
        self.output_device = output_device
        self.output_format = output_format
        self._active_captures = 0

    @property
    def active_captures(self) -> int:
        """Number of capture handles currently held open."""
        return self._active_captures

    async def open_capture(self) -> CaptureHandle:
        """
        Open the microphone.

        Raises:
            DeviceError: device missing, busy or permission denied
        """
        loop = asyncio.get_running_loop()
        try:
            player = await loop.run_in_executor(
                None,
                lambda: MediaPlayer(self.input_device, format=self.input_format),
            )
        except Exception as e:
            raise DeviceError(f"Cannot open audio input '{self.input_device}': {e}") from e

        if player.audio is None:
            _close_player(player)
            raise DeviceError(f"No audio track on input '{self.input_device}'")

        handle = CaptureHandle(
            LevelMeterTrack(player.audio),
            player,
            on_release=self._on_capture_released,
        )
        self._active_captures += 1
        logger.info(f"Capture opened: {self.input_device} ({self.input_format})")
        return handle

    def _on_capture_released(self, handle: CaptureHandle) -> None:
        self._active_captures -= 1

    def open_playback(self, track: MediaStreamTrack, muted: bool = False) -> PlaybackHandle:
        """Prepare playback of a remote track; call start() to begin rendering."""
        mutable = MutableAudioTrack(track, muted=muted)
        recorder = MediaRecorder(self.output_device, format=self.output_format)
        recorder.addTrack(mutable)
        return PlaybackHandle(mutable, recorder)
