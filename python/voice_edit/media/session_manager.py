"""
Media Session Manager.

Owns everything with an OS or network footprint for one voice connection:
- the microphone capture handle
- the WebRTC peer connection (audio transceiver + control data channel)
- the single remote playback stream

Inbound control messages are decoded and queued in arrival order; one
reader task drains the queue into the control event callback, so no two
control events are ever processed concurrently.
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from aiortc import (
    RTCConfiguration,
    RTCIceServer,
    RTCPeerConnection,
    RTCSessionDescription,
)

from ..config import VoiceConfig, get_config
from ..core import ConnectionState
from ..errors import ProtocolParseError, TransportError, VoiceSessionError
from ..metrics import get_metrics
from ..protocol.events import decode_event
from ..signaling import SignalingClient
from .devices import CaptureHandle, DeviceManager, PlaybackHandle

logger = logging.getLogger("voice.media")


class RemoteStream:
    """Inbound media from the assistant. Tracks are stopped at most once."""

    def __init__(self, tracks: Iterable[Any]):
        self.tracks: List[Any] = list(tracks)
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> bool:
        if self._stopped:
            return False
        self._stopped = True
        for track in self.tracks:
            track.stop()
        return True


class MediaSessionManager:
    """
    Connect/disconnect lifecycle of the peer transport and audio devices.

    Callbacks:
        on_open: control channel is open (connection usable)
        on_control_event: one decoded inbound event, in arrival order
        on_transport_error: the connection dropped unexpectedly
    """

    def __init__(
        self,
        signaling: SignalingClient,
        devices: DeviceManager,
        config: Optional[VoiceConfig] = None,
        on_open: Optional[Callable[[], None]] = None,
        on_control_event: Optional[Callable[[Dict[str, Any]], None]] = None,
        on_transport_error: Optional[Callable[[TransportError], None]] = None,
        peer_factory: Optional[Callable[[RTCConfiguration], Any]] = None,
    ):
        self.signaling = signaling
        self.devices = devices
        self.config = config or get_config()
        self.on_open = on_open
        self.on_control_event = on_control_event
        self.on_transport_error = on_transport_error
        self._peer_factory = peer_factory or (
            lambda configuration: RTCPeerConnection(configuration=configuration)
        )

        self._state = ConnectionState.DISCONNECTED
        self._closing = False
        self._generation = 0
        self._muted = False

        self._capture: Optional[CaptureHandle] = None
        self._pc: Optional[Any] = None
        self._channel: Optional[Any] = None
        self._inbound: Optional[asyncio.Queue] = None
        self._reader: Optional[asyncio.Task] = None

        self._remote_stream: Optional[RemoteStream] = None
        self._playback: Optional[PlaybackHandle] = None
        self._playback_lock = asyncio.Lock()
        self._playback_tasks: List[asyncio.Task] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def remote_stream(self) -> Optional[RemoteStream]:
        return self._remote_stream

    @property
    def input_level(self) -> float:
        """Current microphone level (0.0 - 1.0)."""
        return self._capture.level if self._capture else 0.0

    @property
    def channel_open(self) -> bool:
        return self._channel is not None and self._channel.readyState == "open"

    def _rtc_configuration(self) -> RTCConfiguration:
        return RTCConfiguration(
            iceServers=[RTCIceServer(urls=url) for url in self.config.ice_servers]
        )

    async def connect(self) -> None:
        """
        Acquire the microphone and negotiate the peer connection.

        No-op while already connecting or connected. On failure every
        partially acquired resource is released and the error re-raised.
        An attempt overtaken by disconnect() (and possibly a newer
        connect()) leaves the current resources and state untouched.

        Raises:
            DeviceError: microphone unavailable
            SignalingError: relay rejected the offer
            TransportError: negotiation failed, timed out or was overtaken
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            logger.debug(f"connect() ignored while {self._state.value}")
            return

        self._generation += 1
        generation = self._generation
        self._state = ConnectionState.CONNECTING
        self._closing = False
        self._inbound = asyncio.Queue()

        try:
            capture = await self.devices.open_capture()
            if not self._is_current(generation):
                capture.release()
                raise TransportError("Disconnected while connecting")
            self._capture = capture

            pc = self._peer_factory(self._rtc_configuration())
            self._pc = pc
            pc.on("track", lambda track: self._on_track(pc, track))
            pc.on("connectionstatechange", lambda: self._on_connection_state_change(pc))
            pc.addTransceiver(capture.track, direction="sendrecv")

            channel = pc.createDataChannel(self.config.control_channel)
            self._channel = channel
            channel.on("open", lambda: self._on_channel_open(channel))
            channel.on("message", lambda message: self._on_channel_message(channel, message))
            channel.on("close", lambda: self._on_channel_close(channel))
            self._reader = asyncio.create_task(self._read_control_events(self._inbound))

            offer = await pc.createOffer()
            await pc.setLocalDescription(offer)
            self._ensure_current(generation)

            answer = await self.signaling.exchange(pc.localDescription.sdp)
            self._ensure_current(generation)

            await pc.setRemoteDescription(RTCSessionDescription(sdp=answer, type="answer"))
            self._ensure_current(generation)
            logger.info("Peer connection negotiated")
        except Exception as e:
            error = e if isinstance(e, VoiceSessionError) else TransportError(str(e) or type(e).__name__)
            if self._is_current(generation):
                logger.error(f"Failed to initialize voice connection: {error}")
                await self._release()
                self._state = ConnectionState.ERROR
            else:
                # whoever overtook this attempt already released what it held
                logger.info(f"Abandoned connection attempt: {error}")
            if error is e:
                raise
            raise error from e

    def _is_current(self, generation: int) -> bool:
        return not self._closing and self._generation == generation

    def _ensure_current(self, generation: int) -> None:
        """Abort a connect() that was overtaken by disconnect()."""
        if not self._is_current(generation):
            raise TransportError("Disconnected while connecting")

    def _on_channel_open(self, channel: Any) -> None:
        if self._closing or channel is not self._channel:
            return
        logger.info("Data channel opened")
        self._state = ConnectionState.CONNECTED
        if self.on_open:
            self.on_open()

    def _on_channel_message(self, channel: Any, message: Any) -> None:
        if channel is not self._channel:
            return
        try:
            event = decode_event(message)
        except ProtocolParseError as e:
            logger.warning(f"Dropping malformed control message: {e}")
            get_metrics().control_event_dropped()
            return
        if self._inbound is not None:
            self._inbound.put_nowait(event)

    async def _read_control_events(self, queue: asyncio.Queue) -> None:
        while True:
            event = await queue.get()
            if self._closing:
                continue
            try:
                if self.on_control_event:
                    self.on_control_event(event)
            except Exception as e:
                logger.error(f"Control event handler failed on {event.get('type')}: {e}", exc_info=e)

    def _on_channel_close(self, channel: Any) -> None:
        if channel is not self._channel:
            return
        if not self._closing and self._state == ConnectionState.CONNECTED:
            self._report_transport_error("Control channel closed")

    def _on_connection_state_change(self, pc: Any) -> None:
        if pc is not self._pc:
            return
        state = pc.connectionState
        logger.info(f"Peer connection state: {state}")
        if state in ("failed", "closed") and not self._closing:
            if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
                self._report_transport_error(f"Peer connection {state}")

    def _report_transport_error(self, message: str) -> None:
        logger.error(f"Transport error: {message}")
        self._state = ConnectionState.ERROR
        get_metrics().transport_dropped()
        if self.on_transport_error:
            self.on_transport_error(TransportError(message))

    def _on_track(self, pc: Any, track: Any) -> None:
        if pc is not self._pc:
            track.stop()
            return
        if track.kind != "audio":
            logger.debug(f"Ignoring remote {track.kind} track")
            return
        logger.info("Received remote audio track")
        self.on_remote_audio(RemoteStream([track]))

    def on_remote_audio(self, stream: RemoteStream) -> None:
        """
        Adopt a new remote stream, stopping the previous one first.

        Only the latest stream is ever played back.
        """
        if self._closing:
            stream.stop()
            return
        previous = self._remote_stream
        if previous is stream:
            return
        if previous is not None:
            logger.info("Stopping previous remote audio stream")
            previous.stop()
        self._remote_stream = stream
        task = asyncio.ensure_future(self._swap_playback(stream))
        self._playback_tasks.append(task)
        task.add_done_callback(self._playback_tasks.remove)

    async def _swap_playback(self, stream: RemoteStream) -> None:
        async with self._playback_lock:
            await self._stop_playback()
            if stream is not self._remote_stream or stream.stopped or not stream.tracks:
                return
            try:
                playback = self.devices.open_playback(stream.tracks[0], muted=self._muted)
                self._playback = playback
                await playback.start()
            except Exception as e:
                logger.warning(f"Audio playback failed: {e}")

    async def _stop_playback(self) -> None:
        playback, self._playback = self._playback, None
        if playback is None:
            return
        try:
            await playback.stop()
        except Exception as e:
            logger.warning(f"Error stopping playback: {e}")

    def set_output_muted(self, muted: bool) -> None:
        self._muted = muted
        if self._playback is not None:
            self._playback.muted = muted

    def send(self, payload: Dict[str, Any]) -> bool:
        """
        Write one event to the control channel.

        Returns:
            False if the channel is not open or the write failed
        """
        channel = self._channel
        if channel is None or channel.readyState != "open":
            logger.warning(f"Control channel not open, dropping {payload.get('type')}")
            return False
        try:
            channel.send(json.dumps(payload, ensure_ascii=False))
        except Exception as e:
            logger.error(f"Control channel send failed: {e}")
            return False
        return True

    async def disconnect(self) -> None:
        """Release everything. Safe to call repeatedly."""
        await self._release()
        if self._state != ConnectionState.DISCONNECTED:
            logger.info("Media session disconnected")
        self._state = ConnectionState.DISCONNECTED

    async def _release(self) -> None:
        """Single teardown path; each resource is taken before it is released."""
        self._closing = True

        channel, self._channel = self._channel, None
        if channel is not None:
            try:
                channel.close()
            except Exception as e:
                logger.warning(f"Error closing control channel: {e}")

        reader, self._reader = self._reader, None
        if reader is not None:
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        self._inbound = None

        pc, self._pc = self._pc, None
        if pc is not None:
            try:
                await pc.close()
            except Exception as e:
                logger.warning(f"Error closing peer connection: {e}")

        remote, self._remote_stream = self._remote_stream, None
        if remote is not None:
            remote.stop()

        for task in list(self._playback_tasks):
            task.cancel()
        await self._stop_playback()

        capture, self._capture = self._capture, None
        if capture is not None:
            capture.release()
