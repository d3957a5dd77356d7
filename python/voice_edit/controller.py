"""
Voice Session Controller.

Composition root handed to the presentation layer. Wires the media
session, the control channel protocol handler and the tool registry, and
publishes status snapshots to subscribers. Connection failures end up in
the status (connection_state=error), never as exceptions to the caller.
"""

import logging
from typing import Callable, List, Optional

from .config import VoiceConfig, get_config
from .core import ConnectionState, Session, SessionStatus, TaskRegistry
from .errors import DeviceError, SignalingError, TransportError, VoiceSessionError
from .media import DeviceManager, MediaSessionManager
from .metrics import get_metrics
from .protocol import ControlChannelProtocolHandler
from .signaling import SignalingClient
from .tools import ImageContext, ImageEditClient, ToolRegistry, create_image_tools

logger = logging.getLogger("voice.controller")

StatusCallback = Callable[[SessionStatus], None]


def _failure_label(error: Exception) -> str:
    if isinstance(error, DeviceError):
        return "device_error"
    if isinstance(error, SignalingError):
        return "signaling_error"
    if isinstance(error, TransportError):
        return "transport_error"
    return "error"


class VoiceSessionController:
    """connect / disconnect / toggle_mute and the current status of one voice surface."""

    def __init__(
        self,
        config: Optional[VoiceConfig] = None,
        image: Optional[ImageContext] = None,
        registry: Optional[ToolRegistry] = None,
        signaling: Optional[SignalingClient] = None,
        devices: Optional[DeviceManager] = None,
        peer_factory=None,
        tasks: Optional[TaskRegistry] = None,
        on_connection_status_change: Optional[Callable[[str], None]] = None,
    ):
        self.config = config or get_config()
        self.image = image or ImageContext(
            width=self.config.default_width,
            height=self.config.default_height,
        )
        if registry is None:
            client = ImageEditClient(
                url=self.config.edit_url,
                provider=self.config.edit_provider,
                timeout=self.config.tool_timeout,
            )
            registry = create_image_tools(self.image, client)
        self.registry = registry
        self.tasks = tasks or TaskRegistry()
        self.on_connection_status_change = on_connection_status_change

        self.media = MediaSessionManager(
            signaling=signaling or SignalingClient(
                self.config.relay_url, timeout=self.config.signaling_timeout
            ),
            devices=devices or DeviceManager(
                input_device=self.config.audio_input,
                input_format=self.config.audio_input_format or None,
                output_device=self.config.audio_output,
                output_format=self.config.audio_output_format or None,
            ),
            config=self.config,
            on_open=self._on_open,
            on_control_event=self._on_control_event,
            on_transport_error=self._on_transport_error,
            peer_factory=peer_factory,
        )

        self._session = Session()
        self._handler: Optional[ControlChannelProtocolHandler] = None
        self._subscribers: List[StatusCallback] = []
        self._last_status: Optional[SessionStatus] = None
        self._active = False
        self._muted = False

    @property
    def status(self) -> SessionStatus:
        return self._session.status()

    @property
    def session(self) -> Session:
        return self._session

    @property
    def handler(self) -> Optional[ControlChannelProtocolHandler]:
        return self._handler

    @property
    def active(self) -> bool:
        return self._active

    @property
    def input_level(self) -> float:
        return self.media.input_level

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        """
        Receive a status snapshot after every change.

        Returns:
            Function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        status = self._session.status()
        previous = self._last_status
        if status == previous:
            return
        self._last_status = status

        if previous is None or previous.connection_state != status.connection_state:
            logger.info(f"Connection: {status.connection_state.value}")
            if self.on_connection_status_change:
                try:
                    self.on_connection_status_change(status.connection_state.value)
                except Exception as e:
                    logger.warning(f"Connection status callback failed: {e}")

        for callback in list(self._subscribers):
            try:
                callback(status)
            except Exception as e:
                logger.warning(f"Status subscriber failed: {e}")

    async def connect(self) -> bool:
        """
        Open a new voice session.

        Returns:
            True if negotiation succeeded (the session becomes connected once
            the control channel opens); False if it failed or was interrupted
        """
        if self._session.connection_state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            logger.debug("Already connecting or connected")
            return False

        session = Session(muted_output=self._muted)
        self._session = session
        self._handler = ControlChannelProtocolHandler(
            session=session,
            registry=self.registry,
            send=self.media.send,
            config=self.config,
            tasks=self.tasks,
            on_change=self._notify,
        )
        session.set_connection(ConnectionState.CONNECTING)
        self._notify()

        try:
            await self.media.connect()
        except VoiceSessionError as e:
            get_metrics().connect_attempt(_failure_label(e))
            if session is not self._session or session.connection_state != ConnectionState.CONNECTING:
                logger.info("Connection attempt abandoned")
                return False
            await self._teardown(ConnectionState.ERROR, str(e))
            return False
        return True

    def _on_open(self) -> None:
        handler = self._handler
        if handler is None or handler.closed:
            return
        self._session.set_connection(ConnectionState.CONNECTED)
        get_metrics().connect_attempt("connected")
        get_metrics().session_opened()
        handler.on_channel_open()
        self._notify()

    def _on_control_event(self, event) -> None:
        if self._handler is not None:
            self._handler.handle_event(event)

    def _on_transport_error(self, error: TransportError) -> None:
        if self._handler is None:
            return
        self.tasks.register(
            "transport_teardown",
            self._teardown(ConnectionState.ERROR, str(error)),
        )

    async def disconnect(self) -> None:
        """Tear down the session. Idempotent."""
        await self._teardown(ConnectionState.DISCONNECTED)

    async def _teardown(self, state: ConnectionState, error: Optional[str] = None) -> None:
        session = self._session
        handler, self._handler = self._handler, None
        if handler is not None:
            handler.close()

        was_connected = session.connection_state == ConnectionState.CONNECTED
        await self.media.disconnect()

        session.seen_call_ids.clear()
        session.set_connection(state, error)
        if was_connected:
            get_metrics().session_closed()
            logger.info(
                f"Session ended after {session.duration:.1f}s "
                f"({len(session.calls)} tool calls)"
            )
        self._notify()

    def toggle_mute(self, muted: bool) -> None:
        """Mute or unmute the assistant's audio output."""
        self._muted = muted
        self._session.muted_output = muted
        self.media.set_output_muted(muted)
        self._notify()

    async def set_active(self, active: bool) -> None:
        """Voice surface shown or hidden: auto-connect / auto-disconnect."""
        if active and not self._active:
            self._active = True
            await self.connect()
        elif not active and self._active:
            self._active = False
            await self.disconnect()

    async def __aenter__(self) -> "VoiceSessionController":
        await self.set_active(True)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.set_active(False)
