"""
Control Channel Protocol Handler.

Interprets the ordered event stream of one connection:
- drives the activity state machine shown to the user
- suppresses duplicate function calls by call_id
- runs tools in the background and sends their results back

State cycles:
    idle -> listening -> processing -> speaking -> listening    (turns)
    listening -> executing_tool -> tool_complete -> listening   (tool calls)
    any -> error -> listening                                   (failures)

tool_complete and error revert to listening after a display delay; any
other transition in the meantime cancels the pending revert.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

from ..config import VoiceConfig, get_config
from ..core import ActivityState, FunctionCallRecord, Session, TaskRegistry
from ..errors import ProtocolParseError
from ..metrics import get_metrics
from ..tools import ToolRegistry, ToolResult
from . import events

logger = logging.getLogger("voice.protocol")

EDIT_TOOL = "editImage"


class ControlChannelProtocolHandler:
    """State machine and tool dispatcher for one connection."""

    def __init__(
        self,
        session: Session,
        registry: ToolRegistry,
        send: Callable[[Dict[str, Any]], bool],
        config: Optional[VoiceConfig] = None,
        tasks: Optional[TaskRegistry] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize the handler.

        Args:
            session: Session whose activity state and dedup set this handler owns
            registry: Tools available to the assistant
            send: Writes one outbound event to the control channel
            config: Instructions, modalities and display delays
            tasks: Registry tracking background tool executions
            on_change: Called after every activity state change
        """
        self.session = session
        self.registry = registry
        self.config = config or get_config()
        self.tasks = tasks or TaskRegistry()
        self._send = send
        self._on_change = on_change

        self._configured = False
        self._closed = False
        self._current_call_id: Optional[str] = None
        self._revert_handle: Optional[asyncio.TimerHandle] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def current_call_id(self) -> Optional[str]:
        return self._current_call_id

    def on_channel_open(self) -> None:
        """Send the session configuration, once per connection."""
        if self._closed or self._configured:
            return
        self._configured = True
        self._send(events.session_update(
            tools=self.registry.schemas(),
            instructions=self.config.instructions,
            modalities=self.config.modalities,
        ))
        logger.info(f"Session configured with {len(self.registry.list())} tools")
        self.session.first_turn_pending = True
        self._transition(ActivityState.LISTENING)

    def handle_event(self, event: Dict[str, Any]) -> None:
        """
        React to one decoded control event.

        Must be called from a single consumer in arrival order.
        """
        if self._closed:
            return

        event_type = event.get("type")
        get_metrics().control_event(str(event_type))

        if event_type == events.TRANSCRIPTION_COMPLETED:
            self._transition(ActivityState.PROCESSING)
        elif event_type == events.AUDIO_DELTA:
            self._transition(ActivityState.SPEAKING)
        elif event_type == events.AUDIO_DONE:
            if self.session.activity_state == ActivityState.SPEAKING:
                self._transition(ActivityState.LISTENING)
        elif event_type == events.SPEECH_STARTED:
            self._transition(ActivityState.LISTENING)
        elif event_type == events.SPEECH_STOPPED:
            self._transition(ActivityState.PROCESSING)
        elif event_type == events.FUNCTION_CALL_DELTA:
            call_id = event.get("call_id")
            if event.get("name") == EDIT_TOOL and call_id != self._current_call_id:
                self._current_call_id = call_id
                self._transition(ActivityState.EXECUTING_TOOL)
        elif event_type == events.FUNCTION_CALL_DONE:
            self._on_function_call_done(event)
        else:
            logger.debug(f"Unhandled event: {event_type}")

    def _on_function_call_done(self, event: Dict[str, Any]) -> None:
        name = event.get("name")
        call_id = event.get("call_id") or f"{name}-{int(time.time() * 1000)}"

        if call_id in self.session.seen_call_ids:
            logger.info(f"Skipping duplicate function call: {call_id}")
            get_metrics().duplicate_call()
            return
        self.session.seen_call_ids.add(call_id)

        if not self.registry.has(name):
            logger.warning(f"No tool named '{name}' for call {call_id}, ignoring")
            return

        record = FunctionCallRecord(
            call_id=call_id,
            tool_name=name,
            arguments=event.get("arguments"),
        )
        self.session.calls[call_id] = record
        self._current_call_id = call_id
        self._transition(ActivityState.EXECUTING_TOOL)

        try:
            arguments = events.parse_arguments(record.arguments)
        except ProtocolParseError as e:
            logger.warning(f"Call {call_id} to {name}: {e}")
            self._finish(record, ToolResult(
                success=False,
                error=str(e),
                message=f"Failed to run {name}: {e}",
            ))
            return

        logger.info(f"Calling function {name} with call_id: {call_id}")
        self.tasks.register(f"tool:{name}:{call_id}", self._run_tool(record, arguments))

    async def _run_tool(self, record: FunctionCallRecord, arguments: Dict[str, Any]) -> None:
        start = time.monotonic()
        try:
            result = await self.registry.execute(record.tool_name, arguments)
        except Exception as e:
            logger.error(f"Function execution error: {e}", exc_info=e)
            result = ToolResult(
                success=False,
                error=str(e) or type(e).__name__,
                message=f"Failed to run {record.tool_name}: {e}",
            )
        if result is None:
            return

        get_metrics().tool_call(record.tool_name, time.monotonic() - start, result.success)
        self._finish(record, result)

    def _finish(self, record: FunctionCallRecord, result: ToolResult) -> None:
        """Record the result, send it back and show the outcome."""
        record.complete(result)
        logger.info(
            f"Function {record.tool_name} ({record.call_id}) -> {record.status} "
            f"in {record.elapsed:.2f}s"
        )

        if self._closed:
            logger.info(f"Session closed, discarding result of {record.call_id}")
            return

        try:
            result.commit()
        except Exception as e:
            logger.error(f"Applying result of {record.call_id} failed: {e}", exc_info=e)

        if self._current_call_id == record.call_id:
            self._current_call_id = None

        if result.success:
            self._transition(ActivityState.TOOL_COMPLETE)
            self._schedule_revert(self.config.tool_complete_delay)
        else:
            self._transition(ActivityState.ERROR)
            self._schedule_revert(self.config.error_delay)

        self._send(events.function_call_output(record.call_id, result.to_dict()))

    def _transition(self, state: ActivityState) -> None:
        if self._closed:
            return
        if self.session.activity_state == state:
            return
        self._cancel_revert()
        if self.session.set_activity(state):
            logger.debug(f"Activity -> {state.value}")
            if self._on_change:
                self._on_change()

    def _schedule_revert(self, delay: float) -> None:
        self._cancel_revert()
        loop = asyncio.get_running_loop()
        self._revert_handle = loop.call_later(delay, self._revert_to_listening)

    def _revert_to_listening(self) -> None:
        self._revert_handle = None
        self._transition(ActivityState.LISTENING)

    def _cancel_revert(self) -> None:
        if self._revert_handle is not None:
            self._revert_handle.cancel()
            self._revert_handle = None

    def close(self) -> None:
        """Tear down: no more transitions, sends or reverts. In-flight tools keep running."""
        if self._closed:
            return
        self._closed = True
        self._cancel_revert()
        self._current_call_id = None
        logger.debug(
            f"Protocol handler closed ({len(self.session.seen_call_ids)} calls seen, "
            f"{self.tasks.active_count} tools in flight)"
        )
