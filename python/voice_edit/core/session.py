"""Voice session state for one connection lifetime."""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Set, TYPE_CHECKING

from .state import (
    OFFLINE_ACTIVITY,
    ActivityState,
    ConnectionState,
    SessionStatus,
    status_message,
)

if TYPE_CHECKING:
    from ..tools import ToolResult

logger = logging.getLogger("voice.session")


@dataclass
class FunctionCallRecord:
    """One invocation of a declared tool. The result is set exactly once."""
    call_id: str
    tool_name: str
    arguments: Any = None
    result: Optional["ToolResult"] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def elapsed(self) -> float:
        """Seconds since the call was received."""
        return (datetime.utcnow() - self.created_at).total_seconds()

    @property
    def status(self) -> str:
        if self.result is None:
            return "pending"
        return "success" if self.result.success else "failure"

    def complete(self, result: "ToolResult") -> None:
        if self.result is not None:
            raise RuntimeError(f"Function call {self.call_id} already completed")
        self.result = result


@dataclass
class Session:
    """Observable state of one voice connection attempt."""
    connection_state: ConnectionState = ConnectionState.DISCONNECTED
    activity_state: ActivityState = ActivityState.IDLE
    muted_output: bool = False
    error: Optional[str] = None
    start_time: datetime = field(default_factory=datetime.utcnow)
    # Set on configure, cleared by the first activity change after it
    first_turn_pending: bool = False
    # Append-only for the session lifetime
    seen_call_ids: Set[str] = field(default_factory=set)
    calls: Dict[str, FunctionCallRecord] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        """Seconds since the session was created."""
        return (datetime.utcnow() - self.start_time).total_seconds()

    def set_connection(self, state: ConnectionState, error: Optional[str] = None) -> bool:
        """Change the connection state, forcing activity back to idle/error when offline."""
        changed = state != self.connection_state
        self.connection_state = state
        self.error = error if state == ConnectionState.ERROR else None
        if state != ConnectionState.CONNECTED:
            self.first_turn_pending = False
        if state == ConnectionState.ERROR:
            changed = changed or self.activity_state != ActivityState.ERROR
            self.activity_state = ActivityState.ERROR
        elif state != ConnectionState.CONNECTED:
            changed = changed or self.activity_state != ActivityState.IDLE
            self.activity_state = ActivityState.IDLE
        return changed

    def set_activity(self, state: ActivityState) -> bool:
        """Change the activity state; returns False if refused or unchanged."""
        if self.connection_state != ConnectionState.CONNECTED and state not in OFFLINE_ACTIVITY:
            logger.debug(f"Ignoring activity {state.value} while {self.connection_state.value}")
            return False
        if state == self.activity_state:
            return False
        if state != ActivityState.LISTENING:
            self.first_turn_pending = False
        self.activity_state = state
        return True

    def status(self) -> SessionStatus:
        return SessionStatus(
            connection_state=self.connection_state,
            activity_state=self.activity_state,
            status_message=status_message(
                self.connection_state, self.activity_state, self.first_turn_pending
            ),
            muted_output=self.muted_output,
            error=self.error,
        )
