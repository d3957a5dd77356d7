"""Connection and activity states and the status projection shown to the user."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ActivityState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    SPEAKING = "speaking"
    EXECUTING_TOOL = "executing_tool"
    TOOL_COMPLETE = "tool_complete"
    ERROR = "error"


# Activity states allowed while not connected
OFFLINE_ACTIVITY = frozenset({ActivityState.IDLE, ActivityState.ERROR})

ACTIVITY_MESSAGES = {
    ActivityState.IDLE: "",
    ActivityState.LISTENING: "Listening...",
    ActivityState.PROCESSING: "Processing...",
    ActivityState.SPEAKING: "Responding...",
    ActivityState.EXECUTING_TOOL: "Editing...",
    ActivityState.TOOL_COMPLETE: "Complete",
    ActivityState.ERROR: "Error",
}

CONNECTION_MESSAGES = {
    ConnectionState.DISCONNECTED: "Disconnected",
    ConnectionState.CONNECTING: "Connecting...",
    ConnectionState.ERROR: "Connection failed",
}


READY_MESSAGE = "Ready to listen"


def status_message(
    connection: ConnectionState,
    activity: ActivityState,
    first_turn_pending: bool = False,
) -> str:
    """Human-readable status for a connection/activity pair."""
    if connection == ConnectionState.CONNECTED:
        if first_turn_pending and activity == ActivityState.LISTENING:
            return READY_MESSAGE
        return ACTIVITY_MESSAGES[activity]
    return CONNECTION_MESSAGES[connection]


@dataclass(frozen=True)
class SessionStatus:
    """Read-only snapshot handed to the presentation layer."""

    connection_state: ConnectionState
    activity_state: ActivityState
    status_message: str
    muted_output: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["connection_state"] = self.connection_state.value
        result["activity_state"] = self.activity_state.value
        return result
