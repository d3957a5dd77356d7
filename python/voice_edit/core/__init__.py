"""Core session state and task tracking."""
from .state import ActivityState, ConnectionState, SessionStatus, status_message
from .session import FunctionCallRecord, Session
from .task_registry import TaskRegistry

__all__ = [
    "ActivityState",
    "ConnectionState",
    "SessionStatus",
    "status_message",
    "FunctionCallRecord",
    "Session",
    "TaskRegistry",
]
