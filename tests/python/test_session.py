"""Tests for session state and status snapshots."""

import os
import sys
from datetime import datetime, timedelta

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from voice_edit.core import (
    ActivityState,
    ConnectionState,
    FunctionCallRecord,
    Session,
    status_message,
)
from voice_edit.tools import ToolResult


class TestStatusMessage:
    """Test status_message()."""

    @pytest.mark.parametrize("activity,expected", [
        (ActivityState.IDLE, ""),
        (ActivityState.LISTENING, "Listening..."),
        (ActivityState.PROCESSING, "Processing..."),
        (ActivityState.SPEAKING, "Responding..."),
        (ActivityState.EXECUTING_TOOL, "Editing..."),
        (ActivityState.TOOL_COMPLETE, "Complete"),
        (ActivityState.ERROR, "Error"),
    ])
    def test_connected_shows_activity(self, activity, expected):
        assert status_message(ConnectionState.CONNECTED, activity) == expected

    def test_offline_shows_connection(self):
        assert status_message(ConnectionState.DISCONNECTED, ActivityState.IDLE) == "Disconnected"
        assert status_message(ConnectionState.CONNECTING, ActivityState.IDLE) == "Connecting..."
        assert status_message(ConnectionState.ERROR, ActivityState.ERROR) == "Connection failed"

    def test_first_listen_shows_ready(self):
        assert status_message(
            ConnectionState.CONNECTED, ActivityState.LISTENING, first_turn_pending=True
        ) == "Ready to listen"
        assert status_message(
            ConnectionState.CONNECTED, ActivityState.PROCESSING, first_turn_pending=True
        ) == "Processing..."
        assert status_message(
            ConnectionState.CONNECTING, ActivityState.IDLE, first_turn_pending=True
        ) == "Connecting..."


class TestSession:
    """Test Session state rules."""

    def test_initial_status(self):
        status = Session().status()

        assert status.connection_state == ConnectionState.DISCONNECTED
        assert status.activity_state == ActivityState.IDLE
        assert status.status_message == "Disconnected"
        assert status.error is None

    def test_activity_refused_while_offline(self):
        session = Session()
        session.set_connection(ConnectionState.CONNECTING)

        assert not session.set_activity(ActivityState.LISTENING)
        assert session.activity_state == ActivityState.IDLE

    def test_error_forces_error_activity(self):
        session = Session()
        session.set_connection(ConnectionState.CONNECTED)
        session.set_activity(ActivityState.SPEAKING)

        assert session.set_connection(ConnectionState.ERROR, "Peer connection failed")

        assert session.activity_state == ActivityState.ERROR
        assert session.status().error == "Peer connection failed"

    def test_disconnect_resets_activity(self):
        session = Session()
        session.set_connection(ConnectionState.CONNECTED)
        session.set_activity(ActivityState.EXECUTING_TOOL)

        session.set_connection(ConnectionState.DISCONNECTED, "ignored")

        assert session.activity_state == ActivityState.IDLE
        assert session.error is None

    def test_set_activity_unchanged(self):
        session = Session()
        session.set_connection(ConnectionState.CONNECTED)

        assert session.set_activity(ActivityState.LISTENING)
        assert not session.set_activity(ActivityState.LISTENING)

    def test_status_to_dict(self):
        session = Session(muted_output=True)
        session.set_connection(ConnectionState.CONNECTED)
        session.set_activity(ActivityState.SPEAKING)

        assert session.status().to_dict() == {
            "connection_state": "connected",
            "activity_state": "speaking",
            "status_message": "Responding...",
            "muted_output": True,
            "error": None,
        }

    def test_first_turn_cleared_by_activity(self):
        session = Session()
        session.set_connection(ConnectionState.CONNECTED)
        session.first_turn_pending = True
        session.set_activity(ActivityState.LISTENING)
        assert session.status().status_message == "Ready to listen"

        session.set_activity(ActivityState.PROCESSING)
        session.set_activity(ActivityState.LISTENING)

        assert not session.first_turn_pending
        assert session.status().status_message == "Listening..."

    def test_first_turn_cleared_by_disconnect(self):
        session = Session()
        session.set_connection(ConnectionState.CONNECTED)
        session.first_turn_pending = True

        session.set_connection(ConnectionState.DISCONNECTED)

        assert not session.first_turn_pending

    def test_duration(self):
        session = Session(start_time=datetime.utcnow() - timedelta(seconds=30))
        assert 30.0 <= session.duration < 40.0


class TestFunctionCallRecord:
    """Test FunctionCallRecord class."""

    def test_completes_once(self):
        record = FunctionCallRecord(call_id="c1", tool_name="editImage")
        assert record.status == "pending"

        record.complete(ToolResult(success=False, error="x"))
        assert record.status == "failure"

        with pytest.raises(RuntimeError):
            record.complete(ToolResult(success=True))

    def test_elapsed(self):
        record = FunctionCallRecord(
            call_id="c1",
            tool_name="editImage",
            created_at=datetime.utcnow() - timedelta(seconds=5),
        )
        assert 5.0 <= record.elapsed < 15.0


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
