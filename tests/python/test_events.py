"""Tests for control channel event decoding and encoding."""

import os
import sys
import json
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from voice_edit.errors import ProtocolParseError
from voice_edit.protocol import events


class TestDecodeEvent:
    """Test decode_event()."""

    def test_text_message(self):
        event = events.decode_event('{"type": "response.audio.delta", "delta": "AAA="}')
        assert event["type"] == events.AUDIO_DELTA
        assert event["delta"] == "AAA="

    def test_bytes_message(self):
        raw = json.dumps({"type": "response.audio.done", "note": "ok ✓"}).encode("utf-8")
        assert events.decode_event(raw)["note"] == "ok ✓"

    @pytest.mark.parametrize("raw", [
        "not json",
        "[1, 2, 3]",
        '{"no_type": true}',
        '{"type": 5}',
        b"\xff\xfe",
    ])
    def test_malformed(self, raw):
        with pytest.raises(ProtocolParseError) as exc_info:
            events.decode_event(raw)
        assert exc_info.value.raw is not None


class TestParseArguments:
    """Test parse_arguments()."""

    def test_empty(self):
        assert events.parse_arguments(None) == {}
        assert events.parse_arguments("") == {}

    def test_json_object(self):
        assert events.parse_arguments('{"prompt": "make it blue"}') == {"prompt": "make it blue"}

    def test_dict_passthrough(self):
        args = {"prompt": "x"}
        assert events.parse_arguments(args) is args

    def test_invalid_json(self):
        with pytest.raises(ProtocolParseError):
            events.parse_arguments('{"prompt": ')

    def test_not_an_object(self):
        with pytest.raises(ProtocolParseError):
            events.parse_arguments('["prompt"]')


class TestOutboundEvents:
    """Test outbound event builders."""

    def test_session_update(self):
        tools = [{"type": "function", "name": "editImage"}]
        event = events.session_update(tools, "Be helpful", ("text", "audio"))

        assert event == {
            "type": "session.update",
            "session": {
                "modalities": ["text", "audio"],
                "tools": tools,
                "instructions": "Be helpful",
            },
        }

    def test_function_call_output(self):
        event = events.function_call_output("call_1", {"success": True, "imageUrl": "https://x/é.png"})

        assert event["type"] == "conversation.item.create"
        assert event["item"]["type"] == "function_call_output"
        assert event["item"]["call_id"] == "call_1"
        # output is a JSON string, not an object
        assert isinstance(event["item"]["output"], str)
        assert json.loads(event["item"]["output"]) == {"success": True, "imageUrl": "https://x/é.png"}
        assert "é" in event["item"]["output"]


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
