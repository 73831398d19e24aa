"""Tests for the SSE codec."""

import json

import pytest
from pydantic import ValidationError

from schemas.events import (
    FinishEvent,
    StartEvent,
    TextDeltaEvent,
    ToolInputAvailableEvent,
    ToolOutputErrorEvent,
)
from streaming.sse import DONE, STREAM_HEADERS, decode_lines, encode_event, encode_stream


class TestSSECodec:
    """Test encoding and decoding of event frames."""

    def test_encode_event_frame(self):
        """Test the data frame layout."""
        frame = encode_event(TextDeltaEvent(id="t1", delta="Hi"))

        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame[len("data: "):]) == {"type": "text-delta", "id": "t1", "delta": "Hi"}

    def test_encode_omits_unset_optionals(self):
        """Test that absent optional fields are not sent."""
        frame = encode_event(StartEvent())

        assert json.loads(frame[len("data: "):]) == {"type": "start"}

    def test_stream_ends_with_done(self):
        """Test the terminator frame."""
        frames = list(encode_stream([StartEvent(), FinishEvent()]))

        assert len(frames) == 3
        assert frames[-1] == f"data: {DONE}\n\n"

    def test_decode_skips_comments_and_blank_lines(self):
        """Test that non-data lines are ignored."""
        lines = [
            ": keep-alive",
            "",
            "event: message",
            'data: {"type":"start","message_id":"msg-1"}',
            "",
            b'data: {"type":"tool-output-error","tool_call_id":"c1","error_text":"boom"}',
            "data: [DONE]",
            'data: {"type":"finish"}',
        ]

        events = list(decode_lines(lines))

        assert len(events) == 2
        assert isinstance(events[0], StartEvent)
        assert events[0].message_id == "msg-1"
        assert isinstance(events[1], ToolOutputErrorEvent)

    def test_decode_encoded_stream(self):
        """Test decoding what the encoder produced."""
        source = [
            StartEvent(message_id="msg-1"),
            ToolInputAvailableEvent(tool_call_id="c1", tool_name="webSearch", input={"query": "seo"}),
            FinishEvent(),
        ]
        lines = "".join(encode_stream(source)).split("\n")

        assert list(decode_lines(lines)) == source

    def test_decode_rejects_unknown_event(self):
        """Test that unknown event types fail validation."""
        with pytest.raises(ValidationError):
            list(decode_lines(['data: {"type":"mystery"}']))

    def test_stream_header_present(self):
        """Test the protocol header."""
        assert STREAM_HEADERS["x-vercel-ai-ui-message-stream"] == "v1"
