"""Tests for conversation-to-model message conversion."""

from llm.convert import MAX_TOOL_CONTENT_CHARS, format_tool_content, to_model_messages
from llm.openai_client import parse_arguments
from schemas.messages import Message, MessageStatus, Role
from schemas.parts import ReasoningPart, TextPart, ToolCallPart, ToolCallState, ToolResultPart


class TestFormatToolContent:
    """Test tool result formatting."""

    def test_error_prefixed(self):
        """Test error formatting."""
        assert format_tool_content(error="timed out") == "Error: timed out"

    def test_output_serialized(self):
        """Test JSON serialization of structured output."""
        assert format_tool_content(output={"a": 1}) == '{\n  "a": 1\n}'

    def test_large_output_truncated(self):
        """Test truncation of long results."""
        content = format_tool_content(output="x" * (MAX_TOOL_CONTENT_CHARS + 50))

        assert content.endswith("... (truncated)")
        assert len(content) < MAX_TOOL_CONTENT_CHARS + 50


class TestToModelMessages:
    """Test conversion of a part-based conversation."""

    def test_reasoning_not_replayed(self):
        """Test that reasoning parts are dropped."""
        reply = Message(
            role=Role.ASSISTANT,
            parts=[ReasoningPart(id="r1", text="private"), TextPart(id="t1", text="Public")],
        )

        converted = to_model_messages([Message.user("hi"), reply], system_prompt="sys")

        assert [(m.role, m.content) for m in converted] == [
            ("system", "sys"),
            ("user", "hi"),
            ("assistant", "Public"),
        ]

    def test_tool_rounds_split(self):
        """Test that each call is followed by its tool message."""
        reply = Message(
            role=Role.ASSISTANT,
            parts=[
                ToolCallPart(tool_name="webSearch", call_id="c1", args={"query": "a"}),
                ToolCallPart(tool_name="webSearch", call_id="c2", args={"query": "b"}),
                ToolResultPart(tool_name="webSearch", call_id="c1", output=["r"]),
                ToolResultPart(tool_name="webSearch", call_id="c2", error="down"),
                TextPart(id="t1", text="Summary"),
            ],
        )

        converted = to_model_messages([reply])

        assert [m.role for m in converted] == ["assistant", "tool", "tool", "assistant"]
        assert [c.id for c in converted[0].tool_calls] == ["c1", "c2"]
        assert converted[2].content == "Error: down"
        assert converted[3].content == "Summary"

    def test_unanswered_call_gets_error_reply(self):
        """Test that a call without result is still answered."""
        reply = Message(
            role=Role.ASSISTANT,
            parts=[ToolCallPart(tool_name="webSearch", call_id="c1", args={})],
            status=MessageStatus.CANCELLED,
        )

        converted = to_model_messages([reply])

        assert converted[1].tool_call_id == "c1"
        assert converted[1].content.startswith("Error:")

    def test_streaming_calls_skipped(self):
        """Test that calls with incomplete input are not replayed."""
        reply = Message(
            role=Role.ASSISTANT,
            parts=[ToolCallPart(tool_name="webSearch", call_id="c1", state=ToolCallState.INPUT_STREAMING)],
        )

        assert to_model_messages([reply]) == []


class TestParseArguments:
    """Test tool argument decoding."""

    def test_json_decoded(self):
        assert parse_arguments('{"query": "seo"}') == {"query": "seo"}

    def test_empty_is_empty_object(self):
        assert parse_arguments("") == {}

    def test_invalid_kept_raw(self):
        assert parse_arguments("{query: seo") == "{query: seo"
