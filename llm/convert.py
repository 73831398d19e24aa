"""Conversion of part-based conversations into provider messages."""

import json
import logging
from typing import List, Optional

from schemas.messages import Message as ChatMessage, Role
from schemas.parts import TextPart, ToolCallPart, ToolCallState
from .base_client import Message, ToolCall

logger = logging.getLogger(__name__)

MAX_TOOL_CONTENT_CHARS = 3000


def format_tool_content(output=None, error: Optional[str] = None) -> str:
    """Format a tool outcome for LLM consumption."""
    if error is not None:
        return f"Error: {error}"

    content = output if isinstance(output, str) else json.dumps(output, indent=2, default=str)
    # Truncate large results
    if len(content) > MAX_TOOL_CONTENT_CHARS:
        content = content[:MAX_TOOL_CONTENT_CHARS] + "\n... (truncated)"
    return content


def _assistant_messages(message: ChatMessage) -> List[Message]:
    """Split an assistant message into text/tool-call rounds and tool replies."""
    converted = []
    text: List[str] = []
    calls: List[ToolCallPart] = []

    def flush():
        if not text and not calls:
            return
        converted.append(Message(
            role="assistant",
            content="".join(text),
            tool_calls=[
                ToolCall(id=c.call_id, name=c.tool_name, arguments=c.args) for c in calls
            ] or None
        ))
        for call in calls:
            result = message.result_for(call.call_id)
            if result is None:
                content = "Error: tool call did not complete"
            else:
                content = format_tool_content(result.output, result.error)
            converted.append(Message(role="tool", content=content, tool_call_id=call.call_id))
        text.clear()
        calls.clear()

    for part in message.parts:
        if isinstance(part, TextPart):
            if calls:
                flush()
            text.append(part.text)
        elif isinstance(part, ToolCallPart) and part.state == ToolCallState.INPUT_AVAILABLE:
            calls.append(part)
        # Reasoning is not replayed and results are looked up per call

    flush()
    return converted


def to_model_messages(
    messages: List[ChatMessage],
    system_prompt: Optional[str] = None
) -> List[Message]:
    """
    Convert the full conversation into provider-neutral messages.

    Args:
        messages: Conversation in part form
        system_prompt: Optional system prompt placed first

    Returns:
        Messages ready for an LLM client
    """
    converted = []
    if system_prompt:
        converted.append(Message(role="system", content=system_prompt))

    for message in messages:
        if message.role == Role.ASSISTANT:
            converted.extend(_assistant_messages(message))
        elif message.text:
            converted.append(Message(role=message.role.value, content=message.text))

    logger.debug(f"Converted {len(messages)} chat messages into {len(converted)} model messages")
    return converted
