"""Pydantic schemas for messages, parts and stream events."""

from .parts import (
    Part,
    TextPart,
    ReasoningPart,
    ToolCallPart,
    ToolResultPart,
    ToolCallState,
    part_adapter,
)
from .messages import (
    Message,
    MessageStatus,
    Role,
    ConversationError,
    latest_user_message,
    duration_key,
    validate_conversation,
)
from .events import StreamEvent, event_adapter

__all__ = [
    "Part",
    "TextPart",
    "ReasoningPart",
    "ToolCallPart",
    "ToolResultPart",
    "ToolCallState",
    "part_adapter",
    "Message",
    "MessageStatus",
    "Role",
    "ConversationError",
    "latest_user_message",
    "duration_key",
    "validate_conversation",
    "StreamEvent",
    "event_adapter",
]
