"""Message and conversation schemas."""

import uuid
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from .parts import Part, TextPart, ToolCallPart, ToolResultPart


class Role(str, Enum):
    """Author of a message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class MessageStatus(str, Enum):
    """Whether a message's parts are final."""
    STREAMING = "streaming"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ConversationError(ValueError):
    """A conversation breaks ordering or tool correlation rules."""


def new_message_id() -> str:
    return f"msg-{uuid.uuid4().hex}"


class Message(BaseModel):
    """A single conversation message made of ordered parts."""
    id: str = Field(default_factory=new_message_id)
    role: Role
    parts: List[Part] = Field(default_factory=list)
    status: MessageStatus = MessageStatus.COMPLETE

    @classmethod
    def user(cls, text: str, message_id: Optional[str] = None) -> "Message":
        """Build a complete user message holding one text part."""
        message_id = message_id or new_message_id()
        return cls(
            id=message_id,
            role=Role.USER,
            parts=[TextPart(id=f"{message_id}-text", text=text)],
        )

    @property
    def text(self) -> str:
        """Concatenation of all text parts, in order."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def is_final(self) -> bool:
        return self.status != MessageStatus.STREAMING

    def tool_calls(self) -> List[ToolCallPart]:
        return [p for p in self.parts if isinstance(p, ToolCallPart)]

    def result_for(self, call_id: str) -> Optional[ToolResultPart]:
        """Return the tool result correlated with call_id, if any."""
        for part in self.parts:
            if isinstance(part, ToolResultPart) and part.call_id == call_id:
                return part
        return None


def latest_user_message(messages: List[Message]) -> Optional[Message]:
    """Return the most recent user message in a conversation."""
    for message in reversed(messages):
        if message.role == Role.USER:
            return message
    return None


def duration_key(message_id: str, part_index: int) -> str:
    """Key used by the duration map for a message part."""
    return f"{message_id}-{part_index}"


def validate_conversation(messages: List[Message]) -> None:
    """
    Check message ids and tool call/result correlation.

    Raises:
        ConversationError: If a message id repeats, a call_id is reused
            across messages, or a tool result does not follow exactly one
            matching tool call in its own message.
    """
    seen_messages = set()
    seen_calls = set()

    for message in messages:
        if message.id in seen_messages:
            raise ConversationError(f"Duplicate message id: {message.id}")
        seen_messages.add(message.id)

        calls = set()
        results = set()
        for part in message.parts:
            if isinstance(part, ToolCallPart):
                if part.call_id in calls or part.call_id in seen_calls:
                    raise ConversationError(f"Reused tool call id: {part.call_id}")
                calls.add(part.call_id)
            elif isinstance(part, ToolResultPart):
                if part.call_id not in calls:
                    raise ConversationError(
                        f"Tool result {part.call_id} has no preceding call in message {message.id}"
                    )
                if part.call_id in results:
                    raise ConversationError(f"Duplicate tool result: {part.call_id}")
                results.add(part.call_id)

        seen_calls.update(calls)
