"""LLM client abstraction layer."""

from .base_client import (
    BaseLLMClient,
    Message,
    ToolCall,
    ModelChunk,
    TextDelta,
    ReasoningDelta,
    ToolCallChunk,
    StepFinish,
)
from .factory import create_llm_client, LLMProvider
from .convert import to_model_messages

__all__ = [
    "BaseLLMClient",
    "Message",
    "ToolCall",
    "ModelChunk",
    "TextDelta",
    "ReasoningDelta",
    "ToolCallChunk",
    "StepFinish",
    "create_llm_client",
    "LLMProvider",
    "to_model_messages",
]
