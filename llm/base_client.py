"""Base LLM client interface."""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Iterator, Union
from pydantic import BaseModel


class ToolCall(BaseModel):
    """Tool call from LLM."""
    id: str
    name: str
    arguments: Any  # Decoded JSON, or the raw string when it does not parse


class Message(BaseModel):
    """Provider-neutral chat message."""
    role: str  # "system", "user", "assistant", "tool"
    content: str
    tool_call_id: Optional[str] = None  # For tool responses
    tool_calls: Optional[List["ToolCall"]] = None  # For assistant messages with tool calls


class TextDelta(BaseModel):
    """Fragment of answer text."""
    text: str


class ReasoningDelta(BaseModel):
    """Fragment of model reasoning."""
    text: str


class ToolCallChunk(BaseModel):
    """A fully assembled tool call requested during the step."""
    tool_call: ToolCall


class StepFinish(BaseModel):
    """End of one model step."""
    finish_reason: Optional[str] = None
    usage: Optional[Dict[str, int]] = None


ModelChunk = Union[TextDelta, ReasoningDelta, ToolCallChunk, StepFinish]


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    def stream(
        self,
        messages: List[Message],
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.7,
        max_tokens: int = 4000
    ) -> Iterator[ModelChunk]:
        """
        Stream one model step.

        Args:
            messages: List of messages in conversation
            tools: Optional list of tool definitions for function calling
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens in response

        Yields:
            Text and reasoning deltas as they arrive, each requested tool
            call once its arguments are complete, then a single StepFinish
        """
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """Get the name of the LLM provider."""
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """Get the name of the model being used."""
        pass
