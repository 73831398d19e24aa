"""Message part schemas."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter, model_validator


class ToolCallState(str, Enum):
    """Lifecycle of a tool call's input."""
    INPUT_STREAMING = "input-streaming"
    INPUT_AVAILABLE = "input-available"


class TextPart(BaseModel):
    """Plain assistant or user text."""
    type: Literal["text"] = "text"
    id: str
    text: str = ""


class ReasoningPart(BaseModel):
    """Intermediate model deliberation."""
    type: Literal["reasoning"] = "reasoning"
    id: str
    text: str = ""
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def duration_ms(self) -> Optional[int]:
        """Elapsed time in milliseconds, known only once the part is finished."""
        if self.finished_at is None:
            return None
        return int((self.finished_at - self.started_at).total_seconds() * 1000)


class ToolCallPart(BaseModel):
    """A request from the model to invoke a tool."""
    type: Literal["tool-call"] = "tool-call"
    tool_name: str
    call_id: str
    args: Any = None
    state: ToolCallState = ToolCallState.INPUT_AVAILABLE


class ToolResultPart(BaseModel):
    """The outcome of a tool call, correlated by call_id."""
    type: Literal["tool-result"] = "tool-result"
    tool_name: str
    call_id: str
    state: Literal["output-available"] = "output-available"
    output: Any = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _output_or_error(self):
        if self.error is not None and self.output is not None:
            raise ValueError("tool result carries both output and error")
        return self

    @property
    def is_error(self) -> bool:
        return self.error is not None


Part = Annotated[
    Union[TextPart, ReasoningPart, ToolCallPart, ToolResultPart],
    Field(discriminator="type"),
]

part_adapter = TypeAdapter(Part)
