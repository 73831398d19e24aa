"""Stream event schemas for a single generation turn."""

from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter


class StartEvent(BaseModel):
    type: Literal["start"] = "start"
    message_id: Optional[str] = None


class StartStepEvent(BaseModel):
    type: Literal["start-step"] = "start-step"


class FinishStepEvent(BaseModel):
    type: Literal["finish-step"] = "finish-step"


class TextStartEvent(BaseModel):
    type: Literal["text-start"] = "text-start"
    id: str


class TextDeltaEvent(BaseModel):
    type: Literal["text-delta"] = "text-delta"
    id: str
    delta: str


class TextEndEvent(BaseModel):
    type: Literal["text-end"] = "text-end"
    id: str


class ReasoningStartEvent(BaseModel):
    type: Literal["reasoning-start"] = "reasoning-start"
    id: str


class ReasoningDeltaEvent(BaseModel):
    type: Literal["reasoning-delta"] = "reasoning-delta"
    id: str
    delta: str


class ReasoningEndEvent(BaseModel):
    type: Literal["reasoning-end"] = "reasoning-end"
    id: str


class ToolInputStartEvent(BaseModel):
    type: Literal["tool-input-start"] = "tool-input-start"
    tool_call_id: str
    tool_name: str


class ToolInputAvailableEvent(BaseModel):
    type: Literal["tool-input-available"] = "tool-input-available"
    tool_call_id: str
    tool_name: str
    input: Any = None


class ToolOutputAvailableEvent(BaseModel):
    type: Literal["tool-output-available"] = "tool-output-available"
    tool_call_id: str
    output: Any = None


class ToolOutputErrorEvent(BaseModel):
    type: Literal["tool-output-error"] = "tool-output-error"
    tool_call_id: str
    error_text: str


class ErrorEvent(BaseModel):
    """Producer-side failure; no finish event follows."""
    type: Literal["error"] = "error"
    error_text: str


class FinishEvent(BaseModel):
    type: Literal["finish"] = "finish"


StreamEvent = Annotated[
    Union[
        StartEvent,
        StartStepEvent,
        FinishStepEvent,
        TextStartEvent,
        TextDeltaEvent,
        TextEndEvent,
        ReasoningStartEvent,
        ReasoningDeltaEvent,
        ReasoningEndEvent,
        ToolInputStartEvent,
        ToolInputAvailableEvent,
        ToolOutputAvailableEvent,
        ToolOutputErrorEvent,
        ErrorEvent,
        FinishEvent,
    ],
    Field(discriminator="type"),
]

event_adapter = TypeAdapter(StreamEvent)
