"""Shared test doubles."""

from typing import Dict, Iterator, List, Optional

import pytest
from pydantic import BaseModel, Field

from config.settings import Settings
from llm.base_client import (
    BaseLLMClient,
    Message as ModelMessage,
    ModelChunk,
    StepFinish,
    TextDelta,
    ToolCall,
    ToolCallChunk,
)
from moderation.gate import ModerationClassifier, ModerationGate, ModerationResult
from orchestrator import ChatOrchestrator
from tools.base import Tool
from tools.registry import ToolRegistry


class ScriptedLLMClient(BaseLLMClient):
    """Replays one list of chunks per model step and records every request."""

    def __init__(self, steps: List[List[ModelChunk]], repeat_last: bool = False):
        self.steps = steps
        self.repeat_last = repeat_last
        self.requests: List[List[ModelMessage]] = []

    def stream(
        self,
        messages: List[ModelMessage],
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.7,
        max_tokens: int = 4000
    ) -> Iterator[ModelChunk]:
        self.requests.append(list(messages))
        index = len(self.requests) - 1
        if index >= len(self.steps):
            if not self.repeat_last:
                raise AssertionError("Model called more times than scripted")
            index = len(self.steps) - 1
        for chunk in self.steps[index]:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk
        yield StepFinish(finish_reason="stop")

    @property
    def calls(self) -> int:
        return len(self.requests)

    def get_provider_name(self) -> str:
        return "scripted"

    def get_model_name(self) -> str:
        return "scripted-model"


class FakeClassifier(ModerationClassifier):
    """Flags any text containing one of the given words."""

    def __init__(self, blocked=(), error: Optional[Exception] = None, denial_message="Denied."):
        self.blocked = blocked
        self.error = error
        self.denial_message = denial_message
        self.seen: List[str] = []

    def classify(self, text: str) -> ModerationResult:
        self.seen.append(text)
        if self.error is not None:
            raise self.error
        if any(word in text for word in self.blocked):
            return ModerationResult(flagged=True, denial_message=self.denial_message, categories=["harassment"])
        return ModerationResult(flagged=False)


class EchoInput(BaseModel):
    query: str = Field(..., min_length=1)


class EchoTool(Tool):
    """Returns its query back."""

    name = "echo"
    description = "Echo the query."
    input_model = EchoInput

    def __init__(self):
        self.calls: List[str] = []

    def execute(self, args: EchoInput) -> dict:
        self.calls.append(args.query)
        return {"echo": args.query}


class BrokenTool(Tool):
    """Always raises."""

    name = "broken"
    description = "Always fails."
    input_model = EchoInput

    def execute(self, args: EchoInput):
        raise RuntimeError("backend unavailable")


def text_step(*fragments: str) -> List[ModelChunk]:
    return [TextDelta(text=f) for f in fragments]


def tool_step(call_id: str, name: str = "echo", arguments=None, text: Optional[str] = None) -> List[ModelChunk]:
    chunks: List[ModelChunk] = [TextDelta(text=text)] if text else []
    chunks.append(ToolCallChunk(tool_call=ToolCall(
        id=call_id,
        name=name,
        arguments={"query": "bakery"} if arguments is None else arguments
    )))
    return chunks


@pytest.fixture
def settings():
    return Settings(
        openai_api_key=None,
        anthropic_api_key=None,
        exa_api_key=None,
        moderation_enabled=True,
        max_steps=10,
    )


def build_orchestrator(
    settings: Settings,
    llm: Optional[BaseLLMClient],
    classifier: Optional[ModerationClassifier] = None,
    tools: Optional[List[Tool]] = None
) -> ChatOrchestrator:
    return ChatOrchestrator(
        settings=settings,
        llm_client=llm,
        tools=ToolRegistry(tools if tools is not None else [EchoTool(), BrokenTool()]),
        gate=ModerationGate(classifier=classifier or FakeClassifier()),
    )
