"""OpenAI LLM client implementation."""

import os
import json
import logging
from typing import Optional, List, Dict, Any, Iterator

from .base_client import (
    BaseLLMClient,
    Message,
    ModelChunk,
    ReasoningDelta,
    StepFinish,
    TextDelta,
    ToolCall,
    ToolCallChunk,
)

logger = logging.getLogger(__name__)


def parse_arguments(raw: str) -> Any:
    """Decode tool arguments, keeping the raw string when it is not JSON."""
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Tool arguments are not valid JSON: {raw[:200]}")
        return raw


class OpenAIClient(BaseLLMClient):
    """OpenAI client using the streaming Responses API."""

    DEFAULT_MODEL = "gpt-5.2"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        reasoning_effort: Optional[str] = None,
        parallel_tool_calls: bool = False
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (falls back to OPENAI_API_KEY env var)
            model: Model to use (default: gpt-5.2)
            reasoning_effort: Reasoning effort hint ("low", "medium", "high");
                when set, reasoning summaries are streamed back
            parallel_tool_calls: Allow the model to request several tools per step
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.reasoning_effort = reasoning_effort
        self.parallel_tool_calls = parallel_tool_calls
        self.client = None

        if self.api_key:
            from openai import OpenAI
            self.client = OpenAI(api_key=self.api_key)
            logger.info(f"OpenAI client initialized with model: {self.model}")
        else:
            logger.warning("No OpenAI API key provided")

    def _to_input(self, messages: List[Message]):
        """Convert messages to Responses API instructions and input items."""
        instructions = []
        items = []

        for msg in messages:
            if msg.role == "system":
                instructions.append(msg.content)
            elif msg.role == "tool":
                items.append({
                    "type": "function_call_output",
                    "call_id": msg.tool_call_id,
                    "output": msg.content
                })
            else:
                if msg.content:
                    items.append({"role": msg.role, "content": msg.content})
                for tc in msg.tool_calls or []:
                    items.append({
                        "type": "function_call",
                        "call_id": tc.id,
                        "name": tc.name,
                        "arguments": tc.arguments if isinstance(tc.arguments, str)
                        else json.dumps(tc.arguments)
                    })

        return "\n".join(instructions) or None, items

    def _to_tools(self, tools: List[Dict]) -> List[Dict]:
        """Flatten chat-completions style definitions to Responses API tools."""
        converted = []
        for tool in tools:
            func = tool.get("function", tool)
            converted.append({
                "type": "function",
                "name": func["name"],
                "description": func.get("description", ""),
                "parameters": func.get("parameters", {})
            })
        return converted

    def stream(
        self,
        messages: List[Message],
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.7,
        max_tokens: int = 4000
    ) -> Iterator[ModelChunk]:
        """Stream one response from OpenAI."""
        if not self.client:
            raise RuntimeError("OpenAI client not initialized. Check API key.")

        instructions, items = self._to_input(messages)

        kwargs = {
            "model": self.model,
            "input": items,
            "max_output_tokens": max_tokens,
            "stream": True,
        }
        if instructions:
            kwargs["instructions"] = instructions

        if self.reasoning_effort:
            # Reasoning models reject a custom temperature
            kwargs["reasoning"] = {"effort": self.reasoning_effort, "summary": "auto"}
        else:
            kwargs["temperature"] = temperature

        if tools:
            kwargs["tools"] = self._to_tools(tools)
            kwargs["tool_choice"] = "auto"
            kwargs["parallel_tool_calls"] = self.parallel_tool_calls

        try:
            response = self.client.responses.create(**kwargs)

            tool_calls: List[ToolCall] = []
            finish_reason = None
            usage = None

            for event in response:
                if event.type == "response.output_text.delta":
                    yield TextDelta(text=event.delta)
                elif event.type == "response.reasoning_summary_text.delta":
                    yield ReasoningDelta(text=event.delta)
                elif event.type == "response.output_item.done":
                    item = event.item
                    if item.type == "function_call":
                        tool_calls.append(ToolCall(
                            id=item.call_id,
                            name=item.name,
                            arguments=parse_arguments(item.arguments)
                        ))
                elif event.type in ("response.completed", "response.incomplete"):
                    finish_reason = event.response.status
                    if event.response.usage:
                        usage = {
                            "prompt_tokens": event.response.usage.input_tokens,
                            "completion_tokens": event.response.usage.output_tokens,
                            "total_tokens": event.response.usage.total_tokens,
                        }
                elif event.type in ("response.failed", "error"):
                    raise RuntimeError(f"OpenAI stream failed: {event}")

            # Tool calls are released only once their arguments are complete
            for tool_call in tool_calls:
                yield ToolCallChunk(tool_call=tool_call)

            yield StepFinish(
                finish_reason="tool_calls" if tool_calls else finish_reason,
                usage=usage
            )

        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "openai"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
