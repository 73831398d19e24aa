"""Turn orchestrator: moderation, generation loop and event emission."""

import uuid
import logging
from enum import Enum
from typing import Iterator, List, Optional

from config.settings import Settings

# LLM components
from llm.factory import create_llm_client, LLMProvider
from llm.base_client import (
    BaseLLMClient,
    Message as ModelMessage,
    ReasoningDelta,
    TextDelta,
    ToolCall,
    ToolCallChunk,
)
from llm.convert import format_tool_content, to_model_messages

# Moderation
from moderation.gate import ModerationGate, OpenAIModerationClassifier

# Tools
from tools.base import ToolOutcome
from tools.registry import ToolRegistry
from tools.web_search import WebSearchTool
from tools.vector_search import VectorDatabaseSearchTool
from tools.generate_image import GenerateImageTool

# Streaming
from schemas.events import (
    ErrorEvent,
    FinishEvent,
    FinishStepEvent,
    ReasoningDeltaEvent,
    ReasoningEndEvent,
    ReasoningStartEvent,
    StartEvent,
    StartStepEvent,
    StreamEvent,
    TextDeltaEvent,
    TextEndEvent,
    TextStartEvent,
    ToolInputAvailableEvent,
    ToolOutputAvailableEvent,
    ToolOutputErrorEvent,
)
from schemas.messages import Message, new_message_id
from streaming.writer import StopSignal, StreamWriter

logger = logging.getLogger(__name__)

DENIAL_TEXT_ID = "moderation-denial-text"


class TurnState(str, Enum):
    """Where a turn is in its lifecycle."""
    IDLE = "idle"
    MODERATING = "moderating"
    DENIED = "denied"
    CLEARED = "cleared"
    GENERATING = "generating"
    MODEL_STEP = "model_step"
    TOOL_CALLS = "tool_calls"
    TOOL_RESULTS = "tool_results"
    FINISH = "finish"
    DONE = "done"


def _part_id(kind: str) -> str:
    return f"{kind}-{uuid.uuid4().hex[:12]}"


class Turn:
    """
    One user turn, iterated as its ordered event stream.

    Iterating drives the state machine:
    IDLE -> MODERATING -> DENIED -> DONE, or
    IDLE -> MODERATING -> CLEARED -> GENERATING -> DONE, where GENERATING
    loops MODEL_STEP -> TOOL_CALLS -> TOOL_RESULTS until the model stops
    calling tools or the step budget is spent.
    """

    def __init__(
        self,
        orchestrator: "ChatOrchestrator",
        messages: List[Message],
        stop: Optional[StopSignal] = None
    ):
        self.orchestrator = orchestrator
        self.messages = list(messages)
        self.stop = stop or StopSignal()
        self.message_id = new_message_id()
        self.state = TurnState.IDLE
        self.steps_used = 0
        self.denied = False
        self.writer = StreamWriter(self.stop)

    def __iter__(self) -> Iterator[StreamEvent]:
        return self.writer.pipe(self._events())

    def _events(self) -> Iterator[StreamEvent]:
        try:
            self.state = TurnState.MODERATING
            verdict = self.orchestrator.gate.check(self.messages)

            if verdict.flagged:
                self.state = TurnState.DENIED
                self.denied = True
                logger.info("Turn denied by moderation")
                yield from self._denial(verdict.denial_message)
            else:
                self.state = TurnState.CLEARED
                yield from self._generate()
        finally:
            self.state = TurnState.DONE

    def _denial(self, text: str) -> Iterator[StreamEvent]:
        """Deliver the denial through the same vocabulary as a normal reply."""
        yield StartEvent(message_id=self.message_id)
        yield TextStartEvent(id=DENIAL_TEXT_ID)
        yield TextDeltaEvent(id=DENIAL_TEXT_ID, delta=text)
        yield TextEndEvent(id=DENIAL_TEXT_ID)
        yield FinishEvent()

    def _generate(self) -> Iterator[StreamEvent]:
        settings = self.orchestrator.settings
        llm_client = self.orchestrator.llm_client
        registry = self.orchestrator.tools

        self.state = TurnState.GENERATING
        yield StartEvent(message_id=self.message_id)

        if llm_client is None:
            yield ErrorEvent(error_text=f"No API key configured for {settings.llm_provider}")
            return

        history = to_model_messages(self.messages, settings.system_prompt)
        definitions = registry.definitions() or None

        for step in range(settings.max_steps):
            self.state = TurnState.MODEL_STEP
            self.steps_used = step + 1
            logger.info(f"Model step {step + 1}/{settings.max_steps}")
            yield StartStepEvent()

            text: List[str] = []
            calls: List[ToolCall] = []
            open_part = None  # (kind, id)

            try:
                for chunk in llm_client.stream(history, tools=definitions):
                    if isinstance(chunk, ReasoningDelta):
                        if not settings.send_reasoning:
                            continue
                        if open_part is None or open_part[0] != "reasoning":
                            yield from self._close(open_part)
                            open_part = ("reasoning", _part_id("reasoning"))
                            yield ReasoningStartEvent(id=open_part[1])
                        yield ReasoningDeltaEvent(id=open_part[1], delta=chunk.text)
                    elif isinstance(chunk, TextDelta):
                        if open_part is None or open_part[0] != "text":
                            yield from self._close(open_part)
                            open_part = ("text", _part_id("text"))
                            yield TextStartEvent(id=open_part[1])
                        text.append(chunk.text)
                        yield TextDeltaEvent(id=open_part[1], delta=chunk.text)
                    elif isinstance(chunk, ToolCallChunk):
                        yield from self._close(open_part)
                        open_part = None
                        call = chunk.tool_call
                        calls.append(call)
                        yield ToolInputAvailableEvent(
                            tool_call_id=call.id,
                            tool_name=call.name,
                            input=call.arguments
                        )
            except Exception as e:
                logger.error(f"Model step {step + 1} failed: {e}")
                yield ErrorEvent(error_text=str(e))
                return

            yield from self._close(open_part)

            history.append(ModelMessage(
                role="assistant",
                content="".join(text),
                tool_calls=calls or None
            ))

            if not calls:
                yield FinishStepEvent()
                break

            self.state = TurnState.TOOL_CALLS
            for outcome in self._run_tools(registry, calls, settings.sequential_tool_calls):
                self.state = TurnState.TOOL_RESULTS
                history.append(ModelMessage(
                    role="tool",
                    content=format_tool_content(outcome.output, outcome.error),
                    tool_call_id=outcome.call_id
                ))
                if outcome.success:
                    yield ToolOutputAvailableEvent(tool_call_id=outcome.call_id, output=outcome.output)
                else:
                    yield ToolOutputErrorEvent(tool_call_id=outcome.call_id, error_text=outcome.error)

            yield FinishStepEvent()
        else:
            logger.warning(f"Step budget of {settings.max_steps} exhausted, finishing turn")

        self.state = TurnState.FINISH
        yield FinishEvent()

    def _run_tools(
        self,
        registry: ToolRegistry,
        calls: List[ToolCall],
        sequential: bool
    ) -> Iterator[ToolOutcome]:
        if sequential:
            # Each result is released before the next call starts
            for call in calls:
                yield registry.invoke(call)
        else:
            yield from registry.invoke_all(calls, sequential=False)

    @staticmethod
    def _close(open_part) -> Iterator[StreamEvent]:
        if open_part is None:
            return
        kind, part_id = open_part
        if kind == "text":
            yield TextEndEvent(id=part_id)
        else:
            yield ReasoningEndEvent(id=part_id)


class ChatOrchestrator:
    """Runs turns against the configured model, tools and moderation gate."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm_client: Optional[BaseLLMClient] = None,
        tools: Optional[ToolRegistry] = None,
        gate: Optional[ModerationGate] = None
    ):
        """
        Initialize orchestrator.

        Args:
            settings: Application settings
            llm_client: Optional preconfigured LLM client
            tools: Optional tool registry (built from settings when omitted)
            gate: Optional moderation gate (built from settings when omitted)
        """
        self.settings = settings or Settings()

        self.llm_client = llm_client
        if self.llm_client is None:
            self._init_llm_client()

        self.tools = tools if tools is not None else self._init_tools()
        self.gate = gate if gate is not None else self._init_gate()

    def _init_llm_client(self):
        """Initialize LLM client based on settings."""
        api_key = self.settings.get_llm_api_key()

        if not api_key:
            logger.warning(
                f"No API key for {self.settings.llm_provider}. "
                "Turns will end with an error event."
            )
            return

        provider = LLMProvider(self.settings.llm_provider)
        self.llm_client = create_llm_client(
            provider=provider,
            api_key=api_key,
            model=self.settings.llm_model,
            reasoning_effort=self.settings.reasoning_effort if self.settings.send_reasoning else None,
            parallel_tool_calls=not self.settings.sequential_tool_calls
        )
        logger.info(
            f"LLM client initialized: {self.settings.llm_provider} "
            f"({self.llm_client.get_model_name()})"
        )

    def _init_tools(self) -> ToolRegistry:
        """Register the tools available to the model."""
        tools = [
            WebSearchTool(
                api_key=self.settings.exa_api_key,
                num_results=self.settings.search_results
            ),
            VectorDatabaseSearchTool(
                index_path=self.settings.vector_index_path,
                openai_api_key=self.settings.openai_api_key,
                top_k=self.settings.vector_top_k
            ),
        ]
        if self.settings.image_generation_enabled:
            tools.append(GenerateImageTool(openai_api_key=self.settings.openai_api_key))

        registry = ToolRegistry(tools)
        logger.info(f"Tool registry initialized with {len(registry)} tools")
        return registry

    def _init_gate(self) -> ModerationGate:
        classifier = None
        if self.settings.moderation_enabled and self.settings.openai_api_key:
            classifier = OpenAIModerationClassifier(
                api_key=self.settings.openai_api_key,
                model=self.settings.moderation_model,
                denial_message=self.settings.denial_message
            )
        return ModerationGate(
            classifier=classifier,
            enabled=self.settings.moderation_enabled,
            fallback_message=self.settings.denial_message
        )

    def start_turn(self, messages: List[Message], stop: Optional[StopSignal] = None) -> Turn:
        """Prepare a turn; iterating it produces the event stream."""
        return Turn(self, messages, stop)

    def run_turn(self, messages: List[Message], stop: Optional[StopSignal] = None) -> Iterator[StreamEvent]:
        """
        Run one turn over the full conversation.

        Args:
            messages: Conversation history ending with the new user message
            stop: Optional signal; once set, no further events are emitted

        Returns:
            Iterator of stream events in emission order
        """
        return iter(self.start_turn(messages, stop))
