"""Receiver side: folds stream events into an assistant message."""

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

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
    ToolInputStartEvent,
    ToolOutputAvailableEvent,
    ToolOutputErrorEvent,
)
from schemas.messages import Message, MessageStatus, Role, duration_key, new_message_id
from schemas.parts import (
    Part,
    ReasoningPart,
    TextPart,
    ToolCallPart,
    ToolCallState,
    ToolResultPart,
)
from .writer import StopSignal, StreamProtocolError

logger = logging.getLogger(__name__)


class MessageAssembler:
    """
    Materializes the in-progress assistant message of one turn.

    Every mutation is keyed by part id or tool call id. The text of a part
    is the concatenation of its fragments in arrival order. Once the message
    is complete, cancelled or failed, later events are ignored.
    """

    def __init__(self, message_id: Optional[str] = None):
        self.message_id = message_id
        self.status: Optional[MessageStatus] = None
        self.parts: List[Part] = []
        self.durations: Dict[str, float] = {}
        self.error: Optional[str] = None
        self.events_applied = 0

        self._fragments: Dict[str, List[str]] = {}
        self._index: Dict[str, int] = {}
        self._open: Dict[str, type] = {}
        self._calls: Dict[str, int] = {}
        self._results: set = set()

    @property
    def started(self) -> bool:
        return self.status is not None

    @property
    def is_final(self) -> bool:
        return self.status in (MessageStatus.COMPLETE, MessageStatus.CANCELLED, MessageStatus.FAILED)

    @property
    def message(self) -> Message:
        """Snapshot of the message as materialized so far."""
        return Message(
            id=self.message_id or new_message_id(),
            role=Role.ASSISTANT,
            parts=list(self.parts),
            status=self.status or MessageStatus.STREAMING,
        )

    def apply(self, event: StreamEvent) -> bool:
        """
        Apply one event.

        Returns:
            False if the event was ignored because the message is final

        Raises:
            StreamProtocolError: If the event breaks ordering or correlation
        """
        if self.is_final:
            logger.debug(f"Ignoring {event.type} after message became {self.status.value}")
            return False

        if isinstance(event, StartEvent):
            if self.started:
                raise StreamProtocolError("Duplicate start event")
            self.message_id = event.message_id or self.message_id or new_message_id()
            self.status = MessageStatus.STREAMING
        elif isinstance(event, ErrorEvent):
            self.fail(event.error_text)
        elif not self.started:
            raise StreamProtocolError(f"Received {event.type} before start")
        elif isinstance(event, (StartStepEvent, FinishStepEvent)):
            pass
        elif isinstance(event, TextStartEvent):
            self._open_part(TextPart(id=event.id), TextPart)
        elif isinstance(event, ReasoningStartEvent):
            self._open_part(ReasoningPart(id=event.id), ReasoningPart)
        elif isinstance(event, (TextDeltaEvent, ReasoningDeltaEvent)):
            kind = TextPart if isinstance(event, TextDeltaEvent) else ReasoningPart
            self._append_delta(event.id, event.delta, kind)
        elif isinstance(event, (TextEndEvent, ReasoningEndEvent)):
            kind = TextPart if isinstance(event, TextEndEvent) else ReasoningPart
            self._close_part(event.id, kind)
        elif isinstance(event, ToolInputStartEvent):
            self._tool_call(event.tool_call_id, event.tool_name, None, ToolCallState.INPUT_STREAMING)
        elif isinstance(event, ToolInputAvailableEvent):
            self._tool_call(event.tool_call_id, event.tool_name, event.input, ToolCallState.INPUT_AVAILABLE)
        elif isinstance(event, ToolOutputAvailableEvent):
            self._tool_result(event.tool_call_id, output=event.output)
        elif isinstance(event, ToolOutputErrorEvent):
            self._tool_result(event.tool_call_id, error=event.error_text)
        elif isinstance(event, FinishEvent):
            self._close_all()
            self.status = MessageStatus.COMPLETE

        self.events_applied += 1
        return True

    def _open_part(self, part, kind: type):
        if part.id in self._index:
            raise StreamProtocolError(f"Part id {part.id} was already used")
        self._index[part.id] = len(self.parts)
        self._fragments[part.id] = []
        self._open[part.id] = kind
        self.parts.append(part)

    def _append_delta(self, part_id: str, delta: str, kind: type):
        if self._open.get(part_id) is not kind:
            raise StreamProtocolError(f"Delta for part {part_id} which is not open")
        fragments = self._fragments[part_id]
        fragments.append(delta)
        index = self._index[part_id]
        self.parts[index] = self.parts[index].model_copy(update={"text": "".join(fragments)})

    def _close_part(self, part_id: str, kind: type):
        if self._open.get(part_id) is not kind:
            raise StreamProtocolError(f"End for part {part_id} which is not open")
        del self._open[part_id]

        index = self._index[part_id]
        part = self.parts[index]
        if isinstance(part, ReasoningPart):
            part = part.model_copy(update={"finished_at": datetime.now()})
            self.parts[index] = part
            self.durations[duration_key(self.message_id, index)] = part.duration_ms

    def _close_all(self):
        """Close open parts at their last received fragment."""
        for part_id, kind in list(self._open.items()):
            self._close_part(part_id, kind)

    def _tool_call(self, call_id: str, tool_name: str, args, state: ToolCallState):
        part = ToolCallPart(tool_name=tool_name, call_id=call_id, args=args, state=state)
        if call_id in self._calls:
            index = self._calls[call_id]
            existing = self.parts[index]
            if existing.state != ToolCallState.INPUT_STREAMING or state != ToolCallState.INPUT_AVAILABLE:
                raise StreamProtocolError(f"Tool call {call_id} was already materialized")
            self.parts[index] = part
        else:
            self._calls[call_id] = len(self.parts)
            self.parts.append(part)

    def _tool_result(self, call_id: str, output=None, error: Optional[str] = None):
        if call_id not in self._calls:
            raise StreamProtocolError(f"Tool result for unknown call {call_id}")
        if call_id in self._results:
            raise StreamProtocolError(f"Tool call {call_id} already has a result")

        call = self.parts[self._calls[call_id]]
        if call.state != ToolCallState.INPUT_AVAILABLE:
            raise StreamProtocolError(f"Tool result for call {call_id} whose input is incomplete")

        self._results.add(call_id)
        self.parts.append(ToolResultPart(
            tool_name=call.tool_name,
            call_id=call_id,
            output=output,
            error=error,
        ))

    def _finalize(self, status: MessageStatus):
        self._close_all()
        # Calls whose input never completed cannot be replayed or answered
        incomplete = {
            i for i in self._calls.values()
            if self.parts[i].state == ToolCallState.INPUT_STREAMING
        }
        if incomplete:
            self.parts = [p for i, p in enumerate(self.parts) if i not in incomplete]
            self.durations = {
                duration_key(self.message_id, i): p.duration_ms
                for i, p in enumerate(self.parts)
                if isinstance(p, ReasoningPart) and p.duration_ms is not None
            }
        self.status = status

    def stop(self) -> Message:
        """Cancel the turn, keeping every part materialized so far."""
        if not self.is_final:
            logger.info(f"Turn cancelled after {self.events_applied} events")
            self.message_id = self.message_id or new_message_id()
            self._finalize(MessageStatus.CANCELLED)
        return self.message

    def fail(self, error: str) -> Message:
        """Mark the message incomplete after a transport or producer failure."""
        if not self.is_final:
            logger.warning(f"Assistant message failed: {error}")
            self.error = error
            if not self.started:
                self.message_id = self.message_id or new_message_id()
            self._finalize(MessageStatus.FAILED)
        return self.message

    def consume(
        self,
        events: Iterable[StreamEvent],
        stop: Optional[StopSignal] = None,
        on_update: Optional[Callable[[Message], None]] = None
    ) -> Message:
        """
        Apply a whole event stream and return the final message.

        Stops reading as soon as stop is set. A stream that raises, breaks
        the protocol or ends without finish leaves the message failed.

        Args:
            events: Events in emission order
            stop: Optional stop signal checked before each event
            on_update: Called with the in-progress message after each event
        """
        source = iter(events)
        try:
            for event in source:
                if stop is not None and stop.is_set:
                    return self.stop()
                self.apply(event)
                if on_update is not None:
                    on_update(self.message)
                if self.is_final:
                    break
            if stop is not None and stop.is_set:
                return self.stop()
        except StreamProtocolError as e:
            return self.fail(f"Protocol error: {e}")
        except Exception as e:
            return self.fail(f"Stream interrupted: {e}")
        finally:
            close = getattr(source, "close", None)
            if close is not None:
                close()

        if not self.is_final:
            return self.fail("Stream ended before finish")
        return self.message
