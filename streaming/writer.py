"""Producer side of the turn event stream."""

import logging
import threading
from typing import Dict, Iterable, Iterator, Optional

from schemas.events import (
    ErrorEvent,
    FinishEvent,
    ReasoningDeltaEvent,
    ReasoningEndEvent,
    ReasoningStartEvent,
    StartEvent,
    StreamEvent,
    TextDeltaEvent,
    TextEndEvent,
    TextStartEvent,
)

logger = logging.getLogger(__name__)

_STARTS = {TextStartEvent: "text", ReasoningStartEvent: "reasoning"}
_DELTAS = {TextDeltaEvent: "text", ReasoningDeltaEvent: "reasoning"}
_ENDS = {TextEndEvent: "text", ReasoningEndEvent: "reasoning"}


class StreamProtocolError(RuntimeError):
    """An event violates the ordering rules of the stream."""


class StopSignal:
    """User-issued request to stop the active turn."""

    def __init__(self):
        self._event = threading.Event()

    def stop(self):
        self._event.set()

    @property
    def is_set(self) -> bool:
        return self._event.is_set()


class StreamWriter:
    """
    Checks and forwards events for one turn, in emission order.

    Text and reasoning deltas are only accepted inside their own
    start/end scope. Nothing may be written after finish or error.
    """

    def __init__(self, stop: Optional[StopSignal] = None):
        self.stop = stop or StopSignal()
        self.started = False
        self.closed = False
        self.open_parts: Dict[str, str] = {}
        self.events_written = 0

    def write(self, event: StreamEvent) -> StreamEvent:
        if self.closed:
            raise StreamProtocolError(f"Cannot write {event.type} after the stream closed")
        if not self.started and not isinstance(event, (StartEvent, ErrorEvent)):
            raise StreamProtocolError(f"First event must be start, got {event.type}")

        kind = type(event)
        if isinstance(event, StartEvent):
            if self.started:
                raise StreamProtocolError("Duplicate start event")
            self.started = True
        elif kind in _STARTS:
            if event.id in self.open_parts:
                raise StreamProtocolError(f"Part {event.id} is already open")
            self.open_parts[event.id] = _STARTS[kind]
        elif kind in _DELTAS or kind in _ENDS:
            expected = _DELTAS.get(kind) or _ENDS.get(kind)
            if self.open_parts.get(event.id) != expected:
                raise StreamProtocolError(f"{event.type} for part {event.id} outside its scope")
            if kind in _ENDS:
                del self.open_parts[event.id]
        elif isinstance(event, (FinishEvent, ErrorEvent)):
            self.closed = True

        self.events_written += 1
        return event

    def pipe(self, events: Iterable[StreamEvent]) -> Iterator[StreamEvent]:
        """
        Forward events until they run out or a stop is requested.

        On stop the source generator is closed and nothing else is emitted,
        not even a finish event.
        """
        source = iter(events)
        try:
            for event in source:
                if self.stop.is_set:
                    logger.info(f"Stop requested after {self.events_written} events, ending stream")
                    return
                yield self.write(event)
        finally:
            close = getattr(source, "close", None)
            if close is not None:
                close()
