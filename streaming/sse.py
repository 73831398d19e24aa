"""Server-sent events codec for the turn event stream."""

import json
import logging
from typing import Iterable, Iterator, Union

from schemas.events import StreamEvent, event_adapter

logger = logging.getLogger(__name__)

DONE = "[DONE]"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
    "x-vercel-ai-ui-message-stream": "v1",
}


def encode_event(event: StreamEvent) -> str:
    """Encode one event as an SSE data frame."""
    return f"data: {event.model_dump_json(exclude_none=True)}\n\n"


def encode_stream(events: Iterable[StreamEvent]) -> Iterator[str]:
    """Encode events in order, then the [DONE] terminator."""
    for event in events:
        yield encode_event(event)
    yield f"data: {DONE}\n\n"


def decode_lines(lines: Iterable[Union[str, bytes]]) -> Iterator[StreamEvent]:
    """
    Decode SSE lines back into events.

    Blank lines, comments and non-data fields are skipped. Decoding stops
    at the [DONE] terminator.
    """
    for line in lines:
        if isinstance(line, bytes):
            line = line.decode("utf-8")
        line = line.rstrip("\r\n")

        if not line or line.startswith(":") or not line.startswith("data:"):
            continue

        payload = line[len("data:"):].strip()
        if payload == DONE:
            return

        yield event_adapter.validate_python(json.loads(payload))
