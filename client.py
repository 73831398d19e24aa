"""HTTP client for the chat endpoint."""

import logging
from typing import Iterator, List, Optional

import requests

from schemas.events import StreamEvent
from schemas.messages import Message
from streaming.sse import decode_lines
from streaming.writer import StopSignal

logger = logging.getLogger(__name__)


class ChatClient:
    """
    Submits the conversation to the chat endpoint and yields the turn's
    events as they arrive.

    Stopping closes the HTTP response, which aborts the in-flight request.
    Transport errors propagate to the caller; MessageAssembler.consume turns
    them into a failed message.
    """

    def __init__(self, api_url: str, timeout: int = 60):
        """
        Initialize chat client.

        Args:
            api_url: URL of the POST /api/chat endpoint
            timeout: Connect/read timeout in seconds
        """
        self.api_url = api_url
        self.timeout = timeout

    def stream_events(
        self,
        messages: List[Message],
        stop: Optional[StopSignal] = None
    ) -> Iterator[StreamEvent]:
        """Post the history and decode the SSE response."""
        payload = {"messages": [m.model_dump(mode="json") for m in messages]}

        response = requests.post(
            self.api_url,
            json=payload,
            headers={"Accept": "text/event-stream"},
            stream=True,
            timeout=self.timeout
        )
        try:
            if response.status_code != 200:
                raise RuntimeError(f"Chat API returned status {response.status_code}: {response.text}")

            for event in decode_lines(response.iter_lines(decode_unicode=True)):
                if stop is not None and stop.is_set:
                    logger.info("Stop requested, aborting chat request")
                    return
                yield event
        finally:
            response.close()

    __call__ = stream_events
