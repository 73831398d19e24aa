"""
FastAPI server exposing the chat turn as a server-sent event stream.

- POST /api/chat : full message history in, turn event stream out
- GET  /health   : basic health check
"""

import time
import logging
from typing import AsyncIterator, Iterator, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from starlette.concurrency import iterate_in_threadpool

from config.settings import Settings
from orchestrator import ChatOrchestrator
from schemas.messages import ConversationError, Message, Role, validate_conversation
from streaming.sse import STREAM_HEADERS, encode_stream
from streaming.writer import StopSignal

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    messages: List[Message] = Field(..., description="Full conversation, new user message last.")


async def stream_frames(frames: Iterator[str], request: Request, stop: StopSignal) -> AsyncIterator[str]:
    """Relay encoded frames until the stream ends or the client goes away."""
    stream_start = time.time()
    frame_count = 0
    try:
        async for frame in iterate_in_threadpool(frames):
            if await request.is_disconnected():
                logger.info("Client disconnected, stopping turn")
                break
            frame_count += 1
            yield frame
    finally:
        # Producer checks this before its next event
        stop.stop()
        try:
            frames.close()
        except ValueError:
            # Still inside next() on a worker thread; the stop signal ends it
            logger.debug("Frame source busy, left to the stop signal")
        elapsed = time.time() - stream_start
        logger.info(f"[STREAM] {frame_count} frames in {elapsed:.2f}s")


def create_app(orchestrator: Optional[ChatOrchestrator] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        orchestrator: Optional preconfigured orchestrator (built from
            Settings when omitted)
    """
    app = FastAPI(
        title="Marketing Assistant API",
        description="Streams assistant turns as ordered message-part events.",
        version="1.0.0",
    )
    app.state.orchestrator = orchestrator or ChatOrchestrator(Settings())

    @app.get("/health")
    def health():
        llm_client = app.state.orchestrator.llm_client
        return {
            "status": "ok",
            "llm": llm_client.get_model_name() if llm_client else None,
            "tools": sorted(app.state.orchestrator.tools.tools),
        }

    @app.post("/api/chat")
    async def chat(body: ChatRequest, request: Request) -> StreamingResponse:
        if not body.messages or body.messages[-1].role != Role.USER:
            raise HTTPException(status_code=400, detail="Last message must be a user message")
        try:
            validate_conversation(body.messages)
        except ConversationError as e:
            raise HTTPException(status_code=400, detail=str(e))

        stop = StopSignal()
        frames = encode_stream(app.state.orchestrator.run_turn(body.messages, stop))

        return StreamingResponse(
            stream_frames(frames, request, stop),
            media_type="text/event-stream",
            headers=STREAM_HEADERS,
        )

    return app
