#!/usr/bin/env python3
"""Marketing Assistant CLI."""

import argparse
import json
import logging
import sys

from config.settings import Settings
from schemas.messages import Message, MessageStatus
from schemas.parts import ReasoningPart, TextPart, ToolCallPart, ToolResultPart


def render_message(message: Message) -> str:
    """Render an assistant message as plain text."""
    lines = []
    for part in message.parts:
        if isinstance(part, TextPart):
            lines.append(part.text)
        elif isinstance(part, ReasoningPart):
            took = f" ({part.duration_ms / 1000:.1f}s)" if part.duration_ms is not None else ""
            lines.append(f"[thought{took}] {part.text}")
        elif isinstance(part, ToolCallPart):
            lines.append(f"[calling {part.tool_name}] {json.dumps(part.args, default=str)}")
        elif isinstance(part, ToolResultPart):
            if part.is_error:
                lines.append(f"[{part.tool_name} failed] {part.error}")
            else:
                lines.append(f"[{part.tool_name} done]")
    if message.status == MessageStatus.FAILED:
        lines.append("[reply incomplete, please retry]")
    elif message.status == MessageStatus.CANCELLED:
        lines.append("[stopped]")
    return "\n".join(lines)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Marketing Assistant - AI digital marketing consultant for small businesses"
    )
    parser.add_argument(
        "--question",
        "-q",
        type=str,
        help="Message to send"
    )
    parser.add_argument(
        "--api-url",
        type=str,
        help="Send turns to a running chat server instead of in-process"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear the saved conversation"
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Run the streaming chat server"
    )
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument(
        "--max-steps",
        type=int,
        default=10,
        help="Maximum model/tool round trips per turn (default: 10)"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.serve:
        import uvicorn
        uvicorn.run("api.server:create_app", factory=True, host=args.host, port=args.port)
        return

    settings = Settings(max_steps=args.max_steps)

    from memory.session import ChatSession, InvalidInputError
    from memory.snapshot_store import SnapshotStore
    from memory.sqlite_store import SQLiteKeyValueStore

    store = SnapshotStore(SQLiteKeyValueStore(settings.db_path), key=settings.storage_key)

    if args.api_url:
        from client import ChatClient
        transport = ChatClient(args.api_url)
    else:
        from orchestrator import ChatOrchestrator
        transport = ChatOrchestrator(settings).run_turn

    session = ChatSession(
        transport=transport,
        store=store,
        welcome_message=settings.welcome_message,
        max_message_chars=settings.max_message_chars
    )

    if args.reset:
        session.reset()
        print("Conversation cleared.")
        if not args.question:
            return

    if not args.question:
        parser.error("--question is required unless --reset or --serve is given")

    try:
        reply = session.submit(args.question)
    except InvalidInputError as e:
        print(f"Invalid message: {e}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        # The partial reply was committed as cancelled
        print(render_message(session.messages[-1]))
        sys.exit(130)

    print(render_message(reply))
    if reply.status == MessageStatus.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    main()
