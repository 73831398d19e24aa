"""Chat session: owns the conversation snapshot across turns."""

import logging
import threading
from typing import Callable, Iterable, List, Optional

from schemas.events import StreamEvent
from schemas.messages import Message, Role, new_message_id
from schemas.parts import TextPart
from streaming.assembler import MessageAssembler
from streaming.writer import StopSignal
from .models import Snapshot
from .snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

# (messages, stop) -> ordered stream events for the next assistant reply
TurnTransport = Callable[[List[Message], StopSignal], Iterable[StreamEvent]]


class TurnInProgressError(RuntimeError):
    """A new turn was submitted before the previous one reached DONE."""


class InvalidInputError(ValueError):
    """Submitted user text is empty or too long."""


class ChatSession:
    """
    Conversation state with an explicit load/save lifecycle.

    The snapshot is loaded once when the session is created, saved after
    every committed mutation and cleared on reset. Turns run strictly one
    at a time.
    """

    def __init__(
        self,
        transport: TurnTransport,
        store: SnapshotStore,
        welcome_message: Optional[str] = None,
        max_message_chars: int = 2000
    ):
        """
        Initialize session and load the persisted snapshot.

        Args:
            transport: Produces the event stream of a turn (in-process
                orchestrator or HTTP client)
            store: Snapshot persistence
            welcome_message: Assistant greeting seeded into an empty conversation
            max_message_chars: Upper bound on submitted user text
        """
        self.transport = transport
        self.store = store
        self.welcome_message = welcome_message
        self.max_message_chars = max_message_chars
        self.active_stop: Optional[StopSignal] = None
        self._lock = threading.Lock()

        self.snapshot = self.store.load()
        if not self.snapshot.messages and self.welcome_message:
            self._seed_welcome()

    @property
    def messages(self) -> List[Message]:
        return self.snapshot.messages

    @property
    def durations(self):
        return self.snapshot.durations

    @property
    def is_busy(self) -> bool:
        return self.active_stop is not None

    def _seed_welcome(self):
        message_id = f"welcome-{new_message_id()}"
        self.snapshot.messages.append(Message(
            id=message_id,
            role=Role.ASSISTANT,
            parts=[TextPart(id=f"{message_id}-text", text=self.welcome_message)],
        ))
        self.store.save(self.snapshot)

    def validate_input(self, text: str) -> str:
        text = text.strip()
        if not text:
            raise InvalidInputError("Message cannot be empty.")
        if len(text) > self.max_message_chars:
            raise InvalidInputError(
                f"Message must be at most {self.max_message_chars} characters."
            )
        return text

    def submit(
        self,
        text: str,
        on_update: Optional[Callable[[Message], None]] = None
    ) -> Message:
        """
        Run one turn for new user text.

        Args:
            text: User input
            on_update: Called with the in-progress assistant message after
                every applied event

        Returns:
            The committed assistant message (complete, cancelled or failed)

        Raises:
            InvalidInputError: If the text is empty or too long
            TurnInProgressError: If another turn is still running
        """
        text = self.validate_input(text)
        return self.submit_message(Message.user(text), on_update=on_update)

    def submit_message(
        self,
        user_message: Message,
        on_update: Optional[Callable[[Message], None]] = None
    ) -> Message:
        """Run one turn for an already built user message."""
        with self._lock:
            if self.active_stop is not None:
                raise TurnInProgressError("Wait for the current reply to finish or stop it first")
            stop = self.active_stop = StopSignal()

        try:
            self.snapshot.messages.append(user_message)
            self.store.save(self.snapshot)

            assembler = MessageAssembler()
            try:
                reply = assembler.consume(
                    self.transport(list(self.snapshot.messages), stop),
                    stop=stop,
                    on_update=on_update
                )
            except BaseException:
                # Interrupted (Ctrl-C, UI rerun): keep what was received
                self._commit(assembler, assembler.stop())
                raise

            self._commit(assembler, reply)
            return reply
        finally:
            with self._lock:
                self.active_stop = None

    def _commit(self, assembler: MessageAssembler, reply: Message):
        self.snapshot.messages.append(reply)
        self.snapshot.durations.update(assembler.durations)
        self.store.save(self.snapshot)
        logger.info(f"Turn committed: {reply.id} ({reply.status.value}, {len(reply.parts)} parts)")

    def stop(self) -> bool:
        """Stop the active turn, if any."""
        stop = self.active_stop
        if stop is None:
            return False
        stop.stop()
        return True

    def reset(self):
        """Clear the conversation and its persisted snapshot."""
        if self.is_busy:
            raise TurnInProgressError("Cannot reset while a reply is streaming")
        self.store.clear()
        self.snapshot = Snapshot()
        logger.info("Conversation cleared")
        if self.welcome_message:
            self._seed_welcome()
