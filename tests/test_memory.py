"""Tests for snapshot persistence and the chat session."""

import json
import threading

import pytest

from conftest import ScriptedLLMClient, build_orchestrator, text_step
from memory.models import Snapshot
from memory.session import ChatSession, InvalidInputError, TurnInProgressError
from memory.snapshot_store import STORAGE_KEY, SnapshotStore
from memory.sqlite_store import InMemoryKeyValueStore, SQLiteKeyValueStore
from schemas.events import (
    FinishEvent,
    ReasoningDeltaEvent,
    ReasoningEndEvent,
    ReasoningStartEvent,
    StartEvent,
    TextDeltaEvent,
    TextEndEvent,
    TextStartEvent,
)
from schemas.messages import Message, MessageStatus, Role
from schemas.parts import ToolCallPart, ToolResultPart


def scripted_transport(*events):
    def transport(messages, stop):
        return iter(events)
    return transport


class TestSnapshotStore:
    """Test snapshot load/save behavior."""

    def setup_method(self):
        """Set up test fixtures."""
        self.kv = InMemoryKeyValueStore()
        self.store = SnapshotStore(self.kv)

    def test_missing_snapshot_is_empty(self):
        """Test first load."""
        snapshot = self.store.load()

        assert snapshot.messages == []
        assert snapshot.durations == {}

    def test_save_then_load_is_idempotent(self):
        """Test that a saved snapshot loads back unchanged."""
        snapshot = Snapshot(
            messages=[Message.user("hello", message_id="m1")],
            durations={"m2-0": 1200},
        )

        self.store.save(snapshot)
        first = self.store.load()
        self.store.save(first)
        second = self.store.load()

        assert first == snapshot
        assert second == first
        assert list(self.kv.data) == [STORAGE_KEY]

    def test_corrupt_json_degrades_to_empty(self):
        """Test that garbage in storage does not raise."""
        self.kv.set(STORAGE_KEY, "{not json")

        assert self.store.load().messages == []

    def test_broken_correlation_degrades_to_empty(self):
        """Test that a snapshot with an orphan tool result is discarded."""
        snapshot = Snapshot(messages=[Message(
            role=Role.ASSISTANT,
            parts=[ToolResultPart(tool_name="webSearch", call_id="c1", output=[])],
        )])
        self.kv.set(STORAGE_KEY, snapshot.model_dump_json())

        assert self.store.load().messages == []

    def test_fractional_durations_load(self):
        """Test that sub-millisecond durations keep the conversation."""
        user = Message.user("hi")
        raw = {"messages": [user.model_dump(mode="json")], "durations": {"a1-0": 1234.5}}
        self.kv.set(STORAGE_KEY, json.dumps(raw))

        loaded = self.store.load()

        assert [m.id for m in loaded.messages] == [user.id]
        assert loaded.durations == {"a1-0": 1234.5}

    def test_bad_durations_dropped_not_messages(self):
        """Test that malformed duration entries are discarded on their own."""
        user = Message.user("hi")
        raw = {"messages": [user.model_dump(mode="json")], "durations": {"a1-0": 800, "a1-1": "slow", "a1-2": None}}
        self.kv.set(STORAGE_KEY, json.dumps(raw))

        loaded = self.store.load()

        assert [m.id for m in loaded.messages] == [user.id]
        assert loaded.durations == {"a1-0": 800}

        raw["durations"] = ["not", "a", "map"]
        self.kv.set(STORAGE_KEY, json.dumps(raw))

        loaded = self.store.load()

        assert [m.id for m in loaded.messages] == [user.id]
        assert loaded.durations == {}

    def test_clear_removes_key(self):
        """Test that clear deletes the stored snapshot."""
        self.store.save(Snapshot(messages=[Message.user("x")]))

        self.store.clear()

        assert self.kv.get(STORAGE_KEY) is None

    def test_sqlite_store_persists(self, tmp_path):
        """Test the SQLite backend across instances."""
        db_path = str(tmp_path / "chat.db")
        snapshot = Snapshot(messages=[
            Message.user("hello", message_id="m1"),
            Message(
                id="m2",
                role=Role.ASSISTANT,
                parts=[
                    ToolCallPart(tool_name="webSearch", call_id="c1", args={"query": "x"}),
                    ToolResultPart(tool_name="webSearch", call_id="c1", output=[{"title": "t"}]),
                ],
            ),
        ])

        SnapshotStore(SQLiteKeyValueStore(db_path)).save(snapshot)
        loaded = SnapshotStore(SQLiteKeyValueStore(db_path)).load()

        assert loaded == snapshot


class TestChatSession:
    """Test the session lifecycle."""

    def setup_method(self):
        """Set up test fixtures."""
        self.kv = InMemoryKeyValueStore()
        self.store = SnapshotStore(self.kv)

    def make_session(self, transport, **kwargs):
        return ChatSession(transport=transport, store=self.store, welcome_message="Welcome!", **kwargs)

    def test_welcome_seeded_once(self):
        """Test that an empty conversation gets the greeting."""
        session = self.make_session(scripted_transport())

        assert len(session.messages) == 1
        assert session.messages[0].role == Role.ASSISTANT
        assert session.messages[0].id.startswith("welcome-")
        assert session.messages[0].text == "Welcome!"

        reloaded = self.make_session(scripted_transport())
        assert [m.id for m in reloaded.messages] == [m.id for m in session.messages]

    def test_input_validation(self):
        """Test empty and oversized input are rejected."""
        session = self.make_session(scripted_transport(), max_message_chars=10)

        with pytest.raises(InvalidInputError):
            session.submit("   ")
        with pytest.raises(InvalidInputError):
            session.submit("x" * 11)

        assert len(session.messages) == 1

    def test_turn_committed_and_persisted(self, settings):
        """Test a full in-process turn."""
        llm = ScriptedLLMClient([text_step("Post ", "daily reels.")])
        orchestrator = build_orchestrator(settings, llm)
        session = self.make_session(orchestrator.run_turn)
        updates = []

        reply = session.submit("Instagram ideas?", on_update=lambda m: updates.append(m.text))

        assert reply.status == MessageStatus.COMPLETE
        assert reply.text == "Post daily reels."
        assert updates[-1] == "Post daily reels."
        assert [m.role for m in session.messages] == [Role.ASSISTANT, Role.USER, Role.ASSISTANT]

        reloaded = self.make_session(orchestrator.run_turn)
        assert reloaded.messages[-1] == reply

    def test_failed_turn_still_committed(self):
        """Test that a truncated stream is saved as failed."""
        session = self.make_session(scripted_transport(
            StartEvent(message_id="m-reply"),
            TextStartEvent(id="t1"),
            TextDeltaEvent(id="t1", delta="half"),
        ))

        reply = session.submit("hi")

        assert reply.status == MessageStatus.FAILED
        assert session.messages[-1].id == "m-reply"
        assert self.store.load().messages[-1].status == MessageStatus.FAILED

    def test_concurrent_submit_rejected(self):
        """Test that a second turn cannot start while one is running."""
        started = threading.Event()
        release = threading.Event()

        def slow_transport(messages, stop):
            yield StartEvent()
            started.set()
            release.wait(5)
            yield FinishEvent()

        session = self.make_session(slow_transport)
        worker = threading.Thread(target=session.submit, args=("first",))
        worker.start()
        started.wait(5)

        try:
            with pytest.raises(TurnInProgressError):
                session.submit("second")
            with pytest.raises(TurnInProgressError):
                session.reset()
        finally:
            release.set()
            worker.join(5)

        assert not session.is_busy

    def test_stop_cancels_active_turn(self):
        """Test that stop ends the reply as cancelled."""
        session = None

        def transport(messages, stop):
            yield StartEvent()
            yield TextStartEvent(id="t1")
            yield TextDeltaEvent(id="t1", delta="Partial")
            session.stop()
            yield TextDeltaEvent(id="t1", delta=" more")
            yield TextEndEvent(id="t1")
            yield FinishEvent()

        session = self.make_session(transport)

        reply = session.submit("hi")

        assert reply.status == MessageStatus.CANCELLED
        assert reply.text == "Partial"
        assert not session.stop()

    def test_reset_clears_storage(self):
        """Test that reset empties the conversation and greets again."""
        session = self.make_session(scripted_transport(StartEvent(), FinishEvent()))
        old_welcome = session.messages[0].id
        session.submit("hi")

        session.reset()

        assert len(session.messages) == 1
        assert session.messages[0].text == "Welcome!"
        assert session.messages[0].id != old_welcome
        assert [m.id for m in self.store.load().messages] == [session.messages[0].id]

    def test_reset_without_welcome_leaves_storage_empty(self):
        """Test that a session without a greeting stores nothing after reset."""
        session = ChatSession(transport=scripted_transport(StartEvent(), FinishEvent()), store=self.store)
        session.submit("hi")

        session.reset()

        assert session.messages == []
        assert self.kv.get(STORAGE_KEY) is None

    def test_interrupted_turn_committed_as_cancelled(self):
        """Test that Ctrl-C mid-reply keeps the partial text."""
        def transport(messages, stop):
            yield StartEvent(message_id="m-reply")
            yield TextStartEvent(id="t1")
            yield TextDeltaEvent(id="t1", delta="Partial plan")
            raise KeyboardInterrupt

        session = self.make_session(transport)

        with pytest.raises(KeyboardInterrupt):
            session.submit("plan my week")

        reply = session.messages[-1]
        assert [m.role for m in session.messages[-2:]] == [Role.USER, Role.ASSISTANT]
        assert reply.id == "m-reply"
        assert reply.status == MessageStatus.CANCELLED
        assert reply.text == "Partial plan"
        assert self.store.load().messages[-1] == reply
        assert not session.is_busy

    def test_reasoning_durations_persisted(self):
        """Test that reasoning time is saved with the turn."""
        session = self.make_session(scripted_transport(
            StartEvent(message_id="m1"),
            ReasoningStartEvent(id="r1"),
            ReasoningDeltaEvent(id="r1", delta="thinking"),
            ReasoningEndEvent(id="r1"),
            FinishEvent(),
        ))

        session.submit("hi")

        assert list(self.store.load().durations) == ["m1-0"]
