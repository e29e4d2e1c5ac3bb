"""
Structured event tests.
Tests the JSON event envelope and the in-memory event store.
"""
import json
import sys
from io import StringIO
from datetime import datetime

import pytest

from observability.events import (
    DEFAULT_PII,
    EventEmitter,
    Component,
    Severity,
    pii_marker,
)
from observability.event_store import EventStore, event_store


@pytest.fixture(autouse=True)
def clean_store():
    event_store.clear()
    yield
    event_store.clear()


class TestEventFormat:
    """Test the event envelope."""

    def test_required_fields(self):
        """Test that all required fields are present."""
        old_stdout = sys.stdout
        sys.stdout = captured_output = StringIO()

        try:
            emitter = EventEmitter(Component.VOICE_SESSION)
            emitter.emit(
                event_type="voice.listening_started",
                session_id="voice_abc",
                severity=Severity.INFO,
            )

            output = captured_output.getvalue().strip()
            event = json.loads(output)

            for key in ("ts", "session_id", "component", "event_type", "severity", "correlation_id", "pii"):
                assert key in event

            assert event["session_id"] == "voice_abc"
            assert event["component"] == "voice_session"
            assert event["event_type"] == "voice.listening_started"
            assert event["severity"] == "info"
            # correlation defaults to the session
            assert event["correlation_id"] == "voice_abc"
            assert event["pii"] == DEFAULT_PII

        finally:
            sys.stdout = old_stdout

    def test_timestamp_format(self, capsys):
        """Test that timestamp is ISO8601."""
        EventEmitter(Component.ASSISTANT_API).emit("ai.response", session_id="assistant_api")

        event = json.loads(capsys.readouterr().out.strip())

        datetime.fromisoformat(event["ts"].replace("Z", "+00:00"))

    def test_pii_marker(self, capsys):
        """Test transcript events carry the PII envelope."""
        EventEmitter(Component.VOICE_SESSION).emit(
            "stt.final",
            session_id="voice_abc",
            pii=pii_marker(["transcript_text"]),
            transcript_text="generate a login form",
        )

        event = json.loads(capsys.readouterr().out.strip())

        assert event["pii"]["contains_pii"] is True
        assert event["pii"]["fields"] == ["transcript_text"]
        assert event["transcript_text"] == "generate a login form"

    def test_pii_marker_without_fields(self):
        assert pii_marker([]) is None
        assert pii_marker(["", None]) is None

    def test_payload_fields(self, capsys):
        """Test arbitrary payload fields are merged into the event."""
        EventEmitter(Component.VOICE_SESSION).emit(
            "tts.requested",
            session_id="voice_abc",
            severity=Severity.DEBUG,
            text_length=42,
            truncated=False,
            voice=None,
        )

        event = json.loads(capsys.readouterr().out.strip())

        assert event["severity"] == "debug"
        assert event["text_length"] == 42
        assert event["truncated"] is False
        assert event["voice"] is None

    def test_emit_stores_event(self, capsys):
        EventEmitter(Component.VOICE_SESSION).emit("mic.opened", session_id="voice_abc")

        stored = event_store.query(session_id="voice_abc")

        assert len(stored) == 1
        assert stored[0]["event_type"] == "mic.opened"


class TestEventStore:
    """Test the bounded in-memory store."""

    def _event(self, session_id, event_type, component="voice_session"):
        return {
            "ts": "2026-01-01T12:00:00+00:00",
            "session_id": session_id,
            "component": component,
            "event_type": event_type,
            "severity": "info",
            "correlation_id": session_id,
            "pii": DEFAULT_PII,
            "detail": event_type.upper(),
        }

    def test_query_filters(self):
        store = EventStore()
        store.store(self._event("voice_a", "voice.listening_started"))
        store.store(self._event("voice_a", "stt.final"))
        store.store(self._event("voice_b", "stt.final"))
        store.store(self._event("assistant_api", "ai.response", component="assistant_api"))

        assert len(store.query(session_id="voice_a")) == 2
        assert len(store.query(event_type="stt.final")) == 2
        assert [e["session_id"] for e in store.query(component="assistant_api")] == ["assistant_api"]
        assert len(store.query(limit=1)) == 1

    def test_payload_round_trips(self):
        store = EventStore()
        store.store(self._event("voice_a", "mic.released"))

        event = store.query()[0]

        assert event["detail"] == "MIC.RELEASED"
        assert event["ts"] == "2026-01-01T12:00:00+00:00"

    def test_event_types_in_order(self):
        store = EventStore()
        for event_type in ("voice.listening_started", "stt.final", "command.classified"):
            store.store(self._event("voice_a", event_type))

        assert store.event_types("voice_a") == ["voice.listening_started", "stt.final", "command.classified"]
        assert store.event_types("voice_b") == []

    def test_bounded(self):
        store = EventStore(max_events=3)
        for i in range(5):
            store.store(self._event("voice_a", f"e{i}"))

        assert store.event_types("voice_a") == ["e2", "e3", "e4"]
        stats = store.get_stats()
        assert stats["total_events"] == 3
        assert stats["max_events"] == 3

    def test_clear(self):
        store = EventStore()
        store.store(self._event("voice_a", "e"))
        store.clear()

        assert store.query() == []
        assert store.get_stats()["oldest_event_ts"] is None
