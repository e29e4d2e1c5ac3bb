"""
Structured JSON event emission (shared).

Used by the voice session controller and by the assistant API. Every event
shares one envelope: timestamp, session_id, component, event_type, severity,
correlation_id and a PII marker. Events go to stdout (one JSON object per
line) and to the in-memory event store behind GET /api/events.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from .event_store import event_store


class Component(str, Enum):
    """Event-producing components."""

    VOICE_SESSION = "voice_session"
    ASSISTANT_API = "assistant_api"


class Severity(str, Enum):
    """Event severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


DEFAULT_PII = {"contains_pii": False, "fields": [], "handling": "none"}


def pii_marker(fields: Iterable[str]) -> Optional[Dict[str, Any]]:
    """Build the PII envelope for events carrying user speech or prompts."""
    fields = [f for f in fields if f]
    if not fields:
        return None
    return {"contains_pii": True, "fields": fields, "handling": "none"}


class EventEmitter:
    """Emits structured JSON events."""

    def __init__(self, component: Component):
        self.component = component

    def emit(
        self,
        event_type: str,
        session_id: str,
        severity: Severity = Severity.INFO,
        correlation_id: Optional[str] = None,
        pii: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> None:
        event = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "session_id": session_id,
            "component": self.component.value,
            "event_type": event_type,
            "severity": severity.value,
            "correlation_id": correlation_id or session_id,
            "pii": pii or DEFAULT_PII,
        }
        event.update(kwargs)

        sys.stdout.write(json.dumps(event, ensure_ascii=False, default=str))
        sys.stdout.write("\n")
        sys.stdout.flush()

        event_store.store(event)
