"""
Assistant HTTP API.

This module exposes:
- POST /api/ai             prompt -> AI relay reply (always 200)
- POST /api/voice/command  classify a command without executing it
- GET  /api/events         query structured events

Emits auditable events: api.command_classified, ai.request_received, ai.response.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from observability.events import Component as ObsComponent, EventEmitter
from observability.event_store import event_store
from voice_assistant.commands import classify
from .ai_relay import ANONYMOUS_SESSION, generate


router = APIRouter(prefix="/api", tags=["assistant"])
emitter = EventEmitter(ObsComponent.ASSISTANT_API)

REDACTED = "[redacted]"


class AIRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="User prompt")
    systemPrompt: Optional[str] = Field(None, description="Overrides the tool's system prompt")
    tool: Optional[str] = Field(None, description="Prompt set name, e.g. code_generator")
    sessionId: Optional[str] = Field(None, description="Voice session id for event correlation")


class AIResponse(BaseModel):
    text: str
    isDemo: bool = False
    error: Optional[str] = None


class VoiceCommandRequest(BaseModel):
    text: str = Field(..., description="Final transcript")
    sessionId: Optional[str] = None


class VoiceCommandResponse(BaseModel):
    kind: str
    message: str
    view: Optional[str] = None
    prompt: Optional[str] = None
    action: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None


@router.post("/ai", response_model=AIResponse, response_model_exclude_none=True)
async def ai_completion(req: AIRequest) -> AIResponse:
    """
    Relay a prompt to the AI model.

    Upstream failures are reported in the body (`error`) with a fallback text,
    never as an HTTP error.
    """
    result = await generate(
        req.prompt,
        system_prompt=req.systemPrompt,
        tool=req.tool,
        session_id=req.sessionId,
    )
    return AIResponse(**result.to_dict())


@router.post("/voice/command", response_model=VoiceCommandResponse)
async def voice_command(req: VoiceCommandRequest) -> VoiceCommandResponse:
    """Classify a voice command. Host effects are left to the caller."""
    result = classify(req.text)
    emitter.emit(
        "api.command_classified",
        session_id=req.sessionId or ANONYMOUS_SESSION,
        kind=result.kind.value,
        view=result.view,
        action=result.action,
    )
    return VoiceCommandResponse(**result.to_dict())


def _redact(event: Dict[str, Any]) -> Dict[str, Any]:
    pii = event.get("pii") or {}
    if not pii.get("contains_pii"):
        return event
    redacted = dict(event)
    for field in pii.get("fields", []):
        if field in redacted:
            redacted[field] = REDACTED
    return redacted


@router.get("/events")
async def list_events(
    session_id: Optional[str] = Query(None, description="Filter by session_id"),
    event_type: Optional[str] = Query(None, description="Filter by event_type"),
    component: Optional[str] = Query(None, description="Filter by component"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Max events to return"),
) -> dict:
    """
    Query structured events.

    Fields flagged as PII in the event envelope are redacted.
    """
    events: List[Dict[str, Any]] = event_store.query(
        session_id=session_id,
        event_type=event_type,
        component=component,
        limit=limit,
    )
    events = [_redact(e) for e in events]
    return {
        "session_id": session_id,
        "events": events,
        "count": len(events),
    }
