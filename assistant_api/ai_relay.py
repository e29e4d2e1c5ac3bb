"""
AI relay: forwards a prompt to Gemini and returns the reply text.

Never raises into the HTTP layer:
- no API key configured -> demo text (isDemo=True)
- upstream failure      -> fallback text + error "Gemini API error"

The API key is read from the environment (see config.py) and never leaves the
server.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from logging_setup import get_logger, Component as LogComponent
from observability.events import Component as ObsComponent, EventEmitter, Severity, pii_marker
from .config import config
from .prompts import get_system_prompt


logger = get_logger(LogComponent.AI_RELAY)
emitter = EventEmitter(ObsComponent.ASSISTANT_API)

GEMINI_ERROR = "Gemini API error"

# Relay requests without a caller-supplied session id are grouped under this id.
ANONYMOUS_SESSION = "assistant_api"


class GeminiAPIError(Exception):
    """Gemini answered with a non-2xx status or an unusable body."""


@dataclass
class RelayResult:
    text: str
    is_demo: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"text": self.text, "isDemo": self.is_demo}
        if self.error:
            body["error"] = self.error
        return body


def demo_response(prompt: str) -> str:
    return (
        f'Demo Response: This is a mock AI response for "{prompt}". '
        "To enable real AI functionality, please add your Gemini API key to the environment variables."
    )


def fallback_response(prompt: str) -> str:
    return (
        f'Fallback Response: Error occurred while connecting to Gemini AI. Original prompt: "{prompt}". '
        "Please check your Gemini API key configuration."
    )


def _extract_text(body: Dict[str, Any]) -> str:
    candidates = body.get("candidates") or []
    if not candidates:
        raise GeminiAPIError("No candidates in response")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    if not text.strip():
        raise GeminiAPIError("Empty response text")
    return text


async def call_gemini(prompt: str, system_prompt: str) -> str:
    """One generateContent request. Raises on any upstream failure."""
    endpoint = f"{config.gemini_base_url}/models/{config.gemini_model}:generateContent"
    payload = {
        "systemInstruction": {"parts": [{"text": system_prompt}]},
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
    }
    headers = {"x-goog-api-key": config.gemini_api_key or ""}

    async with aiohttp.ClientSession() as s:
        async with s.post(
            endpoint,
            json=payload,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=config.request_timeout_s),
        ) as resp:
            if not 200 <= resp.status < 300:
                raise GeminiAPIError(f"HTTP {resp.status}")
            body = await resp.json()
    return _extract_text(body)


async def generate(
    prompt: str,
    *,
    system_prompt: Optional[str] = None,
    tool: Optional[str] = None,
    session_id: Optional[str] = None,
) -> RelayResult:
    session_id = session_id or ANONYMOUS_SESSION
    system = get_system_prompt(tool, system_prompt)

    emitter.emit(
        "ai.request_received",
        session_id=session_id,
        pii=pii_marker(["prompt_text"]),
        prompt_text=prompt,
        prompt_length=len(prompt),
        tool=tool,
        model=config.gemini_model,
    )

    if not config.gemini_api_key:
        logger.info("No Gemini API key configured; returning demo response", session_id=session_id)
        emitter.emit("ai.response", session_id=session_id, mode="demo")
        return RelayResult(text=demo_response(prompt), is_demo=True)

    start_ts = time.time()
    try:
        text = await call_gemini(prompt, system)
    except (aiohttp.ClientError, asyncio.TimeoutError, GeminiAPIError, ValueError) as e:
        latency_ms = int((time.time() - start_ts) * 1000)
        logger.error(
            "Gemini API error",
            session_id=session_id,
            error=str(e),
            error_type=type(e).__name__,
            latency_ms=latency_ms,
        )
        emitter.emit(
            "ai.response",
            session_id=session_id,
            severity=Severity.ERROR,
            mode="fallback",
            error_class=type(e).__name__,
            latency_ms=latency_ms,
        )
        return RelayResult(text=fallback_response(prompt), is_demo=True, error=GEMINI_ERROR)

    latency_ms = int((time.time() - start_ts) * 1000)
    logger.info("Gemini response received", session_id=session_id, latency_ms=latency_ms, text_length=len(text))
    emitter.emit(
        "ai.response",
        session_id=session_id,
        mode="live",
        latency_ms=latency_ms,
        text_length=len(text),
    )
    return RelayResult(text=text)
