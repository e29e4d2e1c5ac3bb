"""
Voice assistant -> assistant API client.

Forwards prompts produced by voice commands to the AI relay service. Best
effort: any failure is logged and reported as None so the caller can fall back
to a local message.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

import aiohttp

from logging_setup import get_logger, Component as LogComponent
from .config import get_config


logger = get_logger(LogComponent.AI_RELAY)


async def request_completion(
    prompt: str,
    *,
    tool: Optional[str] = None,
    system_prompt: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout_s: float = 30.0,
    session_id: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    POST a prompt to the assistant API.

    Returns the JSON body ({"text": ..., "error"?: ...}) on a 2xx response,
    None otherwise.
    """
    base = (base_url or get_config().assistant_api_url).rstrip("/")
    endpoint = f"{base}/api/ai"

    body: Dict[str, Any] = {"prompt": prompt}
    if tool:
        body["tool"] = tool
    if system_prompt:
        body["systemPrompt"] = system_prompt

    start_ts = time.time()
    logger.info(
        "Requesting AI completion",
        endpoint=endpoint,
        session_id=session_id,
        tool=tool,
        prompt_length=len(prompt),
    )
    try:
        async with aiohttp.ClientSession() as s:
            async with s.post(endpoint, json=body, timeout=aiohttp.ClientTimeout(total=timeout_s)) as resp:
                ok = 200 <= resp.status < 300
                logger.info(
                    "AI completion response",
                    endpoint=endpoint,
                    session_id=session_id,
                    status=resp.status,
                    ok=ok,
                    latency_ms=int((time.time() - start_ts) * 1000),
                )
                if not ok:
                    return None
                return await resp.json()
    except Exception as e:
        logger.warning(
            "AI completion request failed",
            endpoint=endpoint,
            session_id=session_id,
            error=str(e),
            error_type=type(e).__name__,
            latency_ms=int((time.time() - start_ts) * 1000),
        )
        return None
