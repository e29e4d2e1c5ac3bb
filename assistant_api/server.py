"""
Assistant API server.
Can be run standalone (python -m assistant_api) or mounted into another app.
"""
from fastapi import FastAPI

from logging_setup import get_logger, Component
from observability.event_store import event_store
from .api import router as api_router
from .config import config

app = FastAPI(title="Voice Coding Assistant API")
logger = get_logger(Component.ASSISTANT_API)
app.include_router(api_router)
logger.info("Assistant API configured", model=config.gemini_model, demo_mode=not config.gemini_api_key)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "component": "assistant_api",
        "demo_mode": not config.gemini_api_key,
        "events": event_store.get_stats()["total_events"],
    }
