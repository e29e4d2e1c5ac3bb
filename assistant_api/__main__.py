"""
Entry point for running the assistant API.

Usage:
    python -m assistant_api

This starts the FastAPI server on http://0.0.0.0:8000 (ASSISTANT_API_HOST /
ASSISTANT_API_PORT override).
"""
import uvicorn
from logging_setup import setup_logging

from .config import config

if __name__ == "__main__":
    # Initialize logging
    setup_logging(use_json=True)

    # Run the API server
    uvicorn.run(
        "assistant_api.server:app",
        host=config.host,
        port=config.port,
        log_level="info",
    )
