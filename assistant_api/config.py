"""
Configuration management for the assistant API.
Loads from environment variables with sensible defaults.
"""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _parse_int_env(key: str, default: int) -> int:
    value = os.getenv(key)
    if not value:
        return default
    try:
        return int(value.split("#")[0].strip())
    except ValueError:
        return default


class ApiConfig:
    """Assistant API configuration."""

    # Gemini
    gemini_api_key: Optional[str]
    gemini_model: str
    gemini_base_url: str
    request_timeout_s: int

    # HTTP server
    host: str
    port: int

    def __init__(self):
        """Load configuration from environment variables."""
        # .env_local / .env.local never override exported variables
        root = Path(__file__).parent.parent
        for name in (".env_local", ".env.local"):
            env_file = root / name
            if env_file.exists():
                load_dotenv(env_file, override=False)

        # The key is optional: without it the relay answers in demo mode.
        self.gemini_api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or None
        self.gemini_model = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
        self.gemini_base_url = os.getenv(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        ).rstrip("/")
        self.request_timeout_s = _parse_int_env("GEMINI_TIMEOUT_S", 30)

        self.host = os.getenv("ASSISTANT_API_HOST", "0.0.0.0")
        self.port = _parse_int_env("ASSISTANT_API_PORT", 8000)


# Global config instance
config = ApiConfig()
