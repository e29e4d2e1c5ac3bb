"""
Voice assistant configuration.

Loads speech and session settings from environment variables.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _clean_env(key: str) -> Optional[str]:
    """Read an env var, dropping trailing `# comments` and whitespace."""
    value = os.environ.get(key)
    if not value:
        return None
    if "#" in value:
        value = value.split("#")[0]
    value = value.strip()
    return value or None


def _parse_int_env(key: str, default: int) -> int:
    """
    Parse integer environment variable, stripping comments and whitespace.

    Handles cases like:
    - "400  # comment" -> 400
    - "400" -> 400
    - None -> default
    """
    value = _clean_env(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_float_env(key: str, default: float) -> float:
    value = _clean_env(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def load_local_env() -> None:
    """
    Load .env_local / .env.local from the repository root (local dev convenience).

    Never overrides variables that are already exported.
    """
    root = Path(__file__).parent.parent
    for name in (".env_local", ".env.local"):
        p = root / name
        if p.exists():
            load_dotenv(p, override=False)


@dataclass
class VoiceConfig:
    """Voice session configuration."""

    # Recognition / synthesis language (BCP 47)
    language: str = "en-US"

    # Utterance parameters
    speech_rate: float = 0.85
    speech_pitch: float = 1.0
    speech_volume: float = 0.8

    # Speech output limits
    max_speech_chars: int = 400
    cancel_settle_ms: int = 100

    # Capture
    transient_error_clear_ms: int = 3000

    # Volume meter
    volume_sample_interval_ms: int = 100
    analyser_fft_size: int = 256

    # Console host -> assistant API
    assistant_api_url: str = "http://127.0.0.1:8000"

    @classmethod
    def from_env(cls) -> "VoiceConfig":
        """Load configuration from environment variables."""
        return cls(
            language=os.environ.get("VOICE_LANGUAGE", "en-US"),
            speech_rate=_parse_float_env("VOICE_SPEECH_RATE", 0.85),
            speech_pitch=_parse_float_env("VOICE_SPEECH_PITCH", 1.0),
            speech_volume=_parse_float_env("VOICE_SPEECH_VOLUME", 0.8),
            max_speech_chars=_parse_int_env("VOICE_MAX_SPEECH_CHARS", default=400),
            cancel_settle_ms=_parse_int_env("VOICE_CANCEL_SETTLE_MS", default=100),
            transient_error_clear_ms=_parse_int_env("VOICE_TRANSIENT_ERROR_CLEAR_MS", default=3000),
            volume_sample_interval_ms=_parse_int_env("VOICE_VOLUME_SAMPLE_INTERVAL_MS", default=100),
            analyser_fft_size=_parse_int_env("VOICE_ANALYSER_FFT_SIZE", default=256),
            assistant_api_url=os.environ.get("ASSISTANT_API_URL", "http://127.0.0.1:8000").rstrip("/"),
        )


def get_config() -> VoiceConfig:
    """Get or create global config instance."""
    global _config
    if _config is None:
        load_local_env()
        _config = VoiceConfig.from_env()
    return _config


# Global config instance (lazy loaded)
_config: Optional[VoiceConfig] = None
