"""
Tests for voice assistant and assistant API configuration.

Verifies:
- Configuration loading from environment
- Default values
- Tolerant numeric parsing (trailing comments, garbage)
"""
import pytest

from voice_assistant.config import VoiceConfig
from assistant_api.config import ApiConfig


_VOICE_VARS = (
    "VOICE_LANGUAGE",
    "VOICE_SPEECH_RATE",
    "VOICE_SPEECH_PITCH",
    "VOICE_SPEECH_VOLUME",
    "VOICE_MAX_SPEECH_CHARS",
    "VOICE_CANCEL_SETTLE_MS",
    "VOICE_TRANSIENT_ERROR_CLEAR_MS",
    "VOICE_VOLUME_SAMPLE_INTERVAL_MS",
    "VOICE_ANALYSER_FFT_SIZE",
    "ASSISTANT_API_URL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in _VOICE_VARS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_config_from_env_defaults(clean_env):
    """Test configuration with default values."""
    config = VoiceConfig.from_env()

    assert config.language == "en-US"
    assert config.speech_rate == 0.85
    assert config.speech_pitch == 1.0
    assert config.speech_volume == 0.8
    assert config.max_speech_chars == 400
    assert config.cancel_settle_ms == 100
    assert config.transient_error_clear_ms == 3000
    assert config.volume_sample_interval_ms == 100
    assert config.analyser_fft_size == 256
    assert config.assistant_api_url == "http://127.0.0.1:8000"


def test_config_from_env_all_fields(clean_env):
    """Test configuration loading with all fields set."""
    clean_env.setenv("VOICE_LANGUAGE", "nl-NL")
    clean_env.setenv("VOICE_SPEECH_RATE", "1.2")
    clean_env.setenv("VOICE_SPEECH_PITCH", "0.9")
    clean_env.setenv("VOICE_SPEECH_VOLUME", "1")
    clean_env.setenv("VOICE_MAX_SPEECH_CHARS", "200")
    clean_env.setenv("VOICE_CANCEL_SETTLE_MS", "50")
    clean_env.setenv("VOICE_TRANSIENT_ERROR_CLEAR_MS", "1500")
    clean_env.setenv("VOICE_VOLUME_SAMPLE_INTERVAL_MS", "250")
    clean_env.setenv("VOICE_ANALYSER_FFT_SIZE", "512")
    clean_env.setenv("ASSISTANT_API_URL", "http://localhost:9000/")

    config = VoiceConfig.from_env()

    assert config.language == "nl-NL"
    assert config.speech_rate == 1.2
    assert config.speech_pitch == 0.9
    assert config.speech_volume == 1.0
    assert config.max_speech_chars == 200
    assert config.cancel_settle_ms == 50
    assert config.transient_error_clear_ms == 1500
    assert config.volume_sample_interval_ms == 250
    assert config.analyser_fft_size == 512
    assert config.assistant_api_url == "http://localhost:9000"


def test_numeric_values_with_comments(clean_env):
    clean_env.setenv("VOICE_MAX_SPEECH_CHARS", "300  # keep responses short")
    clean_env.setenv("VOICE_SPEECH_RATE", "0.9 # slower")

    config = VoiceConfig.from_env()

    assert config.max_speech_chars == 300
    assert config.speech_rate == 0.9


def test_invalid_numbers_fall_back_to_defaults(clean_env):
    clean_env.setenv("VOICE_MAX_SPEECH_CHARS", "lots")
    clean_env.setenv("VOICE_SPEECH_VOLUME", "loud")

    config = VoiceConfig.from_env()

    assert config.max_speech_chars == 400
    assert config.speech_volume == 0.8


def test_api_config_defaults(monkeypatch):
    for key in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "GEMINI_MODEL", "GEMINI_TIMEOUT_S", "ASSISTANT_API_PORT"):
        monkeypatch.delenv(key, raising=False)

    config = ApiConfig()

    assert config.gemini_model == "gemini-1.5-flash"
    assert config.request_timeout_s == 30
    assert config.port == 8000


def test_api_config_key_from_env(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("GOOGLE_API_KEY", "test_key")
    monkeypatch.setenv("ASSISTANT_API_PORT", "9001 # local")

    config = ApiConfig()

    assert config.gemini_api_key == "test_key"
    assert config.port == 9001
