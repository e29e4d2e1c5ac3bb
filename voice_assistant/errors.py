"""
Voice error handling.

Maps platform error codes (recognition engine, synthesis engine, microphone)
to stable categories. Every failure ends up as controller state plus a
user-facing message; none of them is raised into the host.
"""
from dataclasses import dataclass
from typing import Optional


class VoiceAssistantError(Exception):
    """Base class for errors raised by voice assistant components."""


class MicrophoneAccessError(VoiceAssistantError):
    """The microphone stream could not be acquired."""


class VoiceErrorCategory:
    """Stable voice error categories."""

    # Platform lacks the speech APIs; not recoverable within the session
    CAPABILITY_UNSUPPORTED = "voice.capability_unsupported"

    # Microphone permission refused; retriable
    DEVICE_ACCESS_DENIED = "voice.device_access_denied"

    # Network / audio-capture errors from the recognition engine; auto-cleared
    TRANSIENT_SESSION = "capture.transient_error"

    # Any other recognition failure, including a failed start request
    CAPTURE_FAILED = "capture.failed"

    # Synthesis failure not caused by our own cancellation
    SYNTHESIS_ERROR = "synthesis.error"


# Recognition error codes that clear themselves after a short delay.
TRANSIENT_CAPTURE_CODES = frozenset({"network", "audio-capture"})

# Synthesis error codes produced by our own cancel(); never surfaced.
CANCELLATION_SYNTHESIS_CODES = frozenset({"interrupted", "canceled"})


@dataclass(frozen=True)
class VoiceError:
    """An error surfaced to the host."""

    category: str
    message: str
    code: Optional[str] = None

    @property
    def is_transient(self) -> bool:
        return self.category == VoiceErrorCategory.TRANSIENT_SESSION


class VoiceErrorHandler:
    """Classifies platform error codes."""

    @staticmethod
    def classify_capture_error(code: str) -> str:
        """
        Classify a recognition engine error code.

        Codes follow the speech recognition engine vocabulary
        ("network", "audio-capture", "not-allowed", "no-speech", ...).
        """
        normalized = (code or "").strip().lower()

        if normalized in TRANSIENT_CAPTURE_CODES:
            return VoiceErrorCategory.TRANSIENT_SESSION

        if normalized in ("not-allowed", "service-not-allowed"):
            return VoiceErrorCategory.DEVICE_ACCESS_DENIED

        return VoiceErrorCategory.CAPTURE_FAILED

    @staticmethod
    def capture_error(code: str) -> VoiceError:
        return VoiceError(
            category=VoiceErrorHandler.classify_capture_error(code),
            message=f"Recognition error: {code}",
            code=code,
        )

    @staticmethod
    def is_cancellation(code: Optional[str]) -> bool:
        """True for synthesis errors caused by a user-initiated cancel."""
        return (code or "").strip().lower() in CANCELLATION_SYNTHESIS_CODES

    @staticmethod
    def get_user_message(category: str) -> str:
        """User-facing message for a category, used when no platform text is available."""
        messages = {
            VoiceErrorCategory.CAPABILITY_UNSUPPORTED: "Voice features are not supported on this platform",
            VoiceErrorCategory.DEVICE_ACCESS_DENIED: "Microphone access denied",
            VoiceErrorCategory.TRANSIENT_SESSION: "Voice input interrupted, try again in a moment",
            VoiceErrorCategory.CAPTURE_FAILED: "Failed to start listening",
            VoiceErrorCategory.SYNTHESIS_ERROR: "Voice response failed, but text is available",
        }
        return messages.get(category, "Voice assistant error")
