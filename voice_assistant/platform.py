"""
Speech platform capability interface.

The controller reaches devices only through SpeechPlatform. Implementations:
- voice_assistant.local_platform.LocalSpeechPlatform (desktop audio devices)
- test fakes

Event delivery contract for implementations:
- capture events are delivered to the CaptureListener passed to start_capture
- utterance events are delivered through the Utterance callbacks
- all callbacks run on the controller's event loop thread; implementations
  that receive device events on other threads marshal them first
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Sequence


@dataclass(frozen=True)
class Voice:
    """A synthesis voice offered by the platform."""

    name: str
    lang: str
    default: bool = False
    voice_id: Optional[str] = None


@dataclass(frozen=True)
class TranscriptSegment:
    """One recognition result: provisional (interim) or complete (final)."""

    text: str
    is_final: bool


def _noop(*_args) -> None:
    return None


@dataclass(eq=False)
class Utterance:
    """One synthesis request/playback unit."""

    text: str
    lang: str
    voice: Optional[Voice] = None
    rate: float = 0.85
    pitch: float = 1.0
    volume: float = 0.8
    on_start: Callable[[], None] = field(default=_noop, repr=False)
    on_end: Callable[[], None] = field(default=_noop, repr=False)
    on_error: Callable[[str], None] = field(default=_noop, repr=False)


class CaptureListener(Protocol):
    """Receives events from a continuous capture session."""

    def on_capture_start(self) -> None: ...

    def on_capture_result(self, results: Sequence[TranscriptSegment]) -> None: ...

    def on_capture_error(self, code: str) -> None: ...

    def on_capture_end(self) -> None: ...


class MicrophoneStream(Protocol):
    """An acquired microphone stream."""

    def stop(self) -> None:
        """Stop all tracks of the stream; idempotent."""


class AudioAnalyser(Protocol):
    """Analysis graph attached to a microphone stream."""

    @property
    def frequency_bin_count(self) -> int: ...

    def frequency_data(self) -> Sequence[int]:
        """Current magnitude per frequency bin, scaled to 0..255."""

    def close(self) -> None:
        """Disconnect the graph and close its audio context; idempotent."""


class SpeechPlatform(ABC):
    """Capabilities the voice session controller needs from the platform."""

    @property
    @abstractmethod
    def supports_capture(self) -> bool: ...

    @property
    @abstractmethod
    def supports_synthesis(self) -> bool: ...

    @abstractmethod
    def start_capture(
        self,
        listener: CaptureListener,
        *,
        language: str,
        continuous: bool = True,
        interim_results: bool = True,
    ) -> None:
        """Request a capture session. Start is reported via listener.on_capture_start."""

    @abstractmethod
    def stop_capture(self) -> None:
        """Request termination of the capture session. End is reported via on_capture_end."""

    @abstractmethod
    def speak(self, utterance: Utterance) -> None:
        """Queue an utterance for playback."""

    @abstractmethod
    def cancel_speech(self) -> None:
        """Cancel the current utterance and anything queued."""

    @abstractmethod
    def list_voices(self) -> list[Voice]: ...

    @abstractmethod
    async def open_microphone(self) -> MicrophoneStream:
        """Acquire a microphone stream; raises on permission or device failure."""

    @abstractmethod
    def create_analyser(self, stream: MicrophoneStream, fft_size: int) -> AudioAnalyser: ...
