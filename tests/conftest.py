"""
Shared fakes for voice session tests.

FakeSpeechPlatform delivers capture and utterance events synchronously, the
way a platform that has already marshalled them onto the loop would.
"""
import asyncio
from typing import Any, Dict, List, Optional

import pytest

from observability.event_store import event_store
from voice_assistant.config import VoiceConfig
from voice_assistant.platform import SpeechPlatform, Utterance, Voice


DEFAULT_VOICES = [
    Voice(name="Alex", lang="en-US", default=True),
    Voice(name="Google US English", lang="en-US"),
    Voice(name="Google Deutsch", lang="de-DE"),
]


class FakeStream:
    def __init__(self):
        self.stop_calls = 0

    @property
    def stopped(self) -> bool:
        return self.stop_calls > 0

    def stop(self) -> None:
        self.stop_calls += 1


class FakeAnalyser:
    def __init__(self, data: List[int]):
        self.data = data
        self.closed = False

    @property
    def frequency_bin_count(self) -> int:
        return len(self.data)

    def frequency_data(self) -> List[int]:
        return list(self.data)

    def close(self) -> None:
        self.closed = True


class FakeSpeechPlatform(SpeechPlatform):
    def __init__(self, *, capture: bool = True, synthesis: bool = True, voices: Optional[List[Voice]] = None):
        self.capture = capture
        self.synthesis = synthesis
        self.voices = list(DEFAULT_VOICES if voices is None else voices)

        # capture
        self.listener = None
        self.capture_requests: List[Dict[str, Any]] = []
        self.stop_capture_calls = 0
        self.start_error: Optional[Exception] = None
        self.auto_start = True

        # synthesis
        self.calls: List[tuple] = []
        self.spoken: List[Utterance] = []
        self.active: Optional[Utterance] = None
        self.auto_play = True
        self.speak_error: Optional[Exception] = None

        # microphone
        self.streams: List[FakeStream] = []
        self.analysers: List[FakeAnalyser] = []
        self.open_calls = 0
        self.mic_error: Optional[Exception] = None
        self.analyser_error: Optional[Exception] = None
        self.open_gate: Optional[asyncio.Event] = None
        self.analyser_data = [255] * 128

    @property
    def supports_capture(self) -> bool:
        return self.capture

    @property
    def supports_synthesis(self) -> bool:
        return self.synthesis

    def start_capture(self, listener, *, language, continuous=True, interim_results=True):
        if self.start_error is not None:
            raise self.start_error
        self.listener = listener
        self.capture_requests.append({
            "language": language,
            "continuous": continuous,
            "interim_results": interim_results,
        })
        if self.auto_start:
            listener.on_capture_start()

    def stop_capture(self):
        self.stop_capture_calls += 1
        listener, self.listener = self.listener, None
        if listener is not None:
            listener.on_capture_end()

    def speak(self, utterance):
        if self.speak_error is not None:
            raise self.speak_error
        self.calls.append(("speak", utterance.text))
        self.spoken.append(utterance)
        self.active = utterance
        if self.auto_play:
            utterance.on_start()

    def cancel_speech(self):
        self.calls.append(("cancel",))
        active, self.active = self.active, None
        if active is not None:
            active.on_error("interrupted")

    def finish_speech(self):
        active, self.active = self.active, None
        if active is not None:
            active.on_end()

    def fail_speech(self, code: str):
        active, self.active = self.active, None
        if active is not None:
            active.on_error(code)

    def list_voices(self):
        return list(self.voices)

    async def open_microphone(self):
        self.open_calls += 1
        if self.open_gate is not None:
            await self.open_gate.wait()
        if self.mic_error is not None:
            raise self.mic_error
        stream = FakeStream()
        self.streams.append(stream)
        return stream

    def create_analyser(self, stream, fft_size):
        if self.analyser_error is not None:
            raise self.analyser_error
        analyser = FakeAnalyser(self.analyser_data[: fft_size // 2])
        self.analysers.append(analyser)
        return analyser


class FakeHost:
    def __init__(self):
        self.navigations: List[str] = []
        self.prompts: List[str] = []
        self.actions: List[tuple] = []
        self.messages: List[tuple] = []

    def navigate(self, view_id):
        self.navigations.append(view_id)

    def set_prompt(self, text):
        self.prompts.append(text)

    def execute_action(self, action, payload=None):
        self.actions.append((action, payload))

    def show_message(self, text, severity="info"):
        self.messages.append((text, severity))


class RecordingSleep:
    """Async sleep stand-in: records delays and yields to the loop once."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def platform():
    return FakeSpeechPlatform()


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def voice_config():
    return VoiceConfig()


@pytest.fixture(autouse=True)
def clean_event_store():
    event_store.clear()
    yield
    event_store.clear()
