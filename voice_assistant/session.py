"""
Voice session controller.

Owns the lifecycle of speech capture, speech output and the volume meter for
one host. Two independent channels:
- capture: idle <-> listening
- output:  idle <-> speaking

State changes only through the controller's public operations and through the
platform events it subscribes to. Every platform failure is caught here and
turned into controller state (error, channel back to idle), a host callback
and a structured event; nothing is raised into the host.
"""

from __future__ import annotations

import asyncio
import uuid
from enum import Enum
from typing import Any, Callable, Coroutine, Optional, Sequence

from logging_setup import get_logger, Component as LogComponent
from observability.events import Component as ObsComponent, EventEmitter, Severity, pii_marker
from .commands import CommandInterpreter, Interpretation
from .config import VoiceConfig
from .errors import (
    MicrophoneAccessError,
    VoiceError,
    VoiceErrorCategory,
    VoiceErrorHandler,
)
from .host import StatusCallbacks, VoiceHost
from .platform import SpeechPlatform, TranscriptSegment, Utterance
from .text_cleaning import clean_text_for_speech, truncate_for_speech
from .voices import select_voice
from .volume import VolumeMeter


class VoiceState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    SPEAKING = "speaking"


SYNTHESIS_FAILED_MESSAGE = "Voice response failed, but text is available"
SYNTHESIS_EXCEPTION_MESSAGE = "Voice synthesis error occurred"


class VoiceSessionController:
    """
    Voice session for one host.

    Usage:
        async with VoiceSessionController(platform, host) as session:
            session.start_listening()
            ...
            await session.set_response(reply_text)

    Leaving the context always runs cleanup().
    """

    def __init__(
        self,
        platform: SpeechPlatform,
        host: VoiceHost,
        *,
        config: Optional[VoiceConfig] = None,
        callbacks: Optional[StatusCallbacks] = None,
        session_id: Optional[str] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.session_id = session_id or f"voice_{uuid.uuid4().hex[:12]}"
        self.config = config or VoiceConfig()
        self._platform = platform
        self._host = host
        self._callbacks = callbacks or StatusCallbacks()
        self._sleep = sleep

        self.emitter = EventEmitter(ObsComponent.VOICE_SESSION)
        self.logger = get_logger(LogComponent.VOICE_SESSION, session_id=self.session_id)
        self.capture_logger = get_logger(LogComponent.SPEECH_CAPTURE, session_id=self.session_id)
        self.output_logger = get_logger(LogComponent.SPEECH_OUTPUT, session_id=self.session_id)

        self.interpreter = CommandInterpreter(host, session_id=self.session_id)
        self.meter = VolumeMeter(
            platform,
            interval_ms=self.config.volume_sample_interval_ms,
            fft_size=self.config.analyser_fft_size,
            on_level=self._on_volume,
            sleep=sleep,
            session_id=self.session_id,
        )

        self._initialized = False
        self._capture_supported = False
        self._synthesis_supported = False

        self._capture_state = VoiceState.IDLE
        self._capture_pending = False
        self._output_state = VoiceState.IDLE

        self._transcript = ""
        self._error: Optional[VoiceError] = None
        self._response = ""

        self._utterance: Optional[Utterance] = None
        self._speak_generation = 0

        self._cleaning_up = False
        self._background: set[asyncio.Task] = set()

    # --- Read-only state ---

    @property
    def is_supported(self) -> bool:
        return self._capture_supported

    @property
    def speech_supported(self) -> bool:
        return self._synthesis_supported

    @property
    def is_listening(self) -> bool:
        return self._capture_state is VoiceState.LISTENING

    @property
    def is_speaking(self) -> bool:
        return self._output_state is VoiceState.SPEAKING

    @property
    def status(self) -> VoiceState:
        """Combined status: listening wins over speaking."""
        if self.is_listening:
            return VoiceState.LISTENING
        return self._output_state

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def error(self) -> Optional[VoiceError]:
        return self._error

    @property
    def error_message(self) -> str:
        return self._error.message if self._error else ""

    @property
    def response(self) -> str:
        return self._response

    @property
    def volume(self) -> float:
        return self.meter.level

    # --- Lifecycle ---

    async def __aenter__(self) -> "VoiceSessionController":
        self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def initialize(self) -> None:
        """Probe platform capabilities once."""
        if self._initialized:
            return
        self._initialized = True

        try:
            self._capture_supported = bool(self._platform.supports_capture)
            self._synthesis_supported = bool(self._platform.supports_synthesis)
        except Exception as e:
            self.logger.error("Voice assistant initialization failed", error=str(e), error_type=type(e).__name__)
            self._capture_supported = self._synthesis_supported = False
            self._set_error(VoiceError(VoiceErrorCategory.CAPABILITY_UNSUPPORTED, "Failed to initialize voice assistant"))
            return

        if not self._capture_supported:
            # Without capture the whole voice feature is off for this session.
            self._synthesis_supported = False
            self._set_error(VoiceError(
                VoiceErrorCategory.CAPABILITY_UNSUPPORTED,
                "Speech recognition not supported on this platform",
            ))
            return

        if not self._synthesis_supported:
            self._set_error(VoiceError(
                VoiceErrorCategory.CAPABILITY_UNSUPPORTED,
                "Speech synthesis not supported on this platform",
            ))
        else:
            voice_count = self._list_voice_count()
            self.output_logger.info("Voices loaded", voice_count=voice_count)

        self._emit(
            "voice.initialized",
            capture_supported=self._capture_supported,
            synthesis_supported=self._synthesis_supported,
            language=self.config.language,
        )

    def cleanup(self) -> None:
        """
        Tear down capture, cancel synthesis and release the microphone.

        Safe to call repeatedly; a call made while cleanup is running returns
        immediately.
        """
        if self._cleaning_up:
            return
        self._cleaning_up = True
        try:
            if self.is_listening or self._capture_pending:
                try:
                    self._platform.stop_capture()
                except Exception as e:
                    self.capture_logger.warning("Capture stop failed during cleanup", error=str(e), error_type=type(e).__name__)
            self._capture_pending = False
            self._set_capture_state(VoiceState.IDLE)

            # Abandon any speak() still waiting for cancellation to settle.
            self._speak_generation += 1
            self.stop_speaking()

            self._stop_volume_monitoring()

            for task in list(self._background):
                task.cancel()
            self._background.clear()

            self._emit("session.cleanup")
        finally:
            self._cleaning_up = False

    # --- Capture channel ---

    def start_listening(self) -> bool:
        """Request a continuous capture session. No-op when already listening."""
        self.initialize()
        if not self._capture_supported or self.is_listening or self._capture_pending:
            return False

        self._clear_error()
        self._capture_pending = True
        try:
            self._platform.start_capture(
                self,
                language=self.config.language,
                continuous=True,
                interim_results=True,
            )
        except Exception as e:
            self._capture_pending = False
            self.capture_logger.error("Error starting recognition", error=str(e), error_type=type(e).__name__)
            self._set_error(VoiceError(
                VoiceErrorCategory.CAPTURE_FAILED,
                VoiceErrorHandler.get_user_message(VoiceErrorCategory.CAPTURE_FAILED),
            ))
            return False

        self._emit("voice.listening_requested", language=self.config.language)
        return True

    def stop_listening(self) -> bool:
        """Request capture termination. Idempotent."""
        if not (self.is_listening or self._capture_pending):
            return False
        try:
            self._platform.stop_capture()
        except Exception as e:
            self.capture_logger.error("Error stopping recognition", error=str(e), error_type=type(e).__name__)
            return False
        return True

    def toggle_listening(self) -> bool:
        if self.is_listening:
            return self.stop_listening()
        return self.start_listening()

    def on_capture_start(self) -> None:
        self.capture_logger.info("Speech recognition started")
        self._capture_pending = False
        self._set_capture_state(VoiceState.LISTENING)
        self._clear_error()
        self._spawn(self._start_volume_monitoring())

    def on_capture_result(self, results: Sequence[TranscriptSegment]) -> None:
        final_text = "".join(r.text for r in results if r.is_final)
        interim_text = "".join(r.text for r in results if not r.is_final)

        self._set_transcript(interim_text or final_text)

        command = final_text.strip()
        if not command:
            return

        self.capture_logger.info_pii("Final transcript", transcript=command)
        self._emit(
            "stt.final",
            pii=pii_marker(["transcript_text"]),
            transcript_text=command,
            transcript_length=len(command),
        )
        self._set_transcript("")
        self._dispatch(command)

    def on_capture_error(self, code: str) -> None:
        error = VoiceErrorHandler.capture_error(code)
        self.capture_logger.error("Speech recognition error", code=code, category=error.category)

        self._capture_pending = False
        self._set_error(error)
        self._set_capture_state(VoiceState.IDLE)
        self._stop_volume_monitoring()

        if error.is_transient:
            self._spawn(self._clear_transient_error(error))

    def on_capture_end(self) -> None:
        self.capture_logger.info("Speech recognition ended")
        self._capture_pending = False
        self._set_capture_state(VoiceState.IDLE)
        self._stop_volume_monitoring()

    # --- Output channel ---

    async def speak(self, text: str) -> bool:
        """
        Speak `text`, replacing whatever is being spoken.

        Returns True when an utterance was handed to the platform.
        """
        self.initialize()
        if not self._synthesis_supported or not (text or "").strip():
            self.output_logger.debug("Speech synthesis not available or no text")
            return False

        self._speak_generation += 1
        generation = self._speak_generation

        try:
            self.stop_speaking()
            await self._sleep(self.config.cancel_settle_ms / 1000.0)
            if generation != self._speak_generation:
                self.output_logger.debug("Utterance superseded before playback")
                return False

            clean_text = clean_text_for_speech(text)
            if not clean_text:
                self.output_logger.debug("No clean text to speak")
                return False
            final_text = truncate_for_speech(clean_text, self.config.max_speech_chars)

            voice, preference = select_voice(self._platform.list_voices(), self.config.language)
            utterance = Utterance(
                text=final_text,
                lang=self.config.language,
                voice=voice,
                rate=self.config.speech_rate,
                pitch=self.config.speech_pitch,
                volume=self.config.speech_volume,
            )
            utterance.on_start = lambda: self._on_utterance_start(utterance)
            utterance.on_end = lambda: self._on_utterance_end(utterance)
            utterance.on_error = lambda code: self._on_utterance_error(utterance, code)

            self._utterance = utterance
            self._platform.speak(utterance)
        except Exception as e:
            self.output_logger.error("Error in speech synthesis", error=str(e), error_type=type(e).__name__)
            self._utterance = None
            self._set_output_state(VoiceState.IDLE)
            self._host.show_message(SYNTHESIS_EXCEPTION_MESSAGE, "info")
            return False

        self.output_logger.debug(
            "Utterance queued",
            voice=voice.name if voice else None,
            voice_preference=preference,
            text_length=len(final_text),
        )
        self._emit(
            "tts.requested",
            text_length=len(final_text),
            truncated=len(clean_text) > self.config.max_speech_chars,
            voice=voice.name if voice else None,
        )
        return True

    def stop_speaking(self) -> None:
        """Cancel synthesis. Idempotent."""
        if not self._synthesis_supported:
            return
        # Detach first: the platform may report the interruption synchronously.
        utterance, self._utterance = self._utterance, None
        try:
            self._platform.cancel_speech()
        except Exception as e:
            self.output_logger.error("Error stopping speech", error=str(e), error_type=type(e).__name__)

        self._set_output_state(VoiceState.IDLE)
        if utterance is not None:
            self._emit("tts.stopped", cause="cancelled")

    async def toggle_speaking(self) -> bool:
        if self.is_speaking:
            self.stop_speaking()
            return False
        if self._response.strip():
            return await self.speak(self._response)
        return False

    async def set_response(self, text: str) -> bool:
        """Feed a host response; it is spoken when it changed and is not blank."""
        if text == self._response:
            return False
        self._response = text or ""
        if self._response.strip():
            return await self.speak(self._response)
        return False

    def _on_utterance_start(self, utterance: Utterance) -> None:
        if utterance is not self._utterance:
            return
        self.output_logger.info("Speech started")
        self._set_output_state(VoiceState.SPEAKING)
        self._clear_error()
        self._emit("tts.started", text_length=len(utterance.text))

    def _on_utterance_end(self, utterance: Utterance) -> None:
        if utterance is not self._utterance:
            return
        self.output_logger.info("Speech ended")
        self._utterance = None
        self._set_output_state(VoiceState.IDLE)
        self._emit("tts.stopped", cause="completed")

    def _on_utterance_error(self, utterance: Utterance, code: str) -> None:
        self.output_logger.warning("Speech synthesis error", code=code)
        if utterance is self._utterance:
            self._utterance = None
            self._set_output_state(VoiceState.IDLE)

        if VoiceErrorHandler.is_cancellation(code):
            return
        self._emit(
            "voice.error",
            severity=Severity.WARN,
            category=VoiceErrorCategory.SYNTHESIS_ERROR,
            code=code,
        )
        self._host.show_message(SYNTHESIS_FAILED_MESSAGE, "info")

    # --- Volume meter ---

    async def _start_volume_monitoring(self) -> None:
        if not self.is_listening:
            # capture ended before the meter got to run
            return
        try:
            await self.meter.start()
        except MicrophoneAccessError as e:
            self.logger.error("Error accessing microphone", error=str(e))
            self._set_error(VoiceError(
                VoiceErrorCategory.DEVICE_ACCESS_DENIED,
                VoiceErrorHandler.get_user_message(VoiceErrorCategory.DEVICE_ACCESS_DENIED),
            ))
            return
        if self.meter.holds_microphone:
            self._emit("mic.opened")

    def _stop_volume_monitoring(self) -> None:
        held = self.meter.holds_microphone
        self.meter.stop()
        if held:
            self._emit("mic.released")

    def _on_volume(self, level: float) -> None:
        self._callbacks.volume_changed(level)

    # --- Internals ---

    def _dispatch(self, command: str) -> None:
        try:
            result: Interpretation = self.interpreter.dispatch(command)
        except Exception as e:
            self.logger.exception("Voice command handling failed", error_type=type(e).__name__)
            self._emit("command.failed", severity=Severity.ERROR, error_type=type(e).__name__)
            return

        self._emit(
            "command.classified",
            kind=result.kind.value,
            view=result.view,
            action=result.action,
            has_effect=result.has_effect,
        )
        self._callbacks.command_handled(command, result)

    async def _clear_transient_error(self, error: VoiceError) -> None:
        await self._sleep(self.config.transient_error_clear_ms / 1000.0)
        if not self.is_listening and self._error is error:
            self._clear_error()

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> Optional[asyncio.Task]:
        # Only schedule when an event loop is running (platform events may be
        # delivered synchronously in tests).
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            return None
        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _set_capture_state(self, state: VoiceState) -> None:
        if state is self._capture_state:
            return
        self._capture_state = state
        self._callbacks.listening_changed(state is VoiceState.LISTENING)
        self._emit("voice.listening_started" if state is VoiceState.LISTENING else "voice.listening_stopped")

    def _set_output_state(self, state: VoiceState) -> None:
        if state is self._output_state:
            return
        self._output_state = state
        self._callbacks.speaking_changed(state is VoiceState.SPEAKING)

    def _set_transcript(self, text: str) -> None:
        if text == self._transcript:
            return
        self._transcript = text
        self._callbacks.transcript_updated(text)

    def _set_error(self, error: VoiceError) -> None:
        self._error = error
        self._callbacks.error_occurred(error)
        self._emit(
            "voice.error",
            severity=Severity.WARN if error.is_transient else Severity.ERROR,
            category=error.category,
            code=error.code,
            message=error.message,
        )

    def _clear_error(self) -> None:
        if self._error is None:
            return
        self._error = None
        self._callbacks.error_occurred(None)

    def _list_voice_count(self) -> int:
        try:
            return len(self._platform.list_voices())
        except Exception as e:
            self.output_logger.warning("Listing voices failed", error=str(e), error_type=type(e).__name__)
            return 0

    def _emit(self, event_type: str, severity: Severity = Severity.INFO, **kwargs: Any) -> None:
        self.emitter.emit(event_type, session_id=self.session_id, severity=severity, **kwargs)
