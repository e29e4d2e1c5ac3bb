"""
SpeechPlatform for desktop Python.

- Capture: SpeechRecognition background listener (Google Web Speech engine).
  Each detected phrase is reported as one final result; the engine has no
  interim results.
- Synthesis: pyttsx3 on a single worker thread (the engine is not thread-safe).
  cancel_speech() only bumps a generation; the engine's word callback on the
  worker stops playback once its generation is stale.
- Microphone stream + analyser: sounddevice InputStream and a numpy FFT that
  reports byte-scaled magnitudes per bin, like a browser AnalyserNode.

Device callbacks arrive on worker threads and are posted to the controller's
event loop with call_soon_threadsafe.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, Sequence

import numpy as np
import pyttsx3
import sounddevice as sd
import speech_recognition as sr

from logging_setup import get_logger, Component
from .platform import CaptureListener, SpeechPlatform, TranscriptSegment, Utterance, Voice


logger = get_logger(Component.LOCAL_PLATFORM)

# pyttsx3 rate is words per minute; utterance rate 1.0 maps to this.
BASE_WORDS_PER_MINUTE = 200

# AnalyserNode defaults
MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0
SMOOTHING_TIME_CONSTANT = 0.8


class LocalMicrophoneStream:
    """sounddevice input stream keeping the most recent block."""

    def __init__(self, *, sample_rate: int = 16000, block_size: int = 1024):
        self._lock = threading.Lock()
        self._latest = np.zeros(block_size, dtype=np.float32)
        self._stopped = False
        self._stream = sd.InputStream(
            samplerate=sample_rate,
            channels=1,
            dtype="float32",
            blocksize=block_size,
            callback=self._on_block,
        )
        self._stream.start()

    def _on_block(self, indata, frames, time_info, status) -> None:
        if status:
            logger.debug("Input stream status", status=str(status))
        with self._lock:
            self._latest = indata[:, 0].copy()

    def latest_block(self) -> np.ndarray:
        with self._lock:
            return self._latest

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._stream.stop()
        self._stream.close()


class LocalAnalyser:
    """FFT analyser over the latest microphone block."""

    def __init__(self, stream: LocalMicrophoneStream, fft_size: int = 256):
        self._stream = stream
        self._fft_size = fft_size
        self._window = np.blackman(fft_size)
        self._smoothed = np.zeros(fft_size // 2)
        self._closed = False

    @property
    def frequency_bin_count(self) -> int:
        return self._fft_size // 2

    def frequency_data(self) -> Sequence[int]:
        if self._closed:
            return []
        frame = self._stream.latest_block()[-self._fft_size:]
        if len(frame) < self._fft_size:
            frame = np.pad(frame, (self._fft_size - len(frame), 0))

        spectrum = np.abs(np.fft.rfft(frame * self._window))[: self.frequency_bin_count] / self._fft_size
        self._smoothed = SMOOTHING_TIME_CONSTANT * self._smoothed + (1 - SMOOTHING_TIME_CONSTANT) * spectrum

        decibels = 20 * np.log10(np.maximum(self._smoothed, 1e-12))
        scaled = (decibels - MIN_DECIBELS) * 255.0 / (MAX_DECIBELS - MIN_DECIBELS)
        return np.clip(scaled, 0, 255).astype(np.uint8).tolist()

    def close(self) -> None:
        self._closed = True


def _voice_language(voice: Any) -> str:
    """First language tag of a pyttsx3 voice; drivers return str or length-prefixed bytes."""
    languages = getattr(voice, "languages", None) or []
    if not languages:
        return ""
    lang = languages[0]
    if isinstance(lang, bytes):
        lang = lang.decode("utf-8", errors="ignore")
    lang = "".join(ch for ch in lang if ch.isprintable()).strip().replace("_", "-")
    parts = lang.split("-")
    if len(parts) >= 2:
        return f"{parts[0].lower()}-{parts[1].upper()}"
    return lang.lower()


class LocalSpeechPlatform(SpeechPlatform):
    """Desktop audio devices behind the SpeechPlatform interface."""

    def __init__(self, *, sample_rate: int = 16000, phrase_time_limit: Optional[float] = None):
        self._sample_rate = sample_rate
        self._phrase_time_limit = phrase_time_limit
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self._recognizer = sr.Recognizer()
        self._stop_background: Optional[Callable[..., None]] = None
        self._listener: Optional[CaptureListener] = None

        self._tts_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tts")
        self._engine: Any = None
        self._voices: Optional[list[Voice]] = None
        # Guards the generation fields shared by the loop and the tts worker.
        self._speech_lock = threading.Lock()
        self._speech_generation = 0
        self._playing_generation: Optional[int] = None

    # --- Capabilities ---

    @property
    def supports_capture(self) -> bool:
        try:
            return bool(sr.Microphone.list_microphone_names())
        except (AttributeError, OSError) as e:
            # AttributeError: PyAudio is not installed
            logger.warning("Microphone capture unavailable", error=str(e), error_type=type(e).__name__)
            return False

    @property
    def supports_synthesis(self) -> bool:
        try:
            self._tts_executor.submit(self._ensure_engine).result()
        except (ImportError, OSError, RuntimeError) as e:
            logger.warning("Speech synthesis unavailable", error=str(e), error_type=type(e).__name__)
            return False
        return True

    # --- Capture ---

    def start_capture(
        self,
        listener: CaptureListener,
        *,
        language: str,
        continuous: bool = True,
        interim_results: bool = True,
    ) -> None:
        if self._stop_background is not None:
            raise RuntimeError("Capture session already active")

        self._loop = asyncio.get_running_loop()
        self._listener = listener

        def on_phrase(recognizer: sr.Recognizer, audio: sr.AudioData) -> None:
            try:
                text = recognizer.recognize_google(audio, language=language)
            except sr.UnknownValueError:
                return
            except sr.RequestError as e:
                logger.warning("Recognition request failed", error=str(e))
                self._post(listener.on_capture_error, "network")
                self._post(self.stop_capture)
                return
            self._post(listener.on_capture_result, [TranscriptSegment(text=text, is_final=True)])
            if not continuous:
                self._post(self.stop_capture)

        microphone = sr.Microphone(sample_rate=self._sample_rate)
        self._stop_background = self._recognizer.listen_in_background(
            microphone,
            on_phrase,
            phrase_time_limit=self._phrase_time_limit,
        )
        logger.debug("Background listener started", language=language, interim_results=False)
        self._loop.call_soon(listener.on_capture_start)

    def stop_capture(self) -> None:
        stopper, self._stop_background = self._stop_background, None
        listener, self._listener = self._listener, None
        if stopper is None:
            return
        stopper(wait_for_stop=False)
        if listener is not None:
            self._post(listener.on_capture_end)

    # --- Synthesis ---

    def list_voices(self) -> list[Voice]:
        if self._voices is None:
            self._voices = self._tts_executor.submit(self._load_voices).result()
        return list(self._voices)

    def speak(self, utterance: Utterance) -> None:
        self._loop = asyncio.get_running_loop()
        with self._speech_lock:
            generation = self._speech_generation
        self._tts_executor.submit(self._play, utterance, generation)

    def cancel_speech(self) -> None:
        # The engine itself is only touched on the tts worker; see _on_word.
        with self._speech_lock:
            self._speech_generation += 1

    def _ensure_engine(self) -> Any:
        if self._engine is None:
            engine = pyttsx3.init()
            engine.connect("started-word", self._on_word)
            self._engine = engine
        return self._engine

    def _is_stale(self, generation: int) -> bool:
        with self._speech_lock:
            return generation != self._speech_generation

    def _on_word(self, name: Any, location: int, length: int) -> None:
        # Runs on the tts worker inside runAndWait().
        with self._speech_lock:
            stale = (
                self._playing_generation is not None
                and self._playing_generation != self._speech_generation
            )
        if stale:
            self._engine.stop()

    def _load_voices(self) -> list[Voice]:
        engine = self._ensure_engine()
        default_id = engine.getProperty("voice")
        return [
            Voice(
                name=v.name or v.id,
                lang=_voice_language(v),
                default=v.id == default_id,
                voice_id=v.id,
            )
            for v in engine.getProperty("voices")
        ]

    def _play(self, utterance: Utterance, generation: int) -> None:
        # Runs on the tts worker thread.
        if self._is_stale(generation):
            self._post(utterance.on_error, "canceled")
            return

        engine = self._ensure_engine()
        engine.setProperty("rate", int(BASE_WORDS_PER_MINUTE * utterance.rate))
        engine.setProperty("volume", utterance.volume)
        if utterance.voice is not None and utterance.voice.voice_id:
            engine.setProperty("voice", utterance.voice.voice_id)

        with self._speech_lock:
            self._playing_generation = generation
        self._post(utterance.on_start)
        try:
            engine.say(utterance.text)
            engine.runAndWait()
        except RuntimeError as e:
            logger.warning("pyttsx3 playback failed", error=str(e))
            self._post(utterance.on_error, "synthesis-failed")
            return
        finally:
            with self._speech_lock:
                self._playing_generation = None

        if self._is_stale(generation):
            self._post(utterance.on_error, "interrupted")
        else:
            self._post(utterance.on_end)

    # --- Microphone ---

    async def open_microphone(self) -> LocalMicrophoneStream:
        # Opening the PortAudio stream blocks.
        return await asyncio.to_thread(LocalMicrophoneStream, sample_rate=self._sample_rate)

    def create_analyser(self, stream: LocalMicrophoneStream, fft_size: int) -> LocalAnalyser:
        return LocalAnalyser(stream, fft_size)

    # --- Internals ---

    def _post(self, fn: Callable[..., Any], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(fn, *args)

    def close(self) -> None:
        self.stop_capture()
        self.cancel_speech()
        self._tts_executor.shutdown(wait=False, cancel_futures=True)
