"""
Microphone volume meter.

While capture is active the meter owns a microphone stream and an analyser on
that stream, samples the analyser at a fixed interval and keeps the latest
level on a 0..100 scale. stop() releases everything at once: sampling task,
analyser (graph + audio context) and stream tracks.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

from logging_setup import get_logger, Component
from .errors import MicrophoneAccessError
from .platform import AudioAnalyser, MicrophoneStream, SpeechPlatform


class VolumeMeter:
    """Samples microphone amplitude for display."""

    def __init__(
        self,
        platform: SpeechPlatform,
        *,
        interval_ms: int = 100,
        fft_size: int = 256,
        on_level: Optional[Callable[[float], None]] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
        session_id: Optional[str] = None,
    ):
        self._platform = platform
        self._interval_s = interval_ms / 1000.0
        self._fft_size = fft_size
        self._on_level = on_level
        self._sleep = sleep
        self.logger = get_logger(Component.VOLUME_METER, session_id=session_id)

        self.level: float = 0.0
        self._stream: Optional[MicrophoneStream] = None
        self._analyser: Optional[AudioAnalyser] = None
        self._task: Optional[asyncio.Task] = None
        # Bumped by every start/stop; an open that finishes under an old
        # generation releases its stream immediately.
        self._generation = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def holds_microphone(self) -> bool:
        return self._stream is not None

    async def start(self) -> None:
        """
        Acquire the microphone and start sampling.

        Raises MicrophoneAccessError when the stream cannot be acquired.
        """
        self.stop()
        generation = self._generation

        # The open keeps running if this start is cancelled, so the stream it
        # eventually returns can still be released.
        opening = asyncio.ensure_future(self._platform.open_microphone())
        try:
            stream = await asyncio.shield(opening)
        except asyncio.CancelledError:
            opening.add_done_callback(self._release_orphaned_stream)
            raise
        except Exception as e:
            raise MicrophoneAccessError(str(e) or type(e).__name__) from e

        if generation != self._generation:
            # stop() ran while the microphone was opening
            stream.stop()
            self.logger.debug("Microphone opened after stop; released")
            return

        self._stream = stream
        try:
            self._analyser = self._platform.create_analyser(stream, self._fft_size)
        except Exception as e:
            self.stop()
            raise MicrophoneAccessError(f"Audio analysis unavailable: {e}") from e

        self._task = asyncio.get_running_loop().create_task(self._sample_loop(generation))
        self.logger.debug("Volume metering started", interval_ms=int(self._interval_s * 1000))

    def stop(self) -> None:
        """Stop sampling and release all audio resources. Safe to call repeatedly."""
        self._generation += 1

        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
            self._task = None

        if self._analyser is not None:
            analyser, self._analyser = self._analyser, None
            try:
                analyser.close()
            except Exception as e:
                self.logger.warning("Analyser close failed", error=str(e), error_type=type(e).__name__)

        if self._stream is not None:
            stream, self._stream = self._stream, None
            try:
                stream.stop()
            except Exception as e:
                self.logger.warning("Microphone stop failed", error=str(e), error_type=type(e).__name__)
            self.logger.debug("Microphone released")

        self._set_level(0.0)

    def sample(self) -> float:
        """Read the analyser once and update the level."""
        if self._analyser is None:
            return self.level
        data = self._analyser.frequency_data()
        if not data:
            return self.level
        average = sum(data) / len(data)
        self._set_level(min(100.0, (average / 255.0) * 100.0))
        return self.level

    def _release_orphaned_stream(self, opening: asyncio.Future) -> None:
        if opening.cancelled() or opening.exception() is not None:
            return
        try:
            opening.result().stop()
        except Exception as e:
            self.logger.warning("Microphone stop failed", error=str(e), error_type=type(e).__name__)
            return
        self.logger.debug("Microphone opened after cancellation; released")

    async def _sample_loop(self, generation: int) -> None:
        while generation == self._generation:
            try:
                self.sample()
            except Exception as e:
                self.logger.warning("Volume sample failed", error=str(e), error_type=type(e).__name__)
            await self._sleep(self._interval_s)

    def _set_level(self, level: float) -> None:
        changed = level != self.level
        self.level = level
        if changed and self._on_level is not None:
            self._on_level(level)
