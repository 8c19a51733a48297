"""
Voice bridge: dictation in, speech out.

Recognition and synthesis are provided by the host (browser, OS, or a speech API);
this module only sequences them. At most one dictation and one utterance run at a
time, each as an asyncio task, so stopping or replacing one is a task cancel.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, Protocol

from tutorchat.config import get_settings

logger = logging.getLogger(__name__)


class SpeechRecognizer(Protocol):
    def listen(self, language: str) -> AsyncIterator[str]:
        """Yield final transcripts; the stream ends on silence."""
        ...


class SpeechSynthesizer(Protocol):
    async def say(self, text: str, language: str) -> None:
        """Return once playback finishes. Cancelling the awaiting task stops playback."""
        ...


class VoiceBridge:
    def __init__(self, recognizer: SpeechRecognizer, synthesizer: SpeechSynthesizer, *, language: str | None = None) -> None:
        self.recognizer = recognizer
        self.synthesizer = synthesizer
        self.language = language or get_settings().language
        self._dictation: asyncio.Task | None = None
        self._utterance: asyncio.Task | None = None

    @property
    def recording(self) -> bool:
        return self._dictation is not None and not self._dictation.done()

    @property
    def speaking(self) -> bool:
        return self._utterance is not None and not self._utterance.done()

    # --- dictation ---

    async def _consume(self, sink: Callable[[str], object]) -> None:
        async for transcript in self.recognizer.listen(self.language):
            if transcript.strip():
                sink(transcript)

    def start_dictation(self, sink: Callable[[str], object]) -> asyncio.Task:
        """Feed each final transcript to `sink` until silence or stop_dictation()."""
        self.stop_dictation()
        task = asyncio.get_running_loop().create_task(self._consume(sink))
        task.add_done_callback(self._log_failure)
        self._dictation = task
        return task

    def stop_dictation(self) -> None:
        if self.recording:
            self._dictation.cancel()
        self._dictation = None

    # --- playback ---

    def speak(self, text: str) -> asyncio.Task:
        """Start speaking `text`, cancelling whatever is playing."""
        self.stop_speaking()
        task = asyncio.get_running_loop().create_task(self.synthesizer.say(text, self.language))
        task.add_done_callback(self._log_failure)
        self._utterance = task
        return task

    def toggle_speak(self, text: str) -> asyncio.Task | None:
        # Pressing play while something is playing only stops it.
        if self.speaking:
            self.stop_speaking()
            return None
        return self.speak(text)

    def stop_speaking(self) -> None:
        if self.speaking:
            self._utterance.cancel()
        self._utterance = None

    async def aclose(self) -> None:
        tasks = [t for t in (self._dictation, self._utterance) if t is not None and not t.done()]
        self.stop_dictation()
        self.stop_speaking()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    @staticmethod
    def _log_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Voice task failed: %s", exc)
