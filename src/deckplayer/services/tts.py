"""HTTP text-to-speech narrator."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

import requests

logger = logging.getLogger("DeckPlayer.services.tts")


class HttpNarrator:
    """Narrator that fetches speech audio from a TTS endpoint.

    ``speak`` POSTs ``{"text", "voice"}`` and hands the returned audio bytes
    to ``on_audio``. ``stop`` invalidates every request still in flight, so
    audio that arrives late is dropped instead of played over the next slide.
    """

    def __init__(self, endpoint: str, on_audio: Callable[[bytes], None],
                 voice: str = "default",
                 on_stop: Optional[Callable[[], None]] = None,
                 timeout: float = 30.0, background: bool = True):
        self.endpoint = endpoint
        self.voice = voice
        self.timeout = timeout
        self._on_audio = on_audio
        self._on_stop = on_stop
        self._token = 0
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1) if background else None

    def speak(self, text: str) -> None:
        if not text or not text.strip():
            return
        with self._lock:
            self._token += 1
            token = self._token
        if self._executor is None:
            self._fetch(text, token)
        else:
            self._executor.submit(self._fetch, text, token)

    def stop(self) -> None:
        with self._lock:
            self._token += 1
        if self._on_stop:
            self._on_stop()

    def _is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._token

    def _fetch(self, text: str, token: int) -> None:
        try:
            resp = requests.post(
                self.endpoint,
                json={"text": text, "voice": self.voice},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"TTS request failed: {e}")
            return

        if not self._is_current(token):
            logger.debug("Dropping stale narration audio")
            return
        try:
            self._on_audio(resp.content)
        except Exception as e:
            logger.error(f"Audio playback error: {e}")

    def close(self) -> None:
        self.stop()
        if self._executor is not None:
            self._executor.shutdown(wait=False)
