"""Narration side channel: the speak/stop contract and slide text extraction."""

import logging
import re
from typing import Protocol

from ..core.slides import Slide

logger = logging.getLogger("DeckPlayer.narration")

_TAG_RE = re.compile(r"<[^>]*>")


class Narrator(Protocol):
    """Fire-and-forget text-to-speech. Implementations must not block."""

    def speak(self, text: str) -> None: ...

    def stop(self) -> None: ...


class NullNarrator:
    """Narration disabled."""

    def speak(self, text: str) -> None:
        pass

    def stop(self) -> None:
        pass


class LoggingNarrator:
    """Writes what would be spoken to the log. Useful for headless runs."""

    def __init__(self):
        self.speaking = False

    def speak(self, text: str) -> None:
        self.speaking = True
        logger.info(f"Narrating: {text[:80]}")

    def stop(self) -> None:
        if self.speaking:
            logger.info("Narration stopped")
        self.speaking = False


def extract_slide_text(slide: Slide) -> str:
    """Main text to read aloud for a slide.

    An explicit ``narration`` entry wins; otherwise title > subtitle >
    content (or body), with HTML tags stripped from the last.
    """
    content = slide.content
    for key in ("narration", "title", "subtitle"):
        value = content.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    for key in ("content", "body"):
        value = content.get(key)
        if isinstance(value, str) and value.strip():
            return _TAG_RE.sub("", value).strip()
    return ""
