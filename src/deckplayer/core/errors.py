"""Exception hierarchy for deck loading and playback."""

from typing import Any, Optional


class DeckError(Exception):
    """Base exception for all deck and playback errors."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}

    def __str__(self):
        base = super().__str__()
        if self.context:
            return f"{base} Context: {self.context}"
        return base


# ── Load-time errors (fatal to deck construction) ──────────────────────

class EmptyDeck(DeckError):
    """A deck must contain at least one slide."""


class InvalidDeck(DeckError):
    """Duplicate slide id or a branch pointing at a slide that does not exist."""


# ── Navigation-time errors (recoverable) ───────────────────────────────

class BrokenBranch(DeckError):
    """Navigation resolved to a slide id that is not in the deck."""

    def __init__(self, source_id: str, target_id: str):
        super().__init__(
            f"Slide '{source_id}' resolved to unknown slide '{target_id}'",
            context={"source_id": source_id, "target_id": target_id},
        )
        self.source_id = source_id
        self.target_id = target_id


# ── Other ──────────────────────────────────────────────────────────────

class ConfigError(DeckError):
    """Invalid player configuration."""


class TimerInvariantError(AssertionError):
    """A timer was armed while another one for the same concern was alive."""
