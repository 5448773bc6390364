"""Observable playback state published by the engine."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field

from .slides import Transition


class PlaybackPhase(str, Enum):
    IDLE = "idle"
    SHOWING = "showing"
    TRANSITIONING = "transitioning"


class PlaybackState(BaseModel):
    """Snapshot of what the player is showing.

    ``current_index`` points at the slide that is visually settled; during a
    transition it flips to the target at the swap point.
    """
    current_index: int = 0
    current_slide_id: str = ""
    phase: PlaybackPhase = PlaybackPhase.IDLE
    is_playing: bool = False
    progress_pct: float = Field(default=0.0, ge=0.0, le=100.0)
    pending_answers: dict[str, Any] = Field(default_factory=dict)
    transition: Optional[Transition] = None
    transition_from_id: Optional[str] = None
    transition_to_id: Optional[str] = None
    last_error: Optional[str] = None

    @property
    def is_transitioning(self) -> bool:
        return self.phase == PlaybackPhase.TRANSITIONING

    def snapshot(self) -> "PlaybackState":
        return self.model_copy(deep=True)

    def to_summary(self) -> dict:
        return {
            "current_index": self.current_index,
            "current_slide_id": self.current_slide_id,
            "phase": self.phase.value,
            "is_playing": self.is_playing,
            "progress_pct": round(self.progress_pct, 1),
            "answers": dict(self.pending_answers),
            "transition": self.transition.model_dump(mode="json") if self.transition else None,
            "last_error": self.last_error,
        }
