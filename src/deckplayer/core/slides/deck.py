"""Ordered, validated deck of slides."""

import json
from pathlib import Path
from typing import Iterable, Optional
from pydantic import BaseModel, Field

from ..errors import EmptyDeck, InvalidDeck
from .slide import Slide
from .transitions import TransitionKind


class Deck(BaseModel):
    """Read-only ordered collection of slides with lookups by id.

    Construct through ``Deck.build`` (or ``from_json`` / ``load``) so the
    structural checks run; playback calls ``check()`` again on load.
    """
    slides: list[Slide] = Field(default_factory=list)

    model_config = {"frozen": True}

    @classmethod
    def build(cls, slides: Iterable[Slide | dict]) -> "Deck":
        deck = cls(slides=[s if isinstance(s, Slide) else Slide.model_validate(s) for s in slides])
        deck.check()
        return deck

    @classmethod
    def from_json(cls, text: str) -> "Deck":
        """Parse ``{"slides": [...]}`` (or a bare list of slides)."""
        data = json.loads(text)
        if isinstance(data, list):
            data = {"slides": data}
        if not isinstance(data, dict):
            raise InvalidDeck(
                f"Deck JSON must be an object or a list of slides, got {type(data).__name__}",
                context={"type": type(data).__name__},
            )
        return cls.build(data.get("slides", []))

    @classmethod
    def load(cls, path: Path) -> "Deck":
        if not path.exists():
            raise FileNotFoundError(f"No deck file found at {path}")
        return cls.from_json(path.read_text())

    def check(self) -> None:
        """Raise EmptyDeck / InvalidDeck if the deck cannot be played."""
        if not self.slides:
            raise EmptyDeck("Deck has no slides")

        seen: set[str] = set()
        for slide in self.slides:
            if slide.id in seen:
                raise InvalidDeck(f"Duplicate slide id '{slide.id}'", context={"slide_id": slide.id})
            seen.add(slide.id)

        for slide in self.slides:
            for rule in slide.branches or []:
                if rule.target_id not in seen:
                    raise InvalidDeck(
                        f"Slide '{slide.id}' branches to unknown slide '{rule.target_id}'",
                        context={"slide_id": slide.id, "target_id": rule.target_id},
                    )

    def __len__(self) -> int:
        return len(self.slides)

    @property
    def ids(self) -> list[str]:
        return [s.id for s in self.slides]

    def get(self, slide_id: str) -> Optional[Slide]:
        for s in self.slides:
            if s.id == slide_id:
                return s
        return None

    def index_of(self, slide_id: str) -> Optional[int]:
        for i, s in enumerate(self.slides):
            if s.id == slide_id:
                return i
        return None

    def transition_pins(self) -> dict[str, TransitionKind]:
        return {s.id: s.transition for s in self.slides if s.transition is not None}

    def to_summary(self) -> list[dict]:
        return [
            {
                "index": i,
                "id": s.id,
                "duration_ms": s.duration_ms,
                "title": s.title or "(untitled)",
                "branch_targets": [b.target_id for b in s.branches or []],
                "auto_advance": s.duration_ms > 0,
            }
            for i, s in enumerate(self.slides)
        ]
