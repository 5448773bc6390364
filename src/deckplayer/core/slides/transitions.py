"""Declarative transition models and the deterministic transition selector.

Pure data: the rendering layer turns a Transition into an overlay animation.
"""

from enum import Enum
from typing import Iterable, Mapping, Optional
from pydantic import BaseModel, Field


class TransitionKind(str, Enum):
    """Visual effect played while the displayed slide is swapped."""
    ZOOM_FADE = "zoom-fade"
    CROSS_FADE = "fade"
    CHECKERBOARD = "checkerboard"
    FLASH_WHITE = "fade-white"
    PREZOOM = "prezoom"  # slow showcase zoom, only reachable through a pin


CANONICAL_DURATIONS_MS: dict[TransitionKind, int] = {
    TransitionKind.ZOOM_FADE: 900,
    TransitionKind.CROSS_FADE: 800,
    TransitionKind.CHECKERBOARD: 1000,
    TransitionKind.FLASH_WHITE: 800,
    TransitionKind.PREZOOM: 3500,
}

# Cycled by target index: index 0 -> zoom-fade, 1 -> fade, ...
DEFAULT_CYCLE: tuple[TransitionKind, ...] = (
    TransitionKind.ZOOM_FADE,
    TransitionKind.CROSS_FADE,
    TransitionKind.CHECKERBOARD,
    TransitionKind.FLASH_WHITE,
)


class Transition(BaseModel):
    """A transition effect and how long it runs."""
    kind: TransitionKind
    duration_ms: int = Field(ge=0)

    model_config = {"frozen": True}

    @property
    def swap_at_ms(self) -> int:
        """Point at which the new slide is mounted under the fading overlay."""
        return self.duration_ms // 2


class TransitionSelector:
    """Maps a navigation target to exactly one Transition.

    Pinned slide ids are checked first; everything else cycles through
    the catalog by target index. Stateless after construction.
    """

    def __init__(
        self,
        pinned: Optional[Mapping[str, TransitionKind]] = None,
        cycle: Iterable[TransitionKind] = DEFAULT_CYCLE,
        durations: Optional[Mapping[TransitionKind, int]] = None,
    ):
        self._cycle = tuple(cycle)
        if not self._cycle:
            raise ValueError("Transition cycle must contain at least one kind")
        self._pinned = {k: TransitionKind(v) for k, v in (pinned or {}).items()}
        self._durations = dict(CANONICAL_DURATIONS_MS)
        if durations:
            self._durations.update({TransitionKind(k): v for k, v in durations.items()})

    @property
    def pinned(self) -> dict[str, TransitionKind]:
        return dict(self._pinned)

    def with_pins(self, pins: Mapping[str, TransitionKind]) -> "TransitionSelector":
        """Return a selector where ``pins`` apply unless this selector already pins the id."""
        merged = {**pins, **self._pinned}
        return TransitionSelector(pinned=merged, cycle=self._cycle, durations=self._durations)

    def select(self, from_index: int, to_index: int, to_slide_id: str) -> Transition:
        kind = self._pinned.get(to_slide_id)
        if kind is None:
            kind = self._cycle[to_index % len(self._cycle)]
        return Transition(kind=kind, duration_ms=self._durations[kind])


_default_selector = TransitionSelector()


def select_transition(from_index: int, to_index: int, to_slide_id: str) -> Transition:
    """Select a transition with the default catalog and no pins."""
    return _default_selector.select(from_index, to_index, to_slide_id)
