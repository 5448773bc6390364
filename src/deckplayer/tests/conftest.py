"""Shared fixtures: a virtual-time scheduler and sample decks."""

import heapq
import itertools
from typing import Callable
from unittest.mock import MagicMock

import pytest

from deckplayer.config import PlayerSettings
from deckplayer.core.slides import BranchRule, Deck, Slide
from deckplayer.playback import PlaybackEngine


class _Handle:
    def __init__(self, scheduler: "ManualScheduler"):
        self._scheduler = scheduler
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler: time only moves when a test calls advance()."""

    def __init__(self):
        self._now = 0.0
        self._queue: list = []
        self._seq = itertools.count()
        self.handles: list[_Handle] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Handle:
        handle = _Handle(self)
        # Round to whole microseconds so 0.1s ticks do not drift past deadlines
        due = round(self._now + max(0.0, delay), 6)
        heapq.heappush(self._queue, (due, next(self._seq), handle, callback))
        self.handles.append(handle)
        return handle

    def advance(self, seconds: float) -> None:
        target = round(self._now + seconds, 6)
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            self._now = due
            if handle.cancelled:
                continue
            handle.fired = True
            callback()
        self._now = target

    def advance_ms(self, ms: float) -> None:
        self.advance(ms / 1000.0)

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h, _ in self._queue if not h.cancelled)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def settings():
    return PlayerSettings(narration_settle_ms=300)


@pytest.fixture
def narrator():
    return MagicMock(spec=["speak", "stop"])


@pytest.fixture
def analytics():
    return MagicMock(spec=["record_answer"])


@pytest.fixture
def linear_deck():
    return Deck.build([
        Slide(id="A", duration_ms=1000, content={"title": "Alpha"}),
        Slide(id="B", duration_ms=2000, content={"title": "Bravo"}),
        Slide(id="C", duration_ms=3000, content={"title": "Charlie"}),
    ])


@pytest.fixture
def quiz_deck():
    """A branches on yes/no; D is A's linear successor."""
    return Deck.build([
        Slide(id="A", duration_ms=0, content={"title": "Do you eat fish?"}, branches=[
            BranchRule(target_id="B", value="yes"),
            BranchRule(target_id="C", value="no"),
        ]),
        Slide(id="D", duration_ms=1000, content={"title": "Maybe"}),
        Slide(id="B", duration_ms=1000, content={"title": "Great"}),
        Slide(id="C", duration_ms=1000, content={"title": "Consider it"}),
    ])


@pytest.fixture
def make_engine(scheduler, narrator, analytics, settings):
    def _make(deck: Deck, **kwargs) -> PlaybackEngine:
        kwargs.setdefault("narrator", narrator)
        kwargs.setdefault("analytics", analytics)
        kwargs.setdefault("settings", settings)
        return PlaybackEngine(deck, scheduler, **kwargs)
    return _make
