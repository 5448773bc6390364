"""Playback clock — the only owner of auto-advance and progress timers."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.errors import TimerInvariantError
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger("DeckPlayer.playback.clock")

DEFAULT_TICK_MS = 100


@dataclass
class _Countdown:
    duration_ms: int
    elapsed_ms: float
    on_fire: Callable[[], None]


class PlaybackClock:
    """One-shot auto-advance timer plus a recurring progress sampler.

    Progress is computed from a captured start time, not from tick counts.
    Every callback carries the generation it was armed under; ``disarm`` and
    ``pause`` bump the generation, so a callback that is already queued on
    the host loop becomes a no-op.
    """

    def __init__(self, scheduler: Scheduler,
                 on_progress: Optional[Callable[[float], None]] = None,
                 tick_ms: int = DEFAULT_TICK_MS):
        if tick_ms <= 0:
            raise ValueError("tick_ms must be positive")
        self._scheduler = scheduler
        self._on_progress = on_progress
        self._tick_ms = tick_ms

        self._generation = 0
        self._advance_handle: Optional[TimerHandle] = None
        self._sampler_handle: Optional[TimerHandle] = None
        self._countdown: Optional[_Countdown] = None
        self._started_at = 0.0
        self._paused: Optional[_Countdown] = None
        self._progress = 0.0

    # ── Introspection ───────────────────────────────────────────────────

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_armed(self) -> bool:
        return self._advance_handle is not None

    @property
    def is_paused(self) -> bool:
        return self._paused is not None

    @property
    def outstanding_timers(self) -> int:
        return sum(h is not None for h in (self._advance_handle, self._sampler_handle))

    @property
    def progress_pct(self) -> float:
        return self._progress

    # ── Control ─────────────────────────────────────────────────────────

    def arm_auto_advance(self, duration_ms: int, on_fire: Callable[[], None]) -> bool:
        """Schedule ``on_fire`` after ``duration_ms``. Returns False for 0 (wait forever)."""
        if self.outstanding_timers:
            raise TimerInvariantError("arm_auto_advance called while timers are outstanding")
        self._paused = None
        self._progress = 0.0
        if duration_ms <= 0:
            return False
        self._start(_Countdown(duration_ms=duration_ms, elapsed_ms=0.0, on_fire=on_fire))
        return True

    def disarm(self) -> None:
        """Cancel both timers and forget any paused countdown. Idempotent."""
        self._invalidate()
        self._countdown = None
        self._paused = None

    def pause(self) -> bool:
        """Stop the countdown, keeping elapsed progress for ``resume``."""
        if self._countdown is None:
            return False
        self._sample()
        elapsed = min(float(self._countdown.duration_ms), self._elapsed_ms())
        paused = _Countdown(self._countdown.duration_ms, elapsed, self._countdown.on_fire)
        self.disarm()
        self._paused = paused
        logger.debug(f"Paused at {elapsed:.0f}/{paused.duration_ms}ms")
        return True

    def resume(self) -> bool:
        """Continue a paused countdown for its remaining time."""
        if self._paused is None:
            return False
        if self.outstanding_timers:
            raise TimerInvariantError("resume called while timers are outstanding")
        countdown, self._paused = self._paused, None
        self._start(countdown)
        return True

    def reset_progress(self) -> None:
        self._progress = 0.0

    # ── Internals ───────────────────────────────────────────────────────

    def _invalidate(self) -> None:
        self._generation += 1
        for handle in (self._advance_handle, self._sampler_handle):
            if handle is not None:
                handle.cancel()
        self._advance_handle = None
        self._sampler_handle = None

    def _start(self, countdown: _Countdown) -> None:
        generation = self._generation
        self._countdown = countdown
        self._started_at = self._scheduler.now() - countdown.elapsed_ms / 1000.0
        remaining_ms = max(0.0, countdown.duration_ms - countdown.elapsed_ms)
        self._advance_handle = self._scheduler.call_later(
            remaining_ms / 1000.0, lambda: self._fire(generation))
        self._schedule_tick(generation)

    def _schedule_tick(self, generation: int) -> None:
        self._sampler_handle = self._scheduler.call_later(
            self._tick_ms / 1000.0, lambda: self._tick(generation))

    def _tick(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._sampler_handle = None
        self._sample()
        self._schedule_tick(generation)

    def _fire(self, generation: int) -> None:
        if generation != self._generation or self._countdown is None:
            return
        on_fire = self._countdown.on_fire
        self._set_progress(100.0)
        self.disarm()
        on_fire()

    def _elapsed_ms(self) -> float:
        return (self._scheduler.now() - self._started_at) * 1000.0

    def _sample(self) -> None:
        if self._countdown is None:
            return
        pct = min(100.0, self._elapsed_ms() / self._countdown.duration_ms * 100.0)
        self._set_progress(pct)

    def _set_progress(self, pct: float) -> None:
        # Monotonic within one countdown
        if pct <= self._progress:
            return
        self._progress = pct
        if self._on_progress:
            self._on_progress(pct)
