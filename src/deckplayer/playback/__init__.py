"""Playback package — public API re-exports."""

from .scheduler import AsyncioScheduler, Scheduler, TimerHandle
from .clock import PlaybackClock
from .navigation import resolve_next, resolve_previous
from .engine import PlaybackEngine, load_deck

__all__ = [
    "PlaybackEngine",
    "PlaybackClock",
    "load_deck",
    "resolve_next",
    "resolve_previous",
    "Scheduler",
    "AsyncioScheduler",
    "TimerHandle",
]
