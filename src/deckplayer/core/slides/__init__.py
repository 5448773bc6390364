"""Slides package — public API re-exports."""

from .transitions import (
    CANONICAL_DURATIONS_MS,
    DEFAULT_CYCLE,
    Transition,
    TransitionKind,
    TransitionSelector,
    select_transition,
)
from .slide import BranchRule, Slide
from .deck import Deck

__all__ = [
    "Slide",
    "BranchRule",
    "Deck",
    "Transition",
    "TransitionKind",
    "TransitionSelector",
    "select_transition",
    "CANONICAL_DURATIONS_MS",
    "DEFAULT_CYCLE",
]
