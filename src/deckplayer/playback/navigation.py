"""Next/previous slide resolution.

Forward navigation consults the current slide's branch table (first match
wins) and otherwise falls through to the linear successor, wrapping from the
last slide back to the first. Backward navigation is always linear.
"""

import logging
from typing import Any, Optional

from ..core.errors import BrokenBranch
from ..core.slides import Deck

logger = logging.getLogger("DeckPlayer.playback.navigation")


def linear_successor(deck: Deck, index: int) -> int:
    return (index + 1) % len(deck)


def linear_predecessor(deck: Deck, index: int) -> int:
    return (index - 1) % len(deck)


def resolve_next(deck: Deck, current_id: str, answer: Optional[Any] = None) -> str:
    """Return the id of the slide that follows ``current_id``.

    Raises BrokenBranch if ``current_id`` or the resolved target is not in
    the deck.
    """
    index = deck.index_of(current_id)
    if index is None:
        raise BrokenBranch(current_id, current_id)
    slide = deck.slides[index]

    target_id = None
    for rule in slide.branches or []:
        if rule.matches(answer):
            target_id = rule.target_id
            break

    if target_id is None:
        target_id = deck.slides[linear_successor(deck, index)].id
    elif deck.get(target_id) is None:
        logger.error(f"Branch on '{current_id}' points at missing slide '{target_id}'")
        raise BrokenBranch(current_id, target_id)

    return target_id


def resolve_previous(deck: Deck, current_id: str) -> str:
    index = deck.index_of(current_id)
    if index is None:
        raise BrokenBranch(current_id, current_id)
    return deck.slides[linear_predecessor(deck, index)].id
