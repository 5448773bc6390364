"""Slide data model and branch rules."""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Literal, Optional
from pydantic import AliasChoices, BaseModel, Field

from .transitions import TransitionKind

logger = logging.getLogger("DeckPlayer.core.slides")

BranchOp = Literal[
    "equals", "not_equals", "in", "not_in",
    "gt", "gte", "lt", "lte", "truthy", "always",
]

_MISSING = object()


class BranchRule(BaseModel):
    """Jump to ``target_id`` when the submitted answer satisfies the rule.

    Either a declarative ``op``/``value`` pair or a Python ``predicate``
    callable (the callable wins when both are given). ``key`` reads a single
    field out of a mapping answer, e.g. ``{"omega3": 1, "omega6": 3}``.
    ``always`` matches unconditionally, including when no answer was given.
    """
    target_id: str = Field(validation_alias=AliasChoices("target_id", "targetId", "target"))
    op: BranchOp = "equals"
    value: Any = None
    key: Optional[str] = None
    predicate: Optional[Callable[[Any], bool]] = Field(default=None, exclude=True)

    model_config = {"frozen": True}

    def matches(self, answer: Any) -> bool:
        subject = answer
        if self.key is not None:
            subject = answer.get(self.key, _MISSING) if isinstance(answer, Mapping) else _MISSING
            if subject is _MISSING and self.op != "always":
                return False

        if self.predicate is not None:
            try:
                return bool(self.predicate(subject))
            except Exception as e:
                logger.debug(f"Predicate for '{self.target_id}' raised, treated as non-match: {e}")
                return False

        try:
            return self._evaluate(subject)
        except (TypeError, ValueError, KeyError) as e:
            logger.debug(f"Branch to '{self.target_id}' treated as non-match: {e}")
            return False

    def _evaluate(self, subject: Any) -> bool:
        op = self.op
        if op == "always":
            return True
        if op == "truthy":
            return bool(subject)
        if op == "equals":
            return subject is not None and subject == self.value
        if op == "not_equals":
            return subject is not None and subject != self.value
        if op == "in":
            return subject is not None and subject in self.value
        if op == "not_in":
            return subject is not None and subject not in self.value
        if subject is None:
            return False
        # Numeric comparisons accept numeric strings (form inputs arrive as text)
        left, right = float(subject), float(self.value)
        if op == "gt":
            return left > right
        if op == "gte":
            return left >= right
        if op == "lt":
            return left < right
        return left <= right


class Slide(BaseModel):
    """One timed unit of presentation content.

    ``content`` is opaque to playback; only the narration text extractor and
    the rendering layer look inside it. ``duration_ms == 0`` means the slide
    never auto-advances. ``branches`` absent means the linear successor.
    """
    id: str = Field(min_length=1)
    duration_ms: int = Field(
        default=0, ge=0,
        validation_alias=AliasChoices("duration_ms", "durationMs", "duration"),
    )
    content: dict[str, Any] = Field(default_factory=dict)
    branches: Optional[list[BranchRule]] = None
    transition: Optional[TransitionKind] = None

    model_config = {"frozen": True}

    @property
    def has_branches(self) -> bool:
        return self.branches is not None

    @property
    def title(self) -> str:
        return str(self.content.get("title") or "")
