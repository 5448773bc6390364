"""Playback engine — the state machine behind the player controls.

States: IDLE -> SHOWING(slide) -> TRANSITIONING(from, to) -> SHOWING(to).
``is_playing`` is orthogonal to SHOWING and decides whether the clock is
armed for the slide on screen. Navigation always disarms the clock first and
abandons any transition in flight; transitions are never queued.
"""

import logging
from typing import Any, Callable, Iterable, Optional

from ..config import PlayerSettings
from ..core.errors import BrokenBranch, DeckError
from ..core.slides import Deck, Slide, TransitionSelector
from ..core.state import PlaybackPhase, PlaybackState
from ..narration.narrator import Narrator, NullNarrator, extract_slide_text
from ..services.analytics import AnalyticsSink, AnswerEvent, HttpAnalyticsSink, NullAnalytics
from ..services.tts import HttpNarrator
from .clock import PlaybackClock
from .navigation import resolve_next, resolve_previous
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle

logger = logging.getLogger("DeckPlayer.playback.engine")

Listener = Callable[[PlaybackState], None]


class PlaybackEngine:
    """Owns PlaybackState; UI code reads snapshots and calls the controls."""

    def __init__(
        self,
        deck: Deck,
        scheduler: Scheduler,
        narrator: Optional[Narrator] = None,
        analytics: Optional[AnalyticsSink] = None,
        selector: Optional[TransitionSelector] = None,
        settings: Optional[PlayerSettings] = None,
        text_extractor: Callable[[Slide], str] = extract_slide_text,
    ):
        deck.check()
        self._deck = deck
        self._scheduler = scheduler
        self._settings = settings or PlayerSettings()
        self._narrator: Narrator = narrator or NullNarrator()
        self._analytics: AnalyticsSink = analytics or NullAnalytics()
        self._text_extractor = text_extractor

        base = selector or TransitionSelector(pinned=self._settings.pinned_transitions)
        self._selector = base.with_pins(deck.transition_pins())

        self._clock = PlaybackClock(
            scheduler,
            on_progress=self._on_progress,
            tick_ms=self._settings.progress_tick_ms,
        )
        self._state = PlaybackState(current_index=0, current_slide_id=deck.slides[0].id)
        self._listeners: list[Listener] = []

        # Bumped on every navigation; stale swap/complete/speak callbacks check it
        self._nav_generation = 0
        self._transition_handles: list[TimerHandle] = []
        self._narration_handle: Optional[TimerHandle] = None

    # ── Read side ───────────────────────────────────────────────────────

    @property
    def deck(self) -> Deck:
        return self._deck

    @property
    def clock(self) -> PlaybackClock:
        return self._clock

    @property
    def state(self) -> PlaybackState:
        return self._state.snapshot()

    def current_slide(self) -> Slide:
        return self._deck.slides[self._state.current_index]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Controls ────────────────────────────────────────────────────────

    def start(self) -> None:
        """Show the first slide. No-op once playback has left IDLE."""
        if self._state.phase != PlaybackPhase.IDLE:
            return
        logger.info(f"Starting deck ({len(self._deck)} slides)")
        self._settle(0)

    def play(self) -> None:
        if self._state.is_playing:
            return
        if self._state.phase == PlaybackPhase.IDLE:
            self.start()
        self._state.is_playing = True
        # While transitioning, the clock is armed when the target settles
        if self._state.phase == PlaybackPhase.SHOWING and not self._clock.resume():
            self._arm_current()
        self._notify()

    def pause(self) -> None:
        if not self._state.is_playing:
            return
        self._clock.pause()
        self._state.is_playing = False
        self._notify()

    def next(self) -> None:
        current_id = self._state.current_slide_id
        try:
            target_id = resolve_next(self._deck, current_id)
        except BrokenBranch as e:
            self._fail(e)
            raise
        self._navigate(target_id)

    def previous(self) -> None:
        target_id = resolve_previous(self._deck, self._state.current_slide_id)
        self._navigate(target_id)

    def go_to(self, index: int) -> None:
        """Jump to a slide by position; out-of-range indexes wrap around."""
        self._navigate(self._deck.slides[index % len(self._deck)].id)

    def go_to_slide(self, slide_id: str) -> None:
        self._navigate(slide_id)

    def answer(self, value: Any) -> None:
        """Record an answer for the visible slide and follow its branch table."""
        slide = self.current_slide()
        self._state.pending_answers[slide.id] = value
        self._record_answer(slide, value)
        try:
            target_id = resolve_next(self._deck, slide.id, value)
        except BrokenBranch as e:
            self._fail(e)
            raise
        self._navigate(target_id)

    def close(self) -> None:
        """Tear down every timer and silence narration."""
        self._clock.disarm()
        self._cancel_pending()
        self._state.is_playing = False
        if self._state.phase == PlaybackPhase.TRANSITIONING:
            # Rest on whatever slide is visually settled
            self._state.phase = PlaybackPhase.SHOWING
            self._state.transition = None
            self._state.transition_from_id = None
            self._state.transition_to_id = None
        self._stop_narration()
        self._notify()

    # ── Navigation internals ────────────────────────────────────────────

    def _navigate(self, target_id: str) -> None:
        to_index = self._deck.index_of(target_id)
        if to_index is None:
            error = BrokenBranch(self._state.current_slide_id, target_id)
            self._fail(error)
            raise error

        self._clock.disarm()
        self._cancel_pending()
        generation = self._nav_generation

        from_index = self._state.current_index
        transition = self._selector.select(from_index, to_index, target_id)
        logger.debug(
            f"Navigating {self._state.current_slide_id} -> {target_id} "
            f"({transition.kind.value}, {transition.duration_ms}ms)"
        )

        self._state.phase = PlaybackPhase.TRANSITIONING
        self._state.transition = transition
        self._state.transition_from_id = self._state.current_slide_id
        self._state.transition_to_id = target_id
        self._state.last_error = None
        self._notify()
        # A listener navigated again from inside the notify; its transition owns the state now
        if generation != self._nav_generation:
            return

        if transition.duration_ms == 0:
            self._swap(generation, to_index)
            self._complete(generation, to_index)
            return

        self._transition_handles = [
            self._scheduler.call_later(
                transition.swap_at_ms / 1000.0, lambda: self._swap(generation, to_index)),
            self._scheduler.call_later(
                transition.duration_ms / 1000.0, lambda: self._complete(generation, to_index)),
        ]

    def _swap(self, generation: int, to_index: int) -> None:
        if generation != self._nav_generation:
            return
        self._state.current_index = to_index
        self._state.current_slide_id = self._deck.slides[to_index].id
        self._state.progress_pct = 0.0
        self._clock.reset_progress()
        self._notify()

    def _complete(self, generation: int, to_index: int) -> None:
        if generation != self._nav_generation:
            return
        self._transition_handles = []
        self._settle(to_index)

    def _settle(self, index: int) -> None:
        slide = self._deck.slides[index]
        self._state.current_index = index
        self._state.current_slide_id = slide.id
        self._state.phase = PlaybackPhase.SHOWING
        self._state.transition = None
        self._state.transition_from_id = None
        self._state.transition_to_id = None
        self._state.progress_pct = 0.0
        self._clock.reset_progress()
        if self._state.is_playing:
            self._arm_current()
        generation = self._nav_generation
        self._notify()
        if generation == self._nav_generation:
            self._narrate(slide)

    def _cancel_pending(self) -> None:
        self._nav_generation += 1
        for handle in self._transition_handles:
            handle.cancel()
        self._transition_handles = []
        if self._narration_handle is not None:
            self._narration_handle.cancel()
            self._narration_handle = None

    def _arm_current(self) -> None:
        self._clock.disarm()
        self._clock.arm_auto_advance(self.current_slide().duration_ms, self._on_auto_advance)

    def _on_auto_advance(self) -> None:
        logger.debug(f"Auto-advancing from '{self._state.current_slide_id}'")
        try:
            self.next()
        except BrokenBranch:
            logger.warning(f"Auto-advance halted on '{self._state.current_slide_id}'")

    def _on_progress(self, pct: float) -> None:
        if self._state.phase != PlaybackPhase.SHOWING:
            return
        self._state.progress_pct = pct
        self._notify()

    def _fail(self, error: DeckError) -> None:
        logger.error(f"Navigation failed: {error}")
        self._state.last_error = str(error)
        self._notify()

    # ── Side channels ───────────────────────────────────────────────────

    def _narrate(self, slide: Slide) -> None:
        self._stop_narration()
        if not self._settings.narration_enabled:
            return
        try:
            text = self._text_extractor(slide)
        except Exception as e:
            logger.warning(f"Could not extract narration text for '{slide.id}': {e}")
            return
        if not text:
            return

        generation = self._nav_generation
        self._narration_handle = self._scheduler.call_later(
            self._settings.narration_settle_ms / 1000.0,
            lambda: self._speak(generation, text),
        )

    def _speak(self, generation: int, text: str) -> None:
        if generation != self._nav_generation:
            return
        self._narration_handle = None
        try:
            self._narrator.speak(text)
        except Exception as e:
            logger.warning(f"Narration failed: {e}")

    def _stop_narration(self) -> None:
        try:
            self._narrator.stop()
        except Exception as e:
            logger.warning(f"Narration stop failed: {e}")

    def _record_answer(self, slide: Slide, value: Any) -> None:
        event = AnswerEvent(
            slide_id=slide.id,
            answer=value,
            slide_title=slide.title,
            instance_id=self._settings.instance_id,
        )
        try:
            self._analytics.record_answer(event)
        except Exception as e:
            logger.warning(f"Failed to record answer for '{slide.id}': {e}")

    def _notify(self) -> None:
        snapshot = self._state.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Playback listener raised")


def load_deck(
    slides: Deck | Iterable[Slide | dict],
    scheduler: Optional[Scheduler] = None,
    narrator: Optional[Narrator] = None,
    analytics: Optional[AnalyticsSink] = None,
    settings: Optional[PlayerSettings] = None,
    on_audio: Optional[Callable[[bytes], None]] = None,
    **kwargs,
) -> PlaybackEngine:
    """Validate a deck and build an engine around it.

    Raises EmptyDeck or InvalidDeck. Side channels not passed explicitly are
    built from ``settings``: an HTTP analytics sink when ``analytics_url`` is
    set, and an HTTP narrator when ``tts_url`` is set and ``on_audio`` can
    play the returned audio.
    """
    deck = slides if isinstance(slides, Deck) else Deck.build(slides)
    settings = settings or PlayerSettings()

    if analytics is None and settings.analytics_url:
        analytics = HttpAnalyticsSink(settings.analytics_url, instance_id=settings.instance_id)
    if narrator is None and settings.narration_enabled and settings.tts_url and on_audio:
        narrator = HttpNarrator(settings.tts_url, on_audio=on_audio, voice=settings.tts_voice)

    return PlaybackEngine(
        deck,
        scheduler or AsyncioScheduler(),
        narrator=narrator,
        analytics=analytics,
        settings=settings,
        **kwargs,
    )
