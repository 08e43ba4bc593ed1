"""
effects.py — Sound and animation cues driven by session transitions.

The orchestrator never touches audio or pixels itself.  It turns the
session's transitions into ``EffectSignal`` values (start / stop /
progress) and hands them to a sink; the consumer forwards them to the
browser, which owns the actual <audio> elements and animations.

Guarantees:
  • At most one instance per effect category is playing.
  • A ``stop`` always rewinds, so the next ``start`` plays from the top.
  • Leaving Pouring cancels the pour timers; a new pour replaces them
    instead of stacking.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from .config import DEFAULT_SETTINGS, LabSettings
from .reaction_engine import ReactionResult
from .session import LabSession, SessionState, Transition
from .timers import RepeatingTimer, Scheduler, TimerHandle

log = logging.getLogger(__name__)

START    = "start"
STOP     = "stop"
PROGRESS = "progress"


@dataclass(frozen=True)
class EffectSpec:
    category: str
    flag: str | None
    volume: float
    loop: bool


@dataclass(frozen=True)
class EffectSignal:
    category: str
    action: str
    volume: float = 0.0
    loop: bool = False
    progress: float | None = None


# ── Effect registry ──────────────────────────────────────────────────────────
# One row per phenomenon cue; 'flag' names a ReactionResult attribute.
PHENOMENON_EFFECTS: tuple[EffectSpec, ...] = (
    EffectSpec("bubbling",  "has_bubbles",   0.3, True),
    EffectSpec("smoke",     "has_smoke",     0.3, True),
    EffectSpec("fire",      "has_fire",      0.3, True),
    EffectSpec("explosion", "has_explosion", 0.5, False),
    EffectSpec("danger",    "is_dangerous",  0.3, True),
)

POUR_EFFECT  = EffectSpec("pouring",     None, 0.5, False)
BREAK_EFFECT = EffectSpec("glass_break", None, 0.7, False)

Sink = Callable[[EffectSignal], None]


def effect_registry_payload() -> list[dict]:
    return [
        {"category": e.category, "flag": e.flag, "volume": e.volume, "loop": e.loop}
        for e in (*PHENOMENON_EFFECTS, POUR_EFFECT, BREAK_EFFECT)
    ]


class EffectOrchestrator:
    """Keeps the presentation cues in step with one LabSession."""

    def __init__(self, session: LabSession, scheduler: Scheduler, sink: Sink,
                 settings: LabSettings = DEFAULT_SETTINGS):
        self.session   = session
        self.scheduler = scheduler
        self.sink      = sink
        self.settings  = settings

        self.pour_progress = 0.0
        self._active: set[str] = set()
        self._pour_timer: TimerHandle | None = None
        self._pour_ticker: RepeatingTimer | None = None
        self._unsubscribe = session.subscribe(self.on_transition)

    # ── Introspection ────────────────────────────────────────────────────────

    @property
    def active_effects(self) -> frozenset[str]:
        return frozenset(self._active)

    @property
    def is_pouring(self) -> bool:
        return self._pour_timer is not None

    # ── Transition handling ──────────────────────────────────────────────────

    def on_transition(self, transition: Transition) -> None:
        previous, current = transition.previous, transition.current

        if previous is SessionState.POURING and current is not SessionState.POURING:
            self._cancel_pour()
        if current is SessionState.POURING and previous is not SessionState.POURING:
            self._start_pour()

        if current is SessionState.BROKEN:
            if previous is not SessionState.BROKEN:
                self._stop_phenomena()
                self._play_once(BREAK_EFFECT)
        elif current is SessionState.REACTING:
            self._sync_phenomena(transition.result)
        else:
            self._stop_phenomena()

    def teardown(self) -> None:
        """Cancel every timer and silence everything; used on disconnect."""
        self._unsubscribe()
        self._cancel_pour()
        self._stop_phenomena()
        self._stop(BREAK_EFFECT)
        log.debug("[EFFECTS] Torn down")

    # ── Pour ─────────────────────────────────────────────────────────────────

    def _start_pour(self) -> None:
        # Replace, never stack.
        self._cancel_pour()
        self.pour_progress = 0.0
        self._start(POUR_EFFECT)
        self._pour_timer = self.scheduler.call_later(self.settings.pour_duration,
                                                     self._on_pour_timer)
        self._pour_ticker = RepeatingTimer(self.scheduler, self.settings.pour_tick,
                                           self._on_pour_tick)

    def _on_pour_tick(self) -> None:
        self.pour_progress = min(100.0, self.pour_progress + self.settings.pour_step)
        self.sink(EffectSignal(POUR_EFFECT.category, PROGRESS, progress=self.pour_progress))
        if self.pour_progress >= 100.0 and self._pour_ticker is not None:
            self._pour_ticker.cancel()

    def _on_pour_timer(self) -> None:
        self._pour_timer = None
        if self._pour_ticker is not None:
            self._pour_ticker.cancel()
            self._pour_ticker = None
        # Ticks may trail the timer; the pour always ends on a full bar.
        if self.pour_progress < 100.0:
            self.pour_progress = 100.0
            self.sink(EffectSignal(POUR_EFFECT.category, PROGRESS, progress=100.0))
        result = self.session.pour_complete()
        if not result.ok:
            log.warning("[EFFECTS] pour_complete refused: %s", result.reason.value)

    def _cancel_pour(self) -> None:
        if self._pour_timer is not None:
            self._pour_timer.cancel()
            self._pour_timer = None
        if self._pour_ticker is not None:
            self._pour_ticker.cancel()
            self._pour_ticker = None
        self._stop(POUR_EFFECT)
        self.pour_progress = 0.0

    # ── Phenomena ────────────────────────────────────────────────────────────

    def _sync_phenomena(self, result: ReactionResult | None) -> None:
        for spec in PHENOMENON_EFFECTS:
            wanted = result is not None and bool(getattr(result, spec.flag))
            if wanted and spec.category not in self._active:
                self._start(spec)
            elif not wanted and spec.category in self._active:
                self._stop(spec)

    def _stop_phenomena(self) -> None:
        for spec in PHENOMENON_EFFECTS:
            if spec.category in self._active:
                self._stop(spec)

    # ── Signals ──────────────────────────────────────────────────────────────

    def _start(self, spec: EffectSpec) -> None:
        self._active.add(spec.category)
        log.debug("[EFFECTS] start %s", spec.category)
        self.sink(EffectSignal(spec.category, START, spec.volume, spec.loop))

    def _play_once(self, spec: EffectSpec) -> None:
        if spec.category in self._active:
            self._stop(spec)
        self._start(spec)

    def _stop(self, spec: EffectSpec) -> None:
        if spec.category not in self._active:
            return
        self._active.discard(spec.category)
        log.debug("[EFFECTS] stop %s", spec.category)
        self.sink(EffectSignal(spec.category, STOP, spec.volume, spec.loop))
