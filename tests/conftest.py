"""
Pytest fixtures for the lab engine tests.

Timers run on a virtual clock (``ManualScheduler``) so pour animations and
their cancellation can be stepped through deterministically.
"""

import heapq
import itertools

import pytest

from lab_engine.config import LabSettings
from lab_engine.effects import EffectOrchestrator
from lab_engine.session import LabSession


# =============================================================================
# VIRTUAL CLOCK
# =============================================================================

class ManualTimer:
    def __init__(self, when: float, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test calls ``advance``."""

    def __init__(self):
        self.now = 0.0
        self._queue: list = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback) -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback)
        heapq.heappush(self._queue, (timer.when, next(self._seq), timer))
        return timer

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            when, _, timer = heapq.heappop(self._queue)
            self.now = when
            if not timer.cancelled:
                timer.callback()
        self.now = target

    @property
    def pending(self) -> list[ManualTimer]:
        return [timer for _, _, timer in self._queue if not timer.cancelled]


# =============================================================================
# ENGINE FIXTURES
# =============================================================================

@pytest.fixture
def lab() -> LabSettings:
    return LabSettings()


@pytest.fixture
def session(lab: LabSettings) -> LabSession:
    return LabSession(lab)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def signals() -> list:
    """Records every EffectSignal the orchestrator emits."""
    return []


@pytest.fixture
def effects(session, scheduler, signals, lab) -> EffectOrchestrator:
    orchestrator = EffectOrchestrator(session, scheduler, signals.append, lab)
    yield orchestrator
    orchestrator.teardown()


@pytest.fixture
def load(session):
    """Pour each chemical id into the tube, completing every pour at once."""

    def _load(*chemical_ids: str, color: str | None = None) -> None:
        for chemical_id in chemical_ids:
            assert session.begin_select_chemical()
            assert session.select_chemical(chemical_id, color)
            assert session.pour_complete()

    return _load


@pytest.fixture
def transitions(session) -> list:
    """Every transition the session publishes, in order."""
    seen = []
    session.subscribe(seen.append)
    return seen
