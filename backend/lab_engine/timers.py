"""
timers.py — Cancelable timers for the effect layer.

Everything time-based in a lab session goes through a ``Scheduler``: one
``call_later`` that hands back a handle with a single ``cancel``.  In the
WebSocket consumer that is the running asyncio loop; tests drive a
virtual clock with the same interface.
"""

import asyncio
import logging
from typing import Callable, Protocol

log = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks on an asyncio event loop (the consumer's loop)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self.loop = loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)


class RepeatingTimer:
    """
    Fires *callback* every *interval* seconds until cancelled.

    Built from one-shot ``call_later`` calls so any Scheduler works.  After
    ``cancel`` no further callback runs, even if the pending one was
    already due.
    """

    def __init__(self, scheduler: Scheduler, interval: float,
                 callback: Callable[[], None]):
        self._scheduler = scheduler
        self._interval  = interval
        self._callback  = callback
        self._handle: TimerHandle | None = None
        self._cancelled = False
        self._schedule()

    @property
    def active(self) -> bool:
        return not self._cancelled

    def _schedule(self) -> None:
        self._handle = self._scheduler.call_later(self._interval, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        self._callback()
        # The callback may have cancelled us.
        if not self._cancelled:
            self._schedule()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
