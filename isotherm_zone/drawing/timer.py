"""
Cancelable Timers
=================

Deferred callbacks owned by the drawing controller.

Design:
- Scheduler protocol: call_later(delay, callback) -> handle with cancel()
- LoopScheduler: asyncio event loop (TimerHandle)
- CancelableTimer: at most one pending callback; arm() replaces, disarm() cancels
"""

import asyncio
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Anything able to run a callback after a delay."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class LoopScheduler:
    """
    Scheduler backed by an asyncio event loop.

    The loop is resolved lazily so the scheduler can be created before
    the loop starts running.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class CancelableTimer:
    """
    Single-shot timer that can be re-armed and cancelled.

    Re-arming cancels the previous pending callback first, so at most one
    callback is ever pending.

    Example:
        timer = CancelableTimer(LoopScheduler(), delay=1.5)
        timer.arm(controller.finalize_by_timeout)
        timer.disarm()
    """

    def __init__(self, scheduler: Scheduler, delay: float):
        if delay <= 0:
            raise ValueError(f"delay must be > 0, got {delay}")
        self.scheduler = scheduler
        self.delay = delay
        self._handle: Optional[TimerHandle] = None

    def arm(self, callback: Callable[[], None]) -> None:
        """(Re)start the timer with a new callback."""
        self.disarm()
        self._handle = self.scheduler.call_later(self.delay, lambda: self._fire(callback))

    def disarm(self) -> None:
        """Cancel the pending callback, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def is_armed(self) -> bool:
        return self._handle is not None

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()
