"""
Cancellable scheduled callbacks
----

Timer driven effects (turning mismatched memory cards back) belong to a session: the session cancels them when it closes.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, delay_seconds: float, callback: Callback) -> TimerHandle: ...


class ThreadingScheduler:
    """Runs each callback on its own `threading.Timer` thread."""

    def schedule(self, delay_seconds: float, callback: Callback) -> threading.Timer:
        timer = threading.Timer(delay_seconds, callback)
        timer.daemon = True
        timer.start()
        logger.debug("Scheduled %s in %.2f seconds", getattr(callback, "__name__", callback), delay_seconds)
        return timer


@dataclass
class ManualTimer:
    due: float
    callback: Callback
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """
    Deterministic scheduler: nothing fires until `advance()` moves its clock.

    Used by the tests and by hosts that drive their own event loop.
    """

    now: float = 0.0
    timers: list[ManualTimer] = field(default_factory=list)

    def schedule(self, delay_seconds: float, callback: Callback) -> ManualTimer:
        timer = ManualTimer(due=self.now + delay_seconds, callback=callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> int:
        """Move the clock forward and fire every callback that became due (in order). Returns how many fired."""
        self.now += seconds
        due = sorted(
            (t for t in self.timers if not t.cancelled and not t.fired and t.due <= self.now),
            key=lambda t: t.due,
        )
        for timer in due:
            timer.fired = True
            timer.callback()
        self.timers = [t for t in self.timers if not t.cancelled and not t.fired]
        return len(due)

    @property
    def pending(self) -> int:
        return sum(1 for t in self.timers if not t.cancelled and not t.fired)
