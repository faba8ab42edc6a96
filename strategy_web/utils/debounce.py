from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle returned by a Scheduler. cancel() is idempotent."""
    def cancel(self) -> None:
        raise NotImplementedError


class Scheduler:
    """Strategy interface: run fn once after delay seconds."""
    def call_later(self, delay: float, fn: Callable[[], None]) -> ScheduledTask:
        raise NotImplementedError


class _TimerTask(ScheduledTask):
    def __init__(self, timer: threading.Timer):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class ThreadingScheduler(Scheduler):
    def call_later(self, delay: float, fn: Callable[[], None]) -> ScheduledTask:
        timer = threading.Timer(delay, fn)
        timer.daemon = True
        timer.start()
        return _TimerTask(timer)


@dataclass
class Debouncer:
    """
    Cancel-and-reschedule: each submit() replaces the pending call, so only
    the last one submitted within `delay` seconds of quiet actually runs.
    Each submission carries a generation number; a timer that fires after
    being superseded finds a newer generation and does nothing.
    """
    delay: float
    scheduler: Scheduler = field(default_factory=ThreadingScheduler)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: Optional[ScheduledTask] = None
        self._pending_fn: Optional[Callable[[], None]] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def submit(self, fn: Callable[[], None]) -> None:
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
            self._generation += 1
            generation = self._generation
            self._pending_fn = fn
            self._pending = self.scheduler.call_later(self.delay, lambda: self._fire(generation))

    def cancel(self) -> None:
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
            self._generation += 1
            self._pending = None
            self._pending_fn = None

    def flush(self) -> None:
        """Run the pending call now, if any."""
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
            generation = self._generation
        self._fire(generation)

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            fn = self._pending_fn
            self._pending = None
            self._pending_fn = None
        if fn is None:
            return
        try:
            fn()
        except Exception:
            logger.exception("Debounced call failed")
