"""Timers used by the capture sessions (restart delay, elapsed-time ticker)."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ScheduledHandle(ABC):
    """Handle to a pending one-shot or periodic callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Cancel the callback. Safe to call more than once."""
        pass

    @property
    @abstractmethod
    def active(self) -> bool:
        pass


class AbstractScheduler(ABC):
    """Schedules callbacks for the sessions so tests can drive time by hand."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledHandle:
        """Run `callback` once after `delay` seconds."""
        pass

    @abstractmethod
    def call_every(self, interval: float, callback: Callable[[], None]) -> ScheduledHandle:
        """Run `callback` every `interval` seconds until cancelled."""
        pass


class _TimerHandle(ScheduledHandle):

    def __init__(self, timer: threading.Timer):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()

    @property
    def active(self) -> bool:
        return self._timer.is_alive()


class _IntervalHandle(ScheduledHandle):

    def __init__(self, interval: float, callback: Callable[[], None]):
        self.interval = interval
        self.callback = callback
        self.stop_event = threading.Event()
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.name = "IntervalThread"

    def _run(self) -> None:
        # Event.wait returns True once cancelled
        while not self.stop_event.wait(self.interval):
            try:
                self.callback()
            except Exception as e:
                logger.error(f"Error in interval callback: {e}", exc_info=True)

    def cancel(self) -> None:
        self.stop_event.set()

    @property
    def active(self) -> bool:
        return not self.stop_event.is_set()


class ThreadingScheduler(AbstractScheduler):
    """Scheduler backed by daemon threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.name = "DelayedCallThread"
        timer.start()
        return _TimerHandle(timer)

    def call_every(self, interval: float, callback: Callable[[], None]) -> ScheduledHandle:
        handle = _IntervalHandle(interval, callback)
        handle.thread.start()
        return handle


def cancel_handle(handle: Optional[ScheduledHandle]) -> None:
    """Cancel a handle that may be None."""
    if handle is not None:
        handle.cancel()
