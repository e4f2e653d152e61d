"""Trailing-edge debounce for view refresh notifications."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_DELAY_SECONDS = 0.5


class DebouncedCallback:
    """Collapse repeated triggers within ``delay_seconds`` into one trailing call.

    Every ``trigger`` restarts the window. The callback runs on a timer thread
    unless ``flush`` runs it first on the caller's thread.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        delay_seconds: float = DEFAULT_REFRESH_DELAY_SECONDS,
        *,
        timer_factory: Callable[[float, Callable[[], None]], threading.Timer] | None = None,
    ) -> None:
        self._callback = callback
        self.delay_seconds = max(0.0, float(delay_seconds))
        self._timer_factory = timer_factory or threading.Timer
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._generation = 0
        self._closed = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def trigger(self) -> None:
        """Schedule the callback, replacing any pending one."""
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            timer = self._timer_factory(self.delay_seconds, lambda: self._fire(generation))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._timer is None:
                return
            self._timer = None
        self._run()

    def _run(self) -> None:
        try:
            self._callback()
        except Exception:
            logger.exception("debounced refresh callback failed")

    def flush(self) -> bool:
        """Run a pending callback now; return whether one was pending."""
        with self._lock:
            timer = self._timer
            if timer is None:
                return False
            timer.cancel()
            self._timer = None
            self._generation += 1
        self._run()
        return True

    def cancel(self) -> bool:
        """Drop a pending callback without running it."""
        with self._lock:
            timer = self._timer
            self._timer = None
            self._generation += 1
        if timer is None:
            return False
        timer.cancel()
        return True

    def close(self) -> None:
        self.cancel()
        with self._lock:
            self._closed = True


__all__ = [
    "DEFAULT_REFRESH_DELAY_SECONDS",
    "DebouncedCallback",
]
