"""One-shot cooperative cancellation token."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class ShutdownSignal:
    """Single-fire shutdown flag shared by the service and its dispatch loop.

    ``fire()`` may be called any number of times from any thread; only the
    first call has an effect.  Wakers registered with ``add_waker()`` run
    exactly once, on the firing thread (or immediately, if the signal has
    already fired when they are registered).
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._wakers: list[Callable[[], None]] = []

    def fire(self) -> bool:
        """Fire the signal.  Returns True only for the call that fired it."""
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            wakers, self._wakers = self._wakers, []
        for waker in wakers:
            self._call(waker)
        return True

    def is_set(self) -> bool:
        return self._event.is_set()

    def add_waker(self, waker: Callable[[], None]) -> None:
        """Run *waker* when the signal fires."""
        with self._lock:
            if not self._event.is_set():
                self._wakers.append(waker)
                return
        self._call(waker)

    @staticmethod
    def _call(waker: Callable[[], None]) -> None:
        try:
            waker()
        except Exception:
            logger.exception("Error in shutdown waker")
