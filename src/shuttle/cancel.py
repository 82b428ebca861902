"""Cancellation signal for spawned processes."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class CancelSignal:
    """Thread-safe abort signal.

    Listeners are invoked once, on the thread that calls :meth:`abort`.
    A listener added after the signal fired is invoked immediately.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []
        self._aborted = False
        self._reason: object = None
        self._timer: threading.Timer | None = None

    @classmethod
    def timeout(cls, seconds: float) -> CancelSignal:
        """Return a signal that aborts itself after *seconds*."""
        signal = cls()
        timer = threading.Timer(seconds, signal.abort, args=("timeout",))
        timer.daemon = True
        signal._timer = timer
        timer.start()
        return signal

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> object:
        return self._reason

    def abort(self, reason: object = None) -> None:
        with self._lock:
            if self._aborted:
                return
            self._aborted = True
            self._reason = reason
            listeners = list(self._listeners)
            self._listeners.clear()
            if self._timer is not None:
                self._timer.cancel()
        for listener in listeners:
            try:
                listener()
            except Exception as e:
                logger.warning("Cancel listener failed: %s", e)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        with self._lock:
            fire_now = self._aborted
            if not fire_now:
                self._listeners.append(listener)
        if fire_now:
            listener()

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove
