"""Deadline-bound, cancellable scope shared by the tasks of one operation."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from deckhouse_status.errors import DeadlineExceeded, OperationCancelled


class Deadline:
    """A monotonic deadline plus a cancel flag.

    Every HTTP call made on behalf of an operation asks the scope for its
    request timeout, so nothing outlives the deadline. ``child()`` gives a
    sub-scope that can be cancelled on its own (a failed sibling fetch) and
    is also cancelled whenever the parent is.
    """

    def __init__(
        self,
        seconds: float | None,
        clock: Callable[[], float] = time.monotonic,
        parent: Deadline | None = None,
    ) -> None:
        self._clock = clock
        self._parent = parent
        self._expires_at = None if seconds is None else clock() + seconds
        self._cancelled = threading.Event()
        # cancel() may run in a signal handler on the thread holding the lock.
        self._lock = threading.RLock()
        self._callbacks: list[Callable[[], None]] = []

    def child(self) -> Deadline:
        child = Deadline(None, clock=self._clock, parent=self)
        child._expires_at = self._expires_at
        return child

    def cancel(self) -> None:
        with self._lock:
            self._cancelled.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` when this scope or a parent is cancelled.

        Runs it right away if that already happened. Returns a function that
        unregisters the callback.
        """
        removers = []
        if self._parent is not None:
            removers.append(self._parent.on_cancel(callback))
        with self._lock:
            registered = not self._cancelled.is_set()
            if registered:
                self._callbacks.append(callback)
        if not registered:
            callback()

        def remove() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)
            for parent_remove in removers:
                parent_remove()

        return remove

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def remaining(self) -> float | None:
        """Seconds left, clamped at zero; ``None`` when there is no deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self) -> None:
        """Raise if the scope is cancelled or out of time."""
        if self.cancelled:
            raise OperationCancelled("operation cancelled")
        if self.expired:
            raise DeadlineExceeded("deadline exceeded")

    def request_timeout(self, default: float) -> float:
        """Timeout for one request: ``default`` capped by the time left."""
        self.check()
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds`` (capped by the deadline).

        Returns True as soon as the scope is cancelled.
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if self._parent is not None:
            return self._parent.wait(seconds) or self._cancelled.is_set()
        return self._cancelled.wait(max(0.0, seconds))
