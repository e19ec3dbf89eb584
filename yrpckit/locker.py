"""Wait/notify signalling and a count-down latch."""

from __future__ import annotations

import threading


class Signal:
    """A point where threads wait until another thread notifies them.

    A notification sent while nobody waits is lost, as with a plain
    condition variable.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()

    def wait(self) -> None:
        """Block until notified."""
        with self._cond:
            self._cond.wait()

    def timed_wait(self, time_ms: int) -> bool:
        """Block for at most ``time_ms`` milliseconds; True if notified."""
        with self._cond:
            return self._cond.wait(max(time_ms, 0) / 1000)

    def notify_one(self) -> None:
        """Wake one waiting thread."""
        with self._cond:
            self._cond.notify()

    def notify_all(self) -> None:
        """Wake every waiting thread."""
        with self._cond:
            self._cond.notify_all()


class CountDownLatch:
    """Lets threads wait until a counter has been brought down to zero."""

    def __init__(self, count: int) -> None:
        self._count = count
        self._cond = threading.Condition()

    @property
    def count(self) -> int:
        """The remaining count."""
        with self._cond:
            return self._count

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the count reaches zero.

        ``timeout`` is in seconds; returns False if it ran out first.
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._count <= 0, timeout)

    def down(self) -> None:
        """Decrease the count, releasing the waiters when it reaches zero."""
        with self._cond:
            self._count -= 1
            if self._count <= 0:
                self._cond.notify_all()