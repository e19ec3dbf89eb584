"""A thread that calls a function in a loop until told to stop or block."""

from __future__ import annotations

import threading
from enum import IntEnum
from typing import Any, Callable


class ThreadStatus(IntEnum):
    """What the looped function asks the worker to do next."""

    STOP = 0
    RUNNING = 1
    BLOCKING = 2


class Worker:
    """Runs ``func(*args)`` repeatedly on its own thread.

    When the function returns ``BLOCKING`` the thread sleeps until
    :meth:`restart` is called; ``STOP`` ends the loop; anything else
    calls the function again. A restart that arrives before the thread
    has gone to sleep is kept, so it is never lost.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._run = False
        self._blocked = False
        self._running = False
        self._wake = False
        self._thread: threading.Thread | None = None

    @property
    def is_run(self) -> bool:
        """Whether the loop is allowed to continue."""
        return self._run

    @property
    def is_block(self) -> bool:
        """Whether the thread is asleep waiting for a restart."""
        return self._blocked

    @property
    def is_running(self) -> bool:
        """Whether the thread is still inside its loop."""
        return self._running

    def start(self, func: Callable[..., Any] | None, *args: Any) -> bool:
        """Start the loop; False if there is no function to run."""
        if func is None:
            return False
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("worker is already started")
        self._run = True
        self._running = True
        self._wake = False
        self._thread = threading.Thread(target=self._loop, args=(func, args), daemon=True)
        self._thread.start()
        return True

    def _loop(self, func: Callable[..., Any], args: tuple) -> None:
        try:
            while self._run:
                status = func(*args)
                if status == ThreadStatus.BLOCKING:
                    self._block()
                elif status == ThreadStatus.STOP:
                    self._run = False
        finally:
            self._blocked = False
            self._running = False

    def _block(self) -> None:
        with self._cond:
            self._blocked = True
            self._cond.wait_for(lambda: self._wake or not self._run)
            self._wake = False
            self._blocked = False

    def restart(self) -> None:
        """Wake the thread if it is asleep, or let its next sleep pass."""
        with self._cond:
            self._wake = True
            self._cond.notify_all()

    def close(self) -> None:
        """Stop the loop and wait for the thread to finish."""
        with self._cond:
            self._run = False
            self._cond.notify_all()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def __enter__(self) -> Worker:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()