"""A fixed-size pool of worker threads fed from a task queue."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable

from .worker import ThreadStatus, Worker

_log = logging.getLogger(__name__)


class PoolStoppedError(RuntimeError):
    """Raised when a task is given to a pool that has been stopped."""


class ThreadPool:
    """Runs queued callables on ``thread_num`` threads.

    Idle threads sleep and are woken one at a time as tasks arrive.
    ``max_queue_size`` is a soft limit: a task is always queued, but
    :meth:`add_task` reports when the queue was already at the limit.
    """

    def __init__(self, thread_num: int, max_queue_size: int = 65535) -> None:
        if thread_num < 0:
            raise ValueError(f"thread count must not be negative: {thread_num}")
        self._thread_num = thread_num
        self._max_queue_size = max_queue_size
        self._lock = threading.Lock()
        self._tasks: deque[Callable[[], object]] = deque()
        self._idle: list[Worker] = []
        self._running = True
        self._workers = [Worker() for _ in range(thread_num)]
        for worker in self._workers:
            worker.start(self._work, worker)

    def _work(self, worker: Worker) -> ThreadStatus:
        if not self._running:
            return ThreadStatus.STOP
        with self._lock:
            if not self._tasks:
                self._idle.append(worker)
                return ThreadStatus.BLOCKING
            task = self._tasks.popleft()
        try:
            task()
        except Exception:
            _log.exception("thread pool task failed")
        return ThreadStatus.RUNNING

    @property
    def is_running(self) -> bool:
        """Whether the pool still accepts tasks."""
        return self._running

    @property
    def run_thread_num(self) -> int:
        """Number of threads not asleep waiting for work."""
        with self._lock:
            return self._thread_num - len(self._idle)

    @property
    def task_num(self) -> int:
        """Number of tasks waiting in the queue."""
        with self._lock:
            return len(self._tasks)

    def add_task(self, task: Callable[[], object]) -> bool:
        """Queue ``task``; False if the queue was already at its soft limit."""
        if not self._running:
            raise PoolStoppedError("thread pool is stopped")
        with self._lock:
            within_limit = len(self._tasks) < self._max_queue_size
            self._tasks.append(task)
            if self._idle:
                self._idle.pop().restart()
        return within_limit

    def stop(self) -> None:
        """Refuse new tasks and wait for every thread to finish."""
        self._running = False
        for worker in self._workers:
            worker.close()

    def __enter__(self) -> ThreadPool:
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()