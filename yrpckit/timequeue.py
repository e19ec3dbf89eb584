"""Millisecond clock helpers and a min-heap queue of timed tasks."""

from __future__ import annotations

import heapq
import itertools
import time
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def expired(timepoint_ms: int) -> bool:
    """Whether ``timepoint_ms`` is now or in the past."""
    return timepoint_ms <= now_ms()


@dataclass(eq=False)
class TimerTask(Generic[T]):
    """A timed entry: when it fires, what it carries and how it repeats.

    ``interval`` is the repeat period in ms, negative for a one-shot task.
    ``max_trigger_times`` limits how many times it is rescheduled; negative
    means without limit.
    """

    timepoint: int
    data: T
    interval: int = -1
    max_trigger_times: int = 1
    canceled: bool = False

    def cancel(self) -> None:
        """Mark the task canceled; it stays queued but is never returned."""
        self.canceled = True

    def set_auto_reset(self, tick_ms: int = -1) -> None:
        """Set the repeat period; -1 makes the task fire once."""
        self.interval = tick_ms

    def _reset(self) -> bool:
        """Advance to the next firing; True if the task should be requeued."""
        if self.interval < 0:
            return False
        self.timepoint += self.interval
        if self.max_trigger_times < 0:
            return True
        if self.max_trigger_times == 0:
            return False
        self.max_trigger_times -= 1
        return True

    def __lt__(self, other: TimerTask) -> bool:
        return self.timepoint < other.timepoint

    def __gt__(self, other: TimerTask) -> bool:
        return self.timepoint > other.timepoint


class TimerQueue(Generic[T]):
    """Timed tasks ordered by their firing time, earliest first."""

    def __init__(self) -> None:
        self._heap: list[tuple[int, int, TimerTask[T]]] = []
        self._seq = itertools.count()

    def __len__(self) -> int:
        return len(self._heap)

    def _push(self, task: TimerTask[T]) -> None:
        heapq.heappush(self._heap, (task.timepoint, next(self._seq), task))

    def _pop(self) -> TimerTask[T]:
        _, _, task = heapq.heappop(self._heap)
        if task._reset():
            self._push(task)
        return task

    def _top_expired(self) -> bool:
        return bool(self._heap) and expired(self._heap[0][2].timepoint)

    def add_task(self, expired_ms: int, data: T) -> TimerTask[T]:
        """Queue ``data`` to fire once at ``expired_ms``."""
        task = TimerTask(expired_ms, data)
        self._push(task)
        return task

    def add_slot(self, task: TimerTask[T] | None) -> bool:
        """Queue an existing task; False if there is none."""
        if task is None:
            return False
        self._push(task)
        return True

    def cancel_task(self, task: TimerTask[T]) -> None:
        """Cancel ``task`` without removing it."""
        task.cancel()

    def sleep_for(self, sleep_ms: int) -> int:
        """Block for ``sleep_ms`` milliseconds and return that amount."""
        if sleep_ms < 0:
            raise ValueError(f"sleep time must not be negative: {sleep_ms}")
        if sleep_ms:
            time.sleep(sleep_ms / 1000)
        return sleep_ms

    def sleep_until(self, timepoint_ms: int) -> bool:
        """Block until ``timepoint_ms``; False if it has already passed."""
        if expired(timepoint_ms):
            return False
        time.sleep(max(0.0, (timepoint_ms - now_ms()) / 1000))
        return True

    def pop_timeout_tasks(self) -> list[TimerTask[T]]:
        """Remove and return every expired task that is not canceled.

        Repeating tasks are rescheduled and may appear more than once.
        """
        fired: list[TimerTask[T]] = []
        while self._top_expired():
            task = self._pop()
            if not task.canceled:
                fired.append(task)
        return fired

    def pop_all_tasks(self) -> list[TimerTask[T]]:
        """Drain the queue, returning every task that is not canceled."""
        drained: list[TimerTask[T]] = []
        while self._heap:
            task = self._pop()
            if not task.canceled:
                drained.append(task)
        return drained

    def pop_timeout_task(self) -> TimerTask[T] | None:
        """Remove and return the earliest task if it has expired.

        A canceled task at the front is discarded and None is returned.
        """
        if not self._top_expired():
            return None
        if self._heap[0][2].canceled:
            self._pop()
            return None
        return self._pop()