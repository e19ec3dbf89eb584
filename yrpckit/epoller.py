"""An event loop that drives routines from I/O readiness and timers."""

from __future__ import annotations

import contextlib
import heapq
import logging
import selectors
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable

from .coroutine import RoutineFunc, Scheduler
from .errors import ErrorCode, ErrType
from .timequeue import TimerQueue, TimerTask, now_ms

_log = logging.getLogger(__name__)

_POLL_TIMEOUT_MS = 2
_ID_POOL_SIZE = 65535

EVENT_READ = selectors.EVENT_READ
EVENT_WRITE = selectors.EVENT_WRITE

TimerFunc = Callable[[], object]


class EventStatus(IntEnum):
    """Non-positive values stored in ``RoutineSocket.eventtype``.

    Positive values are the ready event mask reported by the selector.
    """

    TIMEOUT = 0
    ERROR = -1
    CLOSE = -2


@dataclass(eq=False)
class RoutineSocket:
    """A file object a routine waits on, with its timeouts and timer."""

    scheduler: Epoller | None = None
    sock: Any = None
    events: int = 0
    eventtype: int = 0
    routine_index: int = -1
    connect_timeout_ms: int = 5000
    socket_timeout_ms: int = 3000
    on_connect_timeout: Callable[[RoutineSocket], object] | None = None
    on_socket_timeout: Callable[[RoutineSocket], object] | None = None
    timetask: TimerTask | None = None
    err: ErrorCode = field(default_factory=lambda: ErrorCode("", ErrType.NOTHING, 0))
    args: Any = None


class _IdPool:
    """Hands out small integer identifiers, reusing released ones first."""

    def __init__(self, capacity: int) -> None:
        self._lock = threading.Lock()
        self._capacity = capacity
        self._next = 1
        self._free: list[int] = []

    def acquire(self) -> int:
        with self._lock:
            if self._free:
                return heapq.heappop(self._free)
            if self._next > self._capacity:
                raise RuntimeError("no epoller identifiers left")
            ident = self._next
            self._next += 1
            return ident

    def release(self, ident: int) -> None:
        with self._lock:
            heapq.heappush(self._free, ident)


_id_pool = _IdPool(_ID_POOL_SIZE)


class Epoller:
    """Runs routines, waking them on readiness, timeouts and suspension.

    ``max_queue`` bounds how many pending tasks count as a full queue.
    """

    def __init__(self, max_queue: int = 65535) -> None:
        self._max_size = max_queue
        self._runtime = Scheduler()
        self._selector = selectors.DefaultSelector()
        self._pending: deque[tuple[RoutineFunc, Any]] = deque()
        self._pending_lock = threading.Lock()
        self._suspended: deque[int] = deque()

        self._routine_timer: TimerQueue[RoutineSocket] = TimerQueue()
        self._comm_timer: TimerQueue[TimerFunc] = TimerQueue()
        self._timer_lock = threading.RLock()
        self._socket_timer: TimerQueue[RoutineSocket] = TimerQueue()
        self._socket_timer_lock = threading.RLock()

        self._closed = False
        self._forever = False
        self._looping = False
        self._released = False
        self._id = _id_pool.acquire()
        _log.debug("epoller %d created", self._id)

    @property
    def id(self) -> int:
        """Identifier of this epoller among the live ones."""
        return self._id

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has been called."""
        return self._closed

    @property
    def size(self) -> int:
        """Number of unfinished routines."""
        return len(self._runtime)

    def __len__(self) -> int:
        return len(self._runtime)

    def add_task(self, func: RoutineFunc, arg: Any = None) -> None:
        """Queue ``func(arg)`` to start as a routine; safe across threads."""
        with self._pending_lock:
            self._pending.append((func, arg))

    def add_task_unsafe(self, func: RoutineFunc, arg: Any = None) -> None:
        """Queue ``func(arg)`` without taking the lock."""
        self._pending.append((func, arg))

    def yield_task(self) -> bool:
        """Give up control from the running routine; False if none runs."""
        return self._runtime.yield_current()

    def suspend(self) -> None:
        """Yield the running routine and resume it on the next loop pass."""
        self._suspended.append(self.current_routine())
        self._runtime.yield_current()

    def run_forever(self) -> None:
        """Keep :meth:`loop` running even when no routine is left."""
        self._forever = True

    def queue_full(self) -> bool:
        """Whether the pending task queue has reached its bound."""
        return len(self._pending) >= self._max_size

    def watch(self, socket: RoutineSocket, events: int) -> None:
        """Wake ``socket``'s routine when its file becomes ready for ``events``."""
        socket.events = events
        try:
            self._selector.register(socket.sock, events, socket)
        except KeyError:
            self._selector.modify(socket.sock, events, socket)

    def unwatch(self, socket: RoutineSocket) -> None:
        """Stop watching ``socket``; nothing happens if it is not watched."""
        with contextlib.suppress(KeyError, ValueError):
            self._selector.unregister(socket.sock)

    def _poll(self) -> list[tuple[selectors.SelectorKey, int]]:
        if not self._selector.get_map():
            time.sleep(_POLL_TIMEOUT_MS / 1000)
            return []
        return self._selector.select(_POLL_TIMEOUT_MS / 1000)

    def loop(self) -> None:
        """Run until no routine is left, or until closed when run forever.

        A selector failure wakes every timed routine with ``ERROR`` and is
        raised again.
        """
        if self._released:
            raise RuntimeError("epoller is closed")
        self._looping = True
        try:
            self._do_pending_list()
            while self._forever or not self._runtime.empty():
                try:
                    ready = self._poll()
                except OSError:
                    self._resume_all(EventStatus.ERROR)
                    _log.error("epoller %d: polling failed", self._id)
                    raise
                for key, mask in ready:
                    socket: RoutineSocket = key.data
                    socket.eventtype = mask
                    self._runtime.resume(socket.routine_index)
                if self._closed:
                    self._resume_all(EventStatus.CLOSE)
                self._wake_up_suspended()
                self._do_pending_list()
                self._do_timeout_tasks()
        finally:
            self._looping = False
            if self._closed:
                self._release()

    def _do_pending_list(self) -> None:
        while True:
            with self._pending_lock:
                if not self._pending:
                    return
                func, arg = self._pending.popleft()
            handle = self._runtime.add(func, arg)
            if not self._runtime.resume(handle):
                _log.debug("epoller %d: routine %d could not start", self._id, handle)

    def _resume_all(self, flag: EventStatus) -> None:
        with self._timer_lock:
            tasks = self._routine_timer.pop_all_tasks()
        for task in tasks:
            task.data.eventtype = flag
            self._runtime.resume(task.data.routine_index)

    def _wake_up_suspended(self) -> None:
        while self._suspended:
            self._runtime.resume(self._suspended.popleft())

    def _do_timeout_tasks(self) -> None:
        with self._timer_lock:
            routine_tasks = self._routine_timer.pop_timeout_tasks()
            callbacks = self._comm_timer.pop_timeout_tasks()
        for task in routine_tasks:
            task.data.eventtype = EventStatus.TIMEOUT
            self._runtime.resume(task.data.routine_index)
        for task in callbacks:
            task.data()

        with self._socket_timer_lock:
            socket_tasks = self._socket_timer.pop_timeout_tasks()
        for task in socket_tasks:
            socket = task.data
            socket.eventtype = EventStatus.TIMEOUT
            _log.debug(
                "epoller %d: socket timeout after %d ms on %r",
                self._id,
                socket.socket_timeout_ms,
                socket.sock,
            )
            if socket.on_socket_timeout is not None:
                socket.on_socket_timeout(socket)

    def add_routine_timer(self, socket: RoutineSocket, timepoint_ms: int) -> TimerTask:
        """Wake ``socket``'s routine with ``TIMEOUT`` at ``timepoint_ms``."""
        with self._timer_lock:
            socket.timetask = self._routine_timer.add_task(timepoint_ms, socket)
            return socket.timetask

    def add_timer(
        self,
        func: TimerFunc,
        timeout_ms: int,
        reset_time: int = -1,
        max_trigger_times: int = 1,
    ) -> TimerTask:
        """Call ``func`` after ``timeout_ms``, then every ``reset_time`` ms.

        A negative ``reset_time`` fires once; ``max_trigger_times`` limits
        the repeats, negative meaning without limit.
        """
        with self._timer_lock:
            task: TimerTask[TimerFunc] = TimerTask(
                now_ms() + timeout_ms, func, reset_time, max_trigger_times
            )
            self._comm_timer.add_slot(task)
            return task

    def add_socket_timer(self, socket: RoutineSocket) -> TimerTask:
        """Call the socket's timeout callback after its socket timeout."""
        timepoint = now_ms() + socket.socket_timeout_ms
        with self._socket_timer_lock:
            socket.timetask = self._socket_timer.add_task(timepoint, socket)
            return socket.timetask

    def reset_socket_timer(self, socket: RoutineSocket) -> TimerTask:
        """Cancel the socket's current timer and start a fresh one."""
        self.cancel_timer(socket)
        return self.add_socket_timer(socket)

    def cancel_timer(self, socket: RoutineSocket) -> None:
        """Cancel the timer held by ``socket``."""
        if socket.timetask is not None:
            self._routine_timer.cancel_task(socket.timetask)

    def cancel_socket_timer(self, socket: RoutineSocket) -> None:
        """Cancel the socket timeout timer held by ``socket``."""
        if socket.timetask is not None:
            self._socket_timer.cancel_task(socket.timetask)

    def current_routine(self) -> int:
        """Handle of the running routine, or -1."""
        return self._runtime.current()

    def close(self) -> None:
        """Stop the loop; routines waiting on timers are woken with ``CLOSE``."""
        self._closed = True
        self._forever = False
        if not self._looping:
            self._release()

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        self._selector.close()
        _id_pool.release(self._id)

    def __enter__(self) -> Epoller:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


_local = threading.local()


def current_scheduler() -> Epoller:
    """The epoller belonging to the calling thread, created on first use."""
    scheduler = getattr(_local, "scheduler", None)
    if scheduler is None:
        scheduler = Epoller()
        _local.scheduler = scheduler
    return scheduler