"""Stackful routines with explicit resume/yield and a slot-based scheduler.

Each routine runs on its own thread, but control is handed over
explicitly: exactly one side, the resumer or the routine, runs at a
time. A routine may yield from any depth of calls.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable

RoutineFunc = Callable[[Any], object]
DoneCallback = Callable[[], object]


class RoutineStatus(IntEnum):
    """Run state of a routine slot in a scheduler."""

    RUNNING = 0
    SUSPEND = 1
    BLOCK = 2
    DONE = 3


class RoutineContext:
    """One resumable routine: ``func(arg)`` run with explicit switches.

    :meth:`resume` hands control to the routine and blocks until it
    yields or finishes. :meth:`yield_`, called from inside the routine,
    hands control back. ``done_callback`` runs inside the routine once
    its function has returned. An exception raised by the routine is
    raised again from the :meth:`resume` call that was running it.
    """

    def __init__(
        self,
        func: RoutineFunc,
        arg: Any = None,
        done_callback: DoneCallback | None = None,
    ) -> None:
        self._done_callback = done_callback
        self._to_routine = threading.Semaphore(0)
        self._to_caller = threading.Semaphore(0)
        self._thread: threading.Thread | None = None
        self._func: RoutineFunc = func
        self._arg: Any = arg
        self._finished = False
        self._running = False
        self._error: BaseException | None = None
        self.make(func, arg)

    @property
    def finished(self) -> bool:
        """Whether the routine's function has returned."""
        return self._finished

    @property
    def running(self) -> bool:
        """Whether the routine currently holds control."""
        return self._running

    @property
    def started(self) -> bool:
        """Whether the routine has been resumed at least once."""
        return self._thread is not None

    def make(self, func: RoutineFunc, arg: Any = None) -> None:
        """Prepare the context to run ``func(arg)`` from its start.

        A routine that has started but not finished cannot be remade.
        """
        if self._thread is not None and not self._finished:
            raise RuntimeError("cannot remake a routine that has not finished")
        self._func = func
        self._arg = arg
        self._thread = None
        self._finished = False
        self._running = False
        self._error = None

    def _on_own_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def _main(self) -> None:
        try:
            self._func(self._arg)
        except BaseException as exc:  # handed to the resumer
            self._error = exc
        finally:
            try:
                if self._done_callback is not None:
                    self._done_callback()
            except BaseException as exc:
                if self._error is None:
                    self._error = exc
            finally:
                self._finished = True
                self._running = False
                self._to_caller.release()

    def resume(self) -> bool:
        """Run the routine until it yields or ends; False if it has ended."""
        if self._finished:
            return False
        if self._running:
            raise RuntimeError("routine is already running")
        if self._on_own_thread():
            raise RuntimeError("a routine cannot resume itself")
        self._running = True
        if self._thread is None:
            self._thread = threading.Thread(target=self._main, daemon=True)
            self._thread.start()
        else:
            self._to_routine.release()
        self._to_caller.acquire()
        if self._error is not None:
            error, self._error = self._error, None
            raise error
        return True

    def yield_(self) -> bool:
        """Give control back to the resumer; returns when resumed again."""
        if not self._on_own_thread() or not self._running:
            raise RuntimeError("yield called outside of the routine")
        self._running = False
        self._to_caller.release()
        self._to_routine.acquire()
        return True


@dataclass
class _RoutineNode:
    context: RoutineContext
    next_free: int = -1
    status: RoutineStatus = RoutineStatus.SUSPEND


class Scheduler:
    """Keeps routines in reusable slots and switches between them.

    Slots of finished routines go on a free list and are handed out
    again, most recently freed first, before new slots are created.
    """

    def __init__(self) -> None:
        self._nodes: list[_RoutineNode] = []
        self._current = -1
        self._free = -1
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def _routine_done(self) -> None:
        if self._current < 0:
            return
        node = self._nodes[self._current]
        node.next_free = self._free
        node.status = RoutineStatus.DONE
        self._free = self._current
        self._current = -1
        self._count -= 1

    def add(self, func: RoutineFunc, arg: Any = None) -> int:
        """Register ``func(arg)`` as a suspended routine; return its handle."""
        if self._free >= 0:
            index = self._free
            node = self._nodes[index]
            self._free = node.next_free
            node.context.make(func, arg)
        else:
            index = len(self._nodes)
            node = _RoutineNode(RoutineContext(func, arg, self._routine_done))
            self._nodes.append(node)
        node.status = RoutineStatus.SUSPEND
        node.next_free = -1
        self._count += 1
        return index

    def status(self, index: int) -> RoutineStatus:
        """Run state of the slot ``index``; IndexError if there is none."""
        if not 0 <= index < len(self._nodes):
            raise IndexError(f"no routine slot {index}")
        return self._nodes[index].status

    def resume(self, index: int) -> bool:
        """Run the suspended routine ``index``; False if it cannot run."""
        if not 0 <= index < len(self._nodes):
            return False
        node = self._nodes[index]
        if node.status != RoutineStatus.SUSPEND:
            return False
        node.status = RoutineStatus.RUNNING
        self._current = index
        node.context.resume()
        return True

    def yield_current(self) -> bool:
        """Suspend the running routine; False if none is running here."""
        if self._current < 0:
            return False
        node = self._nodes[self._current]
        if not node.context._on_own_thread():
            return False
        node.status = RoutineStatus.SUSPEND
        self._current = -1
        node.context.yield_()
        return True

    def empty(self) -> bool:
        """Whether no unfinished routine is registered."""
        return self._count == 0

    def current(self) -> int:
        """Handle of the running routine, or -1."""
        return self._current