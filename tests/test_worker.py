import threading
import time

import pytest

from yrpckit.worker import ThreadStatus, Worker


def _wait_until(pred, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not pred() and time.monotonic() < deadline:
        time.sleep(0.005)
    return pred()


def test_start_without_function_fails():
    worker = Worker()
    assert worker.start(None) is False
    assert worker.is_run is False


def test_loop_stops_when_function_says_stop():
    calls = []
    stopped = threading.Event()

    def func():
        calls.append(1)
        if len(calls) == 5:
            stopped.set()
            return ThreadStatus.STOP
        return ThreadStatus.RUNNING

    worker = Worker()
    assert worker.start(func) is True
    assert stopped.wait(5)
    assert _wait_until(lambda: not worker.is_running)
    worker.close()
    assert len(calls) == 5
    assert worker.is_run is False


def test_arguments_are_passed_to_function():
    seen = []

    def func(a, b):
        seen.append((a, b))
        return ThreadStatus.STOP

    with Worker() as worker:
        assert worker.start(func, "x", 7) is True
        assert _wait_until(lambda: not worker.is_running)
    assert seen == [("x", 7)]
    assert worker.is_run is False


def test_blocking_waits_for_restart():
    calls = []

    def func():
        calls.append(1)
        return ThreadStatus.BLOCKING

    worker = Worker()
    worker.start(func)
    assert _wait_until(lambda: worker.is_block)
    assert len(calls) == 1
    worker.restart()
    assert _wait_until(lambda: len(calls) >= 2)
    worker.close()
    assert worker.is_running is False


def test_close_releases_blocked_thread():
    worker = Worker()
    worker.start(lambda: ThreadStatus.BLOCKING)
    assert _wait_until(lambda: worker.is_block)
    worker.close()
    assert worker.is_running is False
    assert worker.is_block is False


def test_double_start_is_rejected():
    worker = Worker()
    worker.start(lambda: ThreadStatus.BLOCKING)
    try:
        with pytest.raises(RuntimeError):
            worker.start(lambda: ThreadStatus.STOP)
    finally:
        worker.close()