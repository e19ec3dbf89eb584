import threading
import time

import pytest

from yrpckit.threadpool import PoolStoppedError, ThreadPool


def _wait_until(pred, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not pred() and time.monotonic() < deadline:
        time.sleep(0.005)
    return pred()


def test_all_tasks_are_run():
    done = []
    lock = threading.Lock()

    def make(i):
        def task():
            with lock:
                done.append(i)
        return task

    with ThreadPool(4) as pool:
        accepted = [pool.add_task(make(i)) for i in range(100)]
        assert _wait_until(lambda: len(done) == 100)
        assert _wait_until(lambda: pool.task_num == 0)
    assert accepted == [True] * 100
    assert sorted(done) == list(range(100))


def test_add_after_stop_raises():
    pool = ThreadPool(2)
    pool.stop()
    assert pool.is_running is False
    with pytest.raises(PoolStoppedError):
        pool.add_task(lambda: None)


def test_context_manager_stops_pool():
    with ThreadPool(1) as pool:
        pass
    with pytest.raises(PoolStoppedError):
        pool.add_task(lambda: None)


def test_negative_thread_count_rejected():
    with pytest.raises(ValueError):
        ThreadPool(-1)


def test_soft_queue_limit_is_reported_but_task_kept():
    pool = ThreadPool(0, max_queue_size=2)
    results = [pool.add_task(lambda: None) for _ in range(3)]
    assert results == [True, True, False]
    assert pool.task_num == 3
    pool.stop()


def test_failing_task_does_not_kill_worker():
    ran = threading.Event()

    def boom():
        raise RuntimeError("boom")

    with ThreadPool(1) as pool:
        pool.add_task(boom)
        pool.add_task(ran.set)
        assert ran.wait(5)


def test_tasks_run_concurrently():
    barrier = threading.Barrier(2, timeout=5)
    results = []
    lock = threading.Lock()

    def task():
        index = barrier.wait()
        with lock:
            results.append(index)

    with ThreadPool(2) as pool:
        assert pool.add_task(task) is True
        assert pool.add_task(task) is True
        assert _wait_until(lambda: len(results) == 2)
    assert set(results) == {0, 1}


def test_idle_threads_go_to_sleep():
    with ThreadPool(3) as pool:
        assert _wait_until(lambda: pool.run_thread_num == 0)
        assert pool.task_num == 0