import selectors
import socket
import threading

import pytest

from yrpckit.epoller import Epoller, EventStatus, RoutineSocket, current_scheduler
from yrpckit.timequeue import now_ms


@pytest.fixture
def ep():
    poller = Epoller()
    yield poller
    poller.close()


def _sleeper(ep, ms, out):
    def body(_):
        s = RoutineSocket(scheduler=ep)
        s.routine_index = ep.current_routine()
        ep.add_routine_timer(s, now_ms() + ms)
        ep.yield_task()
        out.append(s.eventtype)

    return body


def test_task_runs_with_argument(ep):
    results = []
    ep.add_task(results.append, "hello")
    ep.loop()
    assert results == ["hello"]
    assert ep.size == 0


def test_suspend_resumes_on_next_pass(ep):
    results = []

    def body(_):
        results.append("before")
        ep.suspend()
        results.append("after")

    ep.add_task(body)
    ep.loop()
    assert ep.size == 0
    assert ep.current_routine() == -1
    assert results == ["before", "after"]


def test_routine_timer_wakes_with_timeout(ep):
    out = []
    ep.add_task(_sleeper(ep, 20, out))
    ep.loop()
    assert out == [EventStatus.TIMEOUT]


def test_one_shot_timer_fires_once(ep):
    fired = []
    ep.add_timer(lambda: fired.append("tick"), 0)
    out = []
    ep.add_task(_sleeper(ep, 40, out))
    ep.loop()
    assert fired == ["tick"]
    assert out == [EventStatus.TIMEOUT]


def test_queue_full():
    with Epoller(max_queue=2) as poller:
        poller.add_task_unsafe(lambda _: None)
        assert not poller.queue_full()
        poller.add_task_unsafe(lambda _: None)
        assert poller.queue_full()


def test_current_routine_inside_and_outside(ep):
    seen = []
    ep.add_task(lambda _: seen.append(ep.current_routine()))
    assert ep.current_routine() == -1
    ep.loop()
    assert seen == [0]


def test_yield_outside_routine_is_refused(ep):
    assert ep.yield_task() is False


def test_socket_timer_calls_callback(ep):
    hits = []
    s = RoutineSocket(scheduler=ep, socket_timeout_ms=0)
    s.on_socket_timeout = lambda sock: hits.append((sock, sock.eventtype))
    ep.add_socket_timer(s)
    out = []
    ep.add_task(_sleeper(ep, 30, out))
    ep.loop()
    assert hits == [(s, EventStatus.TIMEOUT)]


def test_canceled_socket_timer_does_not_fire(ep):
    hits = []
    s = RoutineSocket(scheduler=ep, socket_timeout_ms=0)
    s.on_socket_timeout = hits.append
    ep.add_socket_timer(s)
    ep.cancel_socket_timer(s)
    out = []
    ep.add_task(_sleeper(ep, 30, out))
    ep.loop()
    assert hits == []
    assert out == [EventStatus.TIMEOUT]


def test_reset_socket_timer_replaces_task(ep):
    s = RoutineSocket(scheduler=ep)
    old = ep.add_socket_timer(s)
    new = ep.reset_socket_timer(s)
    assert old.canceled
    assert not new.canceled
    assert s.timetask is new


def test_watch_wakes_on_readable(ep):
    a, b = socket.socketpair()
    try:
        result = {}

        def body(_):
            s = RoutineSocket(scheduler=ep, sock=a)
            s.routine_index = ep.current_routine()
            ep.watch(s, selectors.EVENT_READ)
            ep.yield_task()
            ep.unwatch(s)
            result["event"] = s.eventtype
            result["data"] = a.recv(16)

        b.sendall(b"x")
        ep.add_task(body)
        ep.loop()
        assert ep.size == 0
        assert result["event"] & selectors.EVENT_READ
        assert result["data"] == b"x"
    finally:
        a.close()
        b.close()


def test_close_wakes_timer_waiters_with_close():
    poller = Epoller()
    out = []
    poller.add_task(_sleeper(poller, 10_000, out))
    poller.add_task(lambda _: poller.close())
    poller.loop()
    assert out == [EventStatus.CLOSE]
    assert poller.closed


def test_run_forever_stops_on_close():
    poller = Epoller()
    poller.run_forever()
    poller.add_task(lambda _: poller.close())
    poller.loop()
    assert poller.closed
    with pytest.raises(RuntimeError):
        poller.loop()


def test_live_epollers_have_distinct_ids():
    first = Epoller()
    second = Epoller()
    try:
        assert first.id != second.id
        assert first.id > 0 and second.id > 0
    finally:
        first.close()
        second.close()


def test_current_scheduler_is_per_thread():
    main = current_scheduler()
    assert current_scheduler() is main
    other = []
    t = threading.Thread(target=lambda: other.append(current_scheduler()))
    t.start()
    t.join()
    assert len(other) == 1
    assert other[0] is not main
    assert isinstance(other[0], Epoller)


def test_add_task_from_other_thread(ep):
    results = []
    threads = [threading.Thread(target=ep.add_task, args=(results.append, i)) for i in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    ep.loop()
    assert ep.size == 0
    assert ep.queue_full() is False
    assert sorted(results) == list(range(5))