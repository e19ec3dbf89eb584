# yrpckit

Building blocks for RPC services on POSIX systems:

- `yrpckit.errors`: error categories (`ErrType`, `NetworkErr`, `HandshakeErr`, `YcoErr`) and the `ErrorCode` record, with `set`, `set_info` and `what`.
- `yrpckit.config`: `SysCfgType` keys and the `DynamicConfig` store (`set_entry`, `get_entry`).
- `yrpckit.timequeue`: a min-heap `TimerQueue` of `TimerTask` entries, one-shot or repeating, plus the `now_ms()` and `expired()` helpers.
- `yrpckit.idgen`: `IdGenerator`, producing time-based identifiers with `next_uint64`, `next_uint32` and `next_uint32_unsafe`.
- `yrpckit.statistics`: `ByteRecord`, counting bytes received and sent.
- `yrpckit.locker`: `Signal` (wait/notify) and `CountDownLatch`.
- `yrpckit.worker`: a `Worker` thread that calls a function in a loop, steered by the `ThreadStatus` it returns.
- `yrpckit.threadpool`: a `ThreadPool` built on `Worker`; `add_task` raises `PoolStoppedError` once the pool is stopped.
- `yrpckit.containers`: `ThreadSafeMap` and `ThreadSafeQueue`.
- `yrpckit.tcputil`: `set_nonblocking`, `set_nodelay`, `get_socket_error`.
- `yrpckit.daemon`: `daemonize` and `write_pidfile`.
- `yrpckit.coroutine`: a `Scheduler` of `RoutineContext` routines that hand control over explicitly with `resume` and `yield_`.
- `yrpckit.epoller`: the `Epoller` event loop. It wakes routines on file readiness (through the standard `selectors` module), on timers and after `suspend`. `current_scheduler()` returns the instance for the calling thread.
- `yrpckit.hook`: socket calls that park the running routine instead of blocking. These are `connect`, `accept`, `recv`, `read`, `send`, `write`, `poll`, `wait` and `sleep`. The module also has `create_socket`, `destroy_socket`, `create_listen` and the pipe-based `EpollCond`.

The package has no runtime dependencies.

## Installing

```
pip install .
```

## A timer queue

```python
from yrpckit.timequeue import TimerQueue, now_ms

queue = TimerQueue()
queue.add_task(now_ms() + 100, "hello")
queue.sleep_for(150)
for task in queue.pop_timeout_tasks():
    print(task.data)
```

## A routine that sleeps

```python
from yrpckit import hook
from yrpckit.epoller import current_scheduler

poller = current_scheduler()

def job(arg):
    hook.sleep(poller, 200)
    print("woke up", arg)

poller.add_task(job, "first")
poller.loop()
```

`loop()` returns once no routine is left. After `run_forever()` it keeps going until `close()` is called.

## What it does not do

The package provides the scheduling, timing, threading and socket layers only. It has no message protocol, no service registry, no RPC client or server and no command-line program. Those have to be built on top of it.

## Running the tests

```
pip install .[test]
pytest
```