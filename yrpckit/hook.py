"""Socket operations that park the running routine instead of blocking.

Each call first tries the operation directly on a non-blocking file.
When it would block, the routine registers with its epoller, yields,
and retries once it has been woken by readiness or by its timeout.
"""

from __future__ import annotations

import contextlib
import errno
import os
import socket as _socket
from typing import Any

from .epoller import EVENT_READ, EVENT_WRITE, Epoller, EventStatus, RoutineSocket
from .tcputil import get_socket_error, set_nodelay, set_nonblocking
from .timequeue import now_ms

_FOREVER_MS = 2**31 - 1
_LISTEN_BACKLOG = 1024
_IN_PROGRESS = frozenset({errno.EINPROGRESS, errno.EAGAIN, errno.EWOULDBLOCK})


def _fileno(obj: Any) -> int:
    return obj if isinstance(obj, int) else obj.fileno()


def _close_file(obj: Any) -> None:
    if isinstance(obj, int):
        os.close(obj)
    else:
        obj.close()


def _require_routine(socket: RoutineSocket) -> Epoller:
    poller = socket.scheduler
    if poller is None:
        raise ValueError("socket has no scheduler")
    if poller.current_routine() < 0:
        raise RuntimeError("must be called from inside a routine")
    return poller


def create_socket(
    sock: Any,
    poller: Epoller,
    socket_timeout_ms: int = 5000,
    connect_timeout_ms: int = 3000,
    nonblocking: bool = True,
    nodelay: bool = True,
) -> RoutineSocket:
    """Wrap a socket or file descriptor so routines can wait on it.

    ``sock`` may be None for a wrapper used only for timed waits.
    Failing to set TCP_NODELAY, as on non-TCP sockets, is ignored.
    """
    if isinstance(sock, int):
        if sock >= 0 and nonblocking:
            os.set_blocking(sock, False)
    elif sock is not None:
        if nonblocking:
            set_nonblocking(sock)
        if nodelay:
            with contextlib.suppress(OSError):
                set_nodelay(sock, True)
    return RoutineSocket(
        scheduler=poller,
        sock=sock,
        eventtype=0,
        socket_timeout_ms=socket_timeout_ms,
        connect_timeout_ms=connect_timeout_ms,
    )


def destroy_socket(socket: RoutineSocket) -> None:
    """Close the wrapped file and clear every field of ``socket``."""
    if socket.sock is not None and not (isinstance(socket.sock, int) and socket.sock < 0):
        with contextlib.suppress(OSError):
            _close_file(socket.sock)
    socket.socket_timeout_ms = -1
    socket.connect_timeout_ms = -1
    socket.scheduler = None
    socket.sock = None
    socket.timetask = None
    socket.eventtype = -1


def poll(socket: RoutineSocket, events: int, timeout_ms: int) -> bool:
    """Yield until ``socket`` is ready for ``events`` or ``timeout_ms`` passes.

    A negative timeout waits without limit. Returns True when ready and
    False on timeout. Raises ConnectionAbortedError if the epoller closes
    meanwhile, and OSError if it fails or reports other events.
    """
    poller = _require_routine(socket)
    socket.routine_index = poller.current_routine()
    wait_ms = timeout_ms if timeout_ms >= 0 else _FOREVER_MS
    poller.add_routine_timer(socket, now_ms() + wait_ms)
    poller.watch(socket, events)
    try:
        poller.yield_task()
    finally:
        poller.unwatch(socket)
        poller.cancel_timer(socket)

    revents = socket.eventtype
    if revents > 0:
        if revents & events:
            return True
        raise OSError(errno.EINVAL, "socket became ready for other events")
    if revents == EventStatus.TIMEOUT:
        return False
    if revents == EventStatus.ERROR:
        raise OSError("event loop failed while waiting")
    raise ConnectionAbortedError("event loop closed while waiting")


def connect(socket: RoutineSocket, address: Any) -> None:
    """Connect to ``address``, waiting up to the socket's connect timeout."""
    err = socket.sock.connect_ex(address)
    if err == 0:
        return
    if err not in _IN_PROGRESS:
        raise OSError(err, os.strerror(err))
    if not poll(socket, EVENT_WRITE, socket.connect_timeout_ms):
        raise TimeoutError(f"connect timed out after {socket.connect_timeout_ms} ms")
    err = get_socket_error(socket.sock)
    if err:
        raise OSError(err, os.strerror(err))


def accept(listen_socket: RoutineSocket) -> tuple[_socket.socket, Any]:
    """Accept a connection, waiting for one if none is queued."""
    try:
        return listen_socket.sock.accept()
    except BlockingIOError:
        pass
    poll(listen_socket, EVENT_READ, -1)
    return listen_socket.sock.accept()


def create_listen(port: int) -> _socket.socket:
    """Open a TCP socket listening on ``port`` on every IPv4 address."""
    listener = _socket.socket(_socket.AF_INET, _socket.SOCK_STREAM)
    try:
        listener.setsockopt(_socket.SOL_SOCKET, _socket.SO_REUSEADDR, 1)
        listener.bind(("", port))
        listener.listen(_LISTEN_BACKLOG)
    except OSError:
        listener.close()
        raise
    return listener


def recv(socket: RoutineSocket, size: int, flags: int = 0) -> bytes:
    """Receive up to ``size`` bytes, waiting up to the socket timeout."""
    try:
        return socket.sock.recv(size, flags)
    except BlockingIOError:
        pass
    if not poll(socket, EVENT_READ, socket.socket_timeout_ms):
        raise TimeoutError(f"recv timed out after {socket.socket_timeout_ms} ms")
    return socket.sock.recv(size, flags)


def read(socket: RoutineSocket, size: int) -> bytes:
    """Read up to ``size`` bytes from the file, waiting up to the socket timeout."""
    fd = _fileno(socket.sock)
    try:
        return os.read(fd, size)
    except BlockingIOError:
        pass
    if not poll(socket, EVENT_READ, socket.socket_timeout_ms):
        raise TimeoutError(f"read timed out after {socket.socket_timeout_ms} ms")
    return os.read(fd, size)


def send(socket: RoutineSocket, data: bytes, flags: int = 0) -> int:
    """Send ``data``, waiting for room if needed; return bytes sent."""
    try:
        return socket.sock.send(data, flags)
    except BlockingIOError:
        pass
    poll(socket, EVENT_WRITE, -1)
    return socket.sock.send(data, flags)


def write(socket: RoutineSocket, data: bytes) -> int:
    """Write ``data`` to the file, waiting for room if needed."""
    fd = _fileno(socket.sock)
    try:
        return os.write(fd, data)
    except BlockingIOError:
        pass
    poll(socket, EVENT_WRITE, -1)
    return os.write(fd, data)


def close(socket: RoutineSocket) -> None:
    """Drop the socket's timer and close its file."""
    socket.timetask = None
    if socket.sock is None or (isinstance(socket.sock, int) and socket.sock < 0):
        raise ValueError("socket is already closed")
    sock, socket.sock = socket.sock, None
    _close_file(sock)


def set_connect_timeout(socket: RoutineSocket, timeout_ms: int) -> None:
    """Set how long :func:`connect` waits."""
    socket.connect_timeout_ms = timeout_ms


def set_socket_timeout(socket: RoutineSocket, timeout_ms: int) -> None:
    """Set how long :func:`recv` and :func:`read` wait."""
    socket.socket_timeout_ms = timeout_ms


def wait(socket: RoutineSocket, timeout_ms: int) -> int:
    """Yield for ``timeout_ms``; return the event status that woke the routine."""
    poller = _require_routine(socket)
    socket.routine_index = poller.current_routine()
    poller.add_routine_timer(socket, now_ms() + timeout_ms)
    poller.yield_task()
    return socket.eventtype


def sleep(poller: Epoller, sleep_ms: int) -> None:
    """Suspend the running routine for ``sleep_ms`` milliseconds.

    Raises InterruptedError if it is woken by anything but its timer.
    """
    if sleep_ms < 0:
        raise ValueError(f"sleep time must not be negative: {sleep_ms}")
    timer_socket = create_socket(None, poller)
    if wait(timer_socket, sleep_ms) != EventStatus.TIMEOUT:
        raise InterruptedError("sleep was interrupted")


class EpollCond:
    """A condition routines wait on, signalled through a pipe."""

    def __init__(self) -> None:
        self._socket: RoutineSocket | None = None
        self._write_fd = -1

    def init(self, poller: Epoller, timeout_ms: int = -1) -> None:
        """Create the pipe; ``timeout_ms`` bounds each wait, -1 for none."""
        read_fd, write_fd = os.pipe()
        os.set_blocking(write_fd, False)
        self._write_fd = write_fd
        self._socket = create_socket(read_fd, poller, timeout_ms)

    def wait(self) -> None:
        """Yield until notified."""
        if self._socket is None:
            raise RuntimeError("condition is not initialised")
        read(self._socket, 1)

    def notify(self) -> None:
        """Wake one waiting routine."""
        if self._write_fd < 0:
            raise RuntimeError("condition is not initialised")
        os.write(self._write_fd, b"1")

    def close(self) -> None:
        """Release the pipe."""
        if self._socket is not None:
            destroy_socket(self._socket)
            self._socket = None
        if self._write_fd >= 0:
            os.close(self._write_fd)
            self._write_fd = -1

    def __enter__(self) -> EpollCond:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()