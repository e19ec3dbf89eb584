"""Detach the current process from its terminal and record its pid."""

from __future__ import annotations

import os
import signal

PID_FILE = "pid.txt"


def write_pidfile(pid: int, path: str | os.PathLike = PID_FILE) -> None:
    """Write ``pid`` to ``path``, creating it or replacing its contents."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o640)
    with os.fdopen(fd, "w") as f:
        f.write(str(pid))


def daemonize(pid_path: str | os.PathLike = PID_FILE) -> bool:
    """Detach the calling process from its terminal and record its pid.

    The process becomes the leader of a new session unless it already is
    one; a process that leads its process group cannot do so, and the
    ``OSError`` from the system is raised. SIGCHLD is then ignored, the
    umask is cleared, the standard streams point at the null device and
    every other descriptor is closed.
    """
    if os.getsid(0) != os.getpid():
        os.setsid()
    signal.signal(signal.SIGCHLD, signal.SIG_IGN)

    os.umask(0)
    devnull = os.open(os.devnull, os.O_RDWR)
    for fd in (0, 1, 2):
        if fd != devnull:
            os.dup2(devnull, fd)
    if devnull > 2:
        os.close(devnull)
    os.closerange(3, os.sysconf("SC_OPEN_MAX"))

    write_pidfile(os.getpid(), pid_path)
    return True