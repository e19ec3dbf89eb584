"""Small socket option helpers."""

from __future__ import annotations

import socket


def set_nonblocking(sock: socket.socket) -> bool:
    """Put ``sock`` in non-blocking mode; return whether it was blocking."""
    was_blocking = sock.getblocking()
    sock.setblocking(False)
    return was_blocking


def set_nodelay(sock: socket.socket, flag: bool) -> None:
    """Turn Nagle's algorithm off (``flag`` true) or on for ``sock``."""
    sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1 if flag else 0)


def get_socket_error(sock: socket.socket) -> int:
    """Return and clear the pending error code of ``sock``."""
    return sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)