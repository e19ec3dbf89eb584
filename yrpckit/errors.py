"""Error categories, error codes and a small mutable error record."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

_INFO_BUFFER_SIZE = 128


class ErrType(IntEnum):
    """Broad category an error belongs to."""

    NOTHING = 0
    NETWORK = 100
    HANDSHAKE = 101
    YCO = 102


class NetworkErr(IntEnum):
    """Network error and status codes."""

    DEFAULT = 0
    SEND_FAIL = 1001
    RECV_FAIL = 1002
    CONN_CLOSED = 1010
    CONN_OTHER_ERR = 1011
    ECONNREFUSED = 1111
    ACCEPT_FAIL = 1121

    SEND_OK = 2002
    RECV_OK = 2003
    CONN_OK = 2004
    CLOSE_OK = 2005
    ACCEPT_OK = 2006


class HandshakeErr(IntEnum):
    """Session handshake results."""

    SUCCESS = 0
    TIMEOUT = 1001
    SESS_NOTEXIST = 1002
    UNDONE_FAILED = 1003
    SESS_EXIST = 1004


class YcoErr(IntEnum):
    """Coroutine related results."""

    TIMEOUT = 0


@dataclass
class ErrorCode:
    """An error description, its category and its numeric code."""

    info: str = "nothing"
    err_type: ErrType = ErrType.NOTHING
    code: int = 0

    def set(self, info: str, err_type: ErrType, code: int) -> None:
        """Replace all three parts at once."""
        self.info = info
        self.err_type = ErrType(err_type)
        self.code = code

    def set_info(self, fmt: str, *args: object) -> None:
        """Set the description.

        With arguments, ``fmt`` is a printf-style format and the result is
        cut to fit a 128-byte buffer (127 bytes of text). Without arguments
        the text is stored unchanged.
        """
        if not args:
            self.info = fmt
            return
        raw = (fmt % args).encode("utf-8")[: _INFO_BUFFER_SIZE - 1]
        self.info = raw.decode("utf-8", errors="ignore")

    def what(self) -> str:
        """Return the description."""
        return self.info