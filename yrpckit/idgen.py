"""Time based identifier generators."""

from __future__ import annotations

import time
from typing import Callable

_UINT32 = 0xFFFFFFFF
_UINT64 = 0xFFFFFFFFFFFFFFFF
_MINUTE_US = 1 * 60 * 1000 * 1000
_WEEK_MS = 7 * 24 * 60 * 60 * 1000


class IdGenerator:
    """Generates identifiers from a nanosecond clock.

    Each generator keeps its own history, so identifiers are only
    distinct among those produced by the same instance.
    """

    def __init__(self, clock_ns: Callable[[], int] = time.time_ns) -> None:
        self._clock_ns = clock_ns

        self._per64: int | None = None
        self._index64 = 0

        self._start_us: int | None = None
        self._expire_us = 0
        self._per32 = 0
        self._index32 = 1

        self._per_unsafe: int | None = None
        self._index_unsafe = 0

    def next_uint64(self) -> int:
        """A 64-bit identifier taken from the current time in ns."""
        ident = self._clock_ns()
        if self._per64 is None:
            self._per64 = ident
        if self._per64 == ident:
            ident += self._index64
            self._index64 += 1
        else:
            self._per64 = ident
            self._index64 = 0
        return ident & _UINT64

    def next_uint32(self) -> int:
        """A 32-bit identifier, unique within one minute."""
        now_us = self._clock_ns() // 1000
        if self._start_us is None:
            self._start_us = now_us
            self._expire_us = now_us + _MINUTE_US
        if self._expire_us <= now_us:
            self._expire_us = now_us + _MINUTE_US
        ident = (self._expire_us - self._start_us) & _UINT32
        if self._per32 == ident:
            ident = (ident + self._index32) & _UINT32
            self._index32 += 1
        else:
            self._per32 = ident
            self._index32 = 1
        return ident

    def next_uint32_unsafe(self) -> int:
        """A 32-bit identifier with weak uniqueness; 0 when exhausted."""
        ns = self._clock_ns()
        if self._per_unsafe is None:
            self._per_unsafe = (ns // 1000 // 1000 % _WEEK_MS) & _UINT32
        ident = (ns // 1000 % (1000 * 1000 * 1000)) & _UINT32
        if self._per_unsafe == ident:
            if self._index_unsafe >= _WEEK_MS:
                ident = 0
            else:
                ident = (ident + _WEEK_MS + self._index_unsafe) & _UINT32
                self._index_unsafe += 1
        else:
            self._per_unsafe = ident
            self._index_unsafe = 0
        return ident