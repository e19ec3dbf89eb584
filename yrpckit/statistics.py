"""Byte counters for traffic monitoring."""

from __future__ import annotations

from dataclasses import dataclass

_UINT64 = 0xFFFFFFFFFFFFFFFF


@dataclass
class ByteRecord:
    """Running totals of received and sent bytes, as 64-bit counters."""

    recv_bytes: int = 0
    send_bytes: int = 0

    def add_recv_bytes(self, value: int) -> int:
        """Add to the received total and return the new total."""
        self.recv_bytes = (self.recv_bytes + value) & _UINT64
        return self.recv_bytes

    def add_send_bytes(self, value: int) -> int:
        """Add to the sent total and return the new total."""
        self.send_bytes = (self.send_bytes + value) & _UINT64
        return self.send_bytes