"""Named runtime configuration entries."""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class SysCfgType(IntEnum):
    """System configuration keys."""

    THREAD_NUM = 1


SYS_CFG: dict[SysCfgType, str] = {entry: entry.name for entry in SysCfgType}


def _key(entry: SysCfgType | str) -> str:
    if isinstance(entry, SysCfgType):
        return SYS_CFG[entry]
    if isinstance(entry, str):
        return entry
    raise TypeError(f"configuration key must be SysCfgType or str, not {type(entry).__name__}")


class DynamicConfig:
    """A store of configuration values keyed by entry name."""

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}

    def set_entry(self, entry: SysCfgType | str, value: Any) -> None:
        """Store ``value`` under ``entry``."""
        self._entries[_key(entry)] = value

    def get_entry(self, entry: SysCfgType | str, default: Any = None) -> Any:
        """Return the value stored under ``entry``, or ``default``."""
        return self._entries.get(_key(entry), default)

    def __contains__(self, entry: object) -> bool:
        try:
            return _key(entry) in self._entries  # type: ignore[arg-type]
        except TypeError:
            return False

    def __len__(self) -> int:
        return len(self._entries)