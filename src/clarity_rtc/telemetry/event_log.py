from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

EVENT_LOG_CAPACITY = 50


def utc_timestamp(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, UTC).isoformat(timespec="milliseconds")


@dataclass(frozen=True)
class EventLogEntry:
    timestamp: str
    raw: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "data": self.raw}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventLogEntry:
        raw = data.get("data")
        return cls(timestamp=str(data.get("timestamp", "")), raw=raw if isinstance(raw, dict) else {})


class EventLog:
    """Bounded raw-event history, newest first. Overflow drops the oldest entry."""

    def __init__(self, capacity: int = EVENT_LOG_CAPACITY) -> None:
        self._entries: deque[EventLogEntry] = deque(maxlen=max(1, capacity))

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def append(self, raw: dict[str, Any], now: int) -> EventLogEntry:
        entry = EventLogEntry(timestamp=utc_timestamp(now), raw=raw)
        self._entries.appendleft(entry)
        return entry

    def entries(self) -> list[EventLogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def load(self, entries: list[EventLogEntry]) -> None:
        """Replace the history with ``entries`` (newest first), keeping the newest ones."""
        self._entries.clear()
        for entry in entries[: self.capacity]:
            self._entries.append(entry)
