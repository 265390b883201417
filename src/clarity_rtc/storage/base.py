from __future__ import annotations

from typing import Protocol, runtime_checkable

from clarity_rtc.telemetry.snapshot import SavedSession, SessionSnapshot


@runtime_checkable
class SnapshotStore(Protocol):
    async def save(self, snapshot: SessionSnapshot) -> str:
        """Persist a snapshot and return its id."""
        ...

    async def list(self) -> list[SavedSession]:
        """Return saved sessions, newest first."""
        ...

    async def delete(self, session_id: str) -> None: ...
