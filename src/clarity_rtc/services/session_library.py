from __future__ import annotations

from loguru import logger

from clarity_rtc.errors import SessionActiveError, SnapshotStoreError
from clarity_rtc.session.lifecycle import SessionLifecycleController
from clarity_rtc.storage.base import SnapshotStore
from clarity_rtc.telemetry.snapshot import SavedSession


class SessionLibrary:
    """Named session snapshots: save the current telemetry, list, load, delete.

    Store failures are reported as messages; retrying is left to the user.
    """

    def __init__(
        self,
        *,
        store: SnapshotStore,
        controller: SessionLifecycleController,
        line_prefix: str = "",
        short_id_len: int = 8,
    ):
        self._store = store
        self._controller = controller
        self._line_prefix = line_prefix
        self._short_id_len = short_id_len
        self._sessions: list[SavedSession] = []

    @property
    def sessions(self) -> list[SavedSession]:
        return list(self._sessions)

    def short_id(self, value: str) -> str:
        if len(value) <= self._short_id_len:
            return value
        return value[: self._short_id_len]

    async def refresh(self) -> str | None:
        try:
            self._sessions = await self._store.list()
        except SnapshotStoreError as ex:
            logger.error(f"Error loading sessions: {ex}")
            return f"{self._line_prefix}Failed to load sessions"
        return None

    async def save(self, name: str) -> str:
        trimmed = name.strip()
        if not trimmed:
            return f"{self._line_prefix}Please enter a session name"
        if self._controller.is_busy:
            return f"{self._line_prefix}Stop the current session before saving it"

        try:
            session_id = await self._store.save(self._controller.snapshot(trimmed))
        except SnapshotStoreError as ex:
            logger.error(f"Error saving session: {ex}")
            return f"{self._line_prefix}Failed to save session"

        await self.refresh()
        return f"{self._line_prefix}Session saved: {trimmed} [{self.short_id(session_id)}]"

    async def load(self, identifier: str) -> str:
        saved = self.resolve(identifier)
        if saved is None:
            return f"{self._line_prefix}Session not found: {identifier}"
        try:
            self._controller.load_snapshot(saved.snapshot)
        except SessionActiveError as ex:
            logger.warning(str(ex))
            return f"{self._line_prefix}Please disconnect current session before loading a saved one"
        return f"{self._line_prefix}Session loaded: {saved.snapshot.name}"

    async def delete(self, identifier: str) -> str:
        saved = self.resolve(identifier)
        if saved is None:
            return f"{self._line_prefix}Session not found: {identifier}"
        try:
            await self._store.delete(saved.id)
        except SnapshotStoreError as ex:
            logger.error(f"Error deleting session: {ex}")
            return f"{self._line_prefix}Failed to delete session"

        await self.refresh()
        return f"{self._line_prefix}Session deleted: {saved.snapshot.name}"

    def resolve(self, identifier: str) -> SavedSession | None:
        """Find a listed session by full id or unique id prefix."""
        value = identifier.strip()
        if not value:
            return None
        exact = [s for s in self._sessions if s.id == value]
        if exact:
            return exact[0]
        matches = [s for s in self._sessions if s.id.startswith(value)]
        return matches[0] if len(matches) == 1 else None

    def format_entry(self, saved: SavedSession) -> str:
        snapshot = saved.snapshot
        return (
            f"{self._line_prefix}{snapshot.name} [{self.short_id(saved.id)}] "
            f"(created={saved.created_at}, model={snapshot.model}, voice={snapshot.voice}, "
            f"total=${snapshot.session_stats.total_cost:.4f})"
        )

    def format_list(self) -> list[str]:
        if not self._sessions:
            return [f"{self._line_prefix}No saved sessions found"]
        return [self.format_entry(saved) for saved in self._sessions]
