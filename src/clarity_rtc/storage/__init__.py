from clarity_rtc.storage.base import SnapshotStore
from clarity_rtc.storage.sqlite_store import SqliteSnapshotStore
from clarity_rtc.storage.supabase_store import SupabaseSnapshotStore

__all__ = [
    "SnapshotStore",
    "SqliteSnapshotStore",
    "SupabaseSnapshotStore",
]
