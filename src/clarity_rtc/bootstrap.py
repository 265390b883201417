from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from clarity_rtc.app_config import AppConfig, RuntimeEnv
from clarity_rtc.connection import NullCaptureProvider, ReplayConnector
from clarity_rtc.logging_config import setup_logging
from clarity_rtc.pricing import PricingConfig
from clarity_rtc.services.session_library import SessionLibrary
from clarity_rtc.session.lifecycle import SessionLifecycleController
from clarity_rtc.settings_store import JsonSettingsStore
from clarity_rtc.storage.base import SnapshotStore
from clarity_rtc.storage.sqlite_store import SqliteSnapshotStore
from clarity_rtc.storage.supabase_store import SupabaseSnapshotStore


@dataclass
class AppRuntime:
    controller: SessionLifecycleController
    connector: ReplayConnector
    settings: JsonSettingsStore
    snapshot_store: SnapshotStore | None
    library: SessionLibrary | None
    log_descriptions: list[str]
    default_pricing: PricingConfig

    def close(self) -> None:
        if isinstance(self.snapshot_store, SqliteSnapshotStore):
            self.snapshot_store.close()


def _resolve_path(value: str) -> Path:
    path = Path(value)
    if not path.is_absolute():
        path = Path.cwd() / path
    return path


def create_snapshot_store(app: AppConfig, env: RuntimeEnv) -> SnapshotStore | None:
    if app.snapshot_store == "none":
        return None
    if app.snapshot_store == "supabase":
        if not env.supabase_url or not env.supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY are required for the supabase snapshot store")
        return SupabaseSnapshotStore(env.supabase_url, env.supabase_key)
    return SqliteSnapshotStore(str(_resolve_path(app.snapshot_db_path)))


async def bootstrap_runtime(app: AppConfig, env: RuntimeEnv) -> AppRuntime:
    log_descriptions = setup_logging(level=app.log_level, sinks=app.log_sinks)

    settings = JsonSettingsStore(_resolve_path(app.settings_path))
    connector = ReplayConnector(delay_ms=app.replay_delay_ms)
    controller = SessionLifecycleController(
        capture_provider=NullCaptureProvider(),
        connector=connector,
        pricing=settings.load_pricing(default=app.pricing),
    )
    controller.voice, controller.model, controller.prompt = app.voice, app.model, app.prompt

    snapshot_store = create_snapshot_store(app, env)
    library: SessionLibrary | None = None
    if snapshot_store is not None:
        library = SessionLibrary(store=snapshot_store, controller=controller, line_prefix="clarity> ")
        message = await library.refresh()
        if message:
            logger.warning(message.strip())

    return AppRuntime(
        controller=controller,
        connector=connector,
        settings=settings,
        snapshot_store=snapshot_store,
        library=library,
        log_descriptions=log_descriptions,
        default_pricing=app.pricing,
    )
