from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from clarity_rtc.pricing import DEFAULT_PRICING, PricingConfig

VOICES = ("ash", "ballad", "coral", "sage", "verse")
DEFAULT_MODEL = "gpt-4o-realtime-preview-2024-12-17"
DEFAULT_PROMPT = "You are a helpful AI assistant. Be concise and friendly in your responses."


@dataclass
class RuntimeEnv:
    openai_api_key: str
    supabase_url: str | None
    supabase_key: str | None


@dataclass
class AppConfig:
    model: str
    voice: str
    prompt: str
    pricing: PricingConfig
    settings_path: str
    snapshot_store: str
    snapshot_db_path: str
    replay_delay_ms: int
    log_level: str
    log_sinks: list | None


def load_json_config() -> dict:
    config_path = Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def parse_app_config(config: dict) -> AppConfig:
    voice = str(config.get("Voice", "ash")).strip().lower()
    if voice not in VOICES:
        raise ValueError(f"Unknown voice: {voice!r}. Supported: {', '.join(VOICES)}")

    snapshot_store = str(config.get("SnapshotStore", "sqlite")).strip().lower()
    if snapshot_store not in {"sqlite", "supabase", "none"}:
        raise ValueError(f"Unknown snapshot store: {snapshot_store!r}. Supported: 'sqlite', 'supabase', 'none'")

    return AppConfig(
        model=config.get("Model", DEFAULT_MODEL),
        voice=voice,
        prompt=config.get("Prompt", DEFAULT_PROMPT),
        pricing=PricingConfig.from_dict(config.get("Pricing") or {}, defaults=DEFAULT_PRICING),
        settings_path=str(config.get("SettingsPath", ".clarity_rtc/settings.json")),
        snapshot_store=snapshot_store,
        snapshot_db_path=str(config.get("SnapshotDbPath", ".clarity_rtc/sessions.db")),
        replay_delay_ms=max(0, int(config.get("ReplayDelayMs", 0))),
        log_level=config.get("LogLevel", "INFO"),
        log_sinks=config.get("LogSinks"),
    )


def resolve_runtime_env() -> RuntimeEnv:
    return RuntimeEnv(
        openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
        supabase_url=os.environ.get("SUPABASE_URL"),
        supabase_key=os.environ.get("SUPABASE_KEY"),
    )
