from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger

from clarity_rtc.pricing import DEFAULT_PRICING, PricingConfig

_PRICING_KEY = "pricing_config"


class JsonSettingsStore:
    """User settings kept in a small JSON file; the last write wins."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load_pricing(self, default: PricingConfig = DEFAULT_PRICING) -> PricingConfig:
        saved = self._read().get(_PRICING_KEY)
        if saved is None:
            return default
        try:
            return PricingConfig.from_dict(saved, defaults=default)
        except (AttributeError, ValueError) as ex:
            logger.error(f"Failed to parse saved pricing in {self._path}: {ex}")
            return default

    def save_pricing(self, pricing: PricingConfig) -> None:
        data = self._read()
        data[_PRICING_KEY] = pricing.to_dict()
        self._write(data)

    def reset_pricing(self, default: PricingConfig = DEFAULT_PRICING) -> PricingConfig:
        data = self._read()
        if data.pop(_PRICING_KEY, None) is not None:
            self._write(data)
        return default

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as ex:
            logger.error(f"Failed to read settings from {self._path}: {ex}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
