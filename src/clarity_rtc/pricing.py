from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Maps dataclass field names to the camelCase keys used in saved settings and snapshots.
_PRICING_KEYS = {
    "audio_input_cost": "audioInputCost",
    "audio_output_cost": "audioOutputCost",
    "cached_audio_cost": "cachedAudioCost",
    "text_input_cost": "textInputCost",
    "text_output_cost": "textOutputCost",
}


@dataclass(frozen=True)
class PricingConfig:
    """Cost per token for each billable token class."""

    audio_input_cost: float
    audio_output_cost: float
    cached_audio_cost: float
    text_input_cost: float
    text_output_cost: float

    def to_dict(self) -> dict[str, float]:
        return {key: getattr(self, name) for name, key in _PRICING_KEYS.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, defaults: PricingConfig | None = None) -> PricingConfig:
        """Build rates from camelCase keys, taking missing keys from ``defaults``.

        Raises ValueError for values that are not non-negative numbers.
        """
        base = defaults or DEFAULT_PRICING
        values: dict[str, float] = {}
        for name, key in _PRICING_KEYS.items():
            raw = data.get(key, getattr(base, name))
            if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
                raise ValueError(f"Pricing value for {key} must be a number, got {raw!r}")
            try:
                value = float(raw)
            except ValueError:
                raise ValueError(f"Pricing value for {key} must be a number, got {raw!r}") from None
            if value < 0:
                raise ValueError(f"Pricing value for {key} must not be negative")
            values[name] = value
        return cls(**values)

    def with_rate(self, key: str, value: float) -> PricingConfig:
        """Return a copy with one rate replaced; ``key`` may be camelCase or snake_case."""
        data = self.to_dict()
        camel = _PRICING_KEYS.get(key, key)
        if camel not in data:
            raise ValueError(f"Unknown pricing field: {key!r}")
        data[camel] = value
        return PricingConfig.from_dict(data)


DEFAULT_PRICING = PricingConfig(
    audio_input_cost=0.00004,
    audio_output_cost=0.00008,
    cached_audio_cost=0.0000025,
    text_input_cost=0.0000025,
    text_output_cost=0.00001,
)


@dataclass(frozen=True)
class TokenCounts:
    audio_input_tokens: int = 0
    text_input_tokens: int = 0
    cached_input_tokens: int = 0
    audio_output_tokens: int = 0
    text_output_tokens: int = 0

    @property
    def input_tokens(self) -> int:
        # Cached tokens are reported separately and not counted as fresh input.
        return self.audio_input_tokens + self.text_input_tokens

    @property
    def output_tokens(self) -> int:
        return self.audio_output_tokens + self.text_output_tokens


@dataclass(frozen=True)
class CostBreakdown:
    input_cost: float = 0.0
    output_cost: float = 0.0
    total_cost: float = 0.0


def calculate_costs(delta: TokenCounts, rates: PricingConfig) -> CostBreakdown:
    """Price one response's token counts. No rounding; callers round for display."""
    input_cost = (
        delta.audio_input_tokens * rates.audio_input_cost
        + delta.text_input_tokens * rates.text_input_cost
        + delta.cached_input_tokens * rates.cached_audio_cost
    )
    output_cost = (
        delta.audio_output_tokens * rates.audio_output_cost
        + delta.text_output_tokens * rates.text_output_cost
    )
    return CostBreakdown(
        input_cost=input_cost,
        output_cost=output_cost,
        total_cost=input_cost + output_cost,
    )
