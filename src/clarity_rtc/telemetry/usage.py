from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from clarity_rtc.pricing import CostBreakdown, PricingConfig, TokenCounts, calculate_costs
from clarity_rtc.telemetry.events import Usage

_STATS_KEYS = {
    "audio_input_tokens": "audioInputTokens",
    "text_input_tokens": "textInputTokens",
    "cached_input_tokens": "cachedInputTokens",
    "audio_output_tokens": "audioOutputTokens",
    "text_output_tokens": "textOutputTokens",
    "input_cost": "inputCost",
    "output_cost": "outputCost",
    "total_cost": "totalCost",
}


def extract_usage_delta(usage: Usage) -> TokenCounts:
    """Derive the billable token delta of one response.

    Cached tokens are subtracted from the fresh audio/text counts and reported
    on their own. The subtraction is not clamped: a provider reporting more
    cached than raw tokens yields negative counts, which are logged.
    """
    cached = usage.input.cached_breakdown
    delta = TokenCounts(
        audio_input_tokens=usage.input.audio_tokens - cached.audio_tokens,
        text_input_tokens=usage.input.text_tokens - cached.text_tokens,
        cached_input_tokens=usage.input.cached_tokens,
        audio_output_tokens=usage.output.audio_tokens,
        text_output_tokens=usage.output.text_tokens,
    )
    if delta.audio_input_tokens < 0 or delta.text_input_tokens < 0:
        logger.warning(
            f"Cached tokens exceed reported input tokens: audio={delta.audio_input_tokens}, "
            f"text={delta.text_input_tokens}"
        )
    return delta


@dataclass(frozen=True)
class TokenStats:
    audio_input_tokens: int = 0
    text_input_tokens: int = 0
    cached_input_tokens: int = 0
    audio_output_tokens: int = 0
    text_output_tokens: int = 0
    input_cost: float = 0.0
    output_cost: float = 0.0
    total_cost: float = 0.0

    @classmethod
    def zero(cls) -> TokenStats:
        return cls()

    @classmethod
    def from_delta(cls, delta: TokenCounts, costs: CostBreakdown) -> TokenStats:
        return cls(
            audio_input_tokens=delta.audio_input_tokens,
            text_input_tokens=delta.text_input_tokens,
            cached_input_tokens=delta.cached_input_tokens,
            audio_output_tokens=delta.audio_output_tokens,
            text_output_tokens=delta.text_output_tokens,
            input_cost=costs.input_cost,
            output_cost=costs.output_cost,
            total_cost=costs.total_cost,
        )

    @property
    def input_tokens(self) -> int:
        return self.audio_input_tokens + self.text_input_tokens

    @property
    def output_tokens(self) -> int:
        return self.audio_output_tokens + self.text_output_tokens

    def plus(self, other: TokenStats) -> TokenStats:
        return TokenStats(**{name: getattr(self, name) + getattr(other, name) for name in _STATS_KEYS})

    def to_dict(self) -> dict[str, Any]:
        return {key: getattr(self, name) for name, key in _STATS_KEYS.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenStats:
        values: dict[str, Any] = {}
        for name, key in _STATS_KEYS.items():
            raw = data.get(key, 0)
            values[name] = float(raw) if name.endswith("_cost") else int(raw)
        return cls(**values)


class UsageLedger:
    """Running token/cost totals: the most recent response and the session to date."""

    def __init__(self) -> None:
        self._current = TokenStats.zero()
        self._session = TokenStats.zero()

    @property
    def current(self) -> TokenStats:
        return self._current

    @property
    def session(self) -> TokenStats:
        return self._session

    def apply(self, delta: TokenCounts, rates: PricingConfig) -> tuple[TokenStats, TokenStats]:
        stats = TokenStats.from_delta(delta, calculate_costs(delta, rates))
        self._current = stats
        self._session = self._session.plus(stats)
        return self._current, self._session

    def reset(self) -> None:
        self._session = TokenStats.zero()

    def clear_current(self) -> None:
        self._current = TokenStats.zero()

    def restore(self, session: TokenStats) -> None:
        self._session = session
        self._current = TokenStats.zero()
