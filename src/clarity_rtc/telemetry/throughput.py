from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from clarity_rtc.pricing import TokenCounts


@dataclass(frozen=True)
class TokenDataPoint:
    timestamp: int
    elapsed_seconds: float
    input_tokens: int
    output_tokens: int
    cumulative_input: int
    cumulative_output: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "elapsedSeconds": self.elapsed_seconds,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cumulativeInput": self.cumulative_input,
            "cumulativeOutput": self.cumulative_output,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenDataPoint:
        return cls(
            timestamp=int(data["timestamp"]),
            elapsed_seconds=float(data["elapsedSeconds"]),
            input_tokens=int(data["inputTokens"]),
            output_tokens=int(data["outputTokens"]),
            cumulative_input=int(data["cumulativeInput"]),
            cumulative_output=int(data["cumulativeOutput"]),
        )


class ThroughputSeries:
    """Append-only token throughput samples for the active session."""

    def __init__(self) -> None:
        self._points: list[TokenDataPoint] = []
        self.cumulative_input = 0
        self.cumulative_output = 0

    @property
    def points(self) -> list[TokenDataPoint]:
        return list(self._points)

    def record(self, delta: TokenCounts, now: int, session_start: int | None) -> TokenDataPoint | None:
        if session_start is None:
            return None

        self.cumulative_input += delta.input_tokens
        self.cumulative_output += delta.output_tokens
        point = TokenDataPoint(
            timestamp=now,
            elapsed_seconds=(now - session_start) / 1000,
            input_tokens=delta.input_tokens,
            output_tokens=delta.output_tokens,
            cumulative_input=self.cumulative_input,
            cumulative_output=self.cumulative_output,
        )
        self._points.append(point)
        return point

    def reset(self) -> None:
        self._points = []
        self.cumulative_input = 0
        self.cumulative_output = 0

    def load(self, points: list[TokenDataPoint]) -> None:
        self._points = list(points)
        last = self._points[-1] if self._points else None
        self.cumulative_input = last.cumulative_input if last else 0
        self.cumulative_output = last.cumulative_output if last else 0
