from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from clarity_rtc.pricing import PricingConfig
from clarity_rtc.telemetry.event_log import EventLogEntry
from clarity_rtc.telemetry.router import TelemetryState
from clarity_rtc.telemetry.throughput import TokenDataPoint
from clarity_rtc.telemetry.timeline import TimelineSegment
from clarity_rtc.telemetry.usage import TokenStats


@dataclass(frozen=True)
class SessionSnapshot:
    """A named, storable copy of one session's telemetry and settings."""

    name: str
    model: str
    voice: str
    prompt: str
    pricing_config: PricingConfig
    session_stats: TokenStats
    timeline_segments: list[TimelineSegment] = field(default_factory=list)
    token_data_points: list[TokenDataPoint] = field(default_factory=list)
    events: list[EventLogEntry] = field(default_factory=list)
    session_start_time: int | None = None
    session_end_time: int | None = None
    duration_ms: int | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "model": self.model,
            "voice": self.voice,
            "bot_prompt": self.prompt,
            "pricing_config": self.pricing_config.to_dict(),
            "session_stats": self.session_stats.to_dict(),
            "timeline_segments": [s.to_dict() for s in self.timeline_segments],
            "token_data_points": [p.to_dict() for p in self.token_data_points],
            "events": [e.to_dict() for e in self.events],
            "session_start_time": self.session_start_time,
            "session_end_time": self.session_end_time,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> SessionSnapshot:
        return cls(
            name=str(record.get("name", "")),
            model=str(record.get("model", "")),
            voice=str(record.get("voice", "")),
            prompt=str(record.get("bot_prompt", "")),
            pricing_config=PricingConfig.from_dict(record.get("pricing_config") or {}),
            session_stats=TokenStats.from_dict(record.get("session_stats") or {}),
            timeline_segments=[TimelineSegment.from_dict(s) for s in record.get("timeline_segments") or []],
            token_data_points=[TokenDataPoint.from_dict(p) for p in record.get("token_data_points") or []],
            events=[EventLogEntry.from_dict(e) for e in record.get("events") or []],
            session_start_time=_optional_int(record.get("session_start_time")),
            session_end_time=_optional_int(record.get("session_end_time")),
            duration_ms=_optional_int(record.get("duration_ms")),
        )


@dataclass(frozen=True)
class SavedSession:
    id: str
    created_at: str
    snapshot: SessionSnapshot


def capture_snapshot(
    state: TelemetryState,
    *,
    name: str,
    model: str,
    voice: str,
    prompt: str,
    pricing: PricingConfig,
    now: int,
) -> SessionSnapshot:
    if state.session_start is not None:
        # A still-running session is captured up to ``now``.
        start, end = state.session_start, now
    else:
        start, end = state.started_at, state.ended_at
    return SessionSnapshot(
        name=name,
        model=model,
        voice=voice,
        prompt=prompt,
        pricing_config=pricing,
        session_stats=state.ledger.session,
        timeline_segments=state.segmenter.segments,
        token_data_points=state.series.points,
        events=state.event_log.entries(),
        session_start_time=start,
        session_end_time=end,
        duration_ms=end - start if start is not None and end is not None else None,
    )


def restore_snapshot(state: TelemetryState, snapshot: SessionSnapshot) -> None:
    """Replace ``state`` with the snapshot's telemetry. The session stays disconnected."""
    state.ledger.restore(snapshot.session_stats)
    state.segmenter.load(snapshot.timeline_segments)
    state.series.load(snapshot.token_data_points)
    state.event_log.load(snapshot.events)
    state.session_start = None
    state.started_at = snapshot.session_start_time
    state.ended_at = snapshot.session_end_time


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)
