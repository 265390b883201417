from __future__ import annotations

from clarity_rtc.telemetry.event_log import EventLogEntry
from clarity_rtc.telemetry.throughput import TokenDataPoint
from clarity_rtc.telemetry.timeline import Speaker, TimelineSegment
from clarity_rtc.telemetry.usage import TokenStats


def format_stats(title: str, stats: TokenStats, *, line_prefix: str = "") -> list[str]:
    return [
        f"{line_prefix}{title}",
        f"{line_prefix}  Audio input tokens:  {stats.audio_input_tokens}",
        f"{line_prefix}  Text input tokens:   {stats.text_input_tokens}",
        f"{line_prefix}  Cached input tokens: {stats.cached_input_tokens}",
        f"{line_prefix}  Audio output tokens: {stats.audio_output_tokens}",
        f"{line_prefix}  Text output tokens:  {stats.text_output_tokens}",
        f"{line_prefix}  Input cost:  ${stats.input_cost:.4f}",
        f"{line_prefix}  Output cost: ${stats.output_cost:.4f}",
        f"{line_prefix}  Total cost:  ${stats.total_cost:.4f}",
    ]


def timeline_rows(segments: list[TimelineSegment], session_start: int | None) -> list[dict]:
    """Segments as seconds relative to the session start, numbered from 1."""
    if session_start is None:
        return []
    return [
        {
            "name": str(index),
            "speaker": "User" if segment.speaker is Speaker.USER else "Assistant",
            "start": (segment.start - session_start) / 1000,
            "duration": segment.duration / 1000,
        }
        for index, segment in enumerate(segments, start=1)
    ]


def format_timeline(segments: list[TimelineSegment], session_start: int | None, *, line_prefix: str = "") -> list[str]:
    rows = timeline_rows(segments, session_start)
    if not rows:
        return [f"{line_prefix}Start a conversation to see the timeline"]
    return [
        f"{line_prefix}{row['name']:>3}. {row['speaker']:<9} start={row['start']:.1f}s duration={row['duration']:.1f}s"
        for row in rows
    ]


def throughput_summary(points: list[TokenDataPoint], stats: TokenStats) -> dict:
    elapsed = points[-1].elapsed_seconds if points else 0.0
    per_minute = 60 / elapsed if elapsed > 0 else 0.0
    return {
        "responses": len(points),
        "total_input_tokens": stats.input_tokens,
        "total_output_tokens": stats.output_tokens,
        "elapsed_seconds": elapsed,
        "input_tokens_per_minute": (points[-1].cumulative_input * per_minute) if points else 0.0,
        "output_tokens_per_minute": (points[-1].cumulative_output * per_minute) if points else 0.0,
    }


def format_events(entries: list[EventLogEntry], *, limit: int = 10, line_prefix: str = "") -> list[str]:
    if not entries:
        return [f"{line_prefix}No events yet. Start a session to see events."]
    return [
        f"{line_prefix}{entry.timestamp} {entry.raw.get('type', '<untyped>')}"
        for entry in entries[: max(1, limit)]
    ]
