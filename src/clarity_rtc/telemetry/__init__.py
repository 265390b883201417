from clarity_rtc.telemetry.event_log import EVENT_LOG_CAPACITY, EventLog, EventLogEntry
from clarity_rtc.telemetry.events import RealtimeEvent, ResponseDone, Usage, parse_event
from clarity_rtc.telemetry.router import EventPump, SessionEventRouter, TelemetryState, now_ms
from clarity_rtc.telemetry.snapshot import SavedSession, SessionSnapshot, capture_snapshot, restore_snapshot
from clarity_rtc.telemetry.throughput import ThroughputSeries, TokenDataPoint
from clarity_rtc.telemetry.timeline import Speaker, TimelineSegment, TurnSegmenter
from clarity_rtc.telemetry.usage import TokenStats, UsageLedger, extract_usage_delta

__all__ = [
    "EVENT_LOG_CAPACITY",
    "EventLog",
    "EventLogEntry",
    "EventPump",
    "RealtimeEvent",
    "ResponseDone",
    "SavedSession",
    "SessionEventRouter",
    "SessionSnapshot",
    "Speaker",
    "TelemetryState",
    "ThroughputSeries",
    "TimelineSegment",
    "TokenDataPoint",
    "TokenStats",
    "TurnSegmenter",
    "Usage",
    "UsageLedger",
    "capture_snapshot",
    "extract_usage_delta",
    "now_ms",
    "parse_event",
    "restore_snapshot",
]
