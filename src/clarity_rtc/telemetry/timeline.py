from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from clarity_rtc.telemetry.events import AudioDelta, AudioDone, RealtimeEvent, SpeechStarted, SpeechStopped


class Speaker(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class SegmenterState(str, Enum):
    IDLE = "idle"
    USER_SPEAKING = "user_speaking"
    ASSISTANT_SPEAKING = "assistant_speaking"


@dataclass(frozen=True)
class PendingTurn:
    start: int
    speaker: Speaker


@dataclass(frozen=True)
class TimelineSegment:
    """One closed turn. Instants are epoch milliseconds."""

    start: int
    end: int
    speaker: Speaker
    duration: int = field(init=False)

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Segment ends before it starts: {self.start} > {self.end}")
        object.__setattr__(self, "duration", self.end - self.start)

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "speaker": self.speaker.value,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimelineSegment:
        return cls(start=int(data["start"]), end=int(data["end"]), speaker=Speaker(data["speaker"]))


class TurnSegmenter:
    """Turns speech-boundary events into closed timeline segments.

    At most one turn is pending. ``speech_started`` always opens a user turn,
    even over a pending assistant turn (barge-in). Only the first audio delta
    of an assistant turn opens it and only ``audio_done`` closes it. Closing
    events without a matching pending turn are counted and ignored.
    """

    def __init__(self) -> None:
        self._pending: PendingTurn | None = None
        self._segments: list[TimelineSegment] = []
        self.ignored_count = 0

    @property
    def state(self) -> SegmenterState:
        if self._pending is None:
            return SegmenterState.IDLE
        if self._pending.speaker is Speaker.USER:
            return SegmenterState.USER_SPEAKING
        return SegmenterState.ASSISTANT_SPEAKING

    @property
    def pending(self) -> PendingTurn | None:
        return self._pending

    @property
    def segments(self) -> list[TimelineSegment]:
        return list(self._segments)

    def feed(self, event: RealtimeEvent, now: int) -> TimelineSegment | None:
        if isinstance(event, SpeechStarted):
            self._pending = PendingTurn(start=now, speaker=Speaker.USER)
            return None
        if isinstance(event, AudioDelta):
            if self._pending is None or self._pending.speaker is not Speaker.ASSISTANT:
                self._pending = PendingTurn(start=now, speaker=Speaker.ASSISTANT)
            return None
        if isinstance(event, SpeechStopped):
            return self._close(Speaker.USER, now, event.type)
        if isinstance(event, AudioDone):
            return self._close(Speaker.ASSISTANT, now, event.type)
        return None

    def clear_pending(self) -> None:
        self._pending = None

    def reset(self) -> None:
        self._pending = None
        self._segments = []
        self.ignored_count = 0

    def load(self, segments: list[TimelineSegment]) -> None:
        self.reset()
        self._segments = list(segments)

    def _close(self, speaker: Speaker, now: int, tag: str) -> TimelineSegment | None:
        pending = self._pending
        if pending is None or pending.speaker is not speaker:
            self.ignored_count += 1
            logger.debug(f"Ignoring {tag} without an open {speaker.value} turn (ignored={self.ignored_count})")
            return None
        # Clock skew can put ``now`` before the recorded start; never emit a negative span.
        segment = TimelineSegment(start=pending.start, end=max(now, pending.start), speaker=speaker)
        self._segments.append(segment)
        self._pending = None
        return segment
