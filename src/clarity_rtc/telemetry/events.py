"""Typed view of the realtime session event stream.

Only the tags the telemetry core acts on get their own class. Everything else
parses to ``UnknownEvent`` and is logged but not interpreted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from clarity_rtc.errors import InvalidEventError

SPEECH_STARTED = "input_audio_buffer.speech_started"
SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
AUDIO_DELTA = "response.audio.delta"
AUDIO_DONE = "response.audio.done"
RESPONSE_DONE = "response.done"

# Newer endpoints name the assistant audio events differently.
_TAG_ALIASES = {
    "response.output_audio.delta": AUDIO_DELTA,
    "response.output_audio.done": AUDIO_DONE,
}


@dataclass(frozen=True)
class CachedTokenBreakdown:
    audio_tokens: int = 0
    text_tokens: int = 0


@dataclass(frozen=True)
class InputTokenDetails:
    audio_tokens: int = 0
    text_tokens: int = 0
    cached_tokens: int = 0
    cached_breakdown: CachedTokenBreakdown = field(default_factory=CachedTokenBreakdown)


@dataclass(frozen=True)
class OutputTokenDetails:
    audio_tokens: int = 0
    text_tokens: int = 0


@dataclass(frozen=True)
class Usage:
    input: InputTokenDetails
    output: OutputTokenDetails


@dataclass(frozen=True)
class RealtimeEvent:
    type: str
    raw: dict[str, Any] = field(repr=False, compare=False)


@dataclass(frozen=True)
class SpeechStarted(RealtimeEvent):
    pass


@dataclass(frozen=True)
class SpeechStopped(RealtimeEvent):
    pass


@dataclass(frozen=True)
class AudioDelta(RealtimeEvent):
    pass


@dataclass(frozen=True)
class AudioDone(RealtimeEvent):
    pass


@dataclass(frozen=True)
class ResponseDone(RealtimeEvent):
    usage: Usage | None = None


@dataclass(frozen=True)
class UnknownEvent(RealtimeEvent):
    pass


_SIMPLE_EVENTS: dict[str, type[RealtimeEvent]] = {
    SPEECH_STARTED: SpeechStarted,
    SPEECH_STOPPED: SpeechStopped,
    AUDIO_DELTA: AudioDelta,
    AUDIO_DONE: AudioDone,
}


def parse_event(raw: Any) -> RealtimeEvent:
    """Classify one raw event received from the realtime connection.

    Raises InvalidEventError when ``raw`` is not a mapping. Unknown or missing
    tags are not an error.
    """
    if not isinstance(raw, Mapping):
        raise InvalidEventError(f"Realtime event must be a JSON object, got {type(raw).__name__}")

    payload = dict(raw)
    tag = str(payload.get("type") or "")
    kind = _TAG_ALIASES.get(tag, tag)

    simple = _SIMPLE_EVENTS.get(kind)
    if simple is not None:
        return simple(type=kind, raw=payload)
    if kind == RESPONSE_DONE:
        response = payload.get("response")
        usage_raw = response.get("usage") if isinstance(response, Mapping) else None
        return ResponseDone(type=kind, raw=payload, usage=parse_usage(usage_raw))

    logger.debug(f"Unhandled realtime event type: {tag or '<missing>'}")
    return UnknownEvent(type=tag, raw=payload)


def parse_usage(raw: Any) -> Usage | None:
    """Read ``response.usage``; absent details default to zero.

    Returns None when there is no usage object or its counts are not integers.
    """
    if not isinstance(raw, Mapping):
        return None

    input_raw = _mapping(raw.get("input_token_details"))
    output_raw = _mapping(raw.get("output_token_details"))
    cached_raw = _mapping(input_raw.get("cached_tokens_details"))
    try:
        return Usage(
            input=InputTokenDetails(
                audio_tokens=_count(input_raw, "audio_tokens"),
                text_tokens=_count(input_raw, "text_tokens"),
                cached_tokens=_count(input_raw, "cached_tokens"),
                cached_breakdown=CachedTokenBreakdown(
                    audio_tokens=_count(cached_raw, "audio_tokens"),
                    text_tokens=_count(cached_raw, "text_tokens"),
                ),
            ),
            output=OutputTokenDetails(
                audio_tokens=_count(output_raw, "audio_tokens"),
                text_tokens=_count(output_raw, "text_tokens"),
            ),
        )
    except ValueError as ex:
        logger.warning(f"Ignoring malformed usage payload: {ex}")
        return None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _count(source: Mapping[str, Any], key: str) -> int:
    value = source.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not float(value).is_integer():
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return int(value)
