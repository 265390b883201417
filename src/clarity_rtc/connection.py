from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

EventCallback = Callable[[Any], None]


class AudioCapture(Protocol):
    def stop(self) -> None: ...


class AudioCaptureProvider(Protocol):
    async def acquire(self) -> AudioCapture: ...


class RealtimeConnection(Protocol):
    def close(self) -> None: ...


class RealtimeConnector(Protocol):
    async def connect(
        self,
        capture: AudioCapture,
        credential: str,
        *,
        voice: str,
        model: str,
        prompt: str,
        on_event: EventCallback,
    ) -> RealtimeConnection:
        """Open a live session; every server event is passed to ``on_event`` in arrival order."""
        ...


class NullCapture:
    def stop(self) -> None:
        return None


class NullCaptureProvider:
    """Capture provider for sessions that carry no local audio (recorded replays)."""

    async def acquire(self) -> AudioCapture:
        return NullCapture()


def load_recorded_events(path: str | Path) -> list[dict[str, Any]]:
    """Read a JSONL recording: one raw realtime event object per line."""
    events: list[dict[str, Any]] = []
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            text = line.strip()
            if not text:
                continue
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError as ex:
                raise ValueError(f"{path}:{line_no}: invalid JSON ({ex.msg})") from None
            if not isinstance(parsed, dict):
                raise ValueError(f"{path}:{line_no}: expected a JSON object")
            events.append(parsed)
    return events


class ReplayConnection:
    def __init__(self, task: asyncio.Task) -> None:
        self._task = task

    @property
    def finished(self) -> bool:
        return self._task.done()

    async def wait_finished(self) -> None:
        with contextlib.suppress(asyncio.CancelledError):
            await asyncio.shield(self._task)

    def close(self) -> None:
        self._task.cancel()


class ReplayConnector:
    """Plays recorded events through the session callback instead of a live peer."""

    def __init__(self, events: list[dict[str, Any]] | None = None, *, delay_ms: int = 0) -> None:
        self._events = list(events or [])
        self._delay_seconds = max(0, delay_ms) / 1000

    def load(self, events: list[dict[str, Any]], *, delay_ms: int | None = None) -> None:
        """Queue the recording played by the next connect."""
        self._events = list(events)
        if delay_ms is not None:
            self._delay_seconds = max(0, delay_ms) / 1000

    async def connect(
        self,
        capture: AudioCapture,
        credential: str,
        *,
        voice: str,
        model: str,
        prompt: str,
        on_event: EventCallback,
    ) -> ReplayConnection:
        logger.info(f"Replaying {len(self._events)} recorded events (model={model}, voice={voice})")
        return ReplayConnection(asyncio.create_task(self._play(on_event)))

    async def _play(self, on_event: EventCallback) -> None:
        for event in self._events:
            # Yield between events so delivery interleaves like a live stream.
            await asyncio.sleep(self._delay_seconds)
            on_event(event)
