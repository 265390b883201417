from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from clarity_rtc.errors import InvalidEventError
from clarity_rtc.pricing import PricingConfig
from clarity_rtc.telemetry.event_log import EventLog
from clarity_rtc.telemetry.events import RealtimeEvent, ResponseDone, parse_event
from clarity_rtc.telemetry.throughput import ThroughputSeries
from clarity_rtc.telemetry.timeline import TurnSegmenter
from clarity_rtc.telemetry.usage import UsageLedger, extract_usage_delta

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class TelemetryState:
    """Everything derived from one session's event stream.

    ``session_start`` is set only while a session is connected. ``started_at``
    and ``ended_at`` keep the bounds of the last session for snapshots.
    """

    ledger: UsageLedger = field(default_factory=UsageLedger)
    segmenter: TurnSegmenter = field(default_factory=TurnSegmenter)
    series: ThroughputSeries = field(default_factory=ThroughputSeries)
    event_log: EventLog = field(default_factory=EventLog)
    session_start: int | None = None
    started_at: int | None = None
    ended_at: int | None = None


class SessionEventRouter:
    """Single writer of TelemetryState. Each dispatch runs to completion before the next."""

    def __init__(
        self,
        state: TelemetryState,
        *,
        pricing: Callable[[], PricingConfig],
        clock: Clock = now_ms,
    ) -> None:
        self._state = state
        self._pricing = pricing
        self._clock = clock

    @property
    def state(self) -> TelemetryState:
        return self._state

    @property
    def clock(self) -> Clock:
        return self._clock

    def dispatch(self, raw: Any) -> RealtimeEvent:
        now = self._clock()
        state = self._state
        try:
            event = parse_event(raw)
        except InvalidEventError:
            state.event_log.append({"raw": repr(raw)}, now)
            raise

        state.event_log.append(event.raw, now)

        segment = state.segmenter.feed(event, now)
        if segment is not None:
            logger.debug(f"Closed {segment.speaker.value} turn: {segment.duration} ms")

        if isinstance(event, ResponseDone) and event.usage is not None:
            delta = extract_usage_delta(event.usage)
            current, session = state.ledger.apply(delta, self._pricing())
            state.series.record(delta, now, state.session_start)
            logger.debug(
                f"Usage applied: response=${current.total_cost:.6f} session=${session.total_cost:.6f}"
            )
        return event


class EventPump:
    """FIFO queue feeding the router from one consumer task.

    ``submit`` is safe to hand to a connection as its event callback: it never
    blocks and never touches telemetry state itself.
    """

    def __init__(self, router: SessionEventRouter) -> None:
        self._router = router
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._closed = False
        self.processed_count = 0
        self.failed_count = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        self._closed = False
        if self._task is None:
            self._queue = asyncio.Queue()
            self._task = asyncio.create_task(self._consumer_loop())

    def submit(self, raw: Any) -> None:
        if self._closed:
            return
        self._queue.put_nowait(raw)

    def drain(self) -> None:
        while not self._queue.empty():
            self._dispatch(self._queue.get_nowait())

    async def join(self) -> None:
        await self._queue.join()

    async def close(self, *, drain: bool = True) -> None:
        self._closed = True
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if drain:
            self.drain()
        else:
            while not self._queue.empty():
                self._queue.get_nowait()
                self._queue.task_done()

    async def _consumer_loop(self) -> None:
        while True:
            raw = await self._queue.get()
            self._dispatch(raw)

    def _dispatch(self, raw: Any) -> None:
        try:
            self._router.dispatch(raw)
            self.processed_count += 1
        except InvalidEventError as ex:
            self.failed_count += 1
            logger.warning(f"Dropping realtime event: {ex}")
        except Exception as ex:
            # One bad event must not stop the consumer.
            self.failed_count += 1
            logger.exception(f"Realtime event dispatch failed: {ex}")
        finally:
            self._queue.task_done()
