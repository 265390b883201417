from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

from loguru import logger

from clarity_rtc.connection import (
    AudioCapture,
    AudioCaptureProvider,
    EventCallback,
    RealtimeConnection,
    RealtimeConnector,
)
from clarity_rtc.errors import CaptureError, ClarityRtcError, RealtimeConnectionError, SessionActiveError
from clarity_rtc.pricing import DEFAULT_PRICING, PricingConfig
from clarity_rtc.telemetry.router import Clock, EventPump, SessionEventRouter, TelemetryState, now_ms
from clarity_rtc.telemetry.snapshot import SessionSnapshot, capture_snapshot, restore_snapshot


class ConnectionStatus(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class SessionLifecycleController:
    """Starts and stops the realtime connection around the telemetry core.

    ``stop()`` is authoritative: every call bumps a generation counter, and a
    ``start()`` that resumes under an older generation tears down whatever it
    opened instead of publishing it.
    """

    def __init__(
        self,
        *,
        capture_provider: AudioCaptureProvider,
        connector: RealtimeConnector,
        state: TelemetryState | None = None,
        pricing: PricingConfig = DEFAULT_PRICING,
        clock: Clock = now_ms,
    ) -> None:
        self._capture_provider = capture_provider
        self._connector = connector
        self._state = state if state is not None else TelemetryState()
        self._pricing = pricing
        self._router = SessionEventRouter(self._state, pricing=lambda: self._pricing, clock=clock)
        self._pump = EventPump(self._router)
        self._capture: AudioCapture | None = None
        self._connection: RealtimeConnection | None = None
        self._generation = 0
        self.status = ConnectionStatus.IDLE
        self.status_message = ""
        self.last_error: Exception | None = None
        self.model = ""
        self.voice = ""
        self.prompt = ""

    @property
    def state(self) -> TelemetryState:
        return self._state

    @property
    def router(self) -> SessionEventRouter:
        return self._router

    @property
    def pump(self) -> EventPump:
        return self._pump

    @property
    def connection(self) -> RealtimeConnection | None:
        return self._connection

    @property
    def is_connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED

    @property
    def is_busy(self) -> bool:
        return self.status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED)

    @property
    def pricing(self) -> PricingConfig:
        return self._pricing

    @pricing.setter
    def pricing(self, value: PricingConfig) -> None:
        self._pricing = value

    async def start(self, credential: str, voice: str, model: str, prompt: str) -> bool:
        if self.is_busy:
            logger.warning("Start requested while a session is already active")
            return False

        self._generation += 1
        generation = self._generation
        self.last_error = None
        self.voice, self.model, self.prompt = voice, model, prompt
        self._set_status(ConnectionStatus.CONNECTING, "Requesting microphone access...")

        try:
            capture = await self._acquire_capture()
            if generation != self._generation:
                capture.stop()
                logger.info("Session start superseded by stop; releasing capture")
                return False
            self._capture = capture

            self._set_status(ConnectionStatus.CONNECTING, "Establishing connection...")
            await self._pump.start()
            connection = await self._connect(capture, credential, voice, model, prompt, generation)
            if generation != self._generation:
                connection.close()
                logger.info("Session start superseded by stop; closing late connection")
                return False
            self._connection = connection
        except Exception as ex:
            if generation != self._generation:
                logger.info(f"Session start failed after stop: {ex}")
                return False
            logger.error(f"Session start failed: {type(ex).__name__}: {ex}")
            await self.stop()
            self.last_error = ex
            self._set_status(ConnectionStatus.ERROR, f"Error: {ex}")
            return False

        now = self._router.clock()
        self._state.session_start = now
        self._state.started_at = now
        self._state.ended_at = None
        self._state.series.reset()
        self._set_status(ConnectionStatus.CONNECTED, "Session established successfully!")
        return True

    async def stop(self) -> None:
        self._generation += 1
        was_active = self._state.session_start is not None

        connection, self._connection = self._connection, None
        if connection is not None:
            _close_quietly(connection.close, "connection")
        capture, self._capture = self._capture, None
        if capture is not None:
            _close_quietly(capture.stop, "audio capture")

        # Events that arrived before the connection closed still belong to this session.
        await self._pump.close(drain=True)

        if was_active:
            self._state.ended_at = self._router.clock()
        self._state.session_start = None
        self._state.segmenter.clear_pending()
        self._state.ledger.clear_current()
        self._set_status(ConnectionStatus.IDLE, "")

    def reset_totals(self) -> None:
        if self.is_busy:
            raise SessionActiveError("Session totals cannot be reset while connected")
        self._state.ledger.reset()
        self._state.segmenter.reset()
        self._state.series.reset()
        logger.info("Session totals reset")

    def clear_events(self) -> None:
        self._state.event_log.clear()

    def snapshot(self, name: str) -> SessionSnapshot:
        return capture_snapshot(
            self._state,
            name=name,
            model=self.model,
            voice=self.voice,
            prompt=self.prompt,
            pricing=self._pricing,
            now=self._router.clock(),
        )

    def load_snapshot(self, snapshot: SessionSnapshot) -> None:
        if self.is_busy:
            raise SessionActiveError("Disconnect the current session before loading a saved one")
        restore_snapshot(self._state, snapshot)
        self._pricing = snapshot.pricing_config
        self.model, self.voice, self.prompt = snapshot.model, snapshot.voice, snapshot.prompt
        logger.info(f"Loaded session snapshot {snapshot.name!r}")

    async def _acquire_capture(self) -> AudioCapture:
        try:
            return await self._capture_provider.acquire()
        except ClarityRtcError:
            raise
        except Exception as ex:
            raise CaptureError(str(ex)) from ex

    async def _connect(
        self,
        capture: AudioCapture,
        credential: str,
        voice: str,
        model: str,
        prompt: str,
        generation: int,
    ) -> RealtimeConnection:
        try:
            return await self._connector.connect(
                capture,
                credential,
                voice=voice,
                model=model,
                prompt=prompt,
                on_event=self._event_callback(generation),
            )
        except ClarityRtcError:
            raise
        except Exception as ex:
            raise RealtimeConnectionError(str(ex)) from ex

    def _event_callback(self, generation: int) -> EventCallback:
        def on_event(raw: Any) -> None:
            if generation != self._generation:
                return
            self._pump.submit(raw)

        return on_event

    def _set_status(self, status: ConnectionStatus, message: str) -> None:
        self.status = status
        self.status_message = message
        if message:
            logger.info(f"Session status: {status.value} - {message}")


def _close_quietly(close: Callable[[], None], label: str) -> None:
    try:
        close()
    except Exception as ex:
        logger.warning(f"Failed to close {label}: {ex}")
