import asyncio
import unittest
from typing import Any

from clarity_rtc.errors import CaptureError, RealtimeConnectionError, SessionActiveError
from clarity_rtc.session.lifecycle import ConnectionStatus, SessionLifecycleController
from clarity_rtc.telemetry.usage import TokenStats
from tests.helpers import SCENARIO_RATES, SPEECH_STARTED, SPEECH_STOPPED, FakeClock, scenario_c_event


class _FakeCapture:
    def __init__(self) -> None:
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class _FakeCaptureProvider:
    def __init__(self, *, error: Exception | None = None, gate: asyncio.Event | None = None):
        self.capture = _FakeCapture()
        self._error = error
        self._gate = gate

    async def acquire(self) -> _FakeCapture:
        if self._gate is not None:
            await self._gate.wait()
        if self._error is not None:
            raise self._error
        return self.capture


class _FakeConnection:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


class _FakeConnector:
    def __init__(self, *, error: Exception | None = None, gate: asyncio.Event | None = None):
        self.connection = _FakeConnection()
        self.on_event: Any = None
        self.calls: list[dict[str, Any]] = []
        self.entered = asyncio.Event()
        self._error = error
        self._gate = gate

    async def connect(self, capture, credential, *, voice, model, prompt, on_event):
        self.calls.append({"credential": credential, "voice": voice, "model": model, "prompt": prompt})
        self.on_event = on_event
        self.entered.set()
        if self._gate is not None:
            await self._gate.wait()
        if self._error is not None:
            raise self._error
        return self.connection


def _controller(
    provider: _FakeCaptureProvider | None = None,
    connector: _FakeConnector | None = None,
    clock: FakeClock | None = None,
) -> SessionLifecycleController:
    return SessionLifecycleController(
        capture_provider=provider or _FakeCaptureProvider(),
        connector=connector or _FakeConnector(),
        pricing=SCENARIO_RATES,
        clock=clock or FakeClock(1000),
    )


async def _start(controller: SessionLifecycleController) -> bool:
    return await controller.start("sk-test", "ash", "gpt-4o-realtime-preview-2024-12-17", "Be brief.")


class SessionLifecycleControllerTests(unittest.TestCase):
    def test_start_connects_and_marks_the_session(self) -> None:
        connector = _FakeConnector()
        controller = _controller(connector=connector, clock=FakeClock(1000))

        async def scenario() -> bool:
            started = await _start(controller)
            await controller.stop()
            return started

        self.assertTrue(asyncio.run(scenario()))
        self.assertEqual([{
            "credential": "sk-test",
            "voice": "ash",
            "model": "gpt-4o-realtime-preview-2024-12-17",
            "prompt": "Be brief.",
        }], connector.calls)
        self.assertEqual(1000, controller.state.started_at)

    def test_connected_session_routes_events(self) -> None:
        clock = FakeClock(1000)
        connector = _FakeConnector()
        controller = _controller(connector=connector, clock=clock)

        async def scenario() -> None:
            self.assertTrue(await _start(controller))
            self.assertEqual(ConnectionStatus.CONNECTED, controller.status)
            self.assertEqual("Session established successfully!", controller.status_message)
            self.assertEqual(1000, controller.state.session_start)

            clock.advance(3000)
            connector.on_event(scenario_c_event())
            await controller.pump.join()

            self.assertAlmostEqual(0.007725, controller.state.ledger.current.total_cost, places=12)
            self.assertEqual(3.0, controller.state.series.points[0].elapsed_seconds)
            await controller.stop()

        asyncio.run(scenario())

    def test_capture_failure_reports_error_without_a_session(self) -> None:
        connector = _FakeConnector()
        controller = _controller(_FakeCaptureProvider(error=PermissionError("microphone denied")), connector)

        self.assertFalse(asyncio.run(_start(controller)))
        self.assertEqual(ConnectionStatus.ERROR, controller.status)
        self.assertEqual("Error: microphone denied", controller.status_message)
        self.assertIsNone(controller.state.session_start)
        self.assertEqual([], connector.calls)
        self.assertFalse(controller.is_busy)
        self.assertIsInstance(controller.last_error, CaptureError)

    def test_connect_failure_releases_capture(self) -> None:
        provider = _FakeCaptureProvider()
        controller = _controller(provider, _FakeConnector(error=ConnectionError("handshake failed")))

        self.assertFalse(asyncio.run(_start(controller)))
        self.assertTrue(provider.capture.stopped)
        self.assertIsNone(controller.connection)
        self.assertIsInstance(controller.last_error, RealtimeConnectionError)
        self.assertEqual(ConnectionStatus.ERROR, controller.status)
        self.assertIsNone(controller.state.session_start)

    def test_stop_during_connect_discards_the_late_connection(self) -> None:
        provider = _FakeCaptureProvider()
        connector = _FakeConnector(gate=asyncio.Event())

        async def scenario() -> tuple[bool, SessionLifecycleController]:
            controller = _controller(provider, connector)
            pending = asyncio.create_task(_start(controller))
            await connector.entered.wait()
            self.assertEqual(ConnectionStatus.CONNECTING, controller.status)
            await controller.stop()
            connector._gate.set()
            return await pending, controller

        started, controller = asyncio.run(scenario())
        self.assertFalse(started)
        self.assertTrue(connector.connection.closed)
        self.assertTrue(provider.capture.stopped)
        self.assertEqual(ConnectionStatus.IDLE, controller.status)
        self.assertIsNone(controller.connection)
        self.assertIsNone(controller.state.session_start)

    def test_stop_during_capture_request_releases_the_late_capture(self) -> None:
        gate = asyncio.Event()
        provider = _FakeCaptureProvider(gate=gate)
        connector = _FakeConnector()

        async def scenario() -> bool:
            controller = _controller(provider, connector)
            pending = asyncio.create_task(_start(controller))
            await asyncio.sleep(0)
            await controller.stop()
            gate.set()
            return await pending

        self.assertFalse(asyncio.run(scenario()))
        self.assertTrue(provider.capture.stopped)
        self.assertEqual([], connector.calls)

    def test_start_while_busy_is_refused(self) -> None:
        connector = _FakeConnector()
        controller = _controller(connector=connector)

        async def scenario() -> bool:
            await _start(controller)
            second = await _start(controller)
            await controller.stop()
            return second

        self.assertFalse(asyncio.run(scenario()))
        self.assertEqual(1, len(connector.calls))

    def test_stop_keeps_session_history(self) -> None:
        clock = FakeClock(1000)
        connector = _FakeConnector()
        controller = _controller(connector=connector, clock=clock)

        async def scenario() -> None:
            await _start(controller)
            connector.on_event(SPEECH_STARTED)
            connector.on_event(SPEECH_STOPPED)
            connector.on_event(scenario_c_event())
            connector.on_event(SPEECH_STARTED)
            clock.advance(5000)
            await controller.stop()

        asyncio.run(scenario())
        state = controller.state
        self.assertEqual(ConnectionStatus.IDLE, controller.status)
        self.assertEqual(TokenStats.zero(), state.ledger.current)
        self.assertEqual(90, state.ledger.session.audio_input_tokens)
        self.assertEqual(1, len(state.segmenter.segments))
        self.assertIsNone(state.segmenter.pending)
        self.assertEqual(4, len(state.event_log))
        self.assertEqual(6000, state.ended_at)
        self.assertIsNone(state.session_start)

    def test_events_after_stop_are_dropped(self) -> None:
        connector = _FakeConnector()
        controller = _controller(connector=connector)

        async def scenario() -> None:
            await _start(controller)
            await controller.stop()
            connector.on_event(scenario_c_event())

        asyncio.run(scenario())
        self.assertEqual(0, controller.pump.pending())
        self.assertEqual(0, len(controller.state.event_log))

    def test_reset_totals_is_refused_while_connected(self) -> None:
        connector = _FakeConnector()
        controller = _controller(connector=connector)

        async def scenario() -> None:
            await _start(controller)
            connector.on_event(scenario_c_event())
            await controller.pump.join()
            with self.assertRaises(SessionActiveError):
                controller.reset_totals()
            await controller.stop()

        asyncio.run(scenario())
        self.assertGreater(controller.state.ledger.session.total_cost, 0)

        controller.reset_totals()
        controller.reset_totals()
        self.assertEqual(TokenStats.zero(), controller.state.ledger.session)
        self.assertEqual([], controller.state.segmenter.segments)
        self.assertEqual([], controller.state.series.points)
        self.assertEqual(1, len(controller.state.event_log))

    def test_clear_events_keeps_totals(self) -> None:
        controller = _controller()
        controller.router.dispatch(scenario_c_event())
        controller.clear_events()
        self.assertEqual(0, len(controller.state.event_log))
        self.assertGreater(controller.state.ledger.session.total_cost, 0)

    def test_snapshot_round_trip_through_controller(self) -> None:
        source = _controller(clock=FakeClock(1000))
        source.model, source.voice, source.prompt = "m-1", "sage", "p-1"
        source.router.dispatch(scenario_c_event())
        snapshot = source.snapshot("first")

        target = _controller()
        target.load_snapshot(snapshot)
        self.assertEqual(("m-1", "sage", "p-1"), (target.model, target.voice, target.prompt))
        self.assertEqual(SCENARIO_RATES, target.pricing)
        self.assertEqual(source.state.ledger.session, target.state.ledger.session)

    def test_load_snapshot_is_refused_while_busy(self) -> None:
        controller = _controller()
        snapshot = _controller().snapshot("empty")

        async def scenario() -> None:
            await _start(controller)
            with self.assertRaises(SessionActiveError):
                controller.load_snapshot(snapshot)
            await controller.stop()

        asyncio.run(scenario())


if __name__ == "__main__":
    unittest.main()
