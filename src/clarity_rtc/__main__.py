import asyncio
import sys

from dotenv import load_dotenv
from loguru import logger

from clarity_rtc.app_config import load_json_config, parse_app_config, resolve_runtime_env
from clarity_rtc.bootstrap import AppRuntime, bootstrap_runtime
from clarity_rtc.commands.parsing import parse_command, parse_event_limit, parse_replay_options
from clarity_rtc.commands.router import CommandRouter
from clarity_rtc.connection import ReplayConnection, load_recorded_events
from clarity_rtc.errors import SessionActiveError
from clarity_rtc.presentation import format_events, format_stats, format_timeline, throughput_summary

LINE_PREFIX = "clarity> "

_HELP_LINES = [
    "/replay <events.jsonl> [--delay-ms <n>]  Run a recorded session through the telemetry core",
    "/stats                                  Most recent response and session totals",
    "/timeline                               Turn-taking timeline",
    "/events [n]                             Newest raw events (default 10)",
    "/reset                                  Reset session totals, timeline and throughput",
    "/clear-events                           Clear the raw event log",
    "/pricing [show|set <field> <value>|reset]",
    "/session save <name>|list|load <id>|delete <id>",
]


class Console:
    def __init__(self, runtime: AppRuntime, *, credential: str):
        self._runtime = runtime
        self._credential = credential
        self.router = CommandRouter(
            on_help=self._help,
            on_replay=self._replay,
            on_stats=self._stats,
            on_timeline=self._timeline,
            on_events=self._events,
            on_reset=self._reset,
            on_clear_events=self._clear_events,
            on_pricing=self._pricing,
            on_session=self._session,
            on_unknown=self._unknown,
        )

    @staticmethod
    def _print(lines: list[str] | str) -> None:
        for line in [lines] if isinstance(lines, str) else lines:
            print(line)

    async def _help(self) -> None:
        self._print([f"{LINE_PREFIX}{line}" for line in _HELP_LINES])

    async def _replay(self, command: str) -> None:
        opts, error = parse_replay_options(parse_command(command), line_prefix=LINE_PREFIX)
        if error:
            self._print(error)
            return
        try:
            events = load_recorded_events(opts.path)
        except (OSError, ValueError) as ex:
            self._print(f"{LINE_PREFIX}Cannot read recording: {ex}")
            return

        controller = self._runtime.controller
        self._runtime.connector.load(events, delay_ms=opts.delay_ms)
        started = await controller.start(self._credential, controller.voice, controller.model, controller.prompt)
        self._print(f"{LINE_PREFIX}{controller.status_message}")
        if not started:
            return

        connection = controller.connection
        try:
            if isinstance(connection, ReplayConnection):
                await connection.wait_finished()
        finally:
            await controller.stop()
        self._print(f"{LINE_PREFIX}Replay finished ({len(events)} events)")
        await self._stats()

    async def _stats(self) -> None:
        state = self._runtime.controller.state
        self._print(format_stats("Most Recent Interaction", state.ledger.current, line_prefix=LINE_PREFIX))
        self._print(format_stats("Session Total", state.ledger.session, line_prefix=LINE_PREFIX))
        summary = throughput_summary(state.series.points, state.ledger.session)
        self._print(
            f"{LINE_PREFIX}Responses: {summary['responses']} | "
            f"input={summary['total_input_tokens']} output={summary['total_output_tokens']} tokens | "
            f"{summary['input_tokens_per_minute']:.0f}/{summary['output_tokens_per_minute']:.0f} tokens/min"
        )
        self._print(f"{LINE_PREFIX}Note: cost calculations are estimates based on published rates.")

    async def _timeline(self) -> None:
        state = self._runtime.controller.state
        start = state.session_start if state.session_start is not None else state.started_at
        self._print(format_timeline(state.segmenter.segments, start, line_prefix=LINE_PREFIX))
        if state.segmenter.ignored_count:
            self._print(f"{LINE_PREFIX}Unmatched stop/done events ignored: {state.segmenter.ignored_count}")

    async def _events(self, command: str) -> None:
        limit = parse_event_limit(parse_command(command))
        entries = self._runtime.controller.state.event_log.entries()
        self._print(format_events(entries, limit=limit, line_prefix=LINE_PREFIX))

    async def _reset(self) -> None:
        try:
            self._runtime.controller.reset_totals()
        except SessionActiveError as ex:
            self._print(f"{LINE_PREFIX}{ex}")
            return
        self._print(f"{LINE_PREFIX}Session totals reset")

    async def _clear_events(self) -> None:
        self._runtime.controller.clear_events()
        self._print(f"{LINE_PREFIX}Event log cleared")

    async def _pricing(self, command: str) -> None:
        parts = parse_command(command)
        action = parts[1].lower() if len(parts) > 1 else "show"
        controller = self._runtime.controller
        settings = self._runtime.settings

        if action == "show":
            for key, value in controller.pricing.to_dict().items():
                self._print(f"{LINE_PREFIX}{key}: {value:.8f}")
            return
        if action == "set" and len(parts) == 4:
            try:
                pricing = controller.pricing.with_rate(parts[2], float(parts[3]))
            except ValueError as ex:
                self._print(f"{LINE_PREFIX}{ex}")
                return
            settings.save_pricing(pricing)
            controller.pricing = pricing
            self._print(f"{LINE_PREFIX}Pricing saved")
            return
        if action == "reset":
            controller.pricing = settings.reset_pricing(self._runtime.default_pricing)
            self._print(f"{LINE_PREFIX}Pricing reset to defaults")
            return
        self._print(f"{LINE_PREFIX}Usage: /pricing [show|set <field> <value>|reset]")

    async def _session(self, command: str) -> None:
        library = self._runtime.library
        if library is None:
            self._print(f"{LINE_PREFIX}Session snapshots are disabled (SnapshotStore=none)")
            return

        parts = parse_command(command)
        action = parts[1].lower() if len(parts) > 1 else "list"
        argument = " ".join(parts[2:])
        if action == "list":
            message = await library.refresh()
            self._print(message or library.format_list())
        elif action == "save":
            self._print(await library.save(argument))
        elif action == "load":
            self._print(await library.load(argument))
        elif action == "delete":
            self._print(await library.delete(argument))
        else:
            self._print(f"{LINE_PREFIX}Usage: /session save <name>|list|load <id>|delete <id>")

    def _unknown(self, command: str) -> None:
        self._print(f"{LINE_PREFIX}Unknown command: {command} (try /help)")


async def main() -> None:
    load_dotenv()

    try:
        app = parse_app_config(load_json_config())
    except ValueError as ex:
        logger.error(f"Invalid configuration: {ex}")
        sys.exit(1)

    env = resolve_runtime_env()
    try:
        runtime = await bootstrap_runtime(app, env)
    except ValueError as ex:
        logger.error(f"Startup failed: {ex}")
        sys.exit(1)
    console = Console(runtime, credential=env.openai_api_key)

    print("clarity-rtc (type 'exit' to quit, '/help' for commands)")
    print(f"Model: {app.model} | Voice: {app.voice}")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    print()

    try:
        while True:
            try:
                user_input = input("you> ")
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = user_input.strip()
            if trimmed in ("exit", "quit"):
                break
            if not trimmed:
                continue

            try:
                if not await console.router.try_handle(trimmed):
                    print(f"{LINE_PREFIX}Commands start with '/'; try /help")
            except Exception as ex:
                logger.error(f"Unhandled error: {ex}")
    finally:
        if runtime.controller.is_busy:
            await runtime.controller.stop()
        runtime.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
