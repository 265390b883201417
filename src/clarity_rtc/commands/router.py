from __future__ import annotations

from collections.abc import Awaitable, Callable


class CommandRouter:
    def __init__(
        self,
        *,
        on_help: Callable[[], Awaitable[None]],
        on_replay: Callable[[str], Awaitable[None]],
        on_stats: Callable[[], Awaitable[None]],
        on_timeline: Callable[[], Awaitable[None]],
        on_events: Callable[[str], Awaitable[None]],
        on_reset: Callable[[], Awaitable[None]],
        on_clear_events: Callable[[], Awaitable[None]],
        on_pricing: Callable[[str], Awaitable[None]],
        on_session: Callable[[str], Awaitable[None]],
        on_unknown: Callable[[str], None],
    ) -> None:
        self._on_help = on_help
        self._on_replay = on_replay
        self._on_stats = on_stats
        self._on_timeline = on_timeline
        self._on_events = on_events
        self._on_reset = on_reset
        self._on_clear_events = on_clear_events
        self._on_pricing = on_pricing
        self._on_session = on_session
        self._on_unknown = on_unknown

    async def try_handle(self, user_message: str) -> bool:
        trimmed = user_message.strip()
        if not trimmed.startswith("/"):
            return False

        command = trimmed.split(maxsplit=1)[0]
        if command == "/help":
            await self._on_help()
        elif command == "/replay":
            await self._on_replay(trimmed)
        elif command == "/stats":
            await self._on_stats()
        elif command == "/timeline":
            await self._on_timeline()
        elif command == "/events":
            await self._on_events(trimmed)
        elif command == "/reset":
            await self._on_reset()
        elif command == "/clear-events":
            await self._on_clear_events()
        elif command == "/pricing":
            await self._on_pricing(trimmed)
        elif command == "/session":
            await self._on_session(trimmed)
        else:
            self._on_unknown(trimmed)
        return True
