from __future__ import annotations

import shlex
from dataclasses import dataclass


@dataclass
class ReplayOptions:
    path: str = ""
    delay_ms: int | None = None


def parse_command(command: str) -> list[str]:
    return shlex.split(command)


def parse_replay_options(parts: list[str], *, line_prefix: str) -> tuple[ReplayOptions | None, str | None]:
    usage = f"{line_prefix}Usage: /replay <events.jsonl> [--delay-ms <n>]"
    if len(parts) < 2 or parts[1].startswith("--"):
        return None, usage

    opts = ReplayOptions(path=parts[1])
    idx = 2
    while idx < len(parts):
        token = parts[idx]
        if token == "--delay-ms":
            if idx + 1 >= len(parts):
                return None, usage
            try:
                opts.delay_ms = int(parts[idx + 1])
            except ValueError:
                return None, f"{line_prefix}delay-ms must be an integer"
            if opts.delay_ms < 0:
                return None, f"{line_prefix}delay-ms must not be negative"
            idx += 2
            continue
        return None, usage

    return opts, None


def parse_event_limit(parts: list[str], *, default: int = 10) -> int:
    if len(parts) < 2:
        return default
    try:
        return max(1, int(parts[1]))
    except ValueError:
        return default
