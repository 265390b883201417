import sys
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger

_CONSOLE_FORMAT = "<level>{level:<8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}"


@runtime_checkable
class LogSink(Protocol):
    def register(self, level: str) -> None: ...
    def describe(self, level: str) -> str: ...


class ConsoleLogSink:
    def __init__(self, colorize: bool = True):
        self._colorize = colorize

    def register(self, level: str) -> None:
        logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT, colorize=self._colorize)

    def describe(self, level: str) -> str:
        return f"console (stderr, {level})"


class FileLogSink:
    """Rotating log file. ``serialize`` writes one JSON record per line for later analysis."""

    def __init__(
        self,
        path: str = ".clarity_rtc/clarity_rtc.log",
        rotation: str = "5 MB",
        retention: int = 5,
        serialize: bool = False,
    ):
        self._path = path
        self._rotation = rotation
        self._retention = retention
        self._serialize = serialize

    def register(self, level: str) -> None:
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            self._path,
            level=level,
            format=_FILE_FORMAT,
            rotation=self._rotation,
            retention=self._retention,
            serialize=self._serialize,
        )

    def describe(self, level: str) -> str:
        kind = "json" if self._serialize else "text"
        return f"file ({self._path}, {kind}, {level})"


_SINK_TYPES: dict[str, type] = {
    "console": ConsoleLogSink,
    "file": FileLogSink,
}

_DEFAULT_SINKS = [
    {"type": "console", "level": "WARNING"},
    {"type": "file"},
]


def setup_logging(
    level: str = "INFO",
    sinks: list[dict[str, Any]] | None = None,
) -> list[str]:
    """Replace loguru's sinks with the configured ones; returns a description of each."""
    logger.remove()

    descriptions: list[str] = []
    for config in sinks if sinks is not None else _DEFAULT_SINKS:
        sink_type = config.get("type", "")
        cls = _SINK_TYPES.get(sink_type)
        if cls is None:
            logger.warning(f"Unknown log sink type: {sink_type!r}")
            continue

        kwargs = {k: v for k, v in config.items() if k not in ("type", "level")}
        sink_level = config.get("level", level)
        try:
            sink = cls(**kwargs)
        except TypeError as ex:
            logger.warning(f"Invalid options for {sink_type} log sink: {ex}")
            continue
        sink.register(sink_level)
        descriptions.append(sink.describe(sink_level))

    return descriptions
